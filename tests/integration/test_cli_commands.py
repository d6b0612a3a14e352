"""Integration tests for CLI job commands and secure credential flows."""

from __future__ import annotations

import wave
from pathlib import Path

import pytest
from pytest import MonkeyPatch
from typer.testing import CliRunner

from podvoice.cli import app
from podvoice.provider_factory import ProviderFactory

from tests.fakes import FakeDrafter, FakeExtractor, FakeSynthesizer, FakeTranscriber


class InMemoryCredentialStore:
    """Simple in-memory credential store used for CLI tests."""

    def __init__(self) -> None:
        self._keys: dict[str, str] = {}

    def is_available(self) -> bool:
        return True

    def get_api_key(self, provider: str = "openai") -> str | None:
        return self._keys.get(provider)

    def set_api_key(self, api_key: str, provider: str = "openai") -> None:
        self._keys[provider] = api_key.strip()

    def clear_api_key(self, provider: str = "openai") -> bool:
        return self._keys.pop(provider, None) is not None


@pytest.fixture
def credential_store(monkeypatch: MonkeyPatch) -> InMemoryCredentialStore:
    """Replace OS keyring access for every CLI command."""

    store = InMemoryCredentialStore()
    monkeypatch.setattr("podvoice.cli.create_credential_store", lambda: store)
    monkeypatch.setattr("podvoice.cli_runtime.create_credential_store", lambda: store)
    return store


@pytest.fixture
def fake_providers(monkeypatch: MonkeyPatch, credential_store: InMemoryCredentialStore) -> FakeSynthesizer:
    """Route provider construction to in-memory fakes."""

    _ = credential_store
    synthesizer = FakeSynthesizer()
    monkeypatch.setattr(ProviderFactory, "create_transcriber", staticmethod(lambda runtime, config: FakeTranscriber()))
    monkeypatch.setattr(ProviderFactory, "create_extractor", staticmethod(lambda runtime, config: FakeExtractor()))
    monkeypatch.setattr(ProviderFactory, "create_drafter", staticmethod(lambda runtime, config: FakeDrafter()))
    monkeypatch.setattr(ProviderFactory, "create_synthesizer", staticmethod(lambda runtime, config: synthesizer))
    return synthesizer


def _create(runner: CliRunner, workspace: Path, doc: Path, job_id: str = "job-1") -> None:
    result = runner.invoke(
        app,
        ["create", job_id, "--doc", str(doc), "--duration", "5", "--workspace", str(workspace)],
    )
    assert result.exit_code == 0, result.output
    assert f"Created job: {job_id}" in result.output


def test_create_run_status_and_export_produce_a_program(
    tmp_path: Path, text_pdf_path: Path, fake_providers: FakeSynthesizer
) -> None:
    """A job created from one PDF runs to ready and exports one WAV file."""

    runner = CliRunner()
    workspace = tmp_path / "workspace"
    _create(runner, workspace, text_pdf_path)

    run_result = runner.invoke(app, ["run", "job-1", "--workspace", str(workspace)])
    assert run_result.exit_code == 0, run_result.output
    assert "[progress] command=run | 1/4 stage=transcribe" in run_result.output
    assert "[advance] stage=script status=generating progress=65% turns=0/4" in run_result.output
    assert "[advance] stage=finalize status=ready progress=100% turns=4/4" in run_result.output
    assert "Message: Podcast ready (14 s)" in run_result.output
    assert len(fake_providers.dialogue_calls) == 1

    status_result = runner.invoke(app, ["status", "job-1", "--workspace", str(workspace)])
    assert status_result.exit_code == 0, status_result.output
    assert "Status: ready (100%)" in status_result.output
    assert "1. Topic 1 [0.0s - 7.0s]" in status_result.output
    assert "Next stage: done" in status_result.output

    out_path = tmp_path / "export" / "program.wav"
    export_result = runner.invoke(
        app, ["export", "job-1", "--out", str(out_path), "--workspace", str(workspace)]
    )
    assert export_result.exit_code == 0, export_result.output
    assert "Duration: 14 s" in export_result.output
    with wave.open(str(out_path), "rb") as program:
        assert program.getnframes() == 14 * 24000


def test_run_stops_at_step_limit_and_export_rejects_unready_jobs(
    tmp_path: Path, text_pdf_path: Path, fake_providers: FakeSynthesizer
) -> None:
    runner = CliRunner()
    workspace = tmp_path / "workspace"
    _create(runner, workspace, text_pdf_path)

    run_result = runner.invoke(app, ["run", "job-1", "--max-steps", "1", "--workspace", str(workspace)])
    assert run_result.exit_code == 0, run_result.output
    assert "Stopped after 1 step(s); run again to continue." in run_result.output

    export_result = runner.invoke(
        app, ["export", "job-1", "--out", str(tmp_path / "p.wav"), "--workspace", str(workspace)]
    )
    assert export_result.exit_code == 1
    assert "export failed at stage `export`" in export_result.output


def test_commands_report_stage_errors_with_exit_code_one(
    tmp_path: Path, fake_providers: FakeSynthesizer
) -> None:
    runner = CliRunner()
    workspace = tmp_path / "workspace"

    advance_result = runner.invoke(app, ["advance", "ghost", "--workspace", str(workspace)])
    assert advance_result.exit_code == 1
    assert "advance failed at stage `input`: Unknown job `ghost`." in advance_result.output

    create_result = runner.invoke(
        app, ["create", "job-1", "--doc", str(tmp_path / "missing.pdf"), "--workspace", str(workspace)]
    )
    assert create_result.exit_code == 1
    assert "create failed at stage `input`" in create_result.output

    config_path = tmp_path / "podvoice.yaml"
    config_path.write_text("provider_tts: elevenlabs\n", encoding="utf-8")
    config_result = runner.invoke(app, ["status", "job-1", "--config", str(config_path)])
    assert config_result.exit_code == 1
    assert "status failed at stage `config`" in config_result.output


def test_advance_rejects_unsupported_cli_provider_override(
    tmp_path: Path, text_pdf_path: Path, credential_store: InMemoryCredentialStore
) -> None:
    """Provider overrides are validated when the first provider is needed."""

    runner = CliRunner()
    workspace = tmp_path / "workspace"
    _create(runner, workspace, text_pdf_path)

    result = runner.invoke(
        app, ["advance", "job-1", "--workspace", str(workspace), "--provider-tts", "polly"]
    )

    assert result.exit_code == 1
    assert "stage `config`" in result.output


def test_credentials_set_status_and_clear(credential_store: InMemoryCredentialStore) -> None:
    runner = CliRunner()

    set_result = runner.invoke(
        app, ["credentials", "--provider", "gemini", "--set-api-key"], input="gm-secret\n"
    )
    assert set_result.exit_code == 0, set_result.output
    assert "gemini API key stored in secure credential storage." in set_result.output
    assert credential_store.get_api_key("gemini") == "gm-secret"

    status_result = runner.invoke(app, ["credentials"])
    assert "Secure credential storage: available" in status_result.output
    assert "Stored gemini API key: present" in status_result.output
    assert "Stored openai API key: not set" in status_result.output
    assert "gm-secret" not in status_result.output

    clear_result = runner.invoke(app, ["credentials", "--provider", "gemini", "--clear-api-key"])
    assert "Stored gemini API key cleared" in clear_result.output
    again = runner.invoke(app, ["credentials", "--provider", "gemini", "--clear-api-key"])
    assert "No stored gemini API key found" in again.output


def test_credentials_rejects_unknown_provider_and_conflicting_flags(
    credential_store: InMemoryCredentialStore,
) -> None:
    runner = CliRunner()

    unknown = runner.invoke(app, ["credentials", "--provider", "azure"])
    assert unknown.exit_code == 1
    assert "Unsupported provider `azure`" in unknown.output

    conflicting = runner.invoke(app, ["credentials", "--set-api-key", "--clear-api-key"])
    assert conflicting.exit_code == 1
    assert "cannot be used together" in conflicting.output
