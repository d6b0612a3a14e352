"""Unit tests for YAML/environment configuration loader behavior."""

from __future__ import annotations

from pathlib import Path

import pytest

from podvoice.config import ConfigLoader, PodvoiceConfig, RuntimeConfigSources


def test_config_loader_from_yaml_loads_valid_config_and_normalizes_values(
    tmp_path: Path,
) -> None:
    """YAML loader should parse valid payloads and normalize typed/blank values."""

    config_path = tmp_path / "podvoice.yml"
    config_path.write_text(
        """
workspace_dir: " data "
provider_tts: " openai "
transcription_mode: " text-layer "
model_tts: " gpt-4o-mini-tts "
model_script: "   "
audio_batch_turns: " 4 "
dialogue_char_budget: 2000
provider_call_delay_seconds: "0.5"
predicted_question_count: 0
speaking_rate: 1.2
voices:
  host: " alloy "
""".strip(),
        encoding="utf-8",
    )

    config = ConfigLoader.from_yaml(config_path)

    assert config.workspace_dir == Path("data")
    assert config.provider_tts == "openai"
    assert config.transcription_mode == "text-layer"
    assert config.model_tts == "gpt-4o-mini-tts"
    assert config.model_script == "gpt-4.1-mini"
    assert config.audio_batch_turns == 4
    assert config.dialogue_char_budget == 2000
    assert config.provider_call_delay_seconds == 0.5
    assert config.predicted_question_count == 0
    assert config.speaking_rate == 1.2
    assert config.voices == {"host": "alloy"}


def test_config_loader_from_yaml_accepts_empty_file(tmp_path: Path) -> None:
    config_path = tmp_path / "empty.yml"
    config_path.write_text("", encoding="utf-8")

    config = ConfigLoader.from_yaml(config_path)

    assert config.provider_tts == "gemini"
    assert config.transcription_batch_pages == 5
    assert config.max_turn_attempts == 3


def test_config_loader_from_yaml_rejects_unknown_keys_and_bad_values(tmp_path: Path) -> None:
    """YAML loader should fail clearly on unknown fields and malformed values."""

    cases = {
        "unknown.yml": ("input_pdf: book.pdf\n", r"unsupported key\(s\): input_pdf"),
        "list.yml": ("- a\n- b\n", "top-level mapping"),
        "int.yml": ("audio_batch_turns: many\n", "must be an integer"),
        "zero.yml": ("audio_batch_turns: 0\n", "must be a positive integer"),
        "provider.yml": ("provider_tts: elevenlabs\n", "Unsupported `provider_tts`"),
        "voice.yml": ("voices:\n  narrator: Kore\n", "Unknown voice role `narrator`"),
        "ceiling.yml": (
            "turn_char_ceiling: 4000\ndialogue_char_budget: 3000\n",
            "must not exceed",
        ),
        "speakers.yml": ("dialogue_max_speakers: 1\n", "at least 2"),
        "rate.yml": ("speaking_rate: 5\n", "between 0.25 and 4.0"),
    }
    for name, (content, message) in cases.items():
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        with pytest.raises(ValueError, match=message):
            ConfigLoader.from_yaml(path)


def test_config_loader_from_env_reads_prefixed_values() -> None:
    """Environment loader should map documented variables and keep them as sources."""

    config = ConfigLoader.from_env(
        {
            "PODVOICE_WORKSPACE": "/tmp/podvoice",
            "PODVOICE_PROVIDER_TTS": "openai",
            "PODVOICE_AUDIO_BATCH_TURNS": "3",
            "OPENAI_API_KEY": "sk-env",
            "GEMINI_API_KEY": " ",
            "UNRELATED": "value",
        }
    )

    assert config.workspace_dir == Path("/tmp/podvoice")
    assert config.provider_tts == "openai"
    assert config.audio_batch_turns == 3
    assert config.openai_api_key == "sk-env"
    assert config.gemini_api_key is None
    assert dict(config.runtime_sources.env) == {
        "PODVOICE_PROVIDER_TTS": "openai",
        "PODVOICE_AUDIO_BATCH_TURNS": "3",
        "OPENAI_API_KEY": "sk-env",
    }


def test_resolved_provider_runtime_prefers_cli_then_secure_then_env() -> None:
    """Runtime resolution should apply deterministic precedence per key."""

    config = PodvoiceConfig(provider_tts="gemini")
    sources = RuntimeConfigSources(
        cli={"model_tts": "cli-tts"},
        secure={"openai_api_key": "sk-secure", "model_tts": "secure-tts"},
        env={
            "PODVOICE_PROVIDER_TTS": "openai",
            "OPENAI_API_KEY": "sk-env",
            "GEMINI_API_KEY": "gm-env",
        },
    )

    runtime = config.resolved_provider_runtime(sources)

    assert runtime.tts_provider == "openai"
    assert runtime.tts_model == "cli-tts"
    assert runtime.openai_api_key == "sk-secure"
    assert runtime.gemini_api_key == "gm-env"
    assert "sk-secure" not in runtime.as_metadata().values()


def test_resolved_provider_runtime_uses_provider_default_tts_model() -> None:
    runtime = PodvoiceConfig(provider_tts="openai").resolved_provider_runtime()

    assert runtime.tts_model == "gpt-4o-mini-tts"
    assert runtime.transcription_mode == "vision"


def test_resolved_provider_runtime_rejects_unsupported_override() -> None:
    config = PodvoiceConfig()

    with pytest.raises(ValueError, match="Unsupported `transcription_mode`"):
        config.resolved_provider_runtime(RuntimeConfigSources(cli={"transcription_mode": "ocr"}))
