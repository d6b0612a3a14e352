"""Integration-test fixtures for deterministic provider behavior."""

from __future__ import annotations

import pytest


@pytest.fixture(autouse=True)
def _isolate_provider_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host API keys and `PODVOICE_*` settings out of integration runs."""

    for key in (
        "OPENAI_API_KEY",
        "GEMINI_API_KEY",
        "PODVOICE_WORKSPACE",
        "PODVOICE_PROVIDER_TTS",
        "PODVOICE_TRANSCRIPTION_MODE",
        "PODVOICE_MODEL_TTS",
    ):
        monkeypatch.delenv(key, raising=False)
