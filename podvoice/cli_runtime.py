"""CLI provider runtime resolution helpers.

This module isolates runtime source assembly and secure API-key lookup from
the command wiring layer.
"""

from __future__ import annotations

from typing import Callable, Protocol

from .config import normalize_optional_string
from .credentials import PROVIDER_ACCOUNTS, create_credential_store


class CredentialStoreProtocol(Protocol):
    """Protocol for credential store operations used by CLI runtime resolution."""

    def get_api_key(self, provider: str = "openai") -> str | None:
        """Return currently stored API key, if available."""


def _set_runtime_cli_value(
    runtime_cli_values: dict[str, str],
    key: str,
    value: str | None,
) -> None:
    """Set a normalized runtime CLI value when user input is present."""

    normalized = normalize_optional_string(value)
    if normalized is not None:
        runtime_cli_values[key] = normalized


def resolve_provider_runtime_sources(
    provider_tts: str | None = None,
    transcription_mode: str | None = None,
    model_tts: str | None = None,
    credential_store_factory: Callable[[], CredentialStoreProtocol] | None = None,
) -> tuple[dict[str, str], dict[str, str]]:
    """Resolve CLI and secure runtime source mappings for provider configuration."""

    runtime_cli_values: dict[str, str] = {}
    _set_runtime_cli_value(runtime_cli_values, "provider_tts", provider_tts)
    _set_runtime_cli_value(runtime_cli_values, "transcription_mode", transcription_mode)
    _set_runtime_cli_value(runtime_cli_values, "model_tts", model_tts)

    credential_store = (credential_store_factory or create_credential_store)()
    runtime_secure_values: dict[str, str] = {}
    for provider, account_name in PROVIDER_ACCOUNTS.items():
        stored_api_key = credential_store.get_api_key(provider)
        if stored_api_key is not None:
            runtime_secure_values[account_name] = stored_api_key

    return runtime_cli_values, runtime_secure_values
