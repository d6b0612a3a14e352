"""Secure credential storage helpers for the Podvoice CLI.

Responsibilities:
- Persist provider API keys in an OS-backed secure credential store.
- Provide deterministic read/write/delete operations per provider.
- Avoid logging or exposing secret values in diagnostics.

Key types:
- `CredentialStore`: interface for provider credential persistence.
- `KeyringCredentialStore`: keyring-backed secure credential storage.
"""

from __future__ import annotations

from dataclasses import dataclass

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

_DEFAULT_SERVICE_NAME = "podvoice"
PROVIDER_ACCOUNTS = {
    "openai": "openai_api_key",
    "gemini": "gemini_api_key",
}


def account_name_for(provider: str) -> str:
    """Return the keyring account name used for a provider's API key."""

    try:
        return PROVIDER_ACCOUNTS[provider]
    except KeyError as exc:
        supported = ", ".join(sorted(PROVIDER_ACCOUNTS))
        raise ValueError(f"Unsupported credential provider `{provider}`; supported: {supported}.") from exc


class CredentialStore:
    """Interface for secure provider credential operations."""

    def is_available(self) -> bool:
        """Return whether secure credential operations are available."""

        raise NotImplementedError

    def get_api_key(self, provider: str = "openai") -> str | None:
        """Load a stored API key from secure storage, when available."""

        raise NotImplementedError

    def set_api_key(self, api_key: str, provider: str = "openai") -> None:
        """Persist an API key in secure storage."""

        raise NotImplementedError

    def clear_api_key(self, provider: str = "openai") -> bool:
        """Delete a stored API key and return whether one existed."""

        raise NotImplementedError


@dataclass(slots=True)
class KeyringCredentialStore(CredentialStore):
    """Secure credential store backed by the `keyring` package."""

    service_name: str = _DEFAULT_SERVICE_NAME

    def _load_keyring_module(self):
        """Return the keyring module used for credential operations."""

        return keyring

    def is_available(self) -> bool:
        """Return `True` when the active keyring backend can store secrets."""

        keyring_module = self._load_keyring_module()
        get_keyring = getattr(keyring_module, "get_keyring", None)
        if get_keyring is None:
            return True
        return getattr(get_keyring(), "priority", 1) > 0

    def get_api_key(self, provider: str = "openai") -> str | None:
        """Get a normalized API key from keyring, returning `None` when missing."""

        try:
            value = self._load_keyring_module().get_password(
                self.service_name, account_name_for(provider)
            )
        except KeyringError:
            return None
        if value is None:
            return None
        normalized = value.strip()
        if not normalized:
            return None
        return normalized

    def set_api_key(self, api_key: str, provider: str = "openai") -> None:
        """Persist a normalized API key in keyring."""

        normalized = api_key.strip()
        if not normalized:
            raise ValueError("API key must be a non-empty string.")
        self._load_keyring_module().set_password(
            self.service_name, account_name_for(provider), normalized
        )

    def clear_api_key(self, provider: str = "openai") -> bool:
        """Remove a stored API key from keyring and report if one was present."""

        if self.get_api_key(provider) is None:
            return False
        try:
            self._load_keyring_module().delete_password(
                self.service_name, account_name_for(provider)
            )
        except PasswordDeleteError:
            return False
        return True


def create_credential_store() -> CredentialStore:
    """Create the default secure credential store implementation."""

    return KeyringCredentialStore()
