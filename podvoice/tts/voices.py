"""Voice profiles and per-provider voice casting.

Responsibilities:
- Represent provider voice identities for each speaker role.
- Map short language codes to the BCP-47 codes speech providers expect.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from ..models.datatypes import SPEAKER_ROLES


@dataclass(frozen=True, slots=True)
class VoiceProfile:
    """Declarative voice profile used by speech providers.

    Attributes:
        role: Speaker role this voice performs.
        display_name: Name used for the speaker inside drafted dialogue.
        provider_voice_id: Provider-native voice identifier.
        description: Persona description handed to the script drafter.
    """

    role: str
    display_name: str
    provider_voice_id: str
    description: str


_ROLE_PERSONAS = {
    "host": ("Alex", "Curious host who guides the conversation and asks sharp questions"),
    "expert": ("Jamie", "Deep expert who explains mechanisms, details, and nuance"),
    "simplifier": ("Sam", "Simplifier who uses analogies and step-by-step explanations"),
}

_PROVIDER_VOICES = {
    "gemini": {"host": "Kore", "expert": "Charon", "simplifier": "Aoede"},
    "openai": {"host": "nova", "expert": "onyx", "simplifier": "shimmer"},
}

_LANGUAGE_CODES = {
    "en": "en-US",
    "fr": "fr-FR",
    "es": "es-ES",
    "de": "de-DE",
    "it": "it-IT",
    "pt": "pt-BR",
    "nl": "nl-NL",
    "pl": "pl-PL",
    "cs": "cs-CZ",
    "ru": "ru-RU",
    "ja": "ja-JP",
    "ko": "ko-KR",
    "zh": "cmn-CN",
    "ar": "ar-EG",
    "hi": "hi-IN",
}

_LANGUAGE_NAMES = {
    "en": "English",
    "fr": "French",
    "es": "Spanish",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "nl": "Dutch",
    "pl": "Polish",
    "cs": "Czech",
    "ru": "Russian",
    "ja": "Japanese",
    "ko": "Korean",
    "zh": "Chinese",
    "ar": "Arabic",
    "hi": "Hindi",
}


def voice_cast(provider_id: str, overrides: Mapping[str, str] | None = None) -> dict[str, VoiceProfile]:
    """Return the role -> voice profile cast for a speech provider."""

    try:
        provider_voices = _PROVIDER_VOICES[provider_id]
    except KeyError as exc:
        raise ValueError(f"No voice cast defined for provider `{provider_id}`.") from exc

    resolved_overrides = overrides or {}
    cast: dict[str, VoiceProfile] = {}
    for role in SPEAKER_ROLES:
        display_name, description = _ROLE_PERSONAS[role]
        cast[role] = VoiceProfile(
            role=role,
            display_name=display_name,
            provider_voice_id=resolved_overrides.get(role, provider_voices[role]),
            description=description,
        )
    return cast


def language_code(language: str) -> str:
    """Map a short language code (or `auto`) to a BCP-47 speech language code."""

    return _LANGUAGE_CODES.get((language or "").strip().lower()[:2], "en-US")


def language_name(language: str) -> str:
    """Return an English display name for a short language code."""

    return _LANGUAGE_NAMES.get((language or "").strip().lower()[:2], "English")
