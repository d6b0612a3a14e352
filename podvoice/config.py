"""Configuration model and loaders for Podvoice.

Responsibilities:
- Define runtime configuration as a typed dataclass.
- Provide deterministic precedence resolution for provider/model/API-key settings.
- Provide loader entry points for file- and environment-based configuration.

Key types:
- `PodvoiceConfig`: normalized settings for pipeline invocations.
- `ProviderRuntimeConfig`: resolved provider/model runtime values.
- `RuntimeConfigSources`: optional value sources for precedence resolution.
- `ConfigLoader`: static construction helpers for `PodvoiceConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from .models.datatypes import SPEAKER_ROLES


_DEFAULT_TRANSCRIBE_MODEL = "gpt-4o-mini"
_DEFAULT_EXTRACT_MODEL = "gpt-4.1-mini"
_DEFAULT_SCRIPT_MODEL = "gpt-4.1-mini"
_DEFAULT_TTS_MODELS = {
    "gemini": "gemini-2.5-flash-preview-tts",
    "openai": "gpt-4o-mini-tts",
}
_SUPPORTED_LLM_PROVIDER_IDS = frozenset({"openai"})
_SUPPORTED_TTS_PROVIDER_IDS = frozenset(_DEFAULT_TTS_MODELS)
_SUPPORTED_TRANSCRIPTION_MODES = frozenset({"vision", "text-layer"})


def normalize_optional_string(value: object) -> str | None:
    """Normalize an optional value to a stripped non-empty string.

    Args:
        value: Arbitrary input value.

    Returns:
        Stripped string value, or `None` when the value is empty after trimming.
    """

    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return text


@dataclass(frozen=True, slots=True)
class RuntimeConfigSources:
    """Source mappings used for deterministic runtime value precedence.

    Attributes:
        cli: Values explicitly provided by CLI arguments.
        secure: Values loaded from secure local credential storage.
        env: Values loaded from environment variables.
    """

    cli: Mapping[str, str] = field(default_factory=dict)
    secure: Mapping[str, str] = field(default_factory=dict)
    env: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ProviderRuntimeConfig:
    """Resolved runtime provider and model identifiers for one invocation.

    Attributes:
        llm_provider: Provider for transcription, extraction, and drafting.
        tts_provider: Provider for speech synthesis.
        transcription_mode: `vision` (page images) or `text-layer` (PDF text).
        transcribe_model: Vision model used for page transcription.
        extract_model: Chat model used for knowledge extraction.
        script_model: Chat model used for script drafting.
        tts_model: Speech model identifier.
        openai_api_key: Optional OpenAI key (never persisted).
        gemini_api_key: Optional Gemini key (never persisted).
    """

    llm_provider: str
    tts_provider: str
    transcription_mode: str
    transcribe_model: str
    extract_model: str
    script_model: str
    tts_model: str
    openai_api_key: str | None = None
    gemini_api_key: str | None = None

    def as_metadata(self) -> dict[str, str]:
        """Return non-secret runtime metadata safe to log or display."""

        return {
            "provider_llm": self.llm_provider,
            "provider_tts": self.tts_provider,
            "transcription_mode": self.transcription_mode,
            "model_transcribe": self.transcribe_model,
            "model_extract": self.extract_model,
            "model_script": self.script_model,
            "model_tts": self.tts_model,
        }


@dataclass(slots=True)
class PodvoiceConfig:
    """Runtime configuration for pipeline invocations.

    Attributes:
        workspace_dir: Root directory for jobs, documents, and audio blobs.
        provider_llm: LLM provider identifier.
        provider_tts: Speech provider identifier (`gemini` or `openai`).
        transcription_mode: `vision` or `text-layer`.
        model_transcribe: Vision model identifier.
        model_extract: Extraction model identifier.
        model_script: Drafting model identifier.
        model_tts: Speech model identifier; `None` selects the provider default.
        voices: Optional role -> provider voice overrides.
        openai_api_key: Optional OpenAI API key.
        gemini_api_key: Optional Gemini API key.
        transcription_batch_pages: Pages transcribed per invocation.
        audio_batch_turns: Turns synthesized per invocation.
        dialogue_char_budget: Character budget of one multi-speaker request.
        dialogue_max_turns: Maximum turns in one multi-speaker request.
        dialogue_max_speakers: Maximum distinct roles in one multi-speaker request.
        turn_char_ceiling: Turns longer than this are always synthesized alone.
        label_overhead_chars: Per-turn speaker label overhead counted against the budget.
        provider_call_delay_seconds: Minimum delay between synthesis calls.
        request_timeout_seconds: Timeout for every provider HTTP request.
        max_retries: Transient-failure retries per provider request.
        max_turn_attempts: Failed attempts after which a turn fails the job.
        predicted_question_count: Listener questions drafted with the script; 0 disables them.
        speaking_rate: OpenAI speech speed multiplier in the 0.25-4.0 range.
        runtime_sources: Optional runtime source overrides injected by CLI.
    """

    workspace_dir: Path = Path("podvoice-data")
    provider_llm: str = "openai"
    provider_tts: str = "gemini"
    transcription_mode: str = "vision"
    model_transcribe: str = _DEFAULT_TRANSCRIBE_MODEL
    model_extract: str = _DEFAULT_EXTRACT_MODEL
    model_script: str = _DEFAULT_SCRIPT_MODEL
    model_tts: str | None = None
    voices: dict[str, str] = field(default_factory=dict)
    openai_api_key: str | None = None
    gemini_api_key: str | None = None
    transcription_batch_pages: int = 5
    audio_batch_turns: int = 6
    dialogue_char_budget: int = 3000
    dialogue_max_turns: int = 4
    dialogue_max_speakers: int = 2
    turn_char_ceiling: int = 1500
    label_overhead_chars: int = 16
    provider_call_delay_seconds: float = 0.3
    request_timeout_seconds: float = 60.0
    max_retries: int = 2
    max_turn_attempts: int = 3
    predicted_question_count: int = 15
    speaking_rate: float = 1.0
    runtime_sources: RuntimeConfigSources = field(default_factory=RuntimeConfigSources)

    def validate(self) -> None:
        """Validate configuration values before pipeline execution."""

        self._validate_choice(self.provider_llm, _SUPPORTED_LLM_PROVIDER_IDS, "provider_llm")
        self._validate_choice(self.provider_tts, _SUPPORTED_TTS_PROVIDER_IDS, "provider_tts")
        self._validate_choice(
            self.transcription_mode, _SUPPORTED_TRANSCRIPTION_MODES, "transcription_mode"
        )
        self._require_non_empty(self.model_transcribe, "model_transcribe")
        self._require_non_empty(self.model_extract, "model_extract")
        self._require_non_empty(self.model_script, "model_script")
        for role, voice in self.voices.items():
            if role not in SPEAKER_ROLES:
                supported = ", ".join(SPEAKER_ROLES)
                raise ValueError(f"Unknown voice role `{role}`; supported: {supported}.")
            self._require_non_empty(voice, f"voices.{role}")
        for name in (
            "transcription_batch_pages",
            "audio_batch_turns",
            "dialogue_char_budget",
            "dialogue_max_turns",
            "turn_char_ceiling",
            "max_turn_attempts",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"`{name}` must be a positive integer.")
        if self.dialogue_max_speakers < 2:
            raise ValueError("`dialogue_max_speakers` must be at least 2.")
        if self.turn_char_ceiling > self.dialogue_char_budget:
            raise ValueError("`turn_char_ceiling` must not exceed `dialogue_char_budget`.")
        if self.label_overhead_chars < 0 or self.max_retries < 0:
            raise ValueError("`label_overhead_chars` and `max_retries` must not be negative.")
        if self.provider_call_delay_seconds < 0.0:
            raise ValueError("`provider_call_delay_seconds` must not be negative.")
        if self.request_timeout_seconds <= 0.0:
            raise ValueError("`request_timeout_seconds` must be positive.")
        if self.predicted_question_count < 0:
            raise ValueError("`predicted_question_count` must not be negative.")
        if not 0.25 <= self.speaking_rate <= 4.0:
            raise ValueError("`speaking_rate` must be between 0.25 and 4.0.")

    def resolved_provider_runtime(
        self, sources: RuntimeConfigSources | None = None
    ) -> ProviderRuntimeConfig:
        """Resolve provider and model settings with deterministic source precedence.

        Precedence for each key is:
        `cli` > `secure` > `env` > config field default.
        """

        resolved_sources = sources if sources is not None else self.runtime_sources

        llm_provider = self._resolve_runtime_value(
            "provider_llm", "PODVOICE_PROVIDER_LLM", self.provider_llm, resolved_sources
        )
        tts_provider = self._resolve_runtime_value(
            "provider_tts", "PODVOICE_PROVIDER_TTS", self.provider_tts, resolved_sources
        )
        transcription_mode = self._resolve_runtime_value(
            "transcription_mode",
            "PODVOICE_TRANSCRIPTION_MODE",
            self.transcription_mode,
            resolved_sources,
        )
        self._validate_choice(llm_provider, _SUPPORTED_LLM_PROVIDER_IDS, "provider_llm")
        self._validate_choice(tts_provider, _SUPPORTED_TTS_PROVIDER_IDS, "provider_tts")
        self._validate_choice(
            transcription_mode, _SUPPORTED_TRANSCRIPTION_MODES, "transcription_mode"
        )

        return ProviderRuntimeConfig(
            llm_provider=llm_provider,
            tts_provider=tts_provider,
            transcription_mode=transcription_mode,
            transcribe_model=self._resolve_runtime_value(
                "model_transcribe",
                "PODVOICE_MODEL_TRANSCRIBE",
                self.model_transcribe,
                resolved_sources,
            ),
            extract_model=self._resolve_runtime_value(
                "model_extract", "PODVOICE_MODEL_EXTRACT", self.model_extract, resolved_sources
            ),
            script_model=self._resolve_runtime_value(
                "model_script", "PODVOICE_MODEL_SCRIPT", self.model_script, resolved_sources
            ),
            tts_model=self._resolve_runtime_value(
                "model_tts",
                "PODVOICE_MODEL_TTS",
                self.model_tts or _DEFAULT_TTS_MODELS[tts_provider],
                resolved_sources,
            ),
            openai_api_key=self._resolve_optional_runtime_value(
                "openai_api_key", "OPENAI_API_KEY", self.openai_api_key, resolved_sources
            ),
            gemini_api_key=self._resolve_optional_runtime_value(
                "gemini_api_key", "GEMINI_API_KEY", self.gemini_api_key, resolved_sources
            ),
        )

    def _resolve_runtime_value(
        self,
        key: str,
        env_key: str,
        default_value: str | None,
        sources: RuntimeConfigSources,
    ) -> str:
        """Resolve a required runtime value in precedence order."""

        resolved = self._resolve_optional_runtime_value(key, env_key, default_value, sources)
        if resolved is None:
            raise ValueError(
                f"`{key}` could not be resolved from CLI, secure storage, env, or defaults."
            )
        return resolved

    def _resolve_optional_runtime_value(
        self,
        key: str,
        env_key: str,
        default_value: str | None,
        sources: RuntimeConfigSources,
    ) -> str | None:
        """Resolve an optional runtime value in precedence order."""

        for mapping, lookup_key in (
            (sources.cli, key),
            (sources.secure, key),
            (sources.env, env_key),
        ):
            if lookup_key in mapping:
                value = normalize_optional_string(mapping.get(lookup_key))
                if value is not None:
                    return value
        return normalize_optional_string(default_value)

    @staticmethod
    def _validate_choice(value: str, supported: frozenset[str], field_name: str) -> None:
        """Validate an identifier against a closed set of supported values."""

        if value not in supported:
            choices = ", ".join(sorted(supported))
            raise ValueError(f"Unsupported `{field_name}` value `{value}`; supported: {choices}.")

    @staticmethod
    def _require_non_empty(value: str, field_name: str) -> None:
        """Validate that string fields are not empty."""

        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"`{field_name}` must be a non-empty string.")


class ConfigLoader:
    """Factory methods for creating `PodvoiceConfig` from external sources."""

    _STRING_KEYS = (
        "provider_llm",
        "provider_tts",
        "transcription_mode",
        "model_transcribe",
        "model_extract",
        "model_script",
        "model_tts",
        "openai_api_key",
        "gemini_api_key",
    )
    _POSITIVE_INT_KEYS = (
        "transcription_batch_pages",
        "audio_batch_turns",
        "dialogue_char_budget",
        "dialogue_max_turns",
        "dialogue_max_speakers",
        "turn_char_ceiling",
        "label_overhead_chars",
        "max_retries",
        "max_turn_attempts",
        "predicted_question_count",
    )
    _FLOAT_KEYS = ("provider_call_delay_seconds", "request_timeout_seconds", "speaking_rate")
    _SUPPORTED_YAML_KEYS = frozenset(
        {"workspace_dir", "voices", *_STRING_KEYS, *_POSITIVE_INT_KEYS, *_FLOAT_KEYS}
    )
    _ENV_KEYS = {
        "PODVOICE_PROVIDER_LLM": "provider_llm",
        "PODVOICE_PROVIDER_TTS": "provider_tts",
        "PODVOICE_TRANSCRIPTION_MODE": "transcription_mode",
        "PODVOICE_MODEL_TRANSCRIBE": "model_transcribe",
        "PODVOICE_MODEL_EXTRACT": "model_extract",
        "PODVOICE_MODEL_SCRIPT": "model_script",
        "PODVOICE_MODEL_TTS": "model_tts",
        "OPENAI_API_KEY": "openai_api_key",
        "GEMINI_API_KEY": "gemini_api_key",
        "PODVOICE_TRANSCRIPTION_BATCH_PAGES": "transcription_batch_pages",
        "PODVOICE_AUDIO_BATCH_TURNS": "audio_batch_turns",
        "PODVOICE_REQUEST_TIMEOUT_SECONDS": "request_timeout_seconds",
    }

    @staticmethod
    def from_yaml(path: Path) -> PodvoiceConfig:
        """Create a validated config from a YAML file."""

        payload = yaml.safe_load(path.read_text(encoding="utf-8"))
        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"YAML config `{path}` must contain a top-level mapping/object.")
        return ConfigLoader._build_config_from_mapping(payload, source_label=f"YAML `{path}`")

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> PodvoiceConfig:
        """Create a validated config from environment variables."""

        env_map: Mapping[str, str] = os.environ if env is None else env
        payload: dict[str, Any] = {}
        workspace = normalize_optional_string(env_map.get("PODVOICE_WORKSPACE"))
        if workspace is not None:
            payload["workspace_dir"] = workspace
        for env_key, field_name in ConfigLoader._ENV_KEYS.items():
            value = normalize_optional_string(env_map.get(env_key))
            if value is not None:
                payload[field_name] = value

        config = ConfigLoader._build_config_from_mapping(payload, source_label="Environment")
        runtime_env = {
            key: value
            for key, value in env_map.items()
            if key in ConfigLoader._ENV_KEYS and normalize_optional_string(value) is not None
        }
        config.runtime_sources = RuntimeConfigSources(env=runtime_env)
        return config

    @staticmethod
    def _build_config_from_mapping(
        payload: Mapping[str, Any], source_label: str
    ) -> PodvoiceConfig:
        """Build a validated config from a normalized mapping payload."""

        unknown = sorted(set(payload).difference(ConfigLoader._SUPPORTED_YAML_KEYS))
        if unknown:
            raise ValueError(f"{source_label} includes unsupported key(s): {', '.join(unknown)}.")

        values: dict[str, Any] = {}
        workspace = normalize_optional_string(payload.get("workspace_dir"))
        if workspace is not None:
            values["workspace_dir"] = Path(workspace)
        for key in ConfigLoader._STRING_KEYS:
            value = normalize_optional_string(payload.get(key))
            if value is not None:
                values[key] = value
        for key in ConfigLoader._POSITIVE_INT_KEYS:
            if key in payload:
                values[key] = ConfigLoader._optional_int(payload, key, source_label)
        for key in ConfigLoader._FLOAT_KEYS:
            if key in payload:
                values[key] = ConfigLoader._optional_float(payload, key, source_label)
        values["voices"] = ConfigLoader._optional_string_map(payload, "voices", source_label)

        config = PodvoiceConfig(**values)
        config.validate()
        return config

    @staticmethod
    def _optional_int(payload: Mapping[str, Any], key: str, source_label: str) -> int:
        """Read a non-negative integer field."""

        raw_value = payload[key]
        if isinstance(raw_value, bool):
            raise ValueError(f"{source_label} field `{key}` must be an integer.")
        try:
            parsed = int(str(raw_value).strip())
        except ValueError as exc:
            raise ValueError(f"{source_label} field `{key}` must be an integer.") from exc
        if parsed < 0:
            raise ValueError(f"{source_label} field `{key}` must not be negative.")
        return parsed

    @staticmethod
    def _optional_float(payload: Mapping[str, Any], key: str, source_label: str) -> float:
        """Read a non-negative float field."""

        raw_value = payload[key]
        if isinstance(raw_value, bool):
            raise ValueError(f"{source_label} field `{key}` must be a number.")
        try:
            parsed = float(str(raw_value).strip())
        except ValueError as exc:
            raise ValueError(f"{source_label} field `{key}` must be a number.") from exc
        if parsed < 0.0:
            raise ValueError(f"{source_label} field `{key}` must not be negative.")
        return parsed

    @staticmethod
    def _optional_string_map(
        payload: Mapping[str, Any], key: str, source_label: str
    ) -> dict[str, str]:
        """Read an optional mapping with non-empty string keys and values."""

        raw = payload.get(key)
        if raw is None:
            return {}
        if not isinstance(raw, Mapping):
            raise ValueError(f"{source_label} field `{key}` must be a mapping/object.")

        normalized: dict[str, str] = {}
        for raw_key, raw_value in raw.items():
            key_value = normalize_optional_string(raw_key)
            value_value = normalize_optional_string(raw_value)
            if key_value is None:
                raise ValueError(f"{source_label} field `{key}` contains a blank key.")
            if value_value is None:
                raise ValueError(
                    f"{source_label} field `{key}` contains blank value for `{key_value}`."
                )
            normalized[key_value] = value_value
        return normalized
