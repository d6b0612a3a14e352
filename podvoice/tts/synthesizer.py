"""Speech synthesizer interfaces and provider-backed implementations.

Responsibilities:
- Define the closed `Synthesizer` protocol (single-speaker and dialogue modes).
- Provide Gemini (single + multi-speaker) and OpenAI (single-speaker) backends.
- Convert provider failures into `SynthesisError` with actionable hints.
"""

from __future__ import annotations

from typing import Protocol, Sequence
import wave

from ..audio.pcm import parse_pcm_mime_type, read_wav, wrap_wav
from ..errors import SynthesisError
from ..llm.openai_client import OpenAISpeechClient
from ..llm.provider_http import ProviderError, provider_error_hint
from ..models.datatypes import DialogueLine, PcmAudio, SynthesisResult
from ..text.cleaners import count_words
from .gemini_client import GeminiSpeechClient
from .voices import language_code

WORDS_PER_MINUTE = 135.0


def estimate_speech_seconds(text: str) -> float:
    """Estimate spoken duration at a fixed words-per-minute rate (at least 1 s).

    This is an approximation for results without a measurable sample count and
    must not be treated as sample accurate.
    """

    return max(1.0, count_words(text) / WORDS_PER_MINUTE * 60.0)


class Synthesizer(Protocol):
    """Protocol for speech provider implementations."""

    provider_id: str

    def synthesize_single(self, text: str, voice: str, language: str) -> SynthesisResult:
        """Synthesize one utterance with one voice."""

    def synthesize_dialogue(self, lines: Sequence[DialogueLine], language: str) -> PcmAudio:
        """Synthesize two or more lines by at most two roles into one PCM buffer."""


def _require_text(text: str) -> str:
    normalized = (text or "").strip()
    if not normalized:
        raise SynthesisError(
            "Cannot synthesize empty text.",
            hint="Empty turns are script defects; redraft the script.",
        )
    return normalized


def _synthesis_error(exc: ProviderError, mode: str) -> SynthesisError:
    return SynthesisError(f"{mode} synthesis failed: {exc}", hint=provider_error_hint(exc))


class GeminiSynthesizer:
    """Gemini-backed synthesizer with native two-speaker dialogue support."""

    provider_id = "gemini"

    def __init__(
        self,
        model: str = "gemini-2.5-flash-preview-tts",
        api_key: str | None = None,
        client: GeminiSpeechClient | None = None,
        timeout_seconds: float = 60.0,
        max_retries: int = 2,
    ) -> None:
        """Initialize Gemini speech settings."""

        self.model = model
        self.client = client or GeminiSpeechClient(
            api_key=api_key,
            timeout_seconds=timeout_seconds,
            max_retries=max_retries,
        )

    def synthesize_single(self, text: str, voice: str, language: str) -> SynthesisResult:
        """Synthesize one utterance and return it as a WAV clip with exact duration."""

        normalized = _require_text(text)
        try:
            pcm, mime_type = self.client.synthesize_single(
                model=self.model,
                text=normalized,
                voice=voice,
                language_code=language_code(language),
            )
        except ProviderError as exc:
            raise _synthesis_error(exc, "Single-speaker") from exc
        audio = self._to_pcm_audio(pcm, mime_type)
        return SynthesisResult(
            audio=wrap_wav(audio.data, audio.format),
            content_type="audio/wav",
            extension="wav",
            duration_seconds=audio.duration_seconds,
        )

    def synthesize_dialogue(self, lines: Sequence[DialogueLine], language: str) -> PcmAudio:
        """Synthesize labeled lines into one combined PCM buffer."""

        if len(lines) < 2:
            raise SynthesisError("Dialogue synthesis needs at least two lines.")
        voices_by_role: dict[str, str] = {}
        for line in lines:
            _require_text(line.text)
            voices_by_role.setdefault(line.role, line.voice)
        if len(voices_by_role) > 2:
            raise SynthesisError(
                f"Dialogue synthesis supports at most two speakers, got {len(voices_by_role)}."
            )

        aliases = {role: role.capitalize() for role in voices_by_role}
        transcript = "\n".join(f"{aliases[line.role]}: {line.text.strip()}" for line in lines)
        prompt = (
            f"TTS the following conversation between {' and '.join(aliases.values())}. "
            "Make it sound like a friendly, natural educational discussion.\n"
            f"{transcript}"
        )
        try:
            pcm, mime_type = self.client.synthesize_multi_speaker(
                model=self.model,
                text=prompt,
                speakers=[(aliases[role], voice) for role, voice in voices_by_role.items()],
                language_code=language_code(language),
            )
        except ProviderError as exc:
            raise _synthesis_error(exc, "Dialogue") from exc
        return self._to_pcm_audio(pcm, mime_type)

    @staticmethod
    def _to_pcm_audio(pcm: bytes, mime_type: str) -> PcmAudio:
        audio = PcmAudio(data=pcm, format=parse_pcm_mime_type(mime_type))
        if audio.sample_count == 0:
            raise SynthesisError("Gemini returned an empty audio buffer.")
        return audio


class OpenAISynthesizer:
    """OpenAI-backed single-voice synthesizer; dialogue requests always fail."""

    provider_id = "openai"

    def __init__(
        self,
        model: str = "gpt-4o-mini-tts",
        api_key: str | None = None,
        client: OpenAISpeechClient | None = None,
        timeout_seconds: float = 60.0,
        max_retries: int = 2,
        speaking_rate: float = 1.0,
    ) -> None:
        """Initialize OpenAI speech settings."""

        self.model = model
        self.speaking_rate = max(0.25, min(4.0, speaking_rate))
        self.client = client or OpenAISpeechClient(
            api_key=api_key,
            timeout_seconds=timeout_seconds,
            max_retries=max_retries,
        )

    def synthesize_single(self, text: str, voice: str, language: str) -> SynthesisResult:
        """Synthesize one WAV utterance; duration comes from the PCM payload."""

        normalized = _require_text(text)
        _ = language
        try:
            payload = self.client.synthesize_speech(
                model=self.model,
                voice=voice,
                text=normalized,
                response_format="wav",
                speed=self.speaking_rate,
            )
        except ProviderError as exc:
            raise _synthesis_error(exc, "Single-speaker") from exc

        try:
            duration = read_wav(payload).duration_seconds
            estimated = False
        except (wave.Error, EOFError):
            duration = estimate_speech_seconds(normalized)
            estimated = True
        if duration <= 0.0:
            duration = estimate_speech_seconds(normalized)
            estimated = True
        return SynthesisResult(
            audio=payload,
            content_type="audio/wav",
            extension="wav",
            duration_seconds=duration,
            duration_estimated=estimated,
        )

    def synthesize_dialogue(self, lines: Sequence[DialogueLine], language: str) -> PcmAudio:
        """Reject dialogue requests so callers fall back to per-turn synthesis."""

        _ = lines
        _ = language
        raise SynthesisError(
            "OpenAI speech synthesis supports a single speaker per request.",
            hint="Dialogue batches fall back to per-turn synthesis automatically.",
        )
