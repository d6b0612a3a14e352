"""Unit tests for Gemini and OpenAI speech synthesizers."""

from __future__ import annotations

import pytest

from podvoice.errors import SynthesisError
from podvoice.llm.provider_http import ProviderError
from podvoice.models.datatypes import DialogueLine, PcmFormat
from podvoice.audio.pcm import read_wav
from podvoice.tts.synthesizer import GeminiSynthesizer, OpenAISynthesizer, estimate_speech_seconds

from tests.fixture_builders import pcm_frames, wav_bytes


class _FakeGeminiClient:
    """Record Gemini speech calls and return canned PCM."""

    def __init__(self, pcm: bytes = b"", error: ProviderError | None = None) -> None:
        self.pcm = pcm
        self.error = error
        self.single_calls: list[dict[str, object]] = []
        self.multi_calls: list[dict[str, object]] = []

    def synthesize_single(self, **kwargs: object) -> tuple[bytes, str]:
        self.single_calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.pcm, "audio/L16;codec=pcm;rate=24000"

    def synthesize_multi_speaker(self, **kwargs: object) -> tuple[bytes, str]:
        self.multi_calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.pcm, "audio/L16;codec=pcm;rate=24000"


class _FakeOpenAISpeechClient:
    """Return a canned speech payload."""

    def __init__(self, payload: bytes) -> None:
        self.payload = payload
        self.calls: list[dict[str, object]] = []

    def synthesize_speech(self, **kwargs: object) -> bytes:
        self.calls.append(kwargs)
        return self.payload


def test_gemini_single_wraps_pcm_into_wav_with_exact_duration() -> None:
    """Single-speaker results are WAV clips whose duration comes from the samples."""

    client = _FakeGeminiClient(pcm=pcm_frames(36000))
    synthesizer = GeminiSynthesizer(model="tts-model", client=client)  # type: ignore[arg-type]

    result = synthesizer.synthesize_single("  Bonjour tout le monde  ", "Kore", "fr")

    assert result.content_type == "audio/wav"
    assert result.extension == "wav"
    assert result.duration_seconds == 1.5
    assert result.duration_estimated is False
    assert read_wav(result.audio).format == PcmFormat()
    assert client.single_calls == [
        {"model": "tts-model", "text": "Bonjour tout le monde", "voice": "Kore", "language_code": "fr-FR"}
    ]


def test_gemini_dialogue_labels_lines_with_role_aliases() -> None:
    """Dialogue prompts prefix each line and map aliases to voices."""

    client = _FakeGeminiClient(pcm=pcm_frames(48000))
    synthesizer = GeminiSynthesizer(model="tts-model", client=client)  # type: ignore[arg-type]
    lines = [
        DialogueLine(text="Welcome back.", role="host", voice="Kore"),
        DialogueLine(text="Thanks for having me.", role="expert", voice="Charon"),
        DialogueLine(text="Let us start.", role="host", voice="Kore"),
    ]

    audio = synthesizer.synthesize_dialogue(lines, "en")

    assert audio.sample_count == 48000
    call = client.multi_calls[0]
    assert call["speakers"] == [("Host", "Kore"), ("Expert", "Charon")]
    assert str(call["text"]).endswith(
        "Host: Welcome back.\nExpert: Thanks for having me.\nHost: Let us start."
    )
    assert call["language_code"] == "en-US"


def test_gemini_dialogue_rejects_too_few_lines_or_too_many_roles() -> None:
    """Dialogue needs two or more lines by at most two roles."""

    synthesizer = GeminiSynthesizer(client=_FakeGeminiClient(pcm=pcm_frames(10)))  # type: ignore[arg-type]

    with pytest.raises(SynthesisError, match="at least two lines"):
        synthesizer.synthesize_dialogue([DialogueLine("Solo.", "host", "Kore")], "en")
    with pytest.raises(SynthesisError, match="at most two speakers"):
        synthesizer.synthesize_dialogue(
            [
                DialogueLine("One.", "host", "Kore"),
                DialogueLine("Two.", "expert", "Charon"),
                DialogueLine("Three.", "simplifier", "Aoede"),
            ],
            "en",
        )


def test_gemini_provider_failure_becomes_synthesis_error_with_hint() -> None:
    """Provider failures are mapped to the audio stage with an actionable hint."""

    error = ProviderError("Gemini rate limit reached", failure_kind="rate_limited", provider="Gemini")
    synthesizer = GeminiSynthesizer(client=_FakeGeminiClient(error=error))  # type: ignore[arg-type]

    with pytest.raises(SynthesisError) as exc_info:
        synthesizer.synthesize_single("Hello", "Kore", "en")

    assert exc_info.value.stage == "audio"
    assert "rate limit" in exc_info.value.detail
    assert exc_info.value.hint is not None


def test_gemini_rejects_empty_text_and_empty_audio() -> None:
    """Empty input text and empty provider buffers are synthesis errors."""

    synthesizer = GeminiSynthesizer(client=_FakeGeminiClient(pcm=b""))  # type: ignore[arg-type]

    with pytest.raises(SynthesisError, match="empty text"):
        synthesizer.synthesize_single("   ", "Kore", "en")
    with pytest.raises(SynthesisError, match="empty audio buffer"):
        synthesizer.synthesize_single("Hello", "Kore", "en")


def test_openai_single_measures_wav_duration() -> None:
    """WAV responses report their exact duration."""

    client = _FakeOpenAISpeechClient(wav_bytes(0.5))
    synthesizer = OpenAISynthesizer(model="gpt-4o-mini-tts", client=client)  # type: ignore[arg-type]

    result = synthesizer.synthesize_single("Hello there", "nova", "en")

    assert result.duration_seconds == 0.5
    assert result.duration_estimated is False
    assert client.calls[0]["response_format"] == "wav"
    assert client.calls[0]["voice"] == "nova"
    assert client.calls[0]["speed"] == 1.0


def test_openai_single_sends_configured_speaking_rate() -> None:
    client = _FakeOpenAISpeechClient(wav_bytes(0.5))
    synthesizer = OpenAISynthesizer(client=client, speaking_rate=1.5)  # type: ignore[arg-type]

    synthesizer.synthesize_single("Hello there", "nova", "en")

    assert client.calls[0]["speed"] == 1.5


def test_openai_single_estimates_duration_for_unreadable_payloads() -> None:
    """Payloads that are not WAV fall back to the words-per-minute estimate."""

    text = " ".join(["word"] * 270)
    synthesizer = OpenAISynthesizer(client=_FakeOpenAISpeechClient(b"ID3 not a wav"))  # type: ignore[arg-type]

    result = synthesizer.synthesize_single(text, "nova", "en")

    assert result.duration_seconds == pytest.approx(120.0)
    assert result.duration_estimated is True


def test_openai_dialogue_is_always_rejected() -> None:
    """The single-voice provider forces per-turn fallback for dialogue."""

    synthesizer = OpenAISynthesizer(client=_FakeOpenAISpeechClient(b""))  # type: ignore[arg-type]

    with pytest.raises(SynthesisError, match="single speaker"):
        synthesizer.synthesize_dialogue(
            [DialogueLine("A.", "host", "nova"), DialogueLine("B.", "expert", "onyx")], "en"
        )


def test_estimate_speech_seconds_has_one_second_floor() -> None:
    """Estimates use 135 words per minute and never drop below one second."""

    assert estimate_speech_seconds("two words") == 1.0
    assert estimate_speech_seconds(" ".join(["w"] * 135)) == pytest.approx(60.0)
