"""Gemini HTTP client for single- and multi-speaker speech generation.

Responsibilities:
- Send `generateContent` requests with an AUDIO response modality.
- Return the inline PCM payload and its MIME type for container wrapping.

Requests and responses follow the public REST shape:
`contents[].parts[].text` in, `candidates[0].content.parts[*].inlineData` out,
where `inlineData.data` is base64 PCM16 (`audio/L16;codec=pcm;rate=24000`).
"""

from __future__ import annotations

import base64
import binascii
from typing import Any, Sequence

from ..llm.pacing import RateLimiter
from ..llm.provider_http import ProviderHttpClient

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiSpeechClient(ProviderHttpClient):
    """Minimal requests-based Gemini speech-generation client."""

    provider_name = "Gemini"
    api_key_env = "GEMINI_API_KEY"

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str = GEMINI_BASE_URL,
        timeout_seconds: float = 60.0,
        max_retries: int = 2,
        retry_backoff_base_seconds: float = 0.5,
        retry_backoff_max_seconds: float = 8.0,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        super().__init__(
            api_key=api_key,
            base_url=base_url,
            timeout_seconds=timeout_seconds,
            max_retries=max_retries,
            retry_backoff_base_seconds=retry_backoff_base_seconds,
            retry_backoff_max_seconds=retry_backoff_max_seconds,
            rate_limiter=rate_limiter,
        )

    def _auth_headers(self) -> dict[str, str]:
        return {"x-goog-api-key": self.api_key}

    def synthesize_single(
        self, *, model: str, text: str, voice: str, language_code: str | None = None
    ) -> tuple[bytes, str]:
        """Return `(pcm_bytes, mime_type)` for one prebuilt voice."""

        speech_config: dict[str, Any] = {
            "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": voice}},
        }
        if language_code:
            speech_config["languageCode"] = language_code
        return self._generate(model, text, speech_config)

    def synthesize_multi_speaker(
        self,
        *,
        model: str,
        text: str,
        speakers: Sequence[tuple[str, str]],
        language_code: str | None = None,
    ) -> tuple[bytes, str]:
        """Return `(pcm_bytes, mime_type)` for a labeled multi-speaker transcript.

        Args:
            model: Speech-capable Gemini model.
            text: Prompt whose lines are prefixed with the speaker aliases.
            speakers: `(alias, voice_name)` pairs, one per distinct speaker.
            language_code: Optional BCP-47 language code.
        """

        speech_config: dict[str, Any] = {
            "multiSpeakerVoiceConfig": {
                "speakerVoiceConfigs": [
                    {
                        "speaker": alias,
                        "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": voice}},
                    }
                    for alias, voice in speakers
                ]
            }
        }
        if language_code:
            speech_config["languageCode"] = language_code
        return self._generate(model, text, speech_config)

    def _generate(
        self, model: str, text: str, speech_config: dict[str, Any]
    ) -> tuple[bytes, str]:
        """POST one speech `generateContent` request and decode its audio part."""

        payload = {
            "contents": [{"parts": [{"text": text}]}],
            "generationConfig": {
                "responseModalities": ["AUDIO"],
                "speechConfig": speech_config,
            },
        }
        raw_payload = self._post_json(
            endpoint_path=f"/models/{model}:generateContent",
            payload=payload,
            pacing_key=f"gemini:tts:{model}",
        )
        return self._extract_inline_audio(self._decode_json(raw_payload))

    def _extract_inline_audio(self, payload: dict[str, Any]) -> tuple[bytes, str]:
        """Extract the first inline audio part from a `generateContent` payload."""

        candidates = payload.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            feedback = payload.get("promptFeedback")
            reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
            detail = f" (blocked: {reason})" if reason else ""
            raise self._error(f"Gemini response has no candidates{detail}.")

        content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            raise self._error("Gemini response missing `candidates[0].content.parts`.")

        for part in parts:
            inline = part.get("inlineData") if isinstance(part, dict) else None
            if not isinstance(inline, dict) or not isinstance(inline.get("data"), str):
                continue
            try:
                audio = base64.b64decode(inline["data"], validate=True)
            except (binascii.Error, ValueError) as exc:
                raise self._error("Gemini inline audio is not valid base64.") from exc
            if not audio:
                raise self._error("Gemini inline audio is empty.")
            return audio, str(inline.get("mimeType") or "audio/L16;codec=pcm;rate=24000")

        raise self._error("Gemini response contains no inline audio part.")
