"""OpenAI HTTP client utilities for transcription, analysis, drafting, and speech.

Responsibilities:
- Send minimal chat-completions (text, JSON, and vision) and speech requests.
- Normalize response extraction for deterministic stage integrations.
"""

from __future__ import annotations

import base64
import json
from typing import Any

from .pacing import RateLimiter
from .provider_http import ProviderHttpClient

OPENAI_BASE_URL = "https://api.openai.com/v1"


class _OpenAIBaseClient(ProviderHttpClient):
    """Shared OpenAI settings used by stage-specific clients."""

    provider_name = "OpenAI"
    api_key_env = "OPENAI_API_KEY"

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str = OPENAI_BASE_URL,
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
        return {"Authorization": f"Bearer {self.api_key}"}


class OpenAIChatClient(_OpenAIBaseClient):
    """Minimal requests-based OpenAI chat-completions HTTP client."""

    def chat_completion_text(
        self,
        *,
        model: str,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.0,
        max_tokens: int | None = None,
    ) -> str:
        """Return the first assistant text response from a chat-completions request."""

        payload: dict[str, Any] = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
        }
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        return self._complete(model, payload)

    def chat_completion_json(
        self,
        *,
        model: str,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
    ) -> dict[str, Any]:
        """Return the assistant response parsed as one JSON object."""

        payload = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "response_format": {"type": "json_object"},
        }
        return parse_json_object(self._complete(model, payload), error_factory=self._error)

    def describe_image_text(
        self,
        *,
        model: str,
        system_prompt: str,
        user_prompt: str,
        image_bytes: bytes,
        image_mime_type: str = "image/png",
    ) -> str:
        """Return assistant text for a prompt that includes one inline image."""

        encoded = base64.b64encode(image_bytes).decode("ascii")
        payload = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": user_prompt},
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:{image_mime_type};base64,{encoded}"},
                        },
                    ],
                },
            ],
            "temperature": 0.0,
        }
        return self._complete(model, payload)

    def _complete(self, model: str, payload: dict[str, Any]) -> str:
        """POST a chat-completions payload and return the first message text."""

        raw_payload = self._post_json(
            endpoint_path="/chat/completions",
            payload=payload,
            pacing_key=f"openai:chat:{model}",
        )
        return self._extract_message_text(self._decode_json(raw_payload))

    def _extract_message_text(self, payload: dict[str, Any]) -> str:
        """Extract first assistant message text from a chat-completions payload."""

        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            raise self._error("OpenAI response missing non-empty `choices` list.")

        first_choice = choices[0]
        message = first_choice.get("message") if isinstance(first_choice, dict) else None
        if not isinstance(message, dict):
            raise self._error("OpenAI response missing `choices[0].message` object.")

        normalized = self._message_content_to_text(message.get("content")).strip()
        if not normalized:
            raise self._error("OpenAI response message content is empty.")
        return normalized

    @staticmethod
    def _message_content_to_text(content: Any) -> str:
        """Convert OpenAI message content variants into a plain text string."""

        if isinstance(content, str):
            return content
        if isinstance(content, list):
            return "".join(
                item["text"]
                for item in content
                if isinstance(item, dict)
                and item.get("type") == "text"
                and isinstance(item.get("text"), str)
            )
        return ""


class OpenAISpeechClient(_OpenAIBaseClient):
    """Minimal requests-based OpenAI speech HTTP client for single-voice synthesis."""

    def synthesize_speech(
        self,
        *,
        model: str,
        voice: str,
        text: str,
        response_format: str = "wav",
        speed: float = 1.0,
        instructions: str | None = None,
    ) -> bytes:
        """Return synthesized audio bytes from OpenAI `/audio/speech`."""

        payload: dict[str, Any] = {
            "model": model,
            "voice": voice,
            "input": text,
            "response_format": response_format,
            "speed": speed,
        }
        if instructions:
            payload["instructions"] = instructions
        return self._post_json(
            endpoint_path="/audio/speech",
            payload=payload,
            pacing_key=f"openai:tts:{model}",
        )


def parse_json_object(raw: str, error_factory: Any = ValueError) -> dict[str, Any]:
    """Parse a model reply into a JSON object, tolerating code fences and chatter."""

    text = raw.strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:]
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        raise error_factory("Model reply does not contain a JSON object.")
    try:
        payload = json.loads(text[start:end + 1])
    except json.JSONDecodeError as exc:
        raise error_factory(f"Model reply is not valid JSON: {exc.msg}.") from exc
    if not isinstance(payload, dict):
        raise error_factory("Model reply JSON is not an object.")
    return payload
