"""Shared requests-based HTTP plumbing for provider adapters.

Responsibilities:
- POST JSON payloads with bounded timeouts, pacing, and bounded retries.
- Classify HTTP and transport failures into deterministic failure kinds.
- Redact credentials from provider messages before they reach users or logs.
"""

from __future__ import annotations

import json
import re
import socket
import time
from typing import Any

import requests

from .pacing import RateLimiter, RetryPolicy


class ProviderError(RuntimeError):
    """Raised when a provider request fails or returns malformed output."""

    def __init__(
        self,
        message: str,
        *,
        failure_kind: str = "unknown",
        status_code: int | None = None,
        provider_code: str | None = None,
        provider: str = "provider",
    ) -> None:
        """Initialize provider error metadata for stage-aware diagnostics."""

        super().__init__(message)
        self.failure_kind = failure_kind
        self.status_code = status_code
        self.provider_code = provider_code
        self.provider = provider


def provider_error_hint(exc: ProviderError) -> str:
    """Build an actionable user hint for a provider failure kind."""

    kind = exc.failure_kind
    if kind == "invalid_api_key":
        return (
            f"Set a valid {exc.provider} API key via `podvoice credentials --set-api-key` or the "
            "provider's API key environment variable."
        )
    if kind == "insufficient_quota":
        return f"Check {exc.provider} billing/quota for this project, then run `advance` again."
    if kind == "invalid_model":
        return "Configure an available model id (see `model_*` config keys), then retry."
    if kind in {"timeout", "rate_limited", "server_error"}:
        return "Run `advance` again; completed work is kept and the job resumes where it stopped."
    if kind == "transport":
        return "Check internet/proxy connectivity and run `advance` again."
    return "Verify provider configuration and run `advance` again."


class ProviderHttpClient:
    """Base client holding HTTP settings shared by every provider adapter."""

    provider_name = "provider"
    api_key_env = "API_KEY"
    _MAX_PROVIDER_MESSAGE_CHARS = 180

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str,
        timeout_seconds: float = 60.0,
        max_retries: int = 2,
        retry_backoff_base_seconds: float = 0.5,
        retry_backoff_max_seconds: float = 8.0,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        """Initialize HTTP settings, retry policy, and pacing."""

        self.api_key = api_key.strip() if isinstance(api_key, str) else ""
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.retry_policy = RetryPolicy(
            max_retries=max(0, max_retries),
            backoff_base_seconds=retry_backoff_base_seconds,
            backoff_max_seconds=retry_backoff_max_seconds,
        )
        self.rate_limiter = rate_limiter if rate_limiter is not None else RateLimiter()
        self.retry_attempt_count = 0

    def _error(self, message: str, **metadata: Any) -> ProviderError:
        """Build a provider error tagged with this client's provider name."""

        return ProviderError(message, provider=self.provider_name, **metadata)

    def _require_api_key(self) -> None:
        """Require API key presence before issuing requests."""

        if not self.api_key:
            raise self._error(
                f"Missing {self.provider_name} API key. Set `{self.api_key_env}` or store one "
                "with `podvoice credentials`.",
                failure_kind="invalid_api_key",
            )

    def _auth_headers(self) -> dict[str, str]:
        """Return provider-specific authentication headers."""

        raise NotImplementedError

    def _post_json(
        self,
        *,
        endpoint_path: str,
        payload: dict[str, Any],
        pacing_key: str,
    ) -> bytes:
        """POST a JSON payload with retries and return the raw response bytes."""

        self._require_api_key()
        attempt = 0
        while True:
            self.rate_limiter.acquire(pacing_key)
            try:
                return self._execute_post(endpoint_path, payload)
            except ProviderError as exc:
                if not self.retry_policy.should_retry(exc.failure_kind, attempt):
                    raise
                time.sleep(self.retry_policy.delay_for(attempt))
                self.retry_attempt_count += 1
                attempt += 1

    def _execute_post(self, endpoint_path: str, payload: dict[str, Any]) -> bytes:
        """Execute one POST and map failures to `ProviderError`."""

        headers = {"Content-Type": "application/json", **self._auth_headers()}
        try:
            response = requests.post(
                f"{self.base_url}{endpoint_path}",
                headers=headers,
                json=payload,
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
            response_bytes = bytes(response.content)
        except requests.HTTPError as exc:
            raise self._http_error_to_provider_error(exc) from exc
        except requests.RequestException as exc:
            failure_kind = self._classify_transport_failure(exc)
            if failure_kind == "timeout":
                detail = f"{self.provider_name} request timed out."
            else:
                detail = (
                    f"{self.provider_name} request transport error: "
                    f"{self._short_message(self._redact_sensitive_tokens(str(exc)))}"
                )
            raise self._error(detail, failure_kind=failure_kind) from exc
        except TimeoutError as exc:
            raise self._error(
                f"{self.provider_name} request timed out.", failure_kind="timeout"
            ) from exc

        if not response_bytes:
            raise self._error(f"{self.provider_name} response is empty.")
        return response_bytes

    def _decode_json(self, raw_payload: bytes) -> dict[str, Any]:
        """Decode a JSON object response body."""

        try:
            payload = json.loads(raw_payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise self._error(f"{self.provider_name} returned invalid JSON payload.") from exc
        if not isinstance(payload, dict):
            raise self._error(f"{self.provider_name} returned a non-object JSON payload.")
        return payload

    @staticmethod
    def _decode_error_body(exc: requests.HTTPError) -> str:
        """Decode an HTTP error body into a best-effort UTF-8 payload string."""

        response = exc.response
        if response is None:
            return ""
        content = getattr(response, "content", b"") or b""
        return bytes(content).decode("utf-8", errors="replace").strip()

    @classmethod
    def _redact_sensitive_tokens(cls, text: str) -> str:
        """Redact API-key-like tokens from provider error content."""

        redacted = re.sub(r"\bsk-[A-Za-z0-9_-]{8,}\b", "[redacted-key]", text)
        redacted = re.sub(r"\bAIza[0-9A-Za-z_-]{20,}\b", "[redacted-key]", redacted)
        return re.sub(
            r"(?i)bearer\s+[A-Za-z0-9._-]{12,}",
            "Bearer [redacted-token]",
            redacted,
        )

    @classmethod
    def _short_message(cls, text: str) -> str:
        """Normalize and cap user-facing provider message length."""

        compact = " ".join(text.split())
        if len(compact) <= cls._MAX_PROVIDER_MESSAGE_CHARS:
            return compact
        return f"{compact[: cls._MAX_PROVIDER_MESSAGE_CHARS - 1]}..."

    @classmethod
    def _extract_provider_message(cls, body: str) -> tuple[str, str | None]:
        """Extract a concise provider message and optional provider error code."""

        if not body:
            return "", None
        try:
            payload = json.loads(body)
        except json.JSONDecodeError:
            return cls._short_message(cls._redact_sensitive_tokens(body)), None

        provider_code: str | None = None
        message: str | None = None
        error_payload = payload.get("error") if isinstance(payload, dict) else None
        if isinstance(error_payload, dict):
            for code_key in ("code", "status"):
                code_value = error_payload.get(code_key)
                if isinstance(code_value, str) and code_value.strip():
                    provider_code = code_value.strip()
                    break
            message_value = error_payload.get("message")
            if isinstance(message_value, str) and message_value.strip():
                message = message_value.strip()

        return cls._short_message(cls._redact_sensitive_tokens(message or body)), provider_code

    @staticmethod
    def _classify_http_failure(
        status_code: int,
        provider_message: str,
        provider_code: str | None,
    ) -> str:
        """Classify HTTP errors into deterministic diagnostic kinds."""

        message_lower = provider_message.lower()
        normalized_code = provider_code.lower() if provider_code is not None else ""

        if status_code in {401, 403} or "api key" in message_lower:
            return "invalid_api_key"
        if normalized_code in {"insufficient_quota", "resource_exhausted"} and (
            "quota" in message_lower or normalized_code == "insufficient_quota"
        ):
            return "insufficient_quota"
        if normalized_code == "model_not_found" or (
            "model" in message_lower
            and any(phrase in message_lower for phrase in ("not found", "does not exist", "invalid"))
        ):
            return "invalid_model"
        if status_code in {408, 504} or "timeout" in message_lower or "timed out" in message_lower:
            return "timeout"
        if status_code == 429:
            return "rate_limited"
        if status_code >= 500:
            return "server_error"
        return "http_error"

    @staticmethod
    def _classify_transport_failure(reason: object) -> str:
        """Classify network-layer failures into deterministic diagnostic kinds."""

        if isinstance(reason, TimeoutError | socket.timeout | requests.Timeout):
            return "timeout"
        return "transport"

    def _http_error_to_provider_error(self, exc: requests.HTTPError) -> ProviderError:
        """Convert HTTP errors into normalized provider exceptions with metadata."""

        status_code = exc.response.status_code if exc.response is not None else 0
        provider_message, provider_code = self._extract_provider_message(
            self._decode_error_body(exc)
        )
        failure_kind = self._classify_http_failure(status_code, provider_message, provider_code)

        headline = {
            "invalid_api_key": f"{self.provider_name} authentication failed",
            "insufficient_quota": f"{self.provider_name} quota is insufficient for this request",
            "invalid_model": f"{self.provider_name} rejected the selected model",
            "timeout": f"{self.provider_name} request timed out",
            "rate_limited": f"{self.provider_name} rate limit reached",
        }.get(failure_kind, f"{self.provider_name} request failed")

        if provider_message:
            detail = f"{headline} (HTTP {status_code}): {provider_message}"
        else:
            detail = f"{headline} (HTTP {status_code})."

        return self._error(
            detail,
            failure_kind=failure_kind,
            status_code=status_code,
            provider_code=provider_code,
        )
