"""HTTP clients for translation providers.

Responsibilities:
- Send minimal Anthropic Messages and OpenAI chat-completions requests over `requests`.
- Classify provider failures into deterministic kinds and retry only transient ones.
- Raise actionable provider exceptions for page-level error reporting.
"""

from __future__ import annotations

import json
import re
import socket
import threading
import time
from typing import Any

import requests

from .rate_limiter import RateLimiter


_TRANSIENT_FAILURE_KINDS = frozenset({"timeout", "transport", "rate_limited", "server_error"})


class ProviderError(RuntimeError):
    """Raised when a provider request fails or returns malformed output."""

    def __init__(
        self,
        message: str,
        *,
        failure_kind: str = "unknown",
        status_code: int | None = None,
        provider_code: str | None = None,
    ) -> None:
        """Initialize provider error metadata for page-level diagnostics."""

        super().__init__(message)
        self.failure_kind = failure_kind
        self.status_code = status_code
        self.provider_code = provider_code

    @property
    def retryable(self) -> bool:
        """Return whether another attempt may succeed."""

        return self.failure_kind in _TRANSIENT_FAILURE_KINDS


class _ProviderBaseClient:
    """Shared HTTP settings, retry policy, and error mapping for provider clients."""

    _MAX_PROVIDER_MESSAGE_CHARS = 180
    provider_id = "provider"
    provider_label = "Provider"
    api_key_env_var = "API_KEY"

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str,
        timeout_seconds: float = 120.0,
        max_attempts: int = 3,
        retry_backoff_base_seconds: float = 2.0,
        retry_backoff_max_seconds: float = 60.0,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        """Initialize HTTP client settings and retry policy."""

        self.api_key = api_key.strip() if isinstance(api_key, str) else ""
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.max_attempts = max(1, max_attempts)
        self.retry_backoff_base_seconds = retry_backoff_base_seconds
        self.retry_backoff_max_seconds = retry_backoff_max_seconds
        self.rate_limiter = rate_limiter if rate_limiter is not None else RateLimiter()
        self.retry_attempt_count = 0
        self._counter_lock = threading.Lock()
        self._local = threading.local()

    @property
    def last_attempts(self) -> int:
        """Return attempts used by the most recent call on the current thread."""

        return getattr(self._local, "attempts", 0)

    def _require_api_key(self) -> None:
        """Require API key presence before issuing provider requests."""

        if not self.api_key:
            raise ProviderError(
                f"Missing {self.provider_label} API key. Set `{self.api_key_env_var}`.",
                failure_kind="invalid_api_key",
            )

    def _headers(self) -> dict[str, str]:
        raise NotImplementedError

    def _backoff_delay(self, attempt: int) -> float:
        """Return the sleep before attempt `attempt + 1` (`base * 2**(attempt-1)`)."""

        delay = self.retry_backoff_base_seconds * (2 ** (attempt - 1))
        return min(delay, self.retry_backoff_max_seconds)

    def _post_json_bytes(
        self,
        *,
        endpoint_path: str,
        payload: dict[str, Any],
        rate_limit_key: str,
    ) -> bytes:
        """POST JSON with bounded retries for transient failures."""

        attempt = 1
        while True:
            self._local.attempts = attempt
            self.rate_limiter.acquire(rate_limit_key)
            try:
                return self._execute_json_post_bytes(endpoint_path=endpoint_path, payload=payload)
            except ProviderError as exc:
                if not exc.retryable or attempt >= self.max_attempts:
                    raise
                delay = self._backoff_delay(attempt)
                with self._counter_lock:
                    self.retry_attempt_count += 1
                time.sleep(delay)
                attempt += 1

    def _execute_json_post_bytes(self, *, endpoint_path: str, payload: dict[str, Any]) -> bytes:
        """Execute one JSON POST request and map failures consistently."""

        endpoint = f"{self.base_url}{endpoint_path}"
        try:
            response = requests.post(
                endpoint,
                headers=self._headers(),
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
                detail = f"{self.provider_label} request timed out."
            else:
                detail = (
                    f"{self.provider_label} request transport error: "
                    f"{self._short_message(self._redact_sensitive_tokens(str(exc)))}"
                )
            raise ProviderError(detail, failure_kind=failure_kind) from exc
        except TimeoutError as exc:
            raise ProviderError(
                f"{self.provider_label} request timed out.",
                failure_kind="timeout",
            ) from exc

        if not response_bytes:
            raise ProviderError(f"{self.provider_label} response is empty.")
        return response_bytes

    def _decode_payload(self, raw_payload: bytes) -> dict[str, Any]:
        """Decode a JSON object response body."""

        try:
            payload = json.loads(raw_payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ProviderError(f"{self.provider_label} returned invalid JSON payload.") from exc
        if not isinstance(payload, dict):
            raise ProviderError(f"{self.provider_label} response root is not an object.")
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
        redacted = re.sub(
            r"(?i)bearer\s+[A-Za-z0-9._-]{12,}",
            "Bearer [redacted-token]",
            redacted,
        )
        return redacted

    @classmethod
    def _short_message(cls, text: str) -> str:
        """Normalize and cap user-facing provider message length."""

        compact = " ".join(text.split())
        if len(compact) <= cls._MAX_PROVIDER_MESSAGE_CHARS:
            return compact
        return f"{compact[: cls._MAX_PROVIDER_MESSAGE_CHARS - 1]}..."

    @classmethod
    def _extract_provider_message(cls, body: str) -> tuple[str, str | None]:
        """Extract a concise provider message and optional provider error code.

        Both providers nest details under `error`; OpenAI names the code `code`
        and Anthropic names it `type`.
        """

        if not body:
            return "", None

        try:
            payload = json.loads(body)
        except json.JSONDecodeError:
            return cls._short_message(cls._redact_sensitive_tokens(body)), None

        provider_code: str | None = None
        message: str | None = None
        if isinstance(payload, dict):
            error_payload = payload.get("error")
            if isinstance(error_payload, dict):
                for code_key in ("code", "type"):
                    code_value = error_payload.get(code_key)
                    if isinstance(code_value, str) and code_value.strip():
                        provider_code = code_value.strip()
                        break
                message_value = error_payload.get("message")
                if isinstance(message_value, str) and message_value.strip():
                    message = message_value.strip()

        if message is None:
            message = body

        return cls._short_message(cls._redact_sensitive_tokens(message)), provider_code

    @staticmethod
    def _classify_http_failure(
        status_code: int,
        provider_message: str,
        provider_code: str | None,
    ) -> str:
        """Classify HTTP errors into deterministic diagnostic kinds."""

        message_lower = provider_message.lower()
        normalized_code = provider_code.lower() if provider_code is not None else ""

        if status_code == 401 or normalized_code == "authentication_error" or "api key" in message_lower:
            return "invalid_api_key"
        if normalized_code == "insufficient_quota" or (
            status_code == 429 and "quota" in message_lower
        ):
            return "insufficient_quota"
        if normalized_code == "model_not_found" or (
            "model" in message_lower
            and (
                normalized_code == "not_found_error"
                or any(
                    phrase in message_lower
                    for phrase in ("not found", "does not exist", "invalid")
                )
            )
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
        body = self._decode_error_body(exc)
        provider_message, provider_code = self._extract_provider_message(body)
        failure_kind = self._classify_http_failure(status_code, provider_message, provider_code)

        headline = {
            "invalid_api_key": "authentication failed",
            "insufficient_quota": "quota is insufficient for this request",
            "invalid_model": "rejected the selected model",
            "timeout": "request timed out",
            "rate_limited": "rate limit exceeded",
            "server_error": "server error",
        }.get(failure_kind, "request failed")

        if provider_message:
            detail = f"{self.provider_label} {headline} (HTTP {status_code}): {provider_message}"
        else:
            detail = f"{self.provider_label} {headline} (HTTP {status_code})."

        return ProviderError(
            detail,
            failure_kind=failure_kind,
            status_code=status_code,
            provider_code=provider_code,
        )


class AnthropicMessagesClient(_ProviderBaseClient):
    """Minimal requests-based Anthropic Messages API client."""

    provider_id = "anthropic"
    provider_label = "Anthropic"
    api_key_env_var = "ANTHROPIC_API_KEY"
    api_version = "2023-06-01"

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str = "https://api.anthropic.com/v1",
        **kwargs: Any,
    ) -> None:
        super().__init__(api_key=api_key, base_url=base_url, **kwargs)

    def _headers(self) -> dict[str, str]:
        return {
            "x-api-key": self.api_key,
            "anthropic-version": self.api_version,
            "Content-Type": "application/json",
        }

    def complete_text(
        self,
        *,
        model: str,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 16000,
        temperature: float = 0.0,
    ) -> str:
        """Return the concatenated text blocks of one Messages API response."""

        self._require_api_key()
        payload = {
            "model": model,
            "max_tokens": max_tokens,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_prompt}],
            "temperature": temperature,
        }
        raw_payload = self._post_json_bytes(
            endpoint_path="/messages",
            payload=payload,
            rate_limit_key=f"{self.provider_id}:messages:{model}",
        )
        return self._extract_message_text(self._decode_payload(raw_payload))

    def _extract_message_text(self, payload: dict[str, Any]) -> str:
        """Extract text content from an Anthropic Messages response payload."""

        if payload.get("stop_reason") == "max_tokens":
            raise ProviderError(
                "Anthropic response was truncated at the output token limit.",
                failure_kind="truncated",
            )
        content = payload.get("content")
        if not isinstance(content, list):
            raise ProviderError("Anthropic response missing `content` list.")
        parts = [
            block["text"]
            for block in content
            if isinstance(block, dict)
            and block.get("type") == "text"
            and isinstance(block.get("text"), str)
        ]
        normalized = "".join(parts).strip()
        if not normalized:
            raise ProviderError("Anthropic response message content is empty.")
        return normalized


class OpenAIChatClient(_ProviderBaseClient):
    """Minimal requests-based OpenAI chat-completions HTTP client."""

    provider_id = "openai"
    provider_label = "OpenAI"
    api_key_env_var = "OPENAI_API_KEY"

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str = "https://api.openai.com/v1",
        **kwargs: Any,
    ) -> None:
        super().__init__(api_key=api_key, base_url=base_url, **kwargs)

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def complete_text(
        self,
        *,
        model: str,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 16000,
        temperature: float = 0.0,
    ) -> str:
        """Return the first assistant text response from a chat-completions request."""

        self._require_api_key()
        payload = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "max_completion_tokens": max_tokens,
            "temperature": temperature,
        }
        raw_payload = self._post_json_bytes(
            endpoint_path="/chat/completions",
            payload=payload,
            rate_limit_key=f"{self.provider_id}:chat:{model}",
        )
        return self._extract_message_text(self._decode_payload(raw_payload))

    @staticmethod
    def _extract_message_text(payload: dict[str, Any]) -> str:
        """Extract first assistant message text from a chat-completions payload."""

        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            raise ProviderError("OpenAI response missing non-empty `choices` list.")

        first_choice = choices[0]
        if not isinstance(first_choice, dict):
            raise ProviderError("OpenAI response `choices[0]` is malformed.")
        if first_choice.get("finish_reason") == "length":
            raise ProviderError(
                "OpenAI response was truncated at the output token limit.",
                failure_kind="truncated",
            )

        message = first_choice.get("message")
        if not isinstance(message, dict):
            raise ProviderError("OpenAI response missing `choices[0].message` object.")

        text = OpenAIChatClient._message_content_to_text(message.get("content"))
        normalized = text.strip()
        if not normalized:
            raise ProviderError("OpenAI response message content is empty.")
        return normalized

    @staticmethod
    def _message_content_to_text(content: Any) -> str:
        """Convert OpenAI message content variants into a plain text string."""

        if isinstance(content, str):
            return content
        if isinstance(content, list):
            parts: list[str] = []
            for item in content:
                if not isinstance(item, dict):
                    continue
                if item.get("type") == "text" and isinstance(item.get("text"), str):
                    parts.append(item["text"])
            return "".join(parts)
        return ""
