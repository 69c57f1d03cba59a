"""OpenAI chat-completions client for the text-transformation service.

Responsibilities:
- Send one narration request, optionally continuing from prior assistant output.
- Return the assistant text, rejecting empty or token-truncated replies.
- Raise classified `ServiceError` exceptions for stage-level error mapping.
"""

from __future__ import annotations

import json
import re
from typing import Any

import requests

from ..errors import ServiceError

_SECRET_PATTERNS = (
    (re.compile(r"\bsk-[A-Za-z0-9_-]{8,}\b"), "[redacted-key]"),
    (re.compile(r"(?i)bearer\s+[A-Za-z0-9._-]{12,}"), "Bearer [redacted-token]"),
)


def _redact(text: str) -> str:
    """Mask API-key and bearer-token lookalikes in provider text."""

    for pattern, replacement in _SECRET_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def _decode_body(response: Any) -> str:
    """Decode a response body as UTF-8, replacing undecodable bytes."""

    if response is None:
        return ""
    return bytes(response.content).decode("utf-8", errors="replace").strip()


class OpenAIChatClient:
    """Requests-based client for OpenAI chat-completions narration calls."""

    _MAX_PROVIDER_MESSAGE_CHARS = 180
    _HEADLINES = {
        "invalid_api_key": "OpenAI authentication failed",
        "insufficient_quota": "OpenAI quota is insufficient for this request",
        "invalid_model": "OpenAI rejected the selected model",
        "rate_limited": "OpenAI rate limit reached",
        "timeout": "OpenAI request timed out",
        "server_error": "OpenAI service is unavailable",
    }

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str = "https://api.openai.com/v1",
        timeout_seconds: float = 120.0,
    ) -> None:
        """Initialize endpoint, credentials and request timeout."""

        self.api_key = (api_key or "").strip()
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    def chat_completion_text(
        self,
        *,
        model: str,
        system_prompt: str,
        user_prompt: str,
        prior_context: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
    ) -> str:
        """Return the assistant reply for one narration request.

        `prior_context` is sent as the preceding assistant turn, so the model
        continues from its own earlier narration instead of starting over.

        Raises:
            ServiceError: On missing key, HTTP/transport failure, or an unusable reply.
        """

        if not self.api_key:
            raise ServiceError(
                "Missing OpenAI API key. Set `OPENAI_API_KEY`, use `--api-key`, or "
                "`talkcast credentials --set-api-key`.",
                failure_kind="invalid_api_key",
            )

        payload: dict[str, Any] = {
            "model": model,
            "messages": self._messages(system_prompt, user_prompt, prior_context),
            "temperature": temperature,
        }
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        return self._extract_message_text(self._post("/chat/completions", payload))

    @staticmethod
    def _messages(
        system_prompt: str, user_prompt: str, prior_context: str | None
    ) -> list[dict[str, str]]:
        """Build the system / optional assistant / user message sequence."""

        messages = [{"role": "system", "content": system_prompt}]
        if prior_context:
            messages.append({"role": "assistant", "content": prior_context})
        messages.append({"role": "user", "content": user_prompt})
        return messages

    def _post(self, endpoint_path: str, payload: dict[str, Any]) -> str:
        """POST JSON to an API endpoint and return the response body text."""

        try:
            response = requests.post(
                f"{self.base_url}{endpoint_path}",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise self._service_error_for(exc.response) from exc
        except (requests.Timeout, TimeoutError) as exc:
            raise ServiceError("OpenAI request timed out.", failure_kind="timeout") from exc
        except requests.RequestException as exc:
            raise ServiceError(
                f"OpenAI request transport error: {self._short(str(exc))}",
                failure_kind="transport",
            ) from exc
        return _decode_body(response)

    @classmethod
    def _short(cls, text: str) -> str:
        """Redact secrets, collapse whitespace and cap message length."""

        compact = " ".join(_redact(text).split())
        limit = cls._MAX_PROVIDER_MESSAGE_CHARS
        return compact if len(compact) <= limit else f"{compact[: limit - 3]}..."

    @classmethod
    def _provider_error(cls, body: str) -> tuple[str, str | None]:
        """Return `(message, code)` from an OpenAI error body."""

        try:
            error = json.loads(body).get("error") if body else None
        except (json.JSONDecodeError, AttributeError):
            error = None
        if not isinstance(error, dict):
            return cls._short(body), None
        code = error.get("code")
        message = error.get("message")
        return (
            cls._short(message if isinstance(message, str) and message.strip() else body),
            code.strip() if isinstance(code, str) and code.strip() else None,
        )

    @staticmethod
    def _failure_kind(status_code: int, message: str, code: str | None) -> str:
        """Map status, provider message and provider code to a failure kind."""

        text = message.lower()
        code = (code or "").lower()
        if status_code == 401 or "api key" in text:
            return "invalid_api_key"
        if code == "insufficient_quota" or (status_code == 429 and "quota" in text):
            return "insufficient_quota"
        if code == "model_not_found" or (
            "model" in text and any(word in text for word in ("not found", "does not exist"))
        ):
            return "invalid_model"
        if status_code == 429:
            return "rate_limited"
        if status_code in {408, 504} or "timed out" in text:
            return "timeout"
        if status_code >= 500:
            return "server_error"
        return "http_error"

    @classmethod
    def _service_error_for(cls, response: Any) -> ServiceError:
        """Build a classified `ServiceError` from a failed HTTP response."""

        status_code = response.status_code if response is not None else 0
        message, code = cls._provider_error(_decode_body(response))
        kind = cls._failure_kind(status_code, message, code)
        headline = cls._HEADLINES.get(kind, "OpenAI request failed")
        detail = f"{headline} (HTTP {status_code})"
        detail = f"{detail}: {message}" if message else f"{detail}."
        return ServiceError(
            detail, failure_kind=kind, status_code=status_code, provider_code=code
        )

    @classmethod
    def _extract_message_text(cls, raw_payload: str) -> str:
        """Return the first choice's text; reject malformed, empty or truncated replies."""

        try:
            payload = json.loads(raw_payload)
        except json.JSONDecodeError as exc:
            raise ServiceError(
                "OpenAI returned invalid JSON payload.", failure_kind="malformed_response"
            ) from exc

        choices = payload.get("choices") if isinstance(payload, dict) else None
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            raise ServiceError(
                "OpenAI response missing non-empty `choices` list.",
                failure_kind="malformed_response",
            )
        choice = choices[0]
        message = choice.get("message")
        if not isinstance(message, dict):
            raise ServiceError(
                "OpenAI response missing `choices[0].message` object.",
                failure_kind="malformed_response",
            )
        if choice.get("finish_reason") == "length":
            raise ServiceError(
                "OpenAI reply was cut off at the output token limit.",
                failure_kind="truncated",
            )

        content = message.get("content")
        if isinstance(content, list):
            content = "".join(
                part["text"]
                for part in content
                if isinstance(part, dict)
                and part.get("type") == "text"
                and isinstance(part.get("text"), str)
            )
        text = content.strip() if isinstance(content, str) else ""
        if not text:
            raise ServiceError(
                "OpenAI response message content is empty.", failure_kind="malformed_response"
            )
        return text
