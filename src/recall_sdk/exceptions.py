"""SDK-specific exceptions and the error-payload extraction helpers they use."""

from __future__ import annotations

from typing import Any, Mapping

import httpx

from .security import parse_retry_after


_MESSAGE_FIELDS = ("error", "detail", "message")


def _non_empty_string(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def extract_message(payload: Any, status: int | None = None, status_text: str | None = None) -> str:
    """Pick the human readable message for a failed response.

    A non-empty string payload wins, then the first non-empty string among the
    ``error``, ``detail`` and ``message`` keys, then a synthesized fallback.
    """
    message = _non_empty_string(payload)
    if message:
        return message

    if isinstance(payload, Mapping):
        for key in _MESSAGE_FIELDS:
            candidate = _non_empty_string(payload.get(key))
            if candidate:
                return candidate

    parts = ["Recall request failed"]
    if status:
        parts.append(f"with status {status}")
    if status_text:
        parts.append(f"({status_text})")
    return " ".join(parts).strip()


def extract_structured_fields(payload: Any) -> dict[str, str]:
    """Return the machine readable ``code`` and ``detail`` fields when present."""
    if not isinstance(payload, Mapping):
        return {}
    fields: dict[str, str] = {}
    for key in ("code", "detail"):
        value = _non_empty_string(payload.get(key))
        if value:
            fields[key] = value
    return fields


def _lower_keys(headers: Mapping[str, str] | None) -> dict[str, str]:
    if not headers:
        return {}
    return {str(key).lower(): str(value) for key, value in headers.items()}


class RecallError(Exception):
    """Base exception for all Recall SDK failures."""


class RecallConfigurationError(RecallError, ValueError):
    """Raised synchronously when client configuration is invalid."""


class RecallValidationError(RecallError, ValueError):
    """Raised when call arguments are invalid before any request is sent."""


class RecallAPIError(RecallError):
    """Raised for non-2xx responses from the Recall API."""

    def __init__(
        self,
        message: str | None = None,
        *,
        status: int,
        status_text: str = "",
        payload: object = None,
        request: httpx.Request | None = None,
        response: httpx.Response | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        if message is None:
            message = extract_message(payload, status, status_text)
        super().__init__(message)
        self.message = message
        self.status = status
        self.status_text = status_text
        self.payload = payload
        self.request = request
        self.response = response
        self.headers = _lower_keys(headers)
        self.request_id = self.headers.get("x-request-id")

        structured = extract_structured_fields(payload)
        self.code: str | None = structured.get("code")
        self.detail: str | None = structured.get("detail")

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        parts = [f"{self.status}"]
        if self.code:
            parts.append(self.code)
        return " ".join(parts) + f": {self.message}"


class RecallAuthError(RecallAPIError):
    """Raised for authentication and authorization failures."""


class RecallRateLimitError(RecallAPIError):
    """Raised for HTTP 429 responses."""

    def __init__(self, message: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.retry_after = parse_retry_after(self.headers.get("retry-after"))


class RecallTimeoutError(RecallError):
    """Raised when a request exceeds the client's configured timeout."""

    def __init__(self, timeout_ms: float, *, request: httpx.Request | None = None) -> None:
        shown = int(timeout_ms) if float(timeout_ms).is_integer() else timeout_ms
        super().__init__(f"Recall request aborted after exceeding timeout of {shown}ms")
        self.timeout_ms = timeout_ms
        self.request = request


class WebhookValidationError(RecallError, ValueError):
    """Raised when a webhook payload does not match its declared event shape."""

    def __init__(
        self,
        message: str,
        *,
        event: str | None = None,
        errors: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(message)
        self.event = event
        self.errors = list(errors or [])

    @property
    def field_paths(self) -> list[str]:
        return [".".join(str(part) for part in error.get("loc", ())) for error in self.errors]


def api_error_for_status(
    *,
    status: int,
    status_text: str = "",
    payload: object = None,
    request: httpx.Request | None = None,
    response: httpx.Response | None = None,
    headers: Mapping[str, str] | None = None,
) -> RecallAPIError:
    kwargs = {
        "status": status,
        "status_text": status_text,
        "payload": payload,
        "request": request,
        "response": response,
        "headers": headers,
    }
    if status in {401, 403}:
        return RecallAuthError(**kwargs)
    if status == 429:
        return RecallRateLimitError(**kwargs)
    return RecallAPIError(**kwargs)


def is_normalized_error(error: object) -> bool:
    return isinstance(error, (RecallAPIError, RecallTimeoutError))
