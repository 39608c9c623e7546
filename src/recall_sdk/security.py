"""Credential formatting and header/URL safety helpers."""

from __future__ import annotations

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Mapping
from urllib.parse import urlparse


AUTH_SCHEME = "Token"

REDACTED = "[REDACTED]"

# Lowercased header names whose values never reach debug logs.
SENSITIVE_HEADERS = frozenset({"authorization", "x-api-key", "idempotency-key"})

LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})


def format_api_key(api_key: str) -> str:
    """Return the ``Authorization`` value for an API key.

    Keys that already carry the ``Token`` scheme are used verbatim.
    """
    prefix = f"{AUTH_SCHEME} "
    if api_key.startswith(prefix):
        return api_key
    return f"{prefix}{api_key}"


def sanitize_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Copy of ``headers`` with the API key and idempotency key masked."""
    return {
        name: REDACTED if name.lower() in SENSITIVE_HEADERS else value
        for name, value in headers.items()
    }


def validate_base_url(url: str, *, allow_http: bool = False) -> None:
    """Check a Recall region URL such as ``https://us-east-1.recall.ai``.

    The API key travels in every request, so plain ``http`` is refused for
    anything but loopback hosts unless ``allow_http`` is set.
    """
    if "\x00" in url:
        raise ValueError("base_url contains a NUL byte")
    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(f"base_url must be an http(s) URL with a host, got {url!r}")
    if parsed.scheme == "https" or allow_http:
        return
    if (parsed.hostname or "").lower() not in LOOPBACK_HOSTS:
        raise ValueError("base_url uses plain http; pass allow_http=True to send the API key unencrypted")


def parse_retry_after(raw: str | None) -> float | None:
    """Seconds to wait according to a 429 ``Retry-After`` header.

    Accepts delta-seconds or an HTTP date; past dates yield ``0.0`` and
    unparseable values yield ``None``.
    """
    value = (raw or "").strip()
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        pass

    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if when is None:
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())
