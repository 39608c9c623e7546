"""Per-request options for the Recall client."""

from __future__ import annotations

from dataclasses import dataclass

from .signals import AbortSignal


@dataclass(frozen=True)
class RequestOptions:
    signal: AbortSignal | None = None
    idempotency_key: str | None = None
