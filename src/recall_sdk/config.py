"""Immutable client configuration."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from typing import Mapping

from .exceptions import RecallConfigurationError
from .security import validate_base_url


DEFAULT_BASE_URL = "https://us-east-1.recall.ai"
API_KEY_ENV_VAR = "RECALL_API_KEY"
BASE_URL_ENV_VAR = "RECALL_API_BASE_URL"


@dataclass(frozen=True)
class ClientConfig:
    api_key: str
    base_url: str = DEFAULT_BASE_URL
    timeout_ms: float | None = None
    allow_http: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.api_key, str) or not self.api_key.strip():
            raise RecallConfigurationError(
                f"api_key is required (pass api_key= or set {API_KEY_ENV_VAR})"
            )

        base_url = str(self.base_url).rstrip("/")
        try:
            validate_base_url(base_url, allow_http=self.allow_http)
        except ValueError as exc:
            raise RecallConfigurationError(str(exc)) from exc
        object.__setattr__(self, "base_url", base_url)

        timeout_ms = self.timeout_ms
        if timeout_ms is not None:
            if isinstance(timeout_ms, bool) or not isinstance(timeout_ms, (int, float)):
                raise RecallConfigurationError("timeout_ms must be a positive number")
            if not math.isfinite(timeout_ms) or timeout_ms <= 0:
                raise RecallConfigurationError("timeout_ms must be a positive number")

    @classmethod
    def from_env(
        cls,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout_ms: float | None = None,
        allow_http: bool = False,
        environ: Mapping[str, str] | None = None,
    ) -> "ClientConfig":
        """Build a config, falling back to ``RECALL_API_KEY`` / ``RECALL_API_BASE_URL``."""
        env = os.environ if environ is None else environ
        return cls(
            api_key=api_key or env.get(API_KEY_ENV_VAR) or "",
            base_url=base_url or env.get(BASE_URL_ENV_VAR) or DEFAULT_BASE_URL,
            timeout_ms=timeout_ms,
            allow_http=allow_http,
        )
