"""Typed async client and webhook validators for the Recall.ai API."""

from .cancellation import EffectiveCancellation, compose_cancellation, with_cancellation
from .client import RecallClient
from .config import DEFAULT_BASE_URL, ClientConfig
from .exceptions import (
    RecallAPIError,
    RecallAuthError,
    RecallConfigurationError,
    RecallError,
    RecallRateLimitError,
    RecallTimeoutError,
    RecallValidationError,
    WebhookValidationError,
)
from .middleware import normalize_error, with_auth, with_error_normalization, with_idempotency_key
from .operations import OPERATIONS, Operation
from .request_options import RequestOptions
from .signals import AbortController, AbortError, AbortSignal
from .transport import HttpxTransport, RequestParams, Transport, TransportResult
from .webhooks import (
    BOT_STATUS_CODES,
    CALL_ENDED_SUB_CODES,
    FATAL_SUB_CODES,
    RECORDING_PERMISSION_DENIED_SUB_CODES,
    WEBHOOK_EVENT_NAMES,
    WEBHOOK_EVENT_REGISTRY,
    KnownWebhookEvent,
    UnknownWebhookEvent,
    is_known_webhook_event,
    parse_webhook_event,
)

__version__ = "0.1.0"

__all__ = [
    "AbortController",
    "BOT_STATUS_CODES",
    "CALL_ENDED_SUB_CODES",
    "FATAL_SUB_CODES",
    "KnownWebhookEvent",
    "RECORDING_PERMISSION_DENIED_SUB_CODES",
    "AbortError",
    "AbortSignal",
    "ClientConfig",
    "DEFAULT_BASE_URL",
    "EffectiveCancellation",
    "HttpxTransport",
    "OPERATIONS",
    "Operation",
    "RecallAPIError",
    "RecallAuthError",
    "RecallClient",
    "RecallConfigurationError",
    "RecallError",
    "RecallRateLimitError",
    "RecallTimeoutError",
    "RecallValidationError",
    "RequestOptions",
    "RequestParams",
    "Transport",
    "TransportResult",
    "UnknownWebhookEvent",
    "WEBHOOK_EVENT_NAMES",
    "WEBHOOK_EVENT_REGISTRY",
    "WebhookValidationError",
    "compose_cancellation",
    "is_known_webhook_event",
    "normalize_error",
    "parse_webhook_event",
    "with_auth",
    "with_cancellation",
    "with_error_normalization",
    "with_idempotency_key",
]
