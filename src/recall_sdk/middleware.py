"""Request layers composed around a transport call.

Each layer takes a :data:`~recall_sdk.transport.Call` and returns one with the
same signature, so the client pipeline reads as plain composition::

    with_auth(with_idempotency_key(with_cancellation(with_error_normalization(perform), timeout_ms)), key)
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable

from .exceptions import RecallTimeoutError, api_error_for_status, is_normalized_error
from .operations import Operation
from .security import format_api_key
from .signals import AbortSignal
from .transport import Call, RequestParams, TransportResult


IDEMPOTENCY_HEADER_NAME = "Idempotency-Key"


def normalize_error(error: BaseException, *, signal: AbortSignal | None = None) -> BaseException:
    """Map a failure raised by the transport onto the SDK's error kinds.

    Errors that already are SDK errors come back unchanged. A failure observed
    after the effective signal timed out becomes that timeout error. Anything
    else is returned as-is so the original diagnostics survive.
    """
    if is_normalized_error(error):
        return error
    if signal is not None and signal.aborted and isinstance(signal.reason, RecallTimeoutError):
        return signal.reason
    return error


def with_error_normalization(call: Call) -> Call:
    async def normalized(operation: Operation, params: RequestParams) -> TransportResult:
        try:
            result = await call(operation, params)
        except Exception as exc:
            error = normalize_error(exc, signal=params.signal)
            if error is exc:
                raise
            raise error from exc

        if not result.is_success:
            raise api_error_for_status(
                status=result.status,
                status_text=result.status_text,
                payload=result.data,
                request=result.request,
                response=result.response,
                headers=result.headers,
            )
        return result

    return normalized


def with_idempotency_key(call: Call) -> Call:
    async def idempotent(operation: Operation, params: RequestParams) -> TransportResult:
        key = params.idempotency_key
        if operation.is_mutating and isinstance(key, str) and key:
            params = replace(params, headers={**params.headers, IDEMPOTENCY_HEADER_NAME: key})
        return await call(operation, params)

    return idempotent


def with_auth(call: Call, api_key: str | Callable[[], str]) -> Call:
    """Attach the ``Authorization`` header, resolving the key on every request."""

    def resolve_key() -> str:
        return api_key() if callable(api_key) else api_key

    async def authenticated(operation: Operation, params: RequestParams) -> TransportResult:
        headers = {**params.headers, "Authorization": format_api_key(resolve_key())}
        return await call(operation, replace(params, headers=headers))

    return authenticated
