"""Merge a caller's abort signal with the client's request timeout.

Each in-flight request owns one :class:`EffectiveCancellation`. It holds at
most one timer handle and at most one listener on the caller's signal, and
releases both exactly once when the request settles, whichever way it ends.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace

import httpx

from .exceptions import RecallTimeoutError
from .operations import Operation
from .signals import AbortController, AbortSignal, await_with_signal
from .transport import Call, RequestParams, TransportResult


class EffectiveCancellation:
    def __init__(
        self,
        signal: AbortSignal | None,
        *,
        controller: AbortController | None = None,
        caller_signal: AbortSignal | None = None,
    ) -> None:
        self.signal = signal
        self._controller = controller
        self._caller_signal = caller_signal
        self._timer: asyncio.TimerHandle | None = None
        self._torn_down = False
        self.request: httpx.Request | None = None

    @property
    def timer_active(self) -> bool:
        return self._timer is not None

    @property
    def torn_down(self) -> bool:
        return self._torn_down

    def _start_timer(self, timeout_ms: float) -> None:
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(timeout_ms / 1000, self._on_timeout, timeout_ms)

    def _on_timeout(self, timeout_ms: float) -> None:
        self._timer = None
        if self._controller is not None:
            self._controller.abort(RecallTimeoutError(timeout_ms, request=self.request))

    def record_request(self, request: httpx.Request) -> None:
        self.request = request

    def _forward_abort(self, reason: BaseException) -> None:
        if self._controller is not None:
            self._controller.abort(reason)

    def _on_effective_abort(self, _reason: BaseException) -> None:
        self.teardown()

    def teardown(self) -> None:
        """Cancel the timer and detach from the caller's signal. Safe to call repeatedly."""
        if self._torn_down:
            return
        self._torn_down = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._caller_signal is not None:
            self._caller_signal.remove_listener(self._forward_abort)


def compose_cancellation(
    signal: AbortSignal | None,
    timeout_ms: float | None,
) -> EffectiveCancellation:
    """Build the single signal governing one request.

    Without a timeout the caller's signal is handed through and nothing is
    scheduled. With a timeout, whichever of the caller abort or the timer
    fires first decides the reason; the other becomes inert.
    """
    if timeout_ms is None:
        return EffectiveCancellation(signal)

    controller = AbortController()
    cancellation = EffectiveCancellation(
        controller.signal,
        controller=controller,
        caller_signal=signal,
    )
    controller.signal.add_listener(cancellation._on_effective_abort)

    if signal is not None:
        if signal.aborted:
            controller.abort(signal.reason)
            return cancellation
        signal.add_listener(cancellation._forward_abort)

    cancellation._start_timer(timeout_ms)
    return cancellation


def with_cancellation(call: Call, timeout_ms: float | None) -> Call:
    """Wrap ``call`` so every request runs under an effective cancellation.

    Without a timeout ``call`` is returned unchanged.
    """
    if timeout_ms is None:
        return call

    async def cancellable(operation: Operation, params: RequestParams) -> TransportResult:
        cancellation = compose_cancellation(params.signal, timeout_ms)
        upstream = params.on_request

        def on_request(request: httpx.Request) -> None:
            cancellation.record_request(request)
            if upstream is not None:
                upstream(request)

        try:
            return await await_with_signal(
                call(operation, replace(params, signal=cancellation.signal, on_request=on_request)),
                cancellation.signal,
            )
        finally:
            cancellation.teardown()

    return cancellable
