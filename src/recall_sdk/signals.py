"""Cancellation signals for in-flight requests.

An :class:`AbortController` owns one :class:`AbortSignal`. Aborting the
controller records a reason and synchronously notifies every listener once.
Transport adapters honor a signal through :func:`await_with_signal`.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Awaitable, Callable, TypeVar

T = TypeVar("T")

AbortListener = Callable[[BaseException], None]


class AbortError(Exception):
    """Default reason recorded when a signal is aborted without one."""


class AbortSignal:
    def __init__(self) -> None:
        self._aborted = False
        self._reason: BaseException | None = None
        self._listeners: list[AbortListener] = []

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def reason(self) -> BaseException | None:
        return self._reason

    def add_listener(self, listener: AbortListener) -> None:
        """Register ``listener`` to run when the signal aborts.

        Listeners added after the signal aborted never run.
        """
        if self._aborted or listener in self._listeners:
            return
        self._listeners.append(listener)

    def remove_listener(self, listener: AbortListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    async def wait(self) -> BaseException:
        """Suspend until the signal aborts and return its reason."""
        if self._aborted and self._reason is not None:
            return self._reason
        waiter: asyncio.Future[BaseException] = asyncio.get_running_loop().create_future()

        def on_abort(reason: BaseException) -> None:
            if not waiter.done():
                waiter.set_result(reason)

        self.add_listener(on_abort)
        try:
            return await waiter
        finally:
            self.remove_listener(on_abort)

    def raise_if_aborted(self) -> None:
        if self._aborted and self._reason is not None:
            raise self._reason

    def _abort(self, reason: BaseException) -> None:
        if self._aborted:
            return
        self._aborted = True
        self._reason = reason
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            listener(reason)

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"AbortSignal(aborted={self._aborted!r}, reason={self._reason!r})"


class AbortController:
    def __init__(self) -> None:
        self.signal = AbortSignal()

    def abort(self, reason: BaseException | None = None) -> None:
        """Abort the signal. Only the first call has any effect."""
        if reason is None:
            reason = AbortError("This operation was aborted")
        self.signal._abort(reason)


def _discard_outcome(task: asyncio.Future[Any]) -> None:
    if not task.cancelled():
        task.exception()


async def await_with_signal(awaitable: Awaitable[T], signal: AbortSignal | None) -> T:
    """Await ``awaitable`` unless ``signal`` aborts first.

    When the signal wins, the inner task is cancelled and the signal's reason
    is raised. Cancellation of the inner task is best effort: an awaitable that
    swallows ``CancelledError`` keeps running until it settles on its own.
    """
    if signal is None:
        return await awaitable

    if signal.aborted:
        if inspect.iscoroutine(awaitable):
            awaitable.close()
        signal.raise_if_aborted()

    loop = asyncio.get_running_loop()
    task = asyncio.ensure_future(awaitable)
    aborted: asyncio.Future[None] = loop.create_future()

    def on_abort(_reason: BaseException) -> None:
        if not aborted.done():
            aborted.set_result(None)

    signal.add_listener(on_abort)
    try:
        try:
            await asyncio.wait({task, aborted}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
    finally:
        signal.remove_listener(on_abort)
        if not aborted.done():
            aborted.cancel()

    if task.done():
        return task.result()

    task.add_done_callback(_discard_outcome)
    task.cancel()
    signal.raise_if_aborted()
    raise AbortError("This operation was aborted")  # pragma: no cover - unreachable
