from __future__ import annotations

import asyncio
import time

import httpx
import pytest

import recall_sdk.cancellation as cancellation_module
from recall_sdk import (
    AbortController,
    AbortError,
    RecallClient,
    RecallTimeoutError,
    RequestOptions,
    TransportResult,
)
from recall_sdk.cancellation import EffectiveCancellation, compose_cancellation


class HangingTransport:
    """Adapter whose exchange never settles unless cancelled."""

    def __init__(self) -> None:
        self.signals = []

    async def perform(self, operation, params) -> TransportResult:
        self.signals.append(params.signal)
        await asyncio.Event().wait()
        raise AssertionError("unreachable")


class StubbornTransport:
    """Adapter that ignores the first cancellation and keeps going."""

    async def perform(self, operation, params) -> TransportResult:
        try:
            await asyncio.sleep(0.5)
        except asyncio.CancelledError:
            await asyncio.sleep(0.05)
        return TransportResult(status=200, status_text="OK", data={"late": True})


class FastTransport:
    def __init__(self) -> None:
        self.signals = []

    async def perform(self, operation, params) -> TransportResult:
        self.signals.append(params.signal)
        await asyncio.sleep(0.01)
        return TransportResult(status=200, status_text="OK", data={"results": []})


class FailingTransport:
    def __init__(self, error: BaseException) -> None:
        self.error = error

    async def perform(self, operation, params) -> TransportResult:
        await asyncio.sleep(0)
        raise self.error


def _client(transport, timeout_ms=None) -> RecallClient:
    return RecallClient(api_key="test", transport=transport, timeout_ms=timeout_ms)


def _spy_compositions(monkeypatch) -> list[EffectiveCancellation]:
    created: list[EffectiveCancellation] = []
    original = cancellation_module.compose_cancellation

    def spy(signal, timeout_ms):
        result = original(signal, timeout_ms)
        created.append(result)
        return result

    monkeypatch.setattr(cancellation_module, "compose_cancellation", spy)
    return created


def test_timeout_rejects_hanging_request(monkeypatch) -> None:
    created = _spy_compositions(monkeypatch)
    transport = HangingTransport()

    async def run() -> RecallTimeoutError:
        client = _client(transport, timeout_ms=100)
        with pytest.raises(RecallTimeoutError) as exc_info:
            await client.bot.list()
        return exc_info.value

    started = time.monotonic()
    error = asyncio.run(run())
    elapsed = time.monotonic() - started

    assert error.timeout_ms == 100
    assert str(error) == "Recall request aborted after exceeding timeout of 100ms"
    assert elapsed < 1.0
    assert transport.signals[0].aborted
    assert transport.signals[0].reason is error
    assert len(created) == 1
    assert created[0].torn_down
    assert not created[0].timer_active


def test_fast_response_resolves_and_clears_timer(monkeypatch) -> None:
    created = _spy_compositions(monkeypatch)
    transport = FastTransport()

    async def run():
        return await _client(transport, timeout_ms=500).bot.list()

    assert asyncio.run(run()) == {"results": []}
    assert not transport.signals[0].aborted
    assert created[0].torn_down
    assert not created[0].timer_active


def test_timeout_unblocks_adapter_that_ignores_cancellation() -> None:
    async def run() -> float:
        client = _client(StubbornTransport(), timeout_ms=50)
        started = time.monotonic()
        with pytest.raises(RecallTimeoutError):
            await client.recording.list()
        return time.monotonic() - started

    assert asyncio.run(run()) < 0.4


def test_already_aborted_caller_signal_skips_timer_and_request(monkeypatch) -> None:
    def fail_start_timer(self, timeout_ms):
        raise AssertionError("timer must not start for an aborted signal")

    monkeypatch.setattr(EffectiveCancellation, "_start_timer", fail_start_timer)
    transport = HangingTransport()
    controller = AbortController()
    reason = RuntimeError("caller gave up")
    controller.abort(reason)

    async def run() -> BaseException:
        client = _client(transport, timeout_ms=1000)
        with pytest.raises(RuntimeError) as exc_info:
            await client.bot.list(options=RequestOptions(signal=controller.signal))
        return exc_info.value

    assert asyncio.run(run()) is reason
    assert transport.signals == []


def test_caller_abort_mid_flight_wins_over_timeout(monkeypatch) -> None:
    created = _spy_compositions(monkeypatch)
    transport = HangingTransport()
    controller = AbortController()
    reason = RuntimeError("user navigated away")

    async def run() -> BaseException:
        client = _client(transport, timeout_ms=1000)
        asyncio.get_running_loop().call_later(0.02, controller.abort, reason)
        with pytest.raises(RuntimeError) as exc_info:
            await client.bot.retrieve("bot-1", options=RequestOptions(signal=controller.signal))
        return exc_info.value

    assert asyncio.run(run()) is reason
    assert transport.signals[0].reason is reason
    assert created[0].torn_down
    assert not created[0].timer_active


def test_caller_abort_without_timeout_cancels_httpx_exchange() -> None:
    controller = AbortController()

    async def send_request(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(5)
        return httpx.Response(200, json={}, request=request)

    async def run() -> BaseException:
        async with httpx.AsyncClient(transport=httpx.MockTransport(send_request)) as http:
            client = RecallClient(api_key="test", base_url="https://example.com", httpx_client=http)
            asyncio.get_running_loop().call_later(0.02, controller.abort)
            with pytest.raises(AbortError) as exc_info:
                await client.bot.list(options=RequestOptions(signal=controller.signal))
        return exc_info.value

    error = asyncio.run(run())
    assert error is controller.signal.reason


def test_network_failure_tears_down_pending_timer(monkeypatch) -> None:
    created = _spy_compositions(monkeypatch)
    network_error = httpx.ConnectError("network down")

    async def run() -> BaseException:
        client = _client(FailingTransport(network_error), timeout_ms=1000)
        with pytest.raises(httpx.ConnectError) as exc_info:
            await client.transcript.list()
        return exc_info.value

    assert asyncio.run(run()) is network_error
    assert created[0].torn_down
    assert not created[0].timer_active


def test_compose_without_timeout_passes_caller_signal_through() -> None:
    controller = AbortController()
    effective = compose_cancellation(controller.signal, None)
    assert effective.signal is controller.signal
    assert not effective.timer_active
    effective.teardown()
    effective.teardown()


def test_compose_timer_aborts_with_timeout_error() -> None:
    async def run() -> EffectiveCancellation:
        effective = compose_cancellation(None, 10)
        assert effective.timer_active
        await asyncio.sleep(0.05)
        return effective

    effective = asyncio.run(run())
    assert effective.signal.aborted
    assert isinstance(effective.signal.reason, RecallTimeoutError)
    assert effective.signal.reason.timeout_ms == 10
    assert effective.torn_down


def test_compose_teardown_detaches_from_caller_signal() -> None:
    controller = AbortController()

    async def run() -> EffectiveCancellation:
        effective = compose_cancellation(controller.signal, 1000)
        effective.teardown()
        effective.teardown()
        controller.abort(RuntimeError("late"))
        return effective

    effective = asyncio.run(run())
    assert not effective.timer_active
    assert not effective.signal.aborted


def test_compose_with_aborted_caller_copies_reason() -> None:
    controller = AbortController()
    reason = RuntimeError("stop")
    controller.abort(reason)

    async def run() -> EffectiveCancellation:
        return compose_cancellation(controller.signal, 1000)

    effective = asyncio.run(run())
    assert effective.signal.aborted
    assert effective.signal.reason is reason
    assert not effective.timer_active


def test_timeout_error_reports_abandoned_request() -> None:
    async def send_request(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(5)
        return httpx.Response(200, json={}, request=request)

    async def run() -> RecallTimeoutError:
        async with httpx.AsyncClient(transport=httpx.MockTransport(send_request)) as http:
            client = RecallClient(
                api_key="test",
                base_url="https://example.com",
                httpx_client=http,
                timeout_ms=50,
            )
            with pytest.raises(RecallTimeoutError) as exc_info:
                await client.recording.retrieve("rec-7")
        return exc_info.value

    error = asyncio.run(run())
    assert isinstance(error.request, httpx.Request)
    assert error.request.method == "GET"
    assert str(error.request.url) == "https://example.com/api/v1/recording/rec-7/"
