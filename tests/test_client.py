from __future__ import annotations

import asyncio
import json
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator

import httpx
import pytest

from recall_sdk import (
    RecallAPIError,
    RecallAuthError,
    RecallClient,
    RecallRateLimitError,
    RecallValidationError,
    RequestOptions,
    RequestParams,
    TransportResult,
    with_auth,
)
from recall_sdk.operations import get_operation


@asynccontextmanager
async def _client(handler, **kwargs) -> AsyncIterator[RecallClient]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        async with RecallClient(
            api_key=kwargs.pop("api_key", "test-api-key"),
            base_url="https://example.com",
            httpx_client=http,
            **kwargs,
        ) as client:
            yield client


def test_non_2xx_response_carries_structured_fields() -> None:
    payload = {
        "code": "bot_initializing",
        "error": "Bad Request",
        "detail": "Bot is already initializing",
    }

    def send_request(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json=payload, request=request)

    async def run() -> RecallAPIError:
        async with _client(send_request) as client:
            with pytest.raises(RecallAPIError) as exc_info:
                await client.bot.retrieve("bot-123")
        return exc_info.value

    error = asyncio.run(run())
    assert error.status == 400
    assert error.status_text == "Bad Request"
    assert error.payload == payload
    assert error.code == "bot_initializing"
    assert error.detail == "Bot is already initializing"
    assert error.message == "Bad Request"
    assert isinstance(error.response, httpx.Response)
    assert isinstance(error.request, httpx.Request)
    assert str(error.request.url) == "https://example.com/api/v1/bot/bot-123/"


def test_string_error_body_becomes_message_verbatim() -> None:
    def send_request(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, text="Bot is busy", request=request)

    async def run() -> RecallAPIError:
        async with _client(send_request) as client:
            with pytest.raises(RecallAPIError) as exc_info:
                await client.bot.leave_call("bot-123")
        return exc_info.value

    error = asyncio.run(run())
    assert error.message == "Bot is busy"
    assert error.args[0] == "Bot is busy"
    assert error.code is None


def test_successful_payload_is_returned_without_wrapping() -> None:
    calls: list[httpx.Request] = []

    def send_request(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"id": "bot-123", "bot_name": "Demo"}, request=request)

    async def run():
        async with _client(send_request) as client:
            return await client.bot.retrieve({"bot_id": "bot-123"})

    assert asyncio.run(run()) == {"id": "bot-123", "bot_name": "Demo"}
    assert len(calls) == 1
    assert calls[0].method == "GET"
    assert calls[0].url.path == "/api/v1/bot/bot-123/"


def test_empty_response_resolves_to_none() -> None:
    def send_request(request: httpx.Request) -> httpx.Response:
        return httpx.Response(204, request=request)

    async def run():
        async with _client(send_request) as client:
            return await client.calendar.delete_calendar("cal-1")

    assert asyncio.run(run()) is None


@pytest.mark.parametrize(
    ("api_key", "expected"),
    [("abc", "Token abc"), ("Token abc", "Token abc")],
)
def test_authorization_header_uses_token_scheme_once(api_key: str, expected: str) -> None:
    captured: dict[str, str] = {}

    def send_request(request: httpx.Request) -> httpx.Response:
        captured["authorization"] = request.headers["Authorization"]
        return httpx.Response(200, json={"results": []}, request=request)

    async def run() -> None:
        async with _client(send_request, api_key=api_key) as client:
            await client.bot.list()

    asyncio.run(run())
    assert captured["authorization"] == expected


def test_key_provider_is_resolved_on_every_request() -> None:
    keys = iter(["first-key", "Token second-key"])
    seen: list[str] = []

    async def record(operation, params: RequestParams) -> TransportResult:
        seen.append(params.headers["Authorization"])
        return TransportResult(status=200, status_text="OK", data=None)

    call = with_auth(record, lambda: next(keys))
    operation = get_operation("bot_list")

    async def run() -> None:
        await call(operation, RequestParams())
        await call(operation, RequestParams())

    asyncio.run(run())
    assert seen == ["Token first-key", "Token second-key"]


def test_idempotency_key_is_sent_only_for_mutating_calls() -> None:
    seen: list[tuple[str, str | None]] = []

    def send_request(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.headers.get("Idempotency-Key")))
        return httpx.Response(200, json={"id": "bot-1"}, request=request)

    async def run() -> None:
        options = RequestOptions(idempotency_key="key-123")
        async with _client(send_request) as client:
            await client.bot.create({"meeting_url": "https://meet.example.com/abc"}, options=options)
            await client.bot.retrieve("bot-1", options=options)
            await client.bot.create({"meeting_url": "https://meet.example.com/abc"})

    asyncio.run(run())
    assert seen == [("POST", "key-123"), ("GET", None), ("POST", None)]


def test_create_sends_json_body() -> None:
    captured: dict[str, object] = {}

    def send_request(request: httpx.Request) -> httpx.Response:
        captured["body"] = json.loads(request.content.decode())
        captured["path"] = request.url.path
        return httpx.Response(201, json={"id": "tr-1"}, request=request)

    async def run():
        async with _client(send_request) as client:
            return await client.recording.create_transcript(
                {"recording_id": "rec-9"},
                {"provider": {"recallai_async": {}}},
            )

    assert asyncio.run(run()) == {"id": "tr-1"}
    assert captured["path"] == "/api/v1/recording/rec-9/create_transcript/"
    assert captured["body"] == {"provider": {"recallai_async": {}}}


def test_list_query_drops_none_and_formats_datetimes() -> None:
    captured: dict[str, object] = {}

    def send_request(request: httpx.Request) -> httpx.Response:
        captured["params"] = dict(request.url.params)
        return httpx.Response(200, json={"results": []}, request=request)

    async def run() -> None:
        async with _client(send_request) as client:
            await client.calendar.list_events(
                {
                    "calendar_id": "cal-1",
                    "cursor": None,
                    "start_time__gte": datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
                    "is_deleted": False,
                }
            )

    asyncio.run(run())
    assert captured["params"] == {
        "calendar_id": "cal-1",
        "start_time__gte": "2025-01-02T03:04:05+00:00",
        "is_deleted": "false",
    }


def test_media_artifact_aliases_hit_artifact_paths() -> None:
    paths: list[tuple[str, str]] = []

    def send_request(request: httpx.Request) -> httpx.Response:
        paths.append((request.method, request.url.path))
        return httpx.Response(200, json={}, request=request)

    async def run() -> None:
        async with _client(send_request) as client:
            await client.audio.retrieve_mixed({"audio_mixed_artifact_id": "am-1"})
            await client.audio.separate.delete("as-1")
            await client.video.update_separate("vs-1", {"metadata": {"k": "v"}})
            await client.video.list_mixed()

    asyncio.run(run())
    assert paths == [
        ("GET", "/api/v1/audio_mixed/am-1/"),
        ("DELETE", "/api/v1/audio_separate/as-1/"),
        ("PATCH", "/api/v1/video_separate/vs-1/"),
        ("GET", "/api/v1/video_mixed/"),
    ]


def test_missing_identifier_is_rejected_before_any_request() -> None:
    calls: list[httpx.Request] = []

    def send_request(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={}, request=request)

    async def run() -> None:
        async with _client(send_request) as client:
            with pytest.raises(RecallValidationError, match="bot_id"):
                await client.bot.retrieve({"botId": "bot-1"})
            with pytest.raises(RecallValidationError, match="transcript_id"):
                await client.transcript.retrieve("  ")

    asyncio.run(run())
    assert calls == []


def test_auth_and_rate_limit_statuses_map_to_subclasses() -> None:
    def send_request(request: httpx.Request) -> httpx.Response:
        if request.url.path.startswith("/api/v1/bot/"):
            return httpx.Response(
                401,
                json={"code": "authentication_failed", "detail": "Invalid API token."},
                request=request,
            )
        return httpx.Response(
            429,
            json={"detail": "Too many requests"},
            headers={"Retry-After": "3", "x-request-id": "req-42"},
            request=request,
        )

    async def run() -> tuple[RecallAPIError, RecallAPIError]:
        async with _client(send_request) as client:
            with pytest.raises(RecallAuthError) as auth_info:
                await client.bot.list()
            with pytest.raises(RecallRateLimitError) as limit_info:
                await client.transcript.list()
        return auth_info.value, limit_info.value

    auth_error, limit_error = asyncio.run(run())
    assert auth_error.code == "authentication_failed"
    assert "invalid api token" in (auth_error.detail or "").lower()
    assert isinstance(limit_error, RecallAPIError)
    assert limit_error.retry_after == 3.0
    assert limit_error.request_id == "req-42"
    assert limit_error.message == "Too many requests"


def test_network_failure_passes_through_unchanged() -> None:
    network_error = httpx.ConnectError("network down")

    def send_request(request: httpx.Request) -> httpx.Response:
        raise network_error

    async def run() -> BaseException:
        async with _client(send_request) as client:
            with pytest.raises(httpx.ConnectError) as exc_info:
                await client.bot.list()
        return exc_info.value

    assert asyncio.run(run()) is network_error


def test_injected_httpx_client_is_left_open() -> None:
    def send_request(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={}, request=request)

    async def run() -> bool:
        async with httpx.AsyncClient(transport=httpx.MockTransport(send_request)) as http:
            async with RecallClient(api_key="test", httpx_client=http):
                pass
            return http.is_closed

    assert asyncio.run(run()) is False
