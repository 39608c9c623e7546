"""Asynchronous client for the Recall.ai API."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Mapping

import httpx

from .cancellation import with_cancellation
from .config import ClientConfig
from .middleware import with_auth, with_error_normalization, with_idempotency_key
from .operations import get_operation, resolve_resource_id
from .request_options import RequestOptions
from .transport import HttpxTransport, RequestParams, Transport

logger = logging.getLogger(__name__)

USER_AGENT = "recall-sdk-python/0.1.0"

ResourceRef = str | Mapping[str, Any]


def _coerce_json_payload(payload: Any) -> Any:
    if payload is None:
        return None
    if isinstance(payload, Mapping):
        return dict(payload)
    return payload


def _coerce_query_params(query: Mapping[str, Any] | None) -> dict[str, Any] | None:
    if query is None:
        return None
    normalized: dict[str, Any] = {}
    for key, value in query.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            normalized[key] = ["" if v is None else v for v in value]
            continue
        if isinstance(value, (datetime, date)):
            normalized[key] = value.isoformat()
            continue
        if isinstance(value, bool):
            normalized[key] = "true" if value else "false"
            continue
        normalized[key] = value
    return normalized or None


class _Module:
    def __init__(self, client: "RecallClient") -> None:
        self._client = client


class BotModule(_Module):
    async def list(self, query: Mapping[str, Any] | None = None, *, options: RequestOptions | None = None) -> Any:
        """List bots. Rate limited to 60 requests per min per workspace."""
        return await self._client.dispatch("bot_list", query=query, options=options)

    async def create(self, body: Mapping[str, Any], *, options: RequestOptions | None = None) -> Any:
        """Create a new bot. Rate limited to 60 requests per min per workspace."""
        return await self._client.dispatch("bot_create", body=body, options=options)

    async def retrieve(self, bot: ResourceRef, *, options: RequestOptions | None = None) -> Any:
        return await self._client.dispatch("bot_retrieve", bot, options=options)

    async def update(
        self,
        bot: ResourceRef,
        body: Mapping[str, Any] | None = None,
        *,
        options: RequestOptions | None = None,
    ) -> Any:
        """Update a scheduled bot."""
        return await self._client.dispatch("bot_partial_update", bot, body=body, options=options)

    async def delete(self, bot: ResourceRef, *, options: RequestOptions | None = None) -> Any:
        """Delete a scheduled bot that has not joined a call yet."""
        return await self._client.dispatch("bot_destroy", bot, options=options)

    async def leave_call(self, bot: ResourceRef, *, options: RequestOptions | None = None) -> Any:
        """Remove the bot from its meeting. This is irreversible."""
        return await self._client.dispatch("bot_leave_call_create", bot, options=options)

    async def delete_media(self, bot: ResourceRef, *, options: RequestOptions | None = None) -> Any:
        """Delete media stored for the bot. This is irreversible."""
        return await self._client.dispatch("bot_delete_media_create", bot, options=options)


class CalendarEventsModule(_Module):
    async def list(self, query: Mapping[str, Any] | None = None, *, options: RequestOptions | None = None) -> Any:
        return await self._client.dispatch("calendar_events_list", query=query, options=options)

    async def retrieve(self, event: ResourceRef, *, options: RequestOptions | None = None) -> Any:
        return await self._client.dispatch("calendar_events_retrieve", event, options=options)

    async def schedule_bot(
        self,
        event: ResourceRef,
        body: Mapping[str, Any],
        *,
        options: RequestOptions | None = None,
    ) -> Any:
        """Schedule a bot for a calendar event and return the updated event."""
        return await self._client.dispatch("calendar_events_bot_create", event, body=body, options=options)

    async def unschedule_bot(self, event: ResourceRef, *, options: RequestOptions | None = None) -> Any:
        return await self._client.dispatch("calendar_events_bot_destroy", event, options=options)


class CalendarAccountsModule(_Module):
    async def list(self, query: Mapping[str, Any] | None = None, *, options: RequestOptions | None = None) -> Any:
        return await self._client.dispatch("calendars_list", query=query, options=options)

    async def create(self, body: Mapping[str, Any], *, options: RequestOptions | None = None) -> Any:
        return await self._client.dispatch("calendars_create", body=body, options=options)

    async def retrieve(self, calendar: ResourceRef, *, options: RequestOptions | None = None) -> Any:
        return await self._client.dispatch("calendars_retrieve", calendar, options=options)

    async def update(
        self,
        calendar: ResourceRef,
        body: Mapping[str, Any] | None = None,
        *,
        options: RequestOptions | None = None,
    ) -> Any:
        return await self._client.dispatch("calendars_partial_update", calendar, body=body, options=options)

    async def delete(self, calendar: ResourceRef, *, options: RequestOptions | None = None) -> Any:
        """Delete a calendar. This disconnects it."""
        return await self._client.dispatch("calendars_destroy", calendar, options=options)

    async def create_access_token(self, calendar: ResourceRef, *, options: RequestOptions | None = None) -> Any:
        """Get the OAuth access token for this calendar account."""
        return await self._client.dispatch("calendars_access_token_create", calendar, options=options)


class CalendarModule(_Module):
    """Calendar events and calendar accounts, with flat aliases for both."""

    def __init__(self, client: "RecallClient") -> None:
        super().__init__(client)
        self.events = CalendarEventsModule(client)
        self.accounts = CalendarAccountsModule(client)

    def list_events(self, query: Mapping[str, Any] | None = None, *, options: RequestOptions | None = None):
        return self.events.list(query, options=options)

    def retrieve_event(self, event: ResourceRef, *, options: RequestOptions | None = None):
        return self.events.retrieve(event, options=options)

    def schedule_bot(self, event: ResourceRef, body: Mapping[str, Any], *, options: RequestOptions | None = None):
        return self.events.schedule_bot(event, body, options=options)

    def unschedule_bot(self, event: ResourceRef, *, options: RequestOptions | None = None):
        return self.events.unschedule_bot(event, options=options)

    def list_calendars(self, query: Mapping[str, Any] | None = None, *, options: RequestOptions | None = None):
        return self.accounts.list(query, options=options)

    def create_calendar(self, body: Mapping[str, Any], *, options: RequestOptions | None = None):
        return self.accounts.create(body, options=options)

    def retrieve_calendar(self, calendar: ResourceRef, *, options: RequestOptions | None = None):
        return self.accounts.retrieve(calendar, options=options)

    def update_calendar(
        self,
        calendar: ResourceRef,
        body: Mapping[str, Any] | None = None,
        *,
        options: RequestOptions | None = None,
    ):
        return self.accounts.update(calendar, body, options=options)

    def delete_calendar(self, calendar: ResourceRef, *, options: RequestOptions | None = None):
        return self.accounts.delete(calendar, options=options)

    def create_calendar_access_token(self, calendar: ResourceRef, *, options: RequestOptions | None = None):
        return self.accounts.create_access_token(calendar, options=options)


class RecordingModule(_Module):
    async def list(self, query: Mapping[str, Any] | None = None, *, options: RequestOptions | None = None) -> Any:
        return await self._client.dispatch("recording_list", query=query, options=options)

    async def retrieve(self, recording: ResourceRef, *, options: RequestOptions | None = None) -> Any:
        return await self._client.dispatch("recording_retrieve", recording, options=options)

    async def delete(self, recording: ResourceRef, *, options: RequestOptions | None = None) -> Any:
        return await self._client.dispatch("recording_destroy", recording, options=options)

    async def create_transcript(
        self,
        recording: ResourceRef,
        body: Mapping[str, Any],
        *,
        options: RequestOptions | None = None,
    ) -> Any:
        """Start an async transcript. Rate limited to 5 requests per min per bot."""
        return await self._client.dispatch(
            "recording_create_transcript_create",
            recording,
            body=body,
            options=options,
        )


class TranscriptModule(_Module):
    async def list(self, query: Mapping[str, Any] | None = None, *, options: RequestOptions | None = None) -> Any:
        return await self._client.dispatch("transcript_list", query=query, options=options)

    async def retrieve(self, transcript: ResourceRef, *, options: RequestOptions | None = None) -> Any:
        return await self._client.dispatch("transcript_retrieve", transcript, options=options)

    async def update(
        self,
        transcript: ResourceRef,
        body: Mapping[str, Any] | None = None,
        *,
        options: RequestOptions | None = None,
    ) -> Any:
        return await self._client.dispatch("transcript_partial_update", transcript, body=body, options=options)

    async def delete(self, transcript: ResourceRef, *, options: RequestOptions | None = None) -> Any:
        return await self._client.dispatch("transcript_destroy", transcript, options=options)


class ArtifactModule(_Module):
    """List/retrieve/update/delete for one media artifact type, e.g. ``audio_mixed``.

    Identifier mappings use the ``<artifact>_artifact_id`` key.
    """

    def __init__(self, client: "RecallClient", artifact: str) -> None:
        super().__init__(client)
        self.artifact = artifact

    async def list(self, query: Mapping[str, Any] | None = None, *, options: RequestOptions | None = None) -> Any:
        return await self._client.dispatch(f"{self.artifact}_list", query=query, options=options)

    async def retrieve(self, artifact: ResourceRef, *, options: RequestOptions | None = None) -> Any:
        return await self._client.dispatch(f"{self.artifact}_retrieve", artifact, options=options)

    async def update(
        self,
        artifact: ResourceRef,
        body: Mapping[str, Any] | None = None,
        *,
        options: RequestOptions | None = None,
    ) -> Any:
        return await self._client.dispatch(f"{self.artifact}_partial_update", artifact, body=body, options=options)

    async def delete(self, artifact: ResourceRef, *, options: RequestOptions | None = None) -> Any:
        return await self._client.dispatch(f"{self.artifact}_destroy", artifact, options=options)


class MediaModule(_Module):
    """Mixed and separate artifacts for one media kind (``audio`` or ``video``)."""

    def __init__(self, client: "RecallClient", kind: str) -> None:
        super().__init__(client)
        self.mixed = ArtifactModule(client, f"{kind}_mixed")
        self.separate = ArtifactModule(client, f"{kind}_separate")

    def list_mixed(self, query: Mapping[str, Any] | None = None, *, options: RequestOptions | None = None):
        return self.mixed.list(query, options=options)

    def retrieve_mixed(self, artifact: ResourceRef, *, options: RequestOptions | None = None):
        return self.mixed.retrieve(artifact, options=options)

    def update_mixed(
        self,
        artifact: ResourceRef,
        body: Mapping[str, Any] | None = None,
        *,
        options: RequestOptions | None = None,
    ):
        return self.mixed.update(artifact, body, options=options)

    def delete_mixed(self, artifact: ResourceRef, *, options: RequestOptions | None = None):
        return self.mixed.delete(artifact, options=options)

    def list_separate(self, query: Mapping[str, Any] | None = None, *, options: RequestOptions | None = None):
        return self.separate.list(query, options=options)

    def retrieve_separate(self, artifact: ResourceRef, *, options: RequestOptions | None = None):
        return self.separate.retrieve(artifact, options=options)

    def update_separate(
        self,
        artifact: ResourceRef,
        body: Mapping[str, Any] | None = None,
        *,
        options: RequestOptions | None = None,
    ):
        return self.separate.update(artifact, body, options=options)

    def delete_separate(self, artifact: ResourceRef, *, options: RequestOptions | None = None):
        return self.separate.delete(artifact, options=options)


class RecallClient:
    """Asynchronous client.

    Every resource method resolves with the decoded response body or raises
    one of :class:`~recall_sdk.exceptions.RecallAPIError`,
    :class:`~recall_sdk.exceptions.RecallTimeoutError`, or the transport's own
    exception unchanged. Nothing is retried or cached.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout_ms: float | None = None,
        allow_http: bool = False,
        httpx_client: httpx.AsyncClient | None = None,
        transport: Transport | None = None,
        config: ClientConfig | None = None,
    ) -> None:
        self.config = config or ClientConfig.from_env(
            api_key=api_key,
            base_url=base_url,
            timeout_ms=timeout_ms,
            allow_http=allow_http,
        )
        self._owns_httpx = False
        if transport is None:
            if httpx_client is None:
                httpx_client = httpx.AsyncClient(
                    headers={"Accept": "application/json", "User-Agent": USER_AGENT},
                    timeout=None,
                    follow_redirects=True,
                    trust_env=False,
                )
                self._owns_httpx = True
            transport = HttpxTransport(httpx_client, base_url=self.config.base_url)
        self._httpx = httpx_client
        self._transport = transport
        self._call = with_auth(
            with_idempotency_key(
                with_cancellation(
                    with_error_normalization(transport.perform),
                    self.config.timeout_ms,
                )
            ),
            self.config.api_key,
        )

        self.bot = BotModule(self)
        self.calendar = CalendarModule(self)
        self.recording = RecordingModule(self)
        self.transcript = TranscriptModule(self)
        self.audio = MediaModule(self, "audio")
        self.video = MediaModule(self, "video")

    async def __aenter__(self) -> "RecallClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_httpx and self._httpx is not None:
            await self._httpx.aclose()

    async def dispatch(
        self,
        operation_id: str,
        resource: ResourceRef | None = None,
        *,
        query: Mapping[str, Any] | None = None,
        body: Any = None,
        options: RequestOptions | None = None,
    ) -> Any:
        """Run one operation from :data:`~recall_sdk.operations.OPERATIONS`."""
        operation = get_operation(operation_id)
        request_options = options or RequestOptions()

        path = None
        if operation.id_field is not None:
            path = {"id": resolve_resource_id(resource, operation.id_field)}

        params = RequestParams(
            path=path,
            query=_coerce_query_params(query) if operation.has_query else None,
            body=_coerce_json_payload(body) if operation.has_body else None,
            signal=request_options.signal,
            idempotency_key=request_options.idempotency_key,
        )

        try:
            result = await self._call(operation, params)
        except Exception as exc:
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("recall %s failed: %s", operation_id, type(exc).__name__)
            raise
        return result.data
