"""Operation descriptors for every Recall endpoint the SDK exposes."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping
from urllib.parse import quote

from .exceptions import RecallValidationError


MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


@dataclass(frozen=True)
class Operation:
    operation_id: str
    method: str
    path_template: str
    has_body: bool = False
    has_query: bool = False
    id_field: str | None = None

    @property
    def is_mutating(self) -> bool:
        return self.method in MUTATING_METHODS

    def build_path(self, path_params: Mapping[str, str] | None = None) -> str:
        params = path_params or {}
        try:
            return self.path_template.format(
                **{key: quote(str(value), safe="") for key, value in params.items()}
            )
        except KeyError as exc:
            raise RecallValidationError(
                f"{self.operation_id} is missing path parameter {exc.args[0]!r}"
            ) from None


def _list(operation_id: str, path: str) -> Operation:
    return Operation(operation_id, "GET", path, has_query=True)


def _create(operation_id: str, path: str) -> Operation:
    return Operation(operation_id, "POST", path, has_body=True)


def _retrieve(operation_id: str, path: str, id_field: str) -> Operation:
    return Operation(operation_id, "GET", path, id_field=id_field)


def _update(operation_id: str, path: str, id_field: str) -> Operation:
    return Operation(operation_id, "PATCH", path, has_body=True, id_field=id_field)


def _destroy(operation_id: str, path: str, id_field: str) -> Operation:
    return Operation(operation_id, "DELETE", path, id_field=id_field)


def _artifact_operations(name: str) -> list[Operation]:
    collection = f"/api/v1/{name}/"
    member = f"/api/v1/{name}/{{id}}/"
    id_field = f"{name}_artifact_id"
    return [
        _list(f"{name}_list", collection),
        _retrieve(f"{name}_retrieve", member, id_field),
        _update(f"{name}_partial_update", member, id_field),
        _destroy(f"{name}_destroy", member, id_field),
    ]


_OPERATION_LIST = [
    _list("bot_list", "/api/v1/bot/"),
    _create("bot_create", "/api/v1/bot/"),
    _retrieve("bot_retrieve", "/api/v1/bot/{id}/", "bot_id"),
    _update("bot_partial_update", "/api/v1/bot/{id}/", "bot_id"),
    _destroy("bot_destroy", "/api/v1/bot/{id}/", "bot_id"),
    Operation("bot_leave_call_create", "POST", "/api/v1/bot/{id}/leave_call/", id_field="bot_id"),
    Operation("bot_delete_media_create", "POST", "/api/v1/bot/{id}/delete_media/", id_field="bot_id"),
    _list("calendar_events_list", "/api/v2/calendar-events/"),
    _retrieve("calendar_events_retrieve", "/api/v2/calendar-events/{id}/", "event_id"),
    Operation(
        "calendar_events_bot_create",
        "POST",
        "/api/v2/calendar-events/{id}/bot/",
        has_body=True,
        id_field="event_id",
    ),
    _destroy("calendar_events_bot_destroy", "/api/v2/calendar-events/{id}/bot/", "event_id"),
    _list("calendars_list", "/api/v2/calendars/"),
    _create("calendars_create", "/api/v2/calendars/"),
    _retrieve("calendars_retrieve", "/api/v2/calendars/{id}/", "calendar_id"),
    _update("calendars_partial_update", "/api/v2/calendars/{id}/", "calendar_id"),
    _destroy("calendars_destroy", "/api/v2/calendars/{id}/", "calendar_id"),
    Operation(
        "calendars_access_token_create",
        "POST",
        "/api/v2/calendars/{id}/access_token/",
        id_field="calendar_id",
    ),
    _list("recording_list", "/api/v1/recording/"),
    _retrieve("recording_retrieve", "/api/v1/recording/{id}/", "recording_id"),
    _destroy("recording_destroy", "/api/v1/recording/{id}/", "recording_id"),
    Operation(
        "recording_create_transcript_create",
        "POST",
        "/api/v1/recording/{id}/create_transcript/",
        has_body=True,
        id_field="recording_id",
    ),
    _list("transcript_list", "/api/v1/transcript/"),
    _retrieve("transcript_retrieve", "/api/v1/transcript/{id}/", "transcript_id"),
    _update("transcript_partial_update", "/api/v1/transcript/{id}/", "transcript_id"),
    _destroy("transcript_destroy", "/api/v1/transcript/{id}/", "transcript_id"),
    *_artifact_operations("audio_mixed"),
    *_artifact_operations("audio_separate"),
    *_artifact_operations("video_mixed"),
    *_artifact_operations("video_separate"),
]

OPERATIONS: Mapping[str, Operation] = MappingProxyType({op.operation_id: op for op in _OPERATION_LIST})

SDK_ENDPOINT_COVERAGE: dict[str, str] = {
    f"{op.method} {op.path_template}": op.operation_id for op in _OPERATION_LIST
}


def get_operation(operation_id: str) -> Operation:
    try:
        return OPERATIONS[operation_id]
    except KeyError:
        raise RecallValidationError(f"Unknown operation: {operation_id}") from None


def resolve_resource_id(resource: str | Mapping[str, Any] | None, id_field: str) -> str:
    """Accept either a bare identifier or a mapping carrying ``id_field``."""
    if isinstance(resource, str):
        value: Any = resource
    elif isinstance(resource, Mapping):
        value = resource.get(id_field)
    else:
        value = None
    if not isinstance(value, str) or not value.strip():
        raise RecallValidationError(f"{id_field} must be a non-empty string")
    return value
