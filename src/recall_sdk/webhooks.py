"""Typed webhook payloads and the event validator.

Every known event name maps to one envelope model in
:data:`WEBHOOK_EVENT_REGISTRY`. :func:`parse_webhook_event` dispatches on the
``event`` field before validating, and keeps unknown event names as an
:class:`UnknownWebhookEvent` so new platform events never break consumers.
"""

from __future__ import annotations

import json
from types import MappingProxyType
from typing import Any, Literal, Mapping, Union, get_args
from uuid import UUID

from pydantic import AwareDatetime, BaseModel, ConfigDict, ValidationError

from .exceptions import WebhookValidationError


BOT_STATUS_CODES = (
    "ready",
    "joining_call",
    "in_waiting_room",
    "in_call_not_recording",
    "recording_permission_allowed",
    "recording_permission_denied",
    "in_call_recording",
    "recording_done",
    "call_ended",
    "done",
    "fatal",
    "analysis_done",
    "analysis_failed",
    "media_expired",
)

CALL_ENDED_SUB_CODES = (
    "call_ended_by_host",
    "call_ended_by_platform_idle",
    "call_ended_by_platform_max_length",
    "call_ended_by_platform_waiting_room_timeout",
    "timeout_exceeded_waiting_room",
    "timeout_exceeded_noone_joined",
    "timeout_exceeded_everyone_left",
    "timeout_exceeded_silence_detected",
    "timeout_exceeded_only_bots_detected_using_participant_names",
    "timeout_exceeded_only_bots_detected_using_participant_events",
    "timeout_exceeded_in_call_not_recording",
    "timeout_exceeded_in_call_recording",
    "timeout_exceeded_recording_permission_denied",
    "timeout_exceeded_max_duration",
    "bot_kicked_from_call",
    "bot_kicked_from_waiting_room",
    "bot_received_leave_call",
)

RECORDING_PERMISSION_DENIED_SUB_CODES = (
    "zoom_local_recording_disabled",
    "zoom_local_recording_request_disabled",
    "zoom_local_recording_request_disabled_by_host",
    "zoom_bot_in_waiting_room",
    "zoom_host_not_present",
    "zoom_local_recording_request_denied_by_host",
    "zoom_local_recording_denied",
    "zoom_local_recording_grant_not_supported",
    "zoom_sdk_key_blocked_by_host_admin",
)

FATAL_SUB_CODES = (
    "bot_errored",
    "meeting_not_found",
    "meeting_not_started",
    "meeting_requires_registration",
    "meeting_requires_sign_in",
    "meeting_link_expired",
    "meeting_link_invalid",
    "meeting_password_incorrect",
    "meeting_locked",
    "meeting_full",
    "meeting_ended",
    "failed_to_launch_in_time",
    "zoom_sdk_credentials_missing",
    "zoom_sdk_update_required",
    "zoom_sdk_app_not_published",
    "zoom_email_blocked_by_admin",
    "zoom_registration_required",
    "zoom_captcha_required",
    "zoom_account_blocked",
    "zoom_invalid_join_token",
    "zoom_invalid_signature",
    "zoom_internal_error",
    "zoom_join_timeout",
    "zoom_email_required",
    "zoom_web_disallowed",
    "zoom_connection_failed",
    "zoom_error_multiple_device_join",
    "zoom_meeting_not_accessible",
    "zoom_meeting_host_inactive",
    "zoom_invalid_webinar_invite",
    "zoom_another_meeting_in_progress",
    "google_meet_internal_error",
    "google_meet_sign_in_failed",
    "google_meet_sign_in_captcha_failed",
    "google_meet_bot_blocked",
    "google_meet_sso_sign_in_failed",
    "google_meet_sign_in_missing_login_credentials",
    "google_meet_sign_in_missing_recovery_credentials",
    "google_meet_sso_sign_in_missing_login_credentials",
    "google_meet_sso_sign_in_missing_totp_secret",
    "google_meet_video_error",
    "google_meet_meeting_room_not_ready",
    "google_meet_login_not_available",
    "google_meet_permission_denied_breakout",
    "google_meet_knocking_disabled",
    "microsoft_teams_sign_in_credentials_missing",
    "microsoft_teams_call_dropped",
    "microsoft_teams_sign_in_failed",
    "microsoft_teams_internal_error",
    "microsoft_teams_captcha_error",
    "microsoft_teams_bot_not_invited",
    "microsoft_teams_breakout_room_unsupported",
    "microsoft_teams_event_not_started_for_external",
    "microsoft_teams_2fa_required",
    "webex_join_meeting_error",
)


class RecallWebhookModel(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


# Shared shapes


class ResourceInformation(RecallWebhookModel):
    id: str
    metadata: dict[str, Any]


class BotInformation(ResourceInformation):
    pass


class RecordingInformation(ResourceInformation):
    pass


class TranscriptInformation(ResourceInformation):
    pass


class AudioMixedInformation(ResourceInformation):
    pass


class AudioSeparateInformation(ResourceInformation):
    pass


class VideoMixedInformation(ResourceInformation):
    pass


class VideoSeparateInformation(ResourceInformation):
    pass


class MeetingMetadataInformation(ResourceInformation):
    pass


class ParticipantEventsInformation(ResourceInformation):
    pass


class RealtimeEndpointInformation(ResourceInformation):
    pass


class SdkUploadInformation(RecallWebhookModel):
    id: UUID
    metadata: dict[str, Any]


class StatusData(RecallWebhookModel):
    code: str
    sub_code: str | None
    updated_at: AwareDatetime


class ErrorInformation(RecallWebhookModel):
    code: str
    message: str


class StatusDataWithError(StatusData):
    error: ErrorInformation


class StatusDataWithSubCode(RecallWebhookModel):
    """Status for bot events that always explain themselves with a sub code."""

    code: str
    sub_code: str
    updated_at: AwareDatetime


class BotStatusDetails(RecallWebhookModel):
    code: str
    created_at: AwareDatetime
    message: str | None
    sub_code: str | None


class LogDetails(RecallWebhookModel):
    created_at: AwareDatetime
    level: str
    message: str
    output_id: str | None


# Event data payloads


class BotStatusEventData(RecallWebhookModel):
    bot: BotInformation
    data: StatusData


class BotSubCodeEventData(RecallWebhookModel):
    bot: BotInformation
    data: StatusDataWithSubCode


class BotStatusChangeData(RecallWebhookModel):
    bot_id: str
    status: BotStatusDetails


class BotLogData(RecallWebhookModel):
    bot_id: str | None = None
    job_id: str | None = None
    log: LogDetails


class CalendarUpdateData(RecallWebhookModel):
    calendar_id: str


class CalendarSyncEventsData(RecallWebhookModel):
    calendar_id: str
    last_updated_ts: AwareDatetime


class RecordingEventData(RecallWebhookModel):
    recording: RecordingInformation
    bot: BotInformation | None = None
    data: StatusData


class RecordingFailedEventData(RecordingEventData):
    data: StatusDataWithError


class _ArtifactEventData(RecallWebhookModel):
    bot: BotInformation
    data: StatusData
    recording: RecordingInformation


class TranscriptEventData(_ArtifactEventData):
    transcript: TranscriptInformation


class AudioMixedEventData(_ArtifactEventData):
    audio_mixed: AudioMixedInformation


class AudioSeparateEventData(_ArtifactEventData):
    audio_separate: AudioSeparateInformation


class VideoMixedEventData(_ArtifactEventData):
    video_mixed: VideoMixedInformation


class VideoSeparateEventData(_ArtifactEventData):
    video_separate: VideoSeparateInformation


class MeetingMetadataEventData(_ArtifactEventData):
    meeting_metadata: MeetingMetadataInformation


class ParticipantEventsEventData(_ArtifactEventData):
    participant_events: ParticipantEventsInformation


class RealtimeEndpointEventData(_ArtifactEventData):
    realtime_endpoint: RealtimeEndpointInformation


class RealtimeEndpointFailedEventData(RealtimeEndpointEventData):
    data: StatusDataWithError


class SdkUploadStatus(RecallWebhookModel):
    code: str
    sub_code: str | None = None
    updated_at: AwareDatetime


class SdkUploadUploadingStatus(SdkUploadStatus):
    code: Literal["uploading"]


class SdkUploadCompleteStatus(SdkUploadStatus):
    code: Literal["complete"]


class SdkUploadFailedStatus(SdkUploadStatus):
    code: Literal["failed"]


class SdkUploadUploadingData(RecallWebhookModel):
    sdk_upload: SdkUploadInformation
    recording: RecordingInformation
    data: SdkUploadUploadingStatus


class SdkUploadCompleteData(RecallWebhookModel):
    sdk_upload: SdkUploadInformation
    recording: RecordingInformation
    data: SdkUploadCompleteStatus


class SdkUploadFailedData(RecallWebhookModel):
    sdk_upload: SdkUploadInformation
    recording: None
    data: SdkUploadFailedStatus


# Envelopes


class WebhookEnvelope(RecallWebhookModel):
    event: str
    data: Any = None


class UnknownWebhookEvent(WebhookEnvelope):
    """An event name this SDK does not know yet; ``data`` is kept untouched."""


class BotStatusChangeEvent(RecallWebhookModel):
    event: Literal["bot.status_change"]
    data: BotStatusChangeData


class BotLogEvent(RecallWebhookModel):
    event: Literal["bot.log"]
    data: BotLogData


class BotOutputLogEvent(RecallWebhookModel):
    event: Literal["bot.output_log"]
    data: BotLogData


class BotJoiningCallEvent(RecallWebhookModel):
    event: Literal["bot.joining_call"]
    data: BotStatusEventData


class BotInWaitingRoomEvent(RecallWebhookModel):
    event: Literal["bot.in_waiting_room"]
    data: BotStatusEventData


class BotInCallNotRecordingEvent(RecallWebhookModel):
    event: Literal["bot.in_call_not_recording"]
    data: BotStatusEventData


class BotRecordingPermissionAllowedEvent(RecallWebhookModel):
    event: Literal["bot.recording_permission_allowed"]
    data: BotStatusEventData


class BotRecordingPermissionDeniedEvent(RecallWebhookModel):
    event: Literal["bot.recording_permission_denied"]
    data: BotSubCodeEventData


class BotInCallRecordingEvent(RecallWebhookModel):
    event: Literal["bot.in_call_recording"]
    data: BotStatusEventData


class BotCallEndedEvent(RecallWebhookModel):
    event: Literal["bot.call_ended"]
    data: BotSubCodeEventData


class BotDoneEvent(RecallWebhookModel):
    event: Literal["bot.done"]
    data: BotStatusEventData


class BotFatalEvent(RecallWebhookModel):
    event: Literal["bot.fatal"]
    data: BotSubCodeEventData


class CalendarUpdateEvent(RecallWebhookModel):
    event: Literal["calendar.update"]
    data: CalendarUpdateData


class CalendarSyncEventsEvent(RecallWebhookModel):
    event: Literal["calendar.sync_events"]
    data: CalendarSyncEventsData


class RecordingProcessingEvent(RecallWebhookModel):
    event: Literal["recording.processing"]
    data: RecordingEventData


class RecordingPausedEvent(RecallWebhookModel):
    event: Literal["recording.paused"]
    data: RecordingEventData


class RecordingDoneEvent(RecallWebhookModel):
    event: Literal["recording.done"]
    data: RecordingEventData


class RecordingFailedEvent(RecallWebhookModel):
    event: Literal["recording.failed"]
    data: RecordingFailedEventData


class RecordingDeletedEvent(RecallWebhookModel):
    event: Literal["recording.deleted"]
    data: RecordingEventData


class TranscriptProcessingEvent(RecallWebhookModel):
    event: Literal["transcript.processing"]
    data: TranscriptEventData


class TranscriptDoneEvent(RecallWebhookModel):
    event: Literal["transcript.done"]
    data: TranscriptEventData


class TranscriptFailedEvent(RecallWebhookModel):
    event: Literal["transcript.failed"]
    data: TranscriptEventData


class TranscriptDeletedEvent(RecallWebhookModel):
    event: Literal["transcript.deleted"]
    data: TranscriptEventData


class AudioMixedProcessingEvent(RecallWebhookModel):
    event: Literal["audio_mixed.processing"]
    data: AudioMixedEventData


class AudioMixedDoneEvent(RecallWebhookModel):
    event: Literal["audio_mixed.done"]
    data: AudioMixedEventData


class AudioMixedFailedEvent(RecallWebhookModel):
    event: Literal["audio_mixed.failed"]
    data: AudioMixedEventData


class AudioMixedDeletedEvent(RecallWebhookModel):
    event: Literal["audio_mixed.deleted"]
    data: AudioMixedEventData


class AudioSeparateProcessingEvent(RecallWebhookModel):
    event: Literal["audio_separate.processing"]
    data: AudioSeparateEventData


class AudioSeparateDoneEvent(RecallWebhookModel):
    event: Literal["audio_separate.done"]
    data: AudioSeparateEventData


class AudioSeparateFailedEvent(RecallWebhookModel):
    event: Literal["audio_separate.failed"]
    data: AudioSeparateEventData


class AudioSeparateDeletedEvent(RecallWebhookModel):
    event: Literal["audio_separate.deleted"]
    data: AudioSeparateEventData


class VideoMixedProcessingEvent(RecallWebhookModel):
    event: Literal["video_mixed.processing"]
    data: VideoMixedEventData


class VideoMixedDoneEvent(RecallWebhookModel):
    event: Literal["video_mixed.done"]
    data: VideoMixedEventData


class VideoMixedFailedEvent(RecallWebhookModel):
    event: Literal["video_mixed.failed"]
    data: VideoMixedEventData


class VideoMixedDeletedEvent(RecallWebhookModel):
    event: Literal["video_mixed.deleted"]
    data: VideoMixedEventData


class VideoSeparateProcessingEvent(RecallWebhookModel):
    event: Literal["video_separate.processing"]
    data: VideoSeparateEventData


class VideoSeparateDoneEvent(RecallWebhookModel):
    event: Literal["video_separate.done"]
    data: VideoSeparateEventData


class VideoSeparateFailedEvent(RecallWebhookModel):
    event: Literal["video_separate.failed"]
    data: VideoSeparateEventData


class VideoSeparateDeletedEvent(RecallWebhookModel):
    event: Literal["video_separate.deleted"]
    data: VideoSeparateEventData


class MeetingMetadataProcessingEvent(RecallWebhookModel):
    event: Literal["meeting_metadata.processing"]
    data: MeetingMetadataEventData


class MeetingMetadataDoneEvent(RecallWebhookModel):
    event: Literal["meeting_metadata.done"]
    data: MeetingMetadataEventData


class MeetingMetadataFailedEvent(RecallWebhookModel):
    event: Literal["meeting_metadata.failed"]
    data: MeetingMetadataEventData


class MeetingMetadataDeletedEvent(RecallWebhookModel):
    event: Literal["meeting_metadata.deleted"]
    data: MeetingMetadataEventData


class ParticipantEventsProcessingEvent(RecallWebhookModel):
    event: Literal["participant_events.processing"]
    data: ParticipantEventsEventData


class ParticipantEventsDoneEvent(RecallWebhookModel):
    event: Literal["participant_events.done"]
    data: ParticipantEventsEventData


class ParticipantEventsFailedEvent(RecallWebhookModel):
    event: Literal["participant_events.failed"]
    data: ParticipantEventsEventData


class ParticipantEventsDeletedEvent(RecallWebhookModel):
    event: Literal["participant_events.deleted"]
    data: ParticipantEventsEventData


class RealtimeEndpointRunningEvent(RecallWebhookModel):
    event: Literal["realtime_endpoint.running"]
    data: RealtimeEndpointEventData


class RealtimeEndpointDoneEvent(RecallWebhookModel):
    event: Literal["realtime_endpoint.done"]
    data: RealtimeEndpointEventData


class RealtimeEndpointFailedEvent(RecallWebhookModel):
    event: Literal["realtime_endpoint.failed"]
    data: RealtimeEndpointFailedEventData


class SdkUploadUploadingEvent(RecallWebhookModel):
    event: Literal["sdk_upload.uploading"]
    data: SdkUploadUploadingData


class SdkUploadCompleteEvent(RecallWebhookModel):
    event: Literal["sdk_upload.complete"]
    data: SdkUploadCompleteData


class SdkUploadFailedEvent(RecallWebhookModel):
    event: Literal["sdk_upload.failed"]
    data: SdkUploadFailedData


_KNOWN_EVENT_MODELS: tuple[type[RecallWebhookModel], ...] = (
    BotStatusChangeEvent,
    BotLogEvent,
    BotOutputLogEvent,
    BotJoiningCallEvent,
    BotInWaitingRoomEvent,
    BotInCallNotRecordingEvent,
    BotRecordingPermissionAllowedEvent,
    BotRecordingPermissionDeniedEvent,
    BotInCallRecordingEvent,
    BotCallEndedEvent,
    BotDoneEvent,
    BotFatalEvent,
    CalendarUpdateEvent,
    CalendarSyncEventsEvent,
    RecordingProcessingEvent,
    RecordingPausedEvent,
    RecordingDoneEvent,
    RecordingFailedEvent,
    RecordingDeletedEvent,
    TranscriptProcessingEvent,
    TranscriptDoneEvent,
    TranscriptFailedEvent,
    TranscriptDeletedEvent,
    AudioMixedProcessingEvent,
    AudioMixedDoneEvent,
    AudioMixedFailedEvent,
    AudioMixedDeletedEvent,
    AudioSeparateProcessingEvent,
    AudioSeparateDoneEvent,
    AudioSeparateFailedEvent,
    AudioSeparateDeletedEvent,
    VideoMixedProcessingEvent,
    VideoMixedDoneEvent,
    VideoMixedFailedEvent,
    VideoMixedDeletedEvent,
    VideoSeparateProcessingEvent,
    VideoSeparateDoneEvent,
    VideoSeparateFailedEvent,
    VideoSeparateDeletedEvent,
    MeetingMetadataProcessingEvent,
    MeetingMetadataDoneEvent,
    MeetingMetadataFailedEvent,
    MeetingMetadataDeletedEvent,
    ParticipantEventsProcessingEvent,
    ParticipantEventsDoneEvent,
    ParticipantEventsFailedEvent,
    ParticipantEventsDeletedEvent,
    RealtimeEndpointRunningEvent,
    RealtimeEndpointDoneEvent,
    RealtimeEndpointFailedEvent,
    SdkUploadUploadingEvent,
    SdkUploadCompleteEvent,
    SdkUploadFailedEvent,
)


def _event_name(model: type[RecallWebhookModel]) -> str:
    (name,) = get_args(model.model_fields["event"].annotation)
    return name


WEBHOOK_EVENT_REGISTRY: Mapping[str, type[RecallWebhookModel]] = MappingProxyType(
    {_event_name(model): model for model in _KNOWN_EVENT_MODELS}
)

WEBHOOK_EVENT_NAMES: tuple[str, ...] = tuple(WEBHOOK_EVENT_REGISTRY)

KnownWebhookEvent = Union[_KNOWN_EVENT_MODELS]  # type: ignore[valid-type]


def is_known_webhook_event(name: str) -> bool:
    return name in WEBHOOK_EVENT_REGISTRY


def _decode(raw: Any) -> Any:
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise WebhookValidationError(f"webhook payload is not valid UTF-8: {exc}") from exc
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise WebhookValidationError(f"webhook payload is not valid JSON: {exc}") from exc
    return raw


def _summarize(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [
        {"loc": tuple(error.get("loc", ())), "msg": error.get("msg", ""), "type": error.get("type", "")}
        for error in errors
    ]


def parse_webhook_event(raw: Any) -> RecallWebhookModel:
    """Validate a decoded (or raw JSON) webhook payload.

    Returns the typed envelope for known event names and an
    :class:`UnknownWebhookEvent` otherwise. Raises
    :class:`~recall_sdk.exceptions.WebhookValidationError` for malformed
    envelopes and for known events whose ``data`` does not match.
    """
    payload = _decode(raw)
    if not isinstance(payload, Mapping):
        raise WebhookValidationError("webhook payload must be a JSON object")

    event = payload.get("event")
    if not isinstance(event, str):
        raise WebhookValidationError(
            "webhook payload is missing a string 'event' field",
            errors=[{"loc": ("event",), "msg": "Input should be a valid string", "type": "string_type"}],
        )

    model = WEBHOOK_EVENT_REGISTRY.get(event)
    if model is None:
        return UnknownWebhookEvent.model_construct(event=event, data=payload.get("data"))

    try:
        return model.model_validate(dict(payload))
    except ValidationError as exc:
        errors = _summarize(exc.errors(include_url=False))
        paths = ", ".join(".".join(str(part) for part in error["loc"]) for error in errors)
        raise WebhookValidationError(
            f"invalid payload for webhook event {event!r}: {paths}",
            event=event,
            errors=errors,
        ) from exc
