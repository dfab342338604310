"""Webhook decoding and SMS/voice classification.

Telnyx nests fields differently across API versions: v2 call-control and
messaging events arrive as `{"data": {"event_type", "payload": {...}}}`,
while older and forwarded messaging payloads are flat
(`{"event_type", "payload": {...}}`). Numbers may be a string, an object
with `phone_number`, or a list of such objects. All of these shapes are
accepted here so the rest of the code works on typed events.
"""

from typing import Any

from app.schemas.webhook import EventKind, ParsedWebhook, SmsEvent, VoiceEvent, WebhookEvent


class WebhookDecodeError(ValueError):
    """Body is not a webhook object."""


def _as_str(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value or None
    if isinstance(value, (int, float)):
        return str(value)
    return None


def _extract_phone(value: Any) -> str | None:
    """Phone from `"+1..."`, `{"phone_number": ...}` or a list of either."""
    if isinstance(value, str):
        return value or None
    if isinstance(value, dict):
        return _as_str(value.get("phone_number"))
    if isinstance(value, list) and value:
        return _extract_phone(value[0])
    return None


def _first(*values: Any) -> str | None:
    for value in values:
        text = _as_str(value)
        if text:
            return text
    return None


def parse_webhook(body: Any) -> ParsedWebhook:
    """Decode a JSON body into a ParsedWebhook."""
    if not isinstance(body, dict):
        raise WebhookDecodeError("Webhook body must be a JSON object")

    data = body.get("data") if isinstance(body.get("data"), dict) else {}
    payload = data.get("payload")
    if not isinstance(payload, dict):
        payload = body.get("payload") if isinstance(body.get("payload"), dict) else {}

    return ParsedWebhook(
        event_type=_first(data.get("event_type"), body.get("event_type")),
        event_id=_first(data.get("id"), body.get("id")),
        record_type=_first(data.get("record_type"), body.get("record_type")),
        message_id=_first(payload.get("id")),
        call_control_id=_first(payload.get("call_control_id"), body.get("call_control_id")),
        from_number=_extract_phone(payload.get("from")) or _extract_phone(body.get("from")),
        to_number=_extract_phone(payload.get("to")) or _extract_phone(body.get("to")),
        direction=_first(payload.get("direction"), body.get("direction")),
        text=_first(payload.get("text"), body.get("text")),
        type_marker=_first(payload.get("type"), body.get("type")),
        messaging_profile_id=_first(
            payload.get("messaging_profile_id"), body.get("messaging_profile_id")
        ),
        raw=body,
    )


def classify(payload: ParsedWebhook) -> EventKind:
    """Decide whether a webhook is an SMS or a voice event. First match wins."""
    event_type = payload.event_type or ""
    if event_type.startswith("message."):
        return EventKind.SMS

    looks_like_sms = bool(
        payload.text
        or (payload.type_marker or "").upper() == "SMS"
        or payload.messaging_profile_id
    )
    # A call-control id means voice, whatever else the payload carries
    if looks_like_sms and not payload.call_control_id:
        return EventKind.SMS

    return EventKind.VOICE


def to_sms_event(payload: ParsedWebhook) -> SmsEvent:
    """Read a parsed webhook as a messaging event."""
    return SmsEvent(
        event_type=payload.event_type,
        message_id=payload.message_id,
        from_number=payload.from_number,
        to_number=payload.to_number,
        direction=payload.direction,
        text=payload.text,
        raw=payload.raw,
    )


def decode_event(payload: ParsedWebhook) -> WebhookEvent:
    """Build the typed event variant for a parsed webhook."""
    if classify(payload) is EventKind.SMS:
        return to_sms_event(payload)
    return VoiceEvent(
        event_type=payload.event_type,
        call_control_id=payload.call_control_id,
        from_number=payload.from_number,
        to_number=payload.to_number,
        direction=payload.direction,
        raw=payload.raw,
    )
