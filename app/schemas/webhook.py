"""Schemas for provider webhooks and handler responses."""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field


class EventKind(str, Enum):
    """Webhook classification."""

    SMS = "sms"
    VOICE = "voice"


class ParsedWebhook(BaseModel):
    """Provider webhook with fields pulled from wherever the API version put them."""

    event_type: str | None = None
    event_id: str | None = None
    record_type: str | None = None
    message_id: str | None = None
    call_control_id: str | None = None
    from_number: str | None = None
    to_number: str | None = None
    direction: str | None = None
    text: str | None = None
    type_marker: str | None = None  # payload.type, e.g. "SMS"
    messaging_profile_id: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict, repr=False)


class SmsEvent(BaseModel):
    """A messaging event (inbound message or delivery receipt)."""

    kind: Literal[EventKind.SMS] = EventKind.SMS
    event_type: str | None = None
    message_id: str | None = None
    from_number: str | None = None
    to_number: str | None = None
    direction: str | None = None
    text: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict, repr=False)

    @property
    def is_inbound_message(self) -> bool:
        """True for a received inbound message carrying everything needed to store it.

        Received messages without a direction are inbound; only an explicit
        other direction is skipped.
        """
        return (
            self.event_type == "message.received"
            and self.direction in (None, "inbound")
            and bool(self.from_number and self.to_number and self.text)
        )


class VoiceEvent(BaseModel):
    """A call-control event."""

    kind: Literal[EventKind.VOICE] = EventKind.VOICE
    event_type: str | None = None
    call_control_id: str | None = None
    from_number: str | None = None
    to_number: str | None = None
    direction: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict, repr=False)


WebhookEvent = SmsEvent | VoiceEvent


class HandlerResponse(BaseModel):
    """Status and body produced by a webhook handler (or proxied from one)."""

    status_code: int = 200
    body: dict[str, Any] | str = Field(default_factory=dict)
    media_type: str = "application/json"

    @classmethod
    def success(cls, message: str, status_code: int = 200, **extra: Any) -> "HandlerResponse":
        """Build a `{success: true}` response."""
        return cls(status_code=status_code, body={"success": True, "message": message, **extra})

    @classmethod
    def failure(cls, status_code: int, error: str) -> "HandlerResponse":
        """Build a `{success: false, error}` response."""
        return cls(status_code=status_code, body={"success": False, "error": error})
