"""Pydantic schemas for the telephony routing API."""

from app.schemas.phone_number import (
    AIAgentConfigUpdate,
    AIDispatcherToggle,
    AIDispatcherToggleResponse,
    PhoneNumberResponse,
)
from app.schemas.sms import SendSmsRequest, SendSmsResponse
from app.schemas.webhook import (
    EventKind,
    HandlerResponse,
    ParsedWebhook,
    SmsEvent,
    VoiceEvent,
    WebhookEvent,
)

__all__ = [
    # Phone numbers
    "AIAgentConfigUpdate",
    "AIDispatcherToggle",
    "AIDispatcherToggleResponse",
    "PhoneNumberResponse",
    # SMS
    "SendSmsRequest",
    "SendSmsResponse",
    # Webhooks
    "EventKind",
    "HandlerResponse",
    "ParsedWebhook",
    "SmsEvent",
    "VoiceEvent",
    "WebhookEvent",
]
