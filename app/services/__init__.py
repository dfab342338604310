"""Business logic services for the telephony routing service."""

# Service modules are imported individually where needed
# to avoid circular imports

__all__ = [
    "client",
    "conversation_store",
    "event_classifier",
    "handler_gateway",
    "phone",
    "phone_number",
    "signature",
    "sms_ingestion",
    "sms_sender",
    "telnyx",
    "tenant_resolver",
    "voice_handlers",
    "webhook_router",
]
