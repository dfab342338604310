"""SQLAlchemy models for the telephony routing service."""

from app.models.ai_agent_config import DEFAULT_GREETING_TEMPLATE, AIAgentConfig
from app.models.base import Base, JSONType, TimestampMixin, UUIDMixin
from app.models.call import Call, CallStatus
from app.models.call_routing_log import CallRoutingLog
from app.models.client import Client
from app.models.conversation import Conversation, ConversationStatus
from app.models.message import Message, MessageDirection, MessageStatus
from app.models.phone_number import PhoneNumber, PhoneNumberStatus, RoutingDecision

__all__ = [
    # Base
    "Base",
    "JSONType",
    "TimestampMixin",
    "UUIDMixin",
    # Models
    "AIAgentConfig",
    "Call",
    "CallRoutingLog",
    "Client",
    "Conversation",
    "Message",
    "PhoneNumber",
    # Enums
    "CallStatus",
    "ConversationStatus",
    "MessageDirection",
    "MessageStatus",
    "PhoneNumberStatus",
    "RoutingDecision",
    # Constants
    "DEFAULT_GREETING_TEMPLATE",
]
