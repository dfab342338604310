"""Message model - represents individual messages in a conversation."""

import uuid
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.conversation import Conversation


class MessageDirection(str, Enum):
    """Message direction enum."""

    INBOUND = "inbound"
    OUTBOUND = "outbound"


class MessageStatus(str, Enum):
    """Provider delivery status."""

    QUEUED = "queued"
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"


class Message(Base, UUIDMixin, TimestampMixin):
    """Individual messages in a conversation. Immutable apart from status."""

    __tablename__ = "messages"
    __table_args__ = (
        # NULL provider ids never collide, so only provider-backed rows are deduplicated
        UniqueConstraint(
            "conversation_id", "provider_message_id", name="uq_messages_conversation_provider_id"
        ),
    )

    conversation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False
    )

    direction: Mapped[str] = mapped_column(String(20), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    sender: Mapped[str] = mapped_column(String(50), nullable=False)
    recipient: Mapped[str] = mapped_column(String(50), nullable=False)

    provider_message_id: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=MessageStatus.DELIVERED.value
    )

    # Relationships
    conversation: Mapped["Conversation"] = relationship("Conversation", back_populates="messages")

    def __repr__(self) -> str:
        """String representation."""
        body_preview = self.body[:50] + "..." if len(self.body) > 50 else self.body
        return f"<Message(id={self.id}, direction='{self.direction}', body='{body_preview}')>"
