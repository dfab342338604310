"""Conversation model - an SMS thread with one counterparty."""

import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.client import Client
    from app.models.message import Message


class ConversationStatus(str, Enum):
    """Conversation status enum."""

    ACTIVE = "active"
    ARCHIVED = "archived"


_ACTIVE_NO_JOB = "status = 'active' AND job_id IS NULL"
_ACTIVE_WITH_JOB = "status = 'active' AND job_id IS NOT NULL"


class Conversation(Base, UUIDMixin, TimestampMixin):
    """A conversation thread.

    Threads are partitioned by job: a thread without a job and a thread for
    job X are different threads for the same counterparty. Each partition has
    at most one active thread, enforced by the partial unique indexes below.
    """

    __tablename__ = "conversations"
    __table_args__ = (
        Index(
            "uq_conversations_active_no_job",
            "tenant_id",
            "counterparty_phone",
            unique=True,
            postgresql_where=text(_ACTIVE_NO_JOB),
            sqlite_where=text(_ACTIVE_NO_JOB),
        ),
        Index(
            "uq_conversations_active_job",
            "tenant_id",
            "counterparty_phone",
            "job_id",
            unique=True,
            postgresql_where=text(_ACTIVE_WITH_JOB),
            sqlite_where=text(_ACTIVE_WITH_JOB),
        ),
        Index("ix_conversations_tenant_client", "tenant_id", "client_id"),
    )

    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid(), nullable=False)
    client_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(), ForeignKey("clients.id", ondelete="SET NULL"), nullable=True
    )
    counterparty_phone: Mapped[str] = mapped_column(String(20), nullable=False)  # E.164
    job_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ConversationStatus.ACTIVE.value,
    )
    last_message_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Relationships
    client: Mapped["Client | None"] = relationship("Client", back_populates="conversations")
    messages: Mapped[list["Message"]] = relationship(
        "Message", back_populates="conversation", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<Conversation(id={self.id}, status='{self.status}', last_message_at={self.last_message_at})>"
