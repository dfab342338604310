"""Call model - a voice call handled by one of the voice flows."""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, JSONType, TimestampMixin, UUIDMixin


class CallStatus(str, Enum):
    """Call status enum."""

    INITIATED = "initiated"
    ANSWERED = "answered"
    COMPLETED = "completed"


class Call(Base, UUIDMixin, TimestampMixin):
    """A call, keyed by the provider's call_control_id."""

    __tablename__ = "calls"

    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid(), nullable=False, index=True)
    phone_number_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(), ForeignKey("phone_numbers.id", ondelete="SET NULL"), nullable=True
    )
    call_control_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    handler: Mapped[str] = mapped_column(String(20), nullable=False)  # RoutingDecision value
    direction: Mapped[str] = mapped_column(String(20), nullable=False, default="inbound")
    from_number: Mapped[str] = mapped_column(String(50), nullable=False)
    to_number: Mapped[str] = mapped_column(String(50), nullable=False)
    client_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(), ForeignKey("clients.id", ondelete="SET NULL"), nullable=True
    )

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=CallStatus.INITIATED.value
    )
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    answered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    call_metadata: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    def __repr__(self) -> str:
        """String representation."""
        return f"<Call(call_control_id='{self.call_control_id}', handler='{self.handler}', status='{self.status}')>"
