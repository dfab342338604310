"""PhoneNumber model - a provider number owned by a tenant."""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Index, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, UUIDMixin


class PhoneNumberStatus(str, Enum):
    """Phone number status enum."""

    ACTIVE = "active"
    AVAILABLE = "available"
    RELEASED = "released"


class RoutingDecision(str, Enum):
    """Where a voice call was dispatched."""

    AI_DISPATCHER = "ai_dispatcher"
    BASIC_TELEPHONY = "basic_telephony"


class PhoneNumber(Base, UUIDMixin, TimestampMixin):
    """A provisioned number. At most one active row per number."""

    __tablename__ = "phone_numbers"
    __table_args__ = (
        Index(
            "uq_phone_numbers_active_number",
            "number",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
        Index("ix_phone_numbers_tenant_id", "tenant_id"),
    )

    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid(), nullable=False)
    number: Mapped[str] = mapped_column(String(20), nullable=False)  # E.164
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PhoneNumberStatus.ACTIVE.value
    )
    ai_dispatcher_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Denormalized routing stats, best-effort
    last_routed_decision: Mapped[str | None] = mapped_column(String(20), nullable=True)
    last_routed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        """String representation."""
        return f"<PhoneNumber(number='{self.number}', status='{self.status}', ai={self.ai_dispatcher_enabled})>"
