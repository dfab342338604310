"""CallRoutingLog model - append-only audit trail of voice routing decisions."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, JSONType, UUIDMixin, utcnow


class CallRoutingLog(Base, UUIDMixin):
    """One row per routed voice webhook. Never read by the router."""

    __tablename__ = "call_routing_logs"
    __table_args__ = (Index("ix_call_routing_logs_phone_number", "phone_number", "occurred_at"),)

    phone_number: Mapped[str] = mapped_column(String(20), nullable=False)
    caller_phone: Mapped[str] = mapped_column(String(50), nullable=False)
    routing_decision: Mapped[str] = mapped_column(String(20), nullable=False)
    ai_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False)
    call_control_id: Mapped[str] = mapped_column(String(255), nullable=False)
    routing_metadata: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<CallRoutingLog(phone_number='{self.phone_number}', "
            f"decision='{self.routing_decision}', call_control_id='{self.call_control_id}')>"
        )
