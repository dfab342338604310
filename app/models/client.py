"""Client model - a tenant's customer (the counterparty of a conversation)."""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.conversation import Conversation


class Client(Base, UUIDMixin, TimestampMixin):
    """A client record, scoped to one tenant."""

    __tablename__ = "clients"
    __table_args__ = (Index("ix_clients_tenant_phone", "tenant_id", "phone"),)

    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid(), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")

    conversations: Mapped[list["Conversation"]] = relationship(
        "Conversation", back_populates="client"
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<Client(id={self.id}, name='{self.name}', phone='{self.phone}')>"
