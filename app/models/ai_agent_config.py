"""AIAgentConfig model - per-tenant settings for the AI dispatcher voice flow."""

import uuid

from sqlalchemy import Boolean, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, UUIDMixin

DEFAULT_GREETING_TEMPLATE = (
    "Hello! This is {agent_name} from {company_name}. How can I help you today?"
)


class AIAgentConfig(Base, UUIDMixin, TimestampMixin):
    """AI agent configuration. One row per tenant."""

    __tablename__ = "ai_agent_configs"

    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid(), nullable=False, unique=True)
    agent_name: Mapped[str] = mapped_column(String(100), nullable=False, default="AI Assistant")
    company_name: Mapped[str] = mapped_column(String(255), nullable=False, default="our company")
    greeting_template: Mapped[str] = mapped_column(
        Text, nullable=False, default=DEFAULT_GREETING_TEMPLATE
    )
    voice: Mapped[str] = mapped_column(String(50), nullable=False, default="female")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def render_greeting(self) -> str:
        """Fill the greeting template."""
        return self.greeting_template.replace(
            "{agent_name}", self.agent_name or "AI Assistant"
        ).replace("{company_name}", self.company_name or "our company")

    def __repr__(self) -> str:
        """String representation."""
        return f"<AIAgentConfig(tenant_id={self.tenant_id}, agent_name='{self.agent_name}')>"
