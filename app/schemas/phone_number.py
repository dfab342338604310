"""Phone number and AI dispatcher schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class PhoneNumberResponse(BaseModel):
    """Phone number as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    number: str
    status: str
    ai_dispatcher_enabled: bool
    last_routed_decision: str | None = None
    last_routed_at: datetime | None = None


class AIAgentConfigUpdate(BaseModel):
    """AI agent settings - all fields optional."""

    agent_name: str | None = Field(None, max_length=100)
    company_name: str | None = Field(None, max_length=255)
    greeting_template: str | None = Field(
        None, description="Supports {agent_name} and {company_name} placeholders"
    )
    voice: str | None = Field(None, max_length=50)


class AIDispatcherToggle(BaseModel):
    """Enable or disable the AI dispatcher on a number."""

    enabled: bool
    config: AIAgentConfigUpdate | None = None


class AIDispatcherToggleResponse(BaseModel):
    """Response after toggling the AI dispatcher."""

    success: bool
    message: str
    phone_number: PhoneNumberResponse
