"""Outbound SMS schemas."""

from uuid import UUID

from pydantic import BaseModel, Field


class SendSmsRequest(BaseModel):
    """Request to send an SMS from the tenant's active number."""

    recipient_phone: str = Field(..., min_length=1, description="Recipient phone, any common format")
    message: str = Field(..., min_length=1, max_length=1600)
    client_id: UUID | None = Field(None)
    job_id: UUID | None = Field(None, description="Scope the thread to a job")


class SendSmsResponse(BaseModel):
    """Result of a send attempt."""

    success: bool
    message_id: str | None = None
    conversation_id: UUID | None = None
    error: str | None = None
    error_category: str | None = None
