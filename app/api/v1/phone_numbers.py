"""Phone number endpoints - listing and AI dispatcher management."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_tenant_id, get_db
from app.schemas.phone_number import (
    AIDispatcherToggle,
    AIDispatcherToggleResponse,
    PhoneNumberResponse,
)
from app.services import phone_number as phone_number_service

router = APIRouter(prefix="/phone-numbers", tags=["phone-numbers"])


@router.get("", response_model=list[PhoneNumberResponse])
async def list_phone_numbers(
    tenant_id: Annotated[UUID, Depends(get_current_tenant_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[PhoneNumberResponse]:
    """List the tenant's phone numbers."""
    numbers = await phone_number_service.list_phone_numbers(db, tenant_id)
    return [PhoneNumberResponse.model_validate(n) for n in numbers]


@router.post("/{phone_number_id}/ai-dispatcher", response_model=AIDispatcherToggleResponse)
async def toggle_ai_dispatcher(
    phone_number_id: UUID,
    toggle: AIDispatcherToggle,
    tenant_id: Annotated[UUID, Depends(get_current_tenant_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AIDispatcherToggleResponse:
    """Enable or disable the AI dispatcher on a number."""
    phone_number = await phone_number_service.set_ai_dispatcher(
        db,
        tenant_id=tenant_id,
        phone_number_id=phone_number_id,
        enabled=toggle.enabled,
        config=toggle.config,
    )
    if phone_number is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Phone number {phone_number_id} not found",
        )

    return AIDispatcherToggleResponse(
        success=True,
        message=f"AI Dispatcher {'enabled' if toggle.enabled else 'disabled'} successfully",
        phone_number=PhoneNumberResponse.model_validate(phone_number),
    )
