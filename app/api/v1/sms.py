"""Outbound SMS endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_tenant_id, get_db, get_telnyx_client
from app.schemas.sms import SendSmsRequest, SendSmsResponse
from app.services.sms_sender import STORAGE_ERROR, SmsSender
from app.services.telnyx import TelnyxClient

router = APIRouter(prefix="/sms", tags=["sms"])


@router.post("/send", response_model=SendSmsResponse)
async def send_sms(
    request: SendSmsRequest,
    tenant_id: Annotated[UUID, Depends(get_current_tenant_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
    telnyx: Annotated[TelnyxClient, Depends(get_telnyx_client)],
) -> SendSmsResponse | JSONResponse:
    """Send an SMS from the tenant's active number."""
    result = await SmsSender(db, telnyx).send(
        tenant_id=tenant_id,
        recipient_phone=request.recipient_phone,
        message=request.message,
        client_id=request.client_id,
        job_id=request.job_id,
    )

    if not result.success and result.error_category is None:
        # Tenant-side problems, not provider failures
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.error)
    if result.error_category == STORAGE_ERROR:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=result.model_dump(mode="json"),
        )
    return result
