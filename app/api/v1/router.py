"""Main API router for v1 endpoints."""

from fastapi import APIRouter

from app.api.v1 import phone_numbers, sms, webhooks

router = APIRouter()

# Include all sub-routers
router.include_router(webhooks.router)
router.include_router(sms.router)
router.include_router(phone_numbers.router)


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok", "message": "Fieldline telephony API is running"}
