"""Telnyx webhook endpoints - the public router and the internal handlers."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db, get_gateway, get_telnyx_client, get_verifier, require_service_key
from app.schemas.webhook import HandlerResponse
from app.services.handler_gateway import HandlerGateway
from app.services.signature import WebhookSignatureVerifier
from app.services.sms_ingestion import SmsIngestionHandler
from app.services.telnyx import TelnyxClient
from app.services.voice_handlers import AIDispatcherHandler, BasicTelephonyHandler
from app.services.webhook_router import WebhookRouter

router = APIRouter(prefix="/webhooks/telnyx", tags=["webhooks"])
logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": (
        "authorization, x-client-info, apikey, content-type, "
        "telnyx-signature-ed25519, telnyx-timestamp"
    ),
}


def _to_response(result: HandlerResponse) -> Response:
    """Render a handler result with the webhook CORS headers."""
    if isinstance(result.body, dict):
        return JSONResponse(content=result.body, status_code=result.status_code, headers=CORS_HEADERS)
    return Response(
        content=result.body,
        status_code=result.status_code,
        media_type=result.media_type,
        headers=CORS_HEADERS,
    )


async def _read_json(request: Request) -> Any:
    """Request body as JSON, or None when it does not parse."""
    try:
        return await request.json()
    except ValueError:
        return None


def _preflight() -> Response:
    return Response(status_code=status.HTTP_200_OK, headers=CORS_HEADERS)


@router.options("")
@router.options("/sms")
@router.options("/ai-dispatcher")
@router.options("/basic-telephony")
async def webhook_preflight() -> Response:
    """CORS preflight for the webhook endpoints."""
    return _preflight()


@router.post("")
async def receive_telnyx_webhook(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    verifier: Annotated[WebhookSignatureVerifier, Depends(get_verifier)],
    gateway: Annotated[HandlerGateway, Depends(get_gateway)],
) -> Response:
    """Receive any Telnyx webhook and dispatch it.

    The raw body is read before anything else since the signature covers
    the exact bytes Telnyx sent.
    """
    raw_body = await request.body()
    webhook_router = WebhookRouter(db=db, verifier=verifier, gateway=gateway)
    result = await webhook_router.receive(raw_body, request.headers)
    return _to_response(result)


@router.post("/sms", dependencies=[Depends(require_service_key)])
async def receive_sms_webhook(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Response:
    """Store inbound SMS and delivery receipts forwarded by the router."""
    body = await _read_json(request)
    if body is None:
        return _to_response(HandlerResponse.failure(400, "Invalid JSON"))
    return _to_response(await SmsIngestionHandler(db).handle(body))


@router.post("/ai-dispatcher", dependencies=[Depends(require_service_key)])
async def receive_ai_dispatcher_webhook(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    telnyx: Annotated[TelnyxClient, Depends(get_telnyx_client)],
) -> Response:
    """Voice events for numbers with the AI dispatcher enabled."""
    body = await _read_json(request)
    if body is None:
        return _to_response(HandlerResponse.failure(400, "Invalid JSON"))
    return _to_response(await AIDispatcherHandler(db, telnyx).handle(body))


@router.post("/basic-telephony", dependencies=[Depends(require_service_key)])
async def receive_basic_telephony_webhook(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    telnyx: Annotated[TelnyxClient, Depends(get_telnyx_client)],
) -> Response:
    """Voice events for numbers on basic telephony."""
    body = await _read_json(request)
    if body is None:
        return _to_response(HandlerResponse.failure(400, "Invalid JSON"))
    return _to_response(await BasicTelephonyHandler(db, telnyx).handle(body))
