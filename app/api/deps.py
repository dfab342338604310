"""Dependency injection for API endpoints."""

import secrets
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.database import get_db
from app.services.handler_gateway import HandlerGateway
from app.services.signature import WebhookSignatureVerifier
from app.services.telnyx import TelnyxClient
from app.utils.jwt import get_tenant_id_from_token

__all__ = [
    "get_db",
    "AsyncSession",
    "get_current_tenant_id",
    "require_service_key",
    "get_verifier",
    "get_gateway",
    "get_telnyx_client",
]

# Bearer token security scheme
bearer_scheme = HTTPBearer(auto_error=False)


# Components built once in the app lifespan
def get_verifier(request: Request) -> WebhookSignatureVerifier:
    """Webhook signature verifier."""
    return request.app.state.verifier


def get_gateway(request: Request) -> HandlerGateway:
    """Gateway used to forward routed webhooks."""
    return request.app.state.gateway


def get_telnyx_client(request: Request) -> TelnyxClient:
    """Shared Telnyx API client."""
    return request.app.state.telnyx


# Auth dependency - tenant from JWT
async def get_current_tenant_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> UUID:
    """Get the current tenant from the JWT token.

    Raises 401 if not authenticated or token is invalid.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    tenant_id = get_tenant_id_from_token(credentials.credentials)
    if tenant_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return tenant_id


# Internal handlers only accept calls carrying the service key
async def require_service_key(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> None:
    """Require the service bearer key used by the router when forwarding."""
    service_key = get_settings().service_role_key
    if not service_key:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Service key not configured",
        )

    if credentials is None or not secrets.compare_digest(
        credentials.credentials.encode("utf-8"), service_key.encode("utf-8")
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid service credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
