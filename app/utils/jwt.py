"""JWT utilities for tenant authentication.

Tenant tokens carry the tenant id as `sub`. Every tenant-scoped query in
the API takes its tenant from here, so a token whose subject is not a UUID
is rejected at decode time rather than reaching a query.
"""

from datetime import datetime, timedelta, timezone
from uuid import UUID

import jwt
from pydantic import BaseModel, ValidationError

from app.config import get_settings

ACCESS_TOKEN_TYPE = "access"


class TokenPayload(BaseModel):
    """Decoded tenant token."""

    sub: UUID  # tenant_id
    exp: datetime
    iat: datetime
    type: str = ACCESS_TOKEN_TYPE


def create_access_token(tenant_id: UUID, expires_minutes: int | None = None) -> str:
    """Issue an access token scoped to one tenant.

    Args:
        tenant_id: Tenant the bearer may act for
        expires_minutes: Lifetime, defaults to JWT_ACCESS_TOKEN_EXPIRE_MINUTES
    """
    settings = get_settings()

    issued_at = datetime.now(timezone.utc)
    minutes = settings.jwt_access_token_expire_minutes if expires_minutes is None else expires_minutes

    claims = {
        "sub": str(tenant_id),
        "exp": issued_at + timedelta(minutes=minutes),
        "iat": issued_at,
        "type": ACCESS_TOKEN_TYPE,
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> TokenPayload | None:
    """Verify a token and read its tenant claims.

    Returns None for a bad signature, an expired token, missing claims or a
    subject that is not a tenant UUID.
    """
    settings = get_settings()

    try:
        claims = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        return TokenPayload(
            sub=claims["sub"],
            exp=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
            iat=datetime.fromtimestamp(claims["iat"], tz=timezone.utc),
            type=claims.get("type", ACCESS_TOKEN_TYPE),
        )
    except (jwt.InvalidTokenError, KeyError, ValidationError):
        return None


def get_tenant_id_from_token(token: str) -> UUID | None:
    """Tenant a bearer token grants access to, or None if it grants none."""
    payload = decode_access_token(token)
    if payload is None or payload.type != ACCESS_TOKEN_TYPE:
        return None
    return payload.sub
