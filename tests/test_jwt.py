"""Tests for tenant access tokens."""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import jwt

from app.config import get_settings
from app.utils.jwt import create_access_token, decode_access_token, get_tenant_id_from_token


def _encode(**claims) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {"exp": now + timedelta(minutes=5), "iat": now, "type": "access", **claims}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


class TestTenantTokens:
    """Tests for issuing and reading tenant tokens."""

    def test_round_trip_returns_tenant(self):
        tenant_id = uuid4()
        assert get_tenant_id_from_token(create_access_token(tenant_id)) == tenant_id

    def test_non_uuid_subject_rejected(self):
        token = _encode(sub="tenant-acme")
        assert decode_access_token(token) is None
        assert get_tenant_id_from_token(token) is None

    def test_missing_subject_rejected(self):
        assert decode_access_token(_encode()) is None

    def test_expired_token_rejected(self):
        assert get_tenant_id_from_token(create_access_token(uuid4(), expires_minutes=-1)) is None

    def test_refresh_type_not_accepted(self):
        assert get_tenant_id_from_token(_encode(sub=str(uuid4()), type="refresh")) is None

    def test_wrong_secret_rejected(self):
        token = jwt.encode({"sub": str(uuid4())}, "someone-else", algorithm="HS256")
        assert get_tenant_id_from_token(token) is None
