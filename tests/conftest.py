"""Pytest configuration and fixtures."""

import base64
import time
from collections.abc import AsyncGenerator, Callable
from typing import Any
from unittest.mock import AsyncMock
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.models import AIAgentConfig, Base, Client, PhoneNumber, PhoneNumberStatus
from app.schemas.webhook import HandlerResponse
from app.services.handler_gateway import HandlerGateway
from app.services.telnyx import TelnyxClient

# In-memory SQLite shared by every connection of one engine
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

BASIC_NUMBER = "+15550001111"
AI_NUMBER = "+15550002222"
OTHER_TENANT_NUMBER = "+15550003333"
CALLER = "+15551234567"


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs behave
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def tenant_id() -> UUID:
    """Tenant owning the test numbers."""
    return uuid4()


@pytest.fixture
def other_tenant_id() -> UUID:
    """A second, unrelated tenant."""
    return uuid4()


@pytest_asyncio.fixture
async def phone_number(db: AsyncSession, tenant_id: UUID) -> PhoneNumber:
    """Active number on basic telephony."""
    number = PhoneNumber(
        id=uuid4(),
        tenant_id=tenant_id,
        number=BASIC_NUMBER,
        status=PhoneNumberStatus.ACTIVE.value,
        ai_dispatcher_enabled=False,
    )
    db.add(number)
    await db.commit()
    return number


@pytest_asyncio.fixture
async def ai_phone_number(db: AsyncSession, tenant_id: UUID) -> PhoneNumber:
    """Active number with the AI dispatcher enabled."""
    number = PhoneNumber(
        id=uuid4(),
        tenant_id=tenant_id,
        number=AI_NUMBER,
        status=PhoneNumberStatus.ACTIVE.value,
        ai_dispatcher_enabled=True,
    )
    db.add(number)
    await db.commit()
    return number


@pytest_asyncio.fixture
async def other_tenant_number(db: AsyncSession, other_tenant_id: UUID) -> PhoneNumber:
    """Active number owned by the other tenant."""
    number = PhoneNumber(
        id=uuid4(),
        tenant_id=other_tenant_id,
        number=OTHER_TENANT_NUMBER,
        status=PhoneNumberStatus.ACTIVE.value,
    )
    db.add(number)
    await db.commit()
    return number


@pytest_asyncio.fixture
async def ai_config(db: AsyncSession, tenant_id: UUID) -> AIAgentConfig:
    """Active AI agent config for the tenant."""
    config = AIAgentConfig(
        id=uuid4(),
        tenant_id=tenant_id,
        agent_name="Sam",
        company_name="Acme Plumbing",
        voice="female",
        is_active=True,
    )
    db.add(config)
    await db.commit()
    return config


@pytest_asyncio.fixture
async def client(db: AsyncSession, tenant_id: UUID) -> Client:
    """Existing client whose phone was saved in a local format."""
    c = Client(
        id=uuid4(),
        tenant_id=tenant_id,
        name="Jane Doe",
        phone="(555) 123-4567",
        status="active",
    )
    db.add(c)
    await db.commit()
    return c


@pytest.fixture
def mock_telnyx() -> AsyncMock:
    """Telnyx client that never leaves the process."""
    telnyx = AsyncMock(spec=TelnyxClient)
    telnyx.send_message.return_value = {"id": "msg-out-1"}
    telnyx.answer_call.return_value = {"result": "ok"}
    telnyx.speak.return_value = {"result": "ok"}
    return telnyx


@pytest.fixture
def mock_gateway() -> AsyncMock:
    """Handler gateway that answers 200 for every target."""
    gateway = AsyncMock(spec=HandlerGateway)
    gateway.forward.return_value = HandlerResponse.success("Handled")
    return gateway


@pytest.fixture
def signing_key() -> Ed25519PrivateKey:
    """Key standing in for the provider's signing key."""
    return Ed25519PrivateKey.generate()


@pytest.fixture
def public_key_b64(signing_key: Ed25519PrivateKey) -> str:
    """Base64 public key, as configured in TELNYX_PUBLIC_KEY."""
    raw = signing_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
    return base64.b64encode(raw).decode()


@pytest.fixture
def sign(signing_key: Ed25519PrivateKey) -> Callable[..., dict[str, str]]:
    """Build signature headers for a body."""

    def _sign(body: bytes, timestamp: int | None = None) -> dict[str, str]:
        ts = str(int(time.time()) if timestamp is None else timestamp)
        signature = signing_key.sign(ts.encode() + b"|" + body)
        return {
            "telnyx-signature-ed25519": base64.b64encode(signature).decode(),
            "telnyx-timestamp": ts,
        }

    return _sign


@pytest.fixture
def sms_webhook() -> Callable[..., dict[str, Any]]:
    """Build a v2 messaging webhook."""

    def _build(
        event_type: str = "message.received",
        message_id: str = "msg-in-1",
        from_: str = CALLER,
        to: str = BASIC_NUMBER,
        text: str | None = "Hi, is Tuesday still OK?",
        direction: str = "inbound",
        to_status: str | None = None,
    ) -> dict[str, Any]:
        recipient: dict[str, Any] = {"phone_number": to}
        if to_status:
            recipient["status"] = to_status
        payload: dict[str, Any] = {
            "id": message_id,
            "direction": direction,
            "type": "SMS",
            "from": {"phone_number": from_},
            "to": [recipient],
        }
        if text is not None:
            payload["text"] = text
        return {
            "data": {
                "event_type": event_type,
                "id": str(uuid4()),
                "record_type": "event",
                "payload": payload,
            }
        }

    return _build


@pytest.fixture
def voice_webhook() -> Callable[..., dict[str, Any]]:
    """Build a v2 call-control webhook."""

    def _build(
        event_type: str = "call.initiated",
        call_control_id: str = "v3:call-1",
        from_: str = CALLER,
        to: str | None = BASIC_NUMBER,
        direction: str = "incoming",
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "call_control_id": call_control_id,
            "from": from_,
            "direction": direction,
            "state": "parked",
        }
        if to is not None:
            payload["to"] = to
        return {
            "data": {
                "event_type": event_type,
                "id": str(uuid4()),
                "record_type": "event",
                "payload": payload,
            }
        }

    return _build
