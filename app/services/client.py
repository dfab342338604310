"""Client service - resolve the counterparty of an inbound message or call."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Client
from app.services.phone import national_number, phone_variations

logger = logging.getLogger(__name__)


async def get_client(db: AsyncSession, tenant_id: UUID, client_id: UUID) -> Client | None:
    """Get client by ID within a tenant."""
    result = await db.execute(
        select(Client).where(Client.tenant_id == tenant_id, Client.id == client_id)
    )
    return result.scalar_one_or_none()


async def find_client_by_phone(db: AsyncSession, tenant_id: UUID, phone: str) -> Client | None:
    """Find a tenant's client by phone, trying the formats it may have been saved in.

    Full 10-digit numbers also match inside longer stored values such as
    "+1 (555) 123-4567". Anything shorter (short codes, partial numbers)
    must match exactly.
    """
    full_number = len(national_number(phone)) == 10
    for variation in phone_variations(phone):
        match = (
            Client.phone.contains(variation, autoescape=True)
            if full_number
            else Client.phone == variation
        )
        result = await db.execute(
            select(Client)
            .where(Client.tenant_id == tenant_id, match)
            .order_by(Client.created_at)
            .limit(1)
        )
        client = result.scalar_one_or_none()
        if client:
            return client
    return None


async def get_or_create_client(db: AsyncSession, tenant_id: UUID, phone: str) -> tuple[Client, bool]:
    """Get or create a client by phone number.

    Every inbound message gets an addressable counterparty: when nothing
    matches, a placeholder client named after the number is created.

    Returns:
        Tuple of (client, created)
    """
    client = await find_client_by_phone(db, tenant_id, phone)
    if client:
        return client, False

    client = Client(
        tenant_id=tenant_id,
        name=f"Client {phone}",
        phone=phone,
        status="active",
    )
    db.add(client)
    await db.flush()
    await db.refresh(client)
    logger.info(f"Created placeholder client {client.id} for {phone} under tenant {tenant_id}")
    return client, True
