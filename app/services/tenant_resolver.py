"""Tenant resolution - which tenant owns a destination number."""

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import PhoneNumber, PhoneNumberStatus
from app.services.phone import normalize_e164

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedTenant:
    """Owner of an active number and its feature flags."""

    tenant_id: UUID
    phone_number_id: UUID
    number: str
    ai_dispatcher_enabled: bool


class TenantResolver:
    """Maps destination numbers to tenants. Never falls back to a default tenant."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_active_phone_number(self, destination_number: str) -> PhoneNumber | None:
        """Active PhoneNumber row for a number, or None."""
        number = normalize_e164(destination_number)
        if not number:
            return None

        result = await self.db.execute(
            select(PhoneNumber).where(
                PhoneNumber.number == number,
                PhoneNumber.status == PhoneNumberStatus.ACTIVE.value,
            )
        )
        return result.scalar_one_or_none()

    async def resolve(self, destination_number: str) -> ResolvedTenant | None:
        """Resolve the tenant for a destination number.

        Args:
            destination_number: Number the webhook was sent to (any format)

        Returns:
            ResolvedTenant, or None when no active number matches
        """
        phone_number = await self.get_active_phone_number(destination_number)
        if phone_number is None:
            logger.warning(f"⚠️  No active phone number configured for {destination_number}")
            return None

        return ResolvedTenant(
            tenant_id=phone_number.tenant_id,
            phone_number_id=phone_number.id,
            number=phone_number.number,
            ai_dispatcher_enabled=phone_number.ai_dispatcher_enabled,
        )
