"""Phone number service - listing numbers and toggling the AI dispatcher."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import AIAgentConfig, PhoneNumber
from app.schemas.phone_number import AIAgentConfigUpdate

logger = logging.getLogger(__name__)


async def list_phone_numbers(db: AsyncSession, tenant_id: UUID) -> list[PhoneNumber]:
    """All numbers owned by a tenant."""
    result = await db.execute(
        select(PhoneNumber)
        .where(PhoneNumber.tenant_id == tenant_id)
        .order_by(PhoneNumber.created_at)
    )
    return list(result.scalars().all())


async def get_phone_number(db: AsyncSession, tenant_id: UUID, phone_number_id: UUID) -> PhoneNumber | None:
    """Get a tenant's phone number by ID."""
    result = await db.execute(
        select(PhoneNumber).where(
            PhoneNumber.tenant_id == tenant_id,
            PhoneNumber.id == phone_number_id,
        )
    )
    return result.scalar_one_or_none()


async def upsert_ai_agent_config(
    db: AsyncSession, tenant_id: UUID, update: AIAgentConfigUpdate
) -> AIAgentConfig:
    """Create or update the tenant's AI agent config with the given fields."""
    result = await db.execute(select(AIAgentConfig).where(AIAgentConfig.tenant_id == tenant_id))
    config = result.scalar_one_or_none()
    if config is None:
        config = AIAgentConfig(tenant_id=tenant_id)
        db.add(config)

    for field, value in update.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(config, field, value)
    config.is_active = True

    await db.flush()
    return config


async def set_ai_dispatcher(
    db: AsyncSession,
    tenant_id: UUID,
    phone_number_id: UUID,
    enabled: bool,
    config: AIAgentConfigUpdate | None = None,
) -> PhoneNumber | None:
    """Enable or disable the AI dispatcher on one of a tenant's numbers.

    Takes effect for the next routed call. Enabling makes sure the tenant
    has an active AI agent config, applying any fields given.

    Returns:
        Updated PhoneNumber, or None if the tenant has no such number
    """
    phone_number = await get_phone_number(db, tenant_id, phone_number_id)
    if phone_number is None:
        return None

    phone_number.ai_dispatcher_enabled = enabled
    if enabled:
        # The AI flow refuses calls without an active config
        await upsert_ai_agent_config(db, tenant_id, config or AIAgentConfigUpdate())

    await db.commit()
    await db.refresh(phone_number)
    logger.info(
        f"AI dispatcher {'enabled' if enabled else 'disabled'} on {phone_number.number} "
        f"(tenant {tenant_id})"
    )
    return phone_number
