"""Voice call handlers - the AI dispatcher flow and the basic telephony flow.

Both flows share the call lifecycle:

    call.initiated (inbound) -> record Call, answer
    call.answered            -> speak greeting
    call.hangup              -> mark completed with duration

They differ in what they need before answering and in the greeting.
"""

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import AIAgentConfig, Call, CallStatus, RoutingDecision
from app.models.base import utcnow
from app.schemas.webhook import HandlerResponse, ParsedWebhook
from app.services.client import find_client_by_phone
from app.services.event_classifier import parse_webhook
from app.services.telnyx import TelnyxClient, TelnyxSendError
from app.services.tenant_resolver import ResolvedTenant, TenantResolver
from app.utils.sql import dialect_insert

logger = logging.getLogger(__name__)

BASIC_GREETING = (
    "Hello, thank you for calling {company_name}. "
    "Please hold while we connect you to the next available representative."
)


def _aware(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from the database."""
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _has_payload(body: Any) -> bool:
    data = body.get("data") if isinstance(body, dict) else None
    return isinstance(data, dict) and isinstance(data.get("payload"), dict)


class VoiceHandler:
    """Call lifecycle shared by the voice flows."""

    decision: RoutingDecision
    initiated_message = "Call initiated"
    answered_message = "Greeting played"
    error_message = "Voice handler error"

    def __init__(self, db: AsyncSession, telnyx: TelnyxClient):
        self.db = db
        self.telnyx = telnyx
        self.tenants = TenantResolver(db)

    async def handle(self, body: Any) -> HandlerResponse:
        """Process one call-control webhook."""
        if not _has_payload(body):
            logger.error("No payload in webhook data")
            return HandlerResponse.failure(400, "No payload")

        event = parse_webhook(body)
        logger.info(
            f"📞 {self.decision.value}: {event.event_type} for "
            f"{event.from_number} -> {event.to_number} ({event.call_control_id})"
        )

        try:
            if event.event_type == "call.initiated" and event.direction in ("inbound", "incoming"):
                return await self._on_initiated(event)
            if event.event_type == "call.answered":
                return await self._on_answered(event)
            if event.event_type == "call.hangup":
                return await self._on_hangup(event)
        except Exception as e:
            logger.error(f"❌ Error in {self.decision.value} webhook: {e}", exc_info=True)
            await self.db.rollback()
            return HandlerResponse.failure(500, self.error_message)

        return HandlerResponse.success("Event processed")

    # Hooks

    async def prepare(self, tenant: ResolvedTenant) -> HandlerResponse | None:
        """Check preconditions before answering. Return a response to stop."""
        return None

    async def call_metadata(self, tenant: ResolvedTenant, event: ParsedWebhook) -> dict[str, Any]:
        """Extra data stored on the Call row."""
        return {}

    async def greeting(self, tenant_id: UUID) -> tuple[str, str] | None:
        """Greeting text and voice for an answered call."""
        raise NotImplementedError

    # Lifecycle

    async def _get_call(self, call_control_id: str | None) -> Call | None:
        if not call_control_id:
            return None
        result = await self.db.execute(select(Call).where(Call.call_control_id == call_control_id))
        return result.scalar_one_or_none()

    async def _record_call(
        self,
        tenant: ResolvedTenant,
        event: ParsedWebhook,
        client_id: UUID | None,
        metadata: dict[str, Any],
    ) -> bool:
        """Insert the Call row once per call_control_id. Returns False on redelivery."""
        stmt = (
            dialect_insert(self.db, Call)
            .values(
                tenant_id=tenant.tenant_id,
                phone_number_id=tenant.phone_number_id,
                call_control_id=event.call_control_id,
                handler=self.decision.value,
                direction="inbound",
                from_number=event.from_number or "",
                to_number=event.to_number or "",
                client_id=client_id,
                status=CallStatus.INITIATED.value,
                started_at=utcnow(),
                call_metadata=metadata,
            )
            .on_conflict_do_nothing(index_elements=["call_control_id"])
            .returning(Call.id)
        )
        return (await self.db.execute(stmt)).scalar_one_or_none() is not None

    async def _on_initiated(self, event: ParsedWebhook) -> HandlerResponse:
        if not event.call_control_id:
            return HandlerResponse.failure(400, "Missing call_control_id")

        tenant = await self.tenants.resolve(event.to_number)
        if tenant is None:
            return HandlerResponse.failure(404, "Phone number not configured")

        stop = await self.prepare(tenant)
        if stop is not None:
            return stop

        client = None
        if event.from_number:
            client = await find_client_by_phone(self.db, tenant.tenant_id, event.from_number)
        metadata = await self.call_metadata(tenant, event)

        created = await self._record_call(tenant, event, client.id if client else None, metadata)
        await self.db.commit()
        if not created:
            logger.info(f"Call {event.call_control_id} already recorded - not answering again")
            return HandlerResponse.success("Call already initiated")

        try:
            await self.telnyx.answer_call(event.call_control_id)
        except TelnyxSendError as e:
            logger.error(f"❌ Failed to answer call {event.call_control_id}: {e}")
            return HandlerResponse.failure(500, "Failed to answer call")

        logger.info(f"✅ Answered call {event.call_control_id} ({self.decision.value})")
        return HandlerResponse.success(self.initiated_message)

    async def _on_answered(self, event: ParsedWebhook) -> HandlerResponse:
        call = await self._get_call(event.call_control_id)
        if call is not None:
            call.status = CallStatus.ANSWERED.value
            call.answered_at = utcnow()
            await self.db.commit()
            tenant_id = call.tenant_id
        else:
            tenant = await self.tenants.resolve(event.to_number)
            if tenant is None:
                return HandlerResponse.success("Event processed")
            tenant_id = tenant.tenant_id

        greeting = await self.greeting(tenant_id)
        if greeting and event.call_control_id:
            text, voice = greeting
            try:
                await self.telnyx.speak(event.call_control_id, text, voice=voice)
            except TelnyxSendError as e:
                logger.error(f"❌ Failed to play greeting on {event.call_control_id}: {e}")

        return HandlerResponse.success(self.answered_message)

    async def _on_hangup(self, event: ParsedWebhook) -> HandlerResponse:
        call = await self._get_call(event.call_control_id)
        if call is not None and call.status != CallStatus.COMPLETED.value:
            ended_at = utcnow()
            call.status = CallStatus.COMPLETED.value
            call.ended_at = ended_at
            call.duration_seconds = max(0, int((ended_at - _aware(call.started_at)).total_seconds()))
            await self.db.commit()
            logger.info(f"Call {call.call_control_id} completed after {call.duration_seconds}s")

        return HandlerResponse.success("Call completed")


class AIDispatcherHandler(VoiceHandler):
    """Calls answered by the tenant's AI agent."""

    decision = RoutingDecision.AI_DISPATCHER
    initiated_message = "AI call initiated"
    answered_message = "AI interaction started"
    error_message = "AI Dispatcher error"

    async def _get_config(self, tenant_id: UUID) -> AIAgentConfig | None:
        result = await self.db.execute(
            select(AIAgentConfig).where(
                AIAgentConfig.tenant_id == tenant_id,
                AIAgentConfig.is_active.is_(True),
            )
        )
        return result.scalar_one_or_none()

    async def prepare(self, tenant: ResolvedTenant) -> HandlerResponse | None:
        if await self._get_config(tenant.tenant_id) is None:
            logger.error(f"No AI config found for tenant {tenant.tenant_id} ({tenant.number})")
            return HandlerResponse.failure(404, "AI config not found")
        return None

    async def greeting(self, tenant_id: UUID) -> tuple[str, str] | None:
        config = await self._get_config(tenant_id)
        if config is None:
            return None
        return config.render_greeting(), config.voice


class BasicTelephonyHandler(VoiceHandler):
    """Calls answered with a hold message for a human."""

    decision = RoutingDecision.BASIC_TELEPHONY
    initiated_message = "Call answered"
    error_message = "Basic telephony error"

    async def call_metadata(self, tenant: ResolvedTenant, event: ParsedWebhook) -> dict[str, Any]:
        return {"routing_type": self.decision.value, "phone_number": tenant.number}

    async def greeting(self, tenant_id: UUID) -> tuple[str, str] | None:
        result = await self.db.execute(
            select(AIAgentConfig.company_name).where(AIAgentConfig.tenant_id == tenant_id)
        )
        company_name = result.scalar_one_or_none() or "our company"
        return BASIC_GREETING.format(company_name=company_name), "female"
