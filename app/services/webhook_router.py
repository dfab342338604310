"""Webhook router - single entry point for every Telnyx webhook.

Flow:
    verify signature -> parse JSON -> classify
        SMS   -> forward to SMS ingestion
        Voice -> resolve tenant by destination number
                 -> AI dispatcher or basic telephony, per the number's flag
                 -> audit the decision (best effort)
                 -> forward to the chosen handler

The handler's status and body are returned unchanged.
"""

import json
import logging
from collections.abc import Mapping

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import CallRoutingLog, PhoneNumber, RoutingDecision
from app.models.base import utcnow
from app.schemas.webhook import EventKind, HandlerResponse, ParsedWebhook
from app.services.event_classifier import WebhookDecodeError, classify, parse_webhook
from app.services.handler_gateway import HandlerGateway, HandlerGatewayError, RouteTarget
from app.services.signature import SignatureCheck, WebhookSignatureVerifier
from app.services.tenant_resolver import ResolvedTenant, TenantResolver

logger = logging.getLogger(__name__)

_TARGETS = {
    RoutingDecision.AI_DISPATCHER: RouteTarget.AI_DISPATCHER,
    RoutingDecision.BASIC_TELEPHONY: RouteTarget.BASIC_TELEPHONY,
}


class WebhookRouter:
    """Verifies, classifies and dispatches provider webhooks."""

    def __init__(
        self,
        db: AsyncSession,
        verifier: WebhookSignatureVerifier,
        gateway: HandlerGateway,
    ):
        self.db = db
        self.verifier = verifier
        self.gateway = gateway
        self.tenants = TenantResolver(db)

    async def receive(self, raw_body: bytes, headers: Mapping[str, str]) -> HandlerResponse:
        """Handle one webhook request.

        Args:
            raw_body: Request body exactly as received (the signature covers it)
            headers: Request headers

        Returns:
            Response for the provider
        """
        check = self.verifier.check(raw_body, headers)
        if not check.accepted:
            return HandlerResponse.failure(check.status_code, check.reason or "Invalid signature")

        try:
            body = json.loads(raw_body)
            payload = parse_webhook(body)
        except (ValueError, WebhookDecodeError):
            logger.warning("Rejecting webhook: body is not a JSON object")
            return HandlerResponse.failure(400, "Invalid JSON")

        try:
            kind = classify(payload)
            logger.info(
                f"\n{'='*60}\n"
                f"📬 TELNYX WEBHOOK: {payload.event_type} ({kind.value})\n"
                f"  From: {payload.from_number}\n"
                f"  To: {payload.to_number}\n"
                f"{'='*60}"
            )

            if kind is EventKind.SMS:
                return await self.gateway.forward(RouteTarget.SMS, raw_body)
            return await self._route_voice(payload, raw_body, check)

        except HandlerGatewayError as e:
            return HandlerResponse.failure(e.status_code, str(e))
        except Exception as e:
            logger.error(f"❌ Error routing webhook: {e}", exc_info=True)
            return HandlerResponse.failure(500, str(e) or "Internal error")

    async def _route_voice(
        self,
        payload: ParsedWebhook,
        raw_body: bytes,
        check: SignatureCheck,
    ) -> HandlerResponse:
        if not payload.to_number:
            return HandlerResponse.failure(400, "Missing destination number")

        tenant = await self.tenants.resolve(payload.to_number)
        if tenant is None:
            return HandlerResponse.failure(404, "Phone number not configured")

        decision = (
            RoutingDecision.AI_DISPATCHER
            if tenant.ai_dispatcher_enabled
            else RoutingDecision.BASIC_TELEPHONY
        )
        logger.info(f"🔀 Routing {payload.call_control_id} to {decision.value} (tenant {tenant.tenant_id})")

        await self._record_decision(tenant, payload, decision, check)
        return await self.gateway.forward(_TARGETS[decision], raw_body)

    async def _record_decision(
        self,
        tenant: ResolvedTenant,
        payload: ParsedWebhook,
        decision: RoutingDecision,
        check: SignatureCheck,
    ) -> None:
        """Write the routing audit row and number stats. Failures never affect routing."""
        now = utcnow()
        try:
            async with self.db.begin_nested():
                self.db.add(
                    CallRoutingLog(
                        phone_number=tenant.number,
                        caller_phone=payload.from_number or "",
                        routing_decision=decision.value,
                        ai_enabled=tenant.ai_dispatcher_enabled,
                        call_control_id=payload.call_control_id or "",
                        routing_metadata={
                            "tenant_id": str(tenant.tenant_id),
                            "event_type": payload.event_type,
                            "event_id": payload.event_id,
                            "direction": payload.direction,
                            "signature_verified": check.verified,
                        },
                        occurred_at=now,
                    )
                )
                await self.db.execute(
                    update(PhoneNumber)
                    .where(
                        PhoneNumber.id == tenant.phone_number_id,
                        PhoneNumber.tenant_id == tenant.tenant_id,
                    )
                    .values(last_routed_decision=decision.value, last_routed_at=now, updated_at=now)
                    .execution_options(synchronize_session=False)
                )
            await self.db.commit()
        except SQLAlchemyError as e:
            logger.warning(f"⚠️  Failed to record routing decision for {tenant.number}: {e}")
            await self.db.rollback()
