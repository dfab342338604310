"""SMS ingestion - stores inbound messages and tracks delivery receipts.

Receives the webhook body the router forwarded verbatim. Inbound messages
land in the sender's job-less conversation thread. Provider redeliveries
are absorbed by the message uniqueness constraint, so the same Telnyx
message id never produces two rows.
"""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.models import MessageDirection, MessageStatus
from app.schemas.webhook import HandlerResponse, SmsEvent
from app.services.client import get_or_create_client
from app.services.conversation_store import ConversationStore
from app.services.event_classifier import WebhookDecodeError, parse_webhook, to_sms_event
from app.services.tenant_resolver import TenantResolver

logger = logging.getLogger(__name__)

DELIVERY_EVENTS = {
    "message.sent": MessageStatus.SENT,
    "message.delivered": MessageStatus.DELIVERED,
    "message.failed": MessageStatus.FAILED,
    "message.finalized": None,  # status comes from the recipient entry
}

_FINALIZED_STATUSES = {
    "sent": MessageStatus.SENT,
    "delivered": MessageStatus.DELIVERED,
    "sending_failed": MessageStatus.FAILED,
    "delivery_failed": MessageStatus.FAILED,
}


def _recipient_status(raw: dict[str, Any]) -> MessageStatus | None:
    """Delivery status of the first recipient of a finalized message."""
    data = raw.get("data") if isinstance(raw.get("data"), dict) else raw
    payload = data.get("payload") if isinstance(data.get("payload"), dict) else {}
    recipients = payload.get("to")
    if isinstance(recipients, list) and recipients and isinstance(recipients[0], dict):
        return _FINALIZED_STATUSES.get(recipients[0].get("status") or "")
    return None


class SmsIngestionHandler:
    """Handles messaging webhooks forwarded by the router."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.tenants = TenantResolver(db)
        self.store = ConversationStore(db)

    async def handle(self, body: Any) -> HandlerResponse:
        """Process one messaging webhook.

        Args:
            body: Decoded JSON body

        Returns:
            HandlerResponse to send back to the provider
        """
        try:
            event = to_sms_event(parse_webhook(body))
        except WebhookDecodeError as e:
            return HandlerResponse.failure(400, str(e))

        logger.info(
            f"📨 SMS webhook: {event.event_type} {event.message_id} "
            f"from {event.from_number} to {event.to_number}"
        )

        try:
            if event.is_inbound_message:
                return await self._store_inbound(event)
            if event.event_type in DELIVERY_EVENTS:
                return await self._record_delivery(event)
        except Exception as e:
            logger.error(f"❌ Error processing SMS webhook: {e}", exc_info=True)
            await self.db.rollback()
            return HandlerResponse.failure(500, str(e) or "Unknown error processing webhook")

        logger.info(
            f"Skipping event - not an inbound message or missing data "
            f"(type={event.event_type}, direction={event.direction})"
        )
        return HandlerResponse.success("Event skipped - not an inbound message")

    async def _store_inbound(self, event: SmsEvent) -> HandlerResponse:
        tenant = await self.tenants.resolve(event.to_number)
        if tenant is None:
            return HandlerResponse.failure(404, "Receiving number not associated with any tenant")

        client, client_created = await get_or_create_client(
            self.db, tenant.tenant_id, event.from_number
        )
        conversation = await self.store.find_or_create_conversation(
            tenant_id=tenant.tenant_id,
            counterparty_phone=event.from_number,
            client_id=client.id,
        )
        message, created = await self.store.append_message(
            conversation_id=conversation.id,
            direction=MessageDirection.INBOUND,
            body=event.text,
            sender=event.from_number,
            recipient=event.to_number,
            provider_message_id=event.message_id,
            status=MessageStatus.DELIVERED,
        )
        await self.db.commit()

        logger.info(
            f"✅ Stored inbound SMS {message.id} for tenant {tenant.tenant_id} "
            f"(client {client.id}{' new' if client_created else ''}, "
            f"conversation {conversation.id}, duplicate={not created})"
        )
        return HandlerResponse.success(
            "SMS webhook processed successfully",
            details={
                "tenant_id": str(tenant.tenant_id),
                "client_id": str(client.id),
                "conversation_id": str(conversation.id),
                "message_id": str(message.id),
                "duplicate": not created,
            },
        )

    async def _record_delivery(self, event: SmsEvent) -> HandlerResponse:
        status = DELIVERY_EVENTS[event.event_type]
        if status is None:
            status = _recipient_status(event.raw)
        if status is None or not event.message_id:
            return HandlerResponse.success("Delivery event skipped - no status to record")

        # Outbound receipts: our number is the sender
        tenant = await self.tenants.resolve(event.from_number)
        if tenant is None:
            return HandlerResponse.success("Delivery event skipped - sending number not configured")

        updated = await self.store.update_message_status(
            tenant.tenant_id, event.message_id, status
        )
        await self.db.commit()

        logger.info(f"Delivery status {status.value} for {event.message_id}: {updated} row(s)")
        return HandlerResponse.success("Delivery status recorded", updated=updated)
