"""Outbound SMS - send from a tenant's number and thread the message."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import MessageDirection, MessageStatus, PhoneNumber, PhoneNumberStatus
from app.schemas.sms import SendSmsResponse
from app.services.client import get_client
from app.services.conversation_store import ConversationStore, ConversationStoreError
from app.services.phone import normalize_e164
from app.services.telnyx import TelnyxClient, TelnyxSendError

logger = logging.getLogger(__name__)

# error_category for a send that succeeded at the provider but was not recorded
STORAGE_ERROR = "storage"


class SmsSender:
    """Sends SMS on behalf of a tenant."""

    def __init__(self, db: AsyncSession, telnyx: TelnyxClient):
        self.db = db
        self.telnyx = telnyx
        self.store = ConversationStore(db)

    async def _sender_number(self, tenant_id: UUID) -> PhoneNumber | None:
        result = await self.db.execute(
            select(PhoneNumber)
            .where(
                PhoneNumber.tenant_id == tenant_id,
                PhoneNumber.status == PhoneNumberStatus.ACTIVE.value,
            )
            .order_by(PhoneNumber.created_at)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def send(
        self,
        tenant_id: UUID,
        recipient_phone: str,
        message: str,
        client_id: UUID | None = None,
        job_id: UUID | None = None,
    ) -> SendSmsResponse:
        """Send an SMS from the tenant's active number.

        Args:
            tenant_id: Sending tenant
            recipient_phone: Recipient, any common format
            message: Text to send
            client_id: Client the message is for, if known
            job_id: Job to thread the message under

        Returns:
            SendSmsResponse; provider failures come back as success=False
        """
        sender = await self._sender_number(tenant_id)
        if sender is None:
            return SendSmsResponse(success=False, error="No active phone number found for tenant")

        if client_id is not None and await get_client(self.db, tenant_id, client_id) is None:
            return SendSmsResponse(success=False, error="Client not found")

        from_number = normalize_e164(sender.number)
        to_number = normalize_e164(recipient_phone)
        if not to_number:
            return SendSmsResponse(
                success=False, error="Invalid recipient phone number", error_category="invalid_request"
            )

        logger.info(f"📤 Sending SMS for tenant {tenant_id} from {from_number} to {to_number}")

        try:
            result = await self.telnyx.send_message(from_number, to_number, message)
        except TelnyxSendError as e:
            logger.warning(
                f"SMS to {to_number} failed ({e.category.value}, retryable={e.retryable}): {e.detail}"
            )
            return SendSmsResponse(
                success=False, error=e.user_message, error_category=e.category.value
            )

        provider_id = result.get("id")
        try:
            conversation = await self.store.find_or_create_conversation(
                tenant_id=tenant_id,
                counterparty_phone=to_number,
                job_id=job_id,
                client_id=client_id,
            )
            await self.store.append_message(
                conversation_id=conversation.id,
                direction=MessageDirection.OUTBOUND,
                body=message,
                sender=from_number,
                recipient=to_number,
                provider_message_id=provider_id,
                status=MessageStatus.SENT,
            )
            await self.db.commit()
        except (SQLAlchemyError, ConversationStoreError) as e:
            # Already delivered by the provider; only the thread record is missing
            logger.error(f"❌ SMS {provider_id} sent but not stored: {e}", exc_info=True)
            await self.db.rollback()
            return SendSmsResponse(
                success=False,
                message_id=provider_id,
                error="Message was sent but could not be saved to the conversation",
                error_category=STORAGE_ERROR,
            )

        logger.info(f"✅ SMS {provider_id} sent and stored in conversation {conversation.id}")
        return SendSmsResponse(success=True, message_id=provider_id, conversation_id=conversation.id)
