"""Conversation store - tenant-scoped SMS threads and their messages.

Concurrent webhook deliveries are arbitrated by the database, not by
read-then-write checks:

- one active thread per (tenant, counterparty, job partition), enforced by
  the partial unique indexes on `conversations`;
- one message per (conversation, provider_message_id), enforced by
  `uq_messages_conversation_provider_id`.

Both creates are `INSERT .. ON CONFLICT DO NOTHING` followed by a re-select
of the row that won.
"""

import logging
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import (
    Conversation,
    ConversationStatus,
    Message,
    MessageDirection,
    MessageStatus,
)
from app.models.base import utcnow
from app.services.phone import normalize_e164
from app.utils.sql import dialect_insert

logger = logging.getLogger(__name__)

# Delivery statuses only move forward
_STATUS_RANK = {
    MessageStatus.QUEUED.value: 0,
    MessageStatus.SENT.value: 1,
    MessageStatus.DELIVERED.value: 2,
    MessageStatus.FAILED.value: 2,
}


class ConversationStoreError(Exception):
    """A thread could not be found or created."""


class ConversationStore:
    """Find-or-create conversations and append messages idempotently."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _partition(self, tenant_id: UUID, counterparty_phone: str, job_id: UUID | None) -> list:
        """WHERE clauses selecting one (tenant, counterparty, job) partition.

        A job-less search only sees job-less threads and a job search only
        sees that job's threads. `job_id = NULL` is never used.
        """
        clauses = [
            Conversation.tenant_id == tenant_id,
            Conversation.counterparty_phone == counterparty_phone,
        ]
        if job_id is None:
            clauses.append(Conversation.job_id.is_(None))
        else:
            clauses.append(Conversation.job_id == job_id)
        return clauses

    async def _get_active(self, partition: list) -> Conversation | None:
        result = await self.db.execute(
            select(Conversation).where(
                *partition, Conversation.status == ConversationStatus.ACTIVE.value
            )
        )
        return result.scalar_one_or_none()

    async def find_or_create_conversation(
        self,
        tenant_id: UUID,
        counterparty_phone: str,
        job_id: UUID | None = None,
        client_id: UUID | None = None,
    ) -> Conversation:
        """Get the active thread for a counterparty, reviving or creating one if needed.

        Args:
            tenant_id: Owning tenant
            counterparty_phone: The other party's number (normalized to E.164)
            job_id: Job scope, or None for the job-less thread
            client_id: Client to link when the thread has none yet

        Returns:
            Active conversation
        """
        phone = normalize_e164(counterparty_phone) or counterparty_phone
        partition = self._partition(tenant_id, phone, job_id)
        now = utcnow()

        conversation = await self._get_active(partition)
        if conversation:
            conversation.last_message_at = now
            if client_id and conversation.client_id is None:
                conversation.client_id = client_id
            await self.db.flush()
            return conversation

        result = await self.db.execute(
            select(Conversation)
            .where(*partition, Conversation.status == ConversationStatus.ARCHIVED.value)
            .order_by(Conversation.last_message_at.desc())
            .limit(1)
        )
        archived = result.scalar_one_or_none()
        if archived:
            try:
                async with self.db.begin_nested():
                    archived.status = ConversationStatus.ACTIVE.value
                    archived.last_message_at = now
                    if client_id and archived.client_id is None:
                        archived.client_id = client_id
                    await self.db.flush()
                logger.info(f"Reactivated archived conversation {archived.id}")
                return archived
            except IntegrityError:
                # Another delivery activated a thread in this partition first
                logger.info(f"Conversation {archived.id} lost reactivation race, using active thread")
                await self.db.refresh(archived)

        stmt = (
            dialect_insert(self.db, Conversation)
            .values(
                tenant_id=tenant_id,
                client_id=client_id,
                counterparty_phone=phone,
                job_id=job_id,
                status=ConversationStatus.ACTIVE.value,
                last_message_at=now,
            )
            .on_conflict_do_nothing()
            .returning(Conversation.id)
        )
        new_id = (await self.db.execute(stmt)).scalar_one_or_none()

        if new_id is None:
            conversation = await self._get_active(partition)
            if conversation is None:
                raise ConversationStoreError(
                    f"Active conversation for {phone} vanished after insert conflict"
                )
            return conversation

        logger.info(f"Created conversation {new_id} for {phone} (tenant {tenant_id}, job {job_id})")
        return await self.db.get(Conversation, new_id)

    async def append_message(
        self,
        conversation_id: UUID,
        direction: MessageDirection,
        body: str,
        sender: str,
        recipient: str,
        provider_message_id: str | None = None,
        status: MessageStatus = MessageStatus.DELIVERED,
    ) -> tuple[Message, bool]:
        """Store a message. Redelivery of the same provider message is a no-op.

        Returns:
            Tuple of (message, created). `created` is False when the provider
            message id was already stored for this conversation.
        """
        values = {
            "conversation_id": conversation_id,
            "direction": direction.value,
            "body": body,
            "sender": sender,
            "recipient": recipient,
            "provider_message_id": provider_message_id,
            "status": status.value,
        }

        if provider_message_id is None:
            message = Message(**values)
            self.db.add(message)
            await self.db.flush()
            return message, True

        stmt = (
            dialect_insert(self.db, Message)
            .values(**values)
            .on_conflict_do_nothing(index_elements=["conversation_id", "provider_message_id"])
            .returning(Message.id)
        )
        new_id = (await self.db.execute(stmt)).scalar_one_or_none()

        if new_id is None:
            result = await self.db.execute(
                select(Message).where(
                    Message.conversation_id == conversation_id,
                    Message.provider_message_id == provider_message_id,
                )
            )
            logger.info(f"Duplicate provider message {provider_message_id} - not stored again")
            return result.scalar_one(), False

        return await self.db.get(Message, new_id), True

    async def update_message_status(
        self,
        tenant_id: UUID,
        provider_message_id: str,
        status: MessageStatus,
    ) -> int:
        """Advance the delivery status of a tenant's message.

        Returns:
            Number of rows updated
        """
        rank = _STATUS_RANK[status.value]
        behind = [name for name, r in _STATUS_RANK.items() if r < rank]
        tenant_conversations = select(Conversation.id).where(Conversation.tenant_id == tenant_id)

        result = await self.db.execute(
            update(Message)
            .where(
                Message.provider_message_id == provider_message_id,
                Message.conversation_id.in_(tenant_conversations),
                Message.status.in_(behind),
            )
            .values(status=status.value, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
