"""Tests for inbound SMS ingestion and delivery receipts."""

from uuid import UUID

import pytest
from sqlalchemy import func, select

from app.models import Client, Conversation, Message, MessageDirection, MessageStatus, PhoneNumber
from app.services.conversation_store import ConversationStore
from app.services.sms_ingestion import SmsIngestionHandler

pytestmark = pytest.mark.asyncio


async def _count(db, model) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


class TestInboundMessages:
    """Tests for message.received handling."""

    async def test_stores_inbound_message(self, db, phone_number, tenant_id, sms_webhook):
        result = await SmsIngestionHandler(db).handle(sms_webhook(message_id="msg-1"))

        assert result.status_code == 200
        assert result.body["success"] is True
        details = result.body["details"]
        assert details["tenant_id"] == str(tenant_id)
        assert details["duplicate"] is False

        message = await db.get(Message, UUID(details["message_id"]))
        assert message.body == "Hi, is Tuesday still OK?"
        assert message.direction == MessageDirection.INBOUND.value
        assert message.status == MessageStatus.DELIVERED.value
        assert message.provider_message_id == "msg-1"

        conversation = await db.get(Conversation, UUID(details["conversation_id"]))
        assert conversation.tenant_id == tenant_id
        assert conversation.counterparty_phone == "+15551234567"
        assert conversation.job_id is None
        assert str(conversation.client_id) == details["client_id"]

    async def test_creates_placeholder_client_for_unknown_sender(self, db, phone_number, sms_webhook):
        result = await SmsIngestionHandler(db).handle(sms_webhook(from_="+15559876543"))
        created = await db.get(Client, UUID(result.body["details"]["client_id"]))
        assert created.name == "Client +15559876543"

    async def test_matches_existing_client(self, db, phone_number, client, sms_webhook):
        result = await SmsIngestionHandler(db).handle(sms_webhook())
        assert result.body["details"]["client_id"] == str(client.id)
        assert await _count(db, Client) == 1

    async def test_duplicate_delivery_stores_once(self, db, phone_number, sms_webhook):
        """Provider retries with the same message id never duplicate the message."""
        handler = SmsIngestionHandler(db)
        body = sms_webhook(message_id="msg-dup")

        first = await handler.handle(body)
        second = await handler.handle(body)

        assert first.status_code == second.status_code == 200
        assert second.body["details"]["duplicate"] is True
        assert second.body["details"]["message_id"] == first.body["details"]["message_id"]
        assert await _count(db, Message) == 1
        assert await _count(db, Conversation) == 1

    async def test_follow_up_message_uses_same_thread(self, db, phone_number, sms_webhook):
        handler = SmsIngestionHandler(db)
        first = await handler.handle(sms_webhook(message_id="msg-1"))
        second = await handler.handle(sms_webhook(message_id="msg-2", text="Also, bring a ladder"))

        assert first.body["details"]["conversation_id"] == second.body["details"]["conversation_id"]
        assert await _count(db, Message) == 2

    async def test_same_sender_two_tenants(self, db, phone_number, other_tenant_number, sms_webhook):
        """One person texting two tenants gets a separate client and thread per tenant."""
        handler = SmsIngestionHandler(db)
        mine = await handler.handle(sms_webhook(message_id="a", to="+15550001111"))
        theirs = await handler.handle(sms_webhook(message_id="b", to="+15550003333"))

        assert mine.body["details"]["tenant_id"] != theirs.body["details"]["tenant_id"]
        assert mine.body["details"]["client_id"] != theirs.body["details"]["client_id"]
        assert mine.body["details"]["conversation_id"] != theirs.body["details"]["conversation_id"]

    async def test_unknown_destination_is_404(self, db, phone_number, sms_webhook):
        result = await SmsIngestionHandler(db).handle(sms_webhook(to="+19999999999"))

        assert result.status_code == 404
        assert result.body["success"] is False
        assert await _count(db, Message) == 0
        assert await _count(db, Client) == 0

    async def test_flat_payload(self, db, phone_number):
        body = {
            "event_type": "message.received",
            "payload": {
                "id": "flat-1",
                "direction": "inbound",
                "from": {"phone_number": "+15551234567"},
                "to": [{"phone_number": "+15550001111"}],
                "text": "flat",
            },
        }
        result = await SmsIngestionHandler(db).handle(body)
        assert result.status_code == 200
        assert result.body["details"]["duplicate"] is False

    async def test_received_message_without_direction(self, db, tenant_id):
        """A message.received body with no direction is stored as inbound."""
        db.add(PhoneNumber(tenant_id=tenant_id, number="+15559876543", status="active"))
        await db.commit()
        body = {
            "event_type": "message.received",
            "payload": {
                "from": {"phone_number": "+15551234567"},
                "to": [{"phone_number": "+15559876543"}],
                "text": "Hello",
            },
        }

        result = await SmsIngestionHandler(db).handle(body)

        assert result.status_code == 200
        details = result.body["details"]
        client = await db.get(Client, UUID(details["client_id"]))
        assert client.name == "Client +15551234567"
        assert client.tenant_id == tenant_id
        conversation = await db.get(Conversation, UUID(details["conversation_id"]))
        assert conversation.status == "active"
        message = (await db.execute(select(Message))).scalar_one()
        assert message.direction == MessageDirection.INBOUND.value
        assert message.body == "Hello"
        assert message.conversation_id == conversation.id


class TestSkippedEvents:
    """Tests for events that are acknowledged but not stored."""

    async def test_missing_text_is_skipped(self, db, phone_number, sms_webhook):
        result = await SmsIngestionHandler(db).handle(sms_webhook(text=None))
        assert result.status_code == 200
        assert result.body["message"] == "Event skipped - not an inbound message"
        assert await _count(db, Message) == 0

    async def test_unhandled_event_type_is_skipped(self, db, phone_number, sms_webhook):
        result = await SmsIngestionHandler(db).handle(sms_webhook(event_type="message.queued"))
        assert result.status_code == 200
        assert result.body["message"] == "Event skipped - not an inbound message"

    async def test_outbound_direction_is_skipped(self, db, phone_number, sms_webhook):
        result = await SmsIngestionHandler(db).handle(sms_webhook(direction="outbound"))
        assert result.body["message"] == "Event skipped - not an inbound message"
        assert await _count(db, Message) == 0

    async def test_non_object_body_is_400(self, db):
        result = await SmsIngestionHandler(db).handle(["not", "a", "webhook"])
        assert result.status_code == 400


class TestDeliveryReceipts:
    """Tests for outbound delivery status events."""

    async def _sent_message(self, db, tenant_id, provider_id="msg-out-1") -> Message:
        store = ConversationStore(db)
        conversation = await store.find_or_create_conversation(tenant_id, "+15551234567")
        message, _ = await store.append_message(
            conversation_id=conversation.id,
            direction=MessageDirection.OUTBOUND,
            body="Technician is on the way",
            sender="+15550001111",
            recipient="+15551234567",
            provider_message_id=provider_id,
            status=MessageStatus.SENT,
        )
        await db.commit()
        return message

    def _receipt(self, sms_webhook, event_type, **kwargs):
        return sms_webhook(
            event_type=event_type,
            message_id="msg-out-1",
            from_="+15550001111",
            to="+15551234567",
            direction="outbound",
            text="Technician is on the way",
            **kwargs,
        )

    async def test_delivered_receipt(self, db, phone_number, tenant_id, sms_webhook):
        message = await self._sent_message(db, tenant_id)
        result = await SmsIngestionHandler(db).handle(self._receipt(sms_webhook, "message.delivered"))

        assert result.status_code == 200
        assert result.body["updated"] == 1
        await db.refresh(message)
        assert message.status == MessageStatus.DELIVERED.value

    async def test_finalized_failure(self, db, phone_number, tenant_id, sms_webhook):
        message = await self._sent_message(db, tenant_id)
        body = self._receipt(sms_webhook, "message.finalized", to_status="delivery_failed")
        await SmsIngestionHandler(db).handle(body)

        await db.refresh(message)
        assert message.status == MessageStatus.FAILED.value

    async def test_receipt_does_not_create_inbound_message(self, db, phone_number, tenant_id, sms_webhook):
        await self._sent_message(db, tenant_id)
        await SmsIngestionHandler(db).handle(self._receipt(sms_webhook, "message.sent"))
        assert await _count(db, Message) == 1

    async def test_receipt_for_unknown_number_is_acknowledged(self, db, sms_webhook):
        result = await SmsIngestionHandler(db).handle(self._receipt(sms_webhook, "message.delivered"))
        assert result.status_code == 200
        assert result.body["message"] == "Delivery event skipped - sending number not configured"
