from datetime import timedelta
from uuid import uuid4

import pytest

from bloodlink.models.message import Message
from bloodlink.services.chat import RECEIVE_MESSAGE_EVENT, ChatService
from bloodlink.services.notification_service import NotificationService
from bloodlink.utils.exceptions import NotFoundError, ValidationError
from bloodlink.utils.generators import utcnow


async def add_message(db, sender, recipient, content, minutes_ago, read=False):
    message = Message(
        sender_id=sender.id,
        recipient_id=recipient.id,
        content=content,
        read=read,
        created_at=utcnow() - timedelta(minutes=minutes_ago),
    )
    db.add(message)
    await db.commit()
    return message


class TestSendMessage:
    async def test_message_is_pushed_to_recipient_only(
        self, db_session, hospital, blood_bank, connections
    ):
        sender_queue = await connections.subscribe([str(hospital.id)])
        recipient_queue = await connections.subscribe([str(blood_bank.id)])
        service = ChatService(db_session, NotificationService(db_session, connections))

        message = await service.send_message(hospital, blood_bank.id, "Do you have O+ today?")

        event = recipient_queue.get_nowait()
        assert event["event"] == RECEIVE_MESSAGE_EVENT
        assert event["data"]["id"] == str(message.id)
        assert event["data"]["content"] == "Do you have O+ today?"
        assert event["data"]["sender"]["name"] == "Korle Bu Hospital"
        assert sender_queue.empty()
        assert message.read is False

    async def test_cannot_message_yourself(self, db_session, donor):
        with pytest.raises(ValidationError):
            await ChatService(db_session).send_message(donor, donor.id, "hello me")

    async def test_unknown_recipient(self, db_session, donor):
        with pytest.raises(NotFoundError) as exc_info:
            await ChatService(db_session).send_message(donor, uuid4(), "anyone there?")
        assert exc_info.value.message == "Recipient not found"


class TestConversations:
    async def test_history_covers_both_directions_oldest_first(
        self, db_session, hospital, blood_bank, donor
    ):
        await add_message(db_session, hospital, blood_bank, "first", minutes_ago=30)
        await add_message(db_session, blood_bank, hospital, "second", minutes_ago=20)
        await add_message(db_session, hospital, blood_bank, "third", minutes_ago=10)
        await add_message(db_session, donor, blood_bank, "unrelated", minutes_ago=5)

        history = await ChatService(db_session).history(hospital, blood_bank.id)

        assert [m.content for m in history] == ["first", "second", "third"]

    async def test_conversation_summaries(self, db_session, hospital, blood_bank, donor):
        await add_message(db_session, hospital, blood_bank, "need 4 units", minutes_ago=30)
        await add_message(db_session, blood_bank, hospital, "on the way", minutes_ago=20)
        await add_message(db_session, blood_bank, hospital, "dispatched", minutes_ago=15)
        await add_message(db_session, hospital, donor, "thank you", minutes_ago=5)

        summaries = await ChatService(db_session).conversations(hospital)

        assert [s.partner.id for s in summaries] == [donor.id, blood_bank.id]
        donor_chat, bank_chat = summaries
        assert donor_chat.is_own is True
        assert donor_chat.unread_count == 0
        assert bank_chat.is_own is False
        assert bank_chat.last_message == "dispatched"
        assert bank_chat.unread_count == 2

    async def test_mark_read_is_idempotent(self, db_session, hospital, blood_bank):
        await add_message(db_session, blood_bank, hospital, "one", minutes_ago=3)
        await add_message(db_session, blood_bank, hospital, "two", minutes_ago=2)
        await add_message(db_session, hospital, blood_bank, "reply", minutes_ago=1)
        service = ChatService(db_session)

        assert await service.mark_read(hospital, blood_bank.id) == 2
        assert await service.mark_read(hospital, blood_bank.id) == 0

        summaries = await service.conversations(hospital)
        assert summaries[0].unread_count == 0
