from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import and_, func, or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from bloodlink.models.message import Message
from bloodlink.models.request import BloodRequest
from bloodlink.models.user import User
from bloodlink.schemas.chat import ConversationSummary, MessageResponse
from bloodlink.schemas.user import UserSummary
from bloodlink.services.notification_service import NotificationService
from bloodlink.utils.exceptions import NotFoundError, ValidationError
from bloodlink.utils.generators import utcnow
from bloodlink.utils.logging_config import get_logger

logger = get_logger(__name__)

RECEIVE_MESSAGE_EVENT = "receive_message"


class ChatService:
    """Direct messages between two accounts"""

    def __init__(self, db: AsyncSession, notifications: Optional[NotificationService] = None):
        self.db = db
        self.notifications = notifications or NotificationService(db)

    async def send_message(
        self,
        sender: User,
        recipient_id: UUID,
        content: str,
        related_request_id: Optional[UUID] = None,
    ) -> Message:
        """Persist the message, then push it to the recipient only"""
        if recipient_id == sender.id:
            raise ValidationError("Cannot send a message to yourself")

        recipient = await self.db.get(User, recipient_id)
        if recipient is None:
            raise NotFoundError("Recipient not found")

        if related_request_id is not None:
            if await self.db.get(BloodRequest, related_request_id) is None:
                raise NotFoundError("Related request not found")

        message = Message(
            sender_id=sender.id,
            recipient_id=recipient.id,
            content=content,
            related_request_id=related_request_id,
        )
        self.db.add(message)
        await self.db.commit()

        payload = MessageResponse.model_validate(message).model_dump(mode="json")
        payload["sender"] = UserSummary.model_validate(sender).model_dump(mode="json")
        self.notifications.push(str(recipient.id), RECEIVE_MESSAGE_EVENT, payload)

        logger.info(
            "Chat message sent",
            extra={
                "event_type": "chat_message_sent",
                "message_id": str(message.id),
                "recipient_id": str(recipient.id),
            },
        )
        return message

    async def history(self, user: User, other_id: UUID) -> List[Message]:
        """Both directions of a conversation, oldest first"""
        result = await self.db.execute(
            select(Message)
            .where(
                or_(
                    and_(Message.sender_id == user.id, Message.recipient_id == other_id),
                    and_(Message.sender_id == other_id, Message.recipient_id == user.id),
                )
            )
            .order_by(Message.created_at.asc())
        )
        return list(result.scalars().all())

    async def conversations(self, user: User) -> List[ConversationSummary]:
        """One entry per chat partner, most recent conversation first"""
        result = await self.db.execute(
            select(Message)
            .options(selectinload(Message.sender), selectinload(Message.recipient))
            .where(or_(Message.sender_id == user.id, Message.recipient_id == user.id))
            .order_by(Message.created_at.desc())
        )

        unread = await self._unread_by_sender(user.id)

        summaries: List[ConversationSummary] = []
        seen = set()
        for message in result.scalars().all():
            is_own = message.sender_id == user.id
            partner = message.recipient if is_own else message.sender
            if partner.id in seen:
                continue
            seen.add(partner.id)
            summaries.append(
                ConversationSummary(
                    partner=UserSummary.model_validate(partner),
                    last_message=message.content,
                    last_message_at=message.created_at,
                    is_own=is_own,
                    read=message.read,
                    unread_count=unread.get(partner.id, 0),
                )
            )
        return summaries

    async def _unread_by_sender(self, recipient_id: UUID) -> Dict[UUID, int]:
        result = await self.db.execute(
            select(Message.sender_id, func.count(Message.id))
            .where(Message.recipient_id == recipient_id, Message.read.is_(False))
            .group_by(Message.sender_id)
        )
        return {sender_id: count for sender_id, count in result.all()}

    async def mark_read(self, user: User, other_id: UUID) -> int:
        """Mark everything ``other_id`` sent to ``user`` as read. Idempotent."""
        result = await self.db.execute(
            update(Message)
            .where(
                Message.sender_id == other_id,
                Message.recipient_id == user.id,
                Message.read.is_(False),
            )
            .values(read=True, read_at=utcnow())
        )
        await self.db.commit()
        return result.rowcount or 0
