import uuid
from datetime import datetime
from typing import Optional
from sqlalchemy import String, Text, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from bloodlink.db.base import Base, UUID, enum_type
from bloodlink.schemas.base_schema import NotificationType
from bloodlink.utils.generators import utcnow


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(UUID, primary_key=True, default=uuid.uuid4)
    recipient_id: Mapped[uuid.UUID] = mapped_column(
        UUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[NotificationType] = mapped_column(
        enum_type(NotificationType), nullable=False, default=NotificationType.INFO
    )
    # Id of the request, camp or message the notification points at
    related_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID, nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    recipient = relationship("User", foreign_keys=[recipient_id])

    __table_args__ = (
        Index("idx_notifications_recipient_created", "recipient_id", "created_at"),
    )
