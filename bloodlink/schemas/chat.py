from datetime import datetime
from typing import Annotated, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, StringConstraints

from bloodlink.schemas.base_schema import BaseSchema
from bloodlink.schemas.user import UserSummary


class MessageCreate(BaseSchema):
    recipient_id: UUID
    content: Annotated[str, StringConstraints(min_length=1, max_length=2000)]
    related_request_id: Optional[UUID] = None


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    sender_id: UUID
    recipient_id: UUID
    content: str
    related_request_id: Optional[UUID] = None
    read: bool
    read_at: Optional[datetime] = None
    created_at: datetime


class ConversationSummary(BaseModel):
    """Latest exchange with one chat partner"""

    partner: UserSummary
    last_message: str
    last_message_at: datetime
    is_own: bool
    read: bool
    unread_count: int


class MarkReadResponse(BaseModel):
    updated: int
