from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from bloodlink.dependencies import get_db
from bloodlink.models.user import User
from bloodlink.schemas.base_schema import ApiResponse
from bloodlink.schemas.chat import ConversationSummary, MarkReadResponse, MessageCreate, MessageResponse
from bloodlink.services.chat import ChatService
from bloodlink.utils.security import get_current_user

router = APIRouter(prefix="/chat", tags=["chat"])


@router.get("/conversations", response_model=ApiResponse[List[ConversationSummary]])
async def list_conversations(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    conversations = await ChatService(db).conversations(current_user)
    return ApiResponse(data=conversations)


@router.get("/history/{user_id}", response_model=ApiResponse[List[MessageResponse]])
async def get_history(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    messages = await ChatService(db).history(current_user, user_id)
    return ApiResponse(data=[MessageResponse.model_validate(m) for m in messages])


@router.post(
    "/send",
    response_model=ApiResponse[MessageResponse],
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    message_data: MessageCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    message = await ChatService(db).send_message(
        current_user,
        recipient_id=message_data.recipient_id,
        content=message_data.content,
        related_request_id=message_data.related_request_id,
    )
    return ApiResponse(data=MessageResponse.model_validate(message))


@router.put("/read/{user_id}", response_model=ApiResponse[MarkReadResponse])
async def mark_read(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    updated = await ChatService(db).mark_read(current_user, user_id)
    return ApiResponse(message="Messages marked as read", data=MarkReadResponse(updated=updated))
