import asyncio
import json
from datetime import datetime, timezone
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from bloodlink.config import settings
from bloodlink.dependencies import get_db
from bloodlink.models.user import User
from bloodlink.schemas.base_schema import ApiResponse
from bloodlink.schemas.notification import MarkAllReadResponse, NotificationResponse
from bloodlink.services.notification_service import NotificationService
from bloodlink.services.notification_sse import manager, rooms_for
from bloodlink.utils.logging_config import get_logger
from bloodlink.utils.security import get_current_user, get_current_user_stream

logger = get_logger(__name__)
router = APIRouter(prefix="/notifications", tags=["notifications"])

HEARTBEAT_SECONDS = 30.0


def format_sse(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(data, default=str)}\n\n"


@router.get("", response_model=ApiResponse[List[NotificationResponse]])
async def list_notifications(
    limit: int = Query(settings.NOTIFICATION_LIST_LIMIT, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    notifications = await NotificationService(db).list_for(current_user.id, limit=limit)
    return ApiResponse(data=[NotificationResponse.model_validate(n) for n in notifications])


@router.patch("/read-all", response_model=ApiResponse[MarkAllReadResponse])
async def mark_all_read(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    updated = await NotificationService(db).mark_all_read(current_user.id)
    return ApiResponse(
        message="All notifications marked as read", data=MarkAllReadResponse(updated=updated)
    )


@router.patch("/{notification_id}/read", response_model=ApiResponse[NotificationResponse])
async def mark_read(
    notification_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    notification = await NotificationService(db).mark_read(notification_id, current_user.id)
    return ApiResponse(
        message="Notification marked as read",
        data=NotificationResponse.model_validate(notification),
    )


@router.get("/stream")
async def notification_stream(
    request: Request,
    current_user: User = Depends(get_current_user_stream),
):
    """
    SSE endpoint for real-time notifications.

    The connection joins the caller's personal room and, for donors, the
    room of their city. A comment line is sent as heartbeat whenever no
    event arrived for thirty seconds.
    """
    user_id = str(current_user.id)
    rooms = rooms_for(current_user)
    event_queue = await manager.subscribe(rooms)

    logger.info(
        f"SSE connection established for user {user_id}",
        extra={"event_type": "sse_connection_established", "user_id": user_id, "rooms": rooms},
    )

    async def event_stream():
        try:
            yield format_sse(
                "connection",
                {
                    "message": "Successfully connected to notification stream",
                    "user_id": user_id,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                },
            )

            while True:
                if await request.is_disconnected():
                    logger.info(
                        f"SSE client {user_id} disconnected",
                        extra={"event_type": "sse_client_disconnected", "user_id": user_id},
                    )
                    break

                try:
                    message = await asyncio.wait_for(
                        event_queue.get(), timeout=HEARTBEAT_SECONDS
                    )
                except asyncio.TimeoutError:
                    yield ": heartbeat\n\n"
                    continue

                yield format_sse(message["event"], message["data"])
        finally:
            await manager.unsubscribe(rooms, event_queue)
            logger.info(
                f"SSE connection closed for user {user_id}",
                extra={"event_type": "sse_connection_closed", "user_id": user_id},
            )

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
