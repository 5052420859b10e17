from typing import Any, Dict

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bloodlink.dependencies import get_db
from bloodlink.models.user import User
from bloodlink.schemas.base_schema import ApiResponse
from bloodlink.schemas.user import serialize_user
from bloodlink.services.user_service import UserService
from bloodlink.utils.security import get_current_user

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me")
async def get_me(current_user: User = Depends(get_current_user)):
    return ApiResponse(data=serialize_user(current_user))


@router.patch("/me")
async def update_me(
    changes: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Merge profile fields; accepted fields depend on the caller's role"""
    user = await UserService(db).update_profile(current_user, changes)
    return ApiResponse(message="Profile updated successfully", data=serialize_user(user))
