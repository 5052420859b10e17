from typing import Annotated

from fastapi import APIRouter, Body, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from bloodlink.dependencies import get_db
from bloodlink.schemas.base_schema import ApiResponse
from bloodlink.schemas.user import LoginRequest, TokenResponse, UserRegister, serialize_user
from bloodlink.services.user_service import UserService
from bloodlink.utils.ip_address_finder import get_client_ip
from bloodlink.utils.security import TokenManager

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    payload: Annotated[UserRegister, Body(discriminator="role")],
    db: AsyncSession = Depends(get_db),
):
    """
    Register a donor, blood bank or hospital account.
    The ``role`` field selects which profile fields are accepted.
    """
    user = await UserService(db).register(payload)
    token = TokenManager.create_access_token({"sub": str(user.id), "role": user.role})
    return ApiResponse(
        message="Registration successful",
        data=TokenResponse(access_token=token, user=serialize_user(user)),
    )


@router.post("/login")
async def login(
    credentials: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    user, token = await UserService(db).authenticate(
        credentials.email, credentials.password, ip_address=get_client_ip(request)
    )
    return ApiResponse(
        message="Login successful",
        data=TokenResponse(access_token=token, user=serialize_user(user)),
    )
