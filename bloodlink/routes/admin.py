from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bloodlink.dependencies import get_db
from bloodlink.models.user import User
from bloodlink.schemas.admin import AnalyticsResponse
from bloodlink.schemas.base_schema import ApiResponse
from bloodlink.schemas.user import BloodBankResponse, HospitalResponse, serialize_user
from bloodlink.services.admin_service import AdminService
from bloodlink.utils.permission_checker import require_admin

router = APIRouter(prefix="/admin-api", tags=["admin"])


@router.get("/bloodbanks", response_model=ApiResponse[List[BloodBankResponse]])
async def list_blood_banks(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    banks = await AdminService(db).list_blood_banks()
    return ApiResponse(data=[BloodBankResponse.model_validate(b) for b in banks])


@router.get("/hospitals", response_model=ApiResponse[List[HospitalResponse]])
async def list_hospitals(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    hospitals = await AdminService(db).list_hospitals()
    return ApiResponse(data=[HospitalResponse.model_validate(h) for h in hospitals])


@router.patch("/verify/{user_id}")
async def verify_account(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    user = await AdminService(db).set_verified(user_id, True, current_user)
    return ApiResponse(message="Account verified successfully", data=serialize_user(user))


@router.patch("/unverify/{user_id}")
async def unverify_account(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    user = await AdminService(db).set_verified(user_id, False, current_user)
    return ApiResponse(message="Account unverified successfully", data=serialize_user(user))


@router.delete("/users/{user_id}", response_model=ApiResponse[None])
async def delete_account(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Accounts are deactivated rather than removed"""
    await AdminService(db).deactivate(user_id, current_user)
    return ApiResponse(message="User deleted successfully")


@router.get("/analytics", response_model=ApiResponse[AnalyticsResponse])
async def get_analytics(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    return ApiResponse(data=await AdminService(db).analytics())
