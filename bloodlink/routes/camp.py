from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from bloodlink.dependencies import get_db
from bloodlink.models.user import User
from bloodlink.schemas.base_schema import ApiResponse, UserRole
from bloodlink.schemas.camp import (
    CampCreate,
    CampResponse,
    CampUpdate,
    DonationCreate,
    DonationResponse,
)
from bloodlink.services.camp import CampService
from bloodlink.utils.permission_checker import require_role, require_verified_blood_bank
from bloodlink.utils.security import get_current_user

router = APIRouter(prefix="/camps", tags=["camps"])


@router.get("", response_model=ApiResponse[List[CampResponse]])
async def list_camps(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    camps = await CampService(db).list_camps(current_user)
    return ApiResponse(data=[CampResponse.model_validate(c) for c in camps])


@router.post("", response_model=ApiResponse[CampResponse], status_code=status.HTTP_201_CREATED)
async def create_camp(
    camp_data: CampCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_verified_blood_bank),
):
    camp = await CampService(db).create_camp(current_user, camp_data)
    return ApiResponse(message="Camp created successfully", data=CampResponse.model_validate(camp))


@router.patch("/{camp_id}", response_model=ApiResponse[CampResponse])
async def update_camp(
    camp_id: UUID,
    camp_data: CampUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_verified_blood_bank),
):
    camp = await CampService(db).update_camp(camp_id, current_user, camp_data)
    return ApiResponse(message="Camp updated successfully", data=CampResponse.model_validate(camp))


@router.delete("/{camp_id}", response_model=ApiResponse[None])
async def deactivate_camp(
    camp_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_verified_blood_bank),
):
    await CampService(db).deactivate_camp(camp_id, current_user)
    return ApiResponse(message="Camp deactivated successfully")


@router.post("/{camp_id}/register", response_model=ApiResponse[CampResponse])
async def register_for_camp(
    camp_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.DONOR)),
):
    camp = await CampService(db).register_for_camp(camp_id, current_user)
    return ApiResponse(
        message="Registered for camp successfully", data=CampResponse.model_validate(camp)
    )


@router.post(
    "/{camp_id}/donations",
    response_model=ApiResponse[DonationResponse],
    status_code=status.HTTP_201_CREATED,
)
async def record_donation(
    camp_id: UUID,
    donation_data: DonationCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_verified_blood_bank),
):
    """Record a donation taken at the camp and add it to the blood bank's stock"""
    donation = await CampService(db).record_donation(camp_id, current_user, donation_data)
    return ApiResponse(
        message="Donation recorded successfully",
        data=DonationResponse.model_validate(donation),
    )
