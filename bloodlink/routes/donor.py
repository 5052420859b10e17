from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bloodlink.dependencies import get_db
from bloodlink.models.user import User
from bloodlink.schemas.base_schema import ApiResponse, UserRole
from bloodlink.schemas.camp import DonationResponse, EligibilityResponse
from bloodlink.services.donor import DonorService
from bloodlink.utils.permission_checker import require_role

router = APIRouter(prefix="/donor", tags=["donor"])


@router.get("/donations", response_model=ApiResponse[List[DonationResponse]])
async def list_donations(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.DONOR)),
):
    donations = await DonorService(db).list_donations(current_user)
    return ApiResponse(data=[DonationResponse.model_validate(d) for d in donations])


@router.get("/eligibility", response_model=ApiResponse[EligibilityResponse])
async def check_eligibility(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.DONOR)),
):
    """Donors must wait a minimum number of days between donations"""
    eligibility = await DonorService(db).check_eligibility(current_user)
    return ApiResponse(data=eligibility)
