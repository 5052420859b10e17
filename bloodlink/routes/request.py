from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from bloodlink.dependencies import get_db
from bloodlink.models.user import User
from bloodlink.schemas.base_schema import ApiResponse, BloodGroup, UserRole
from bloodlink.schemas.request import (
    BloodBankSearchResult,
    BloodRequestCreate,
    BloodRequestResponse,
)
from bloodlink.services.request import BloodRequestService
from bloodlink.utils.permission_checker import require_role, require_verified_blood_bank
from bloodlink.utils.security import get_current_user

router = APIRouter(prefix="/requests", tags=["blood requests"])


@router.get("", response_model=ApiResponse[List[BloodRequestResponse]])
async def list_requests(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    requests = await BloodRequestService(db).list_requests(current_user)
    return ApiResponse(data=[BloodRequestResponse.model_validate(r) for r in requests])


@router.post(
    "",
    response_model=ApiResponse[BloodRequestResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_request(
    request_data: BloodRequestCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.HOSPITAL)),
):
    """
    Ask a verified blood bank for units. The blood bank is notified, and so
    are donors living in the hospital's city.
    """
    blood_request = await BloodRequestService(db).create_request(current_user, request_data)
    return ApiResponse(
        message="Blood request created successfully",
        data=BloodRequestResponse.model_validate(blood_request),
    )


@router.get(
    "/search/bloodbanks",
    response_model=ApiResponse[List[BloodBankSearchResult]],
)
async def search_blood_banks(
    blood_group: Optional[BloodGroup] = Query(None, description="Only report stock of this group"),
    city: Optional[str] = Query(None, max_length=100),
    state: Optional[str] = Query(None, max_length=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.HOSPITAL)),
):
    results = await BloodRequestService(db).search_blood_banks(
        blood_group=blood_group, city=city, state=state
    )
    return ApiResponse(data=results)


@router.patch("/{request_id}/approve", response_model=ApiResponse[BloodRequestResponse])
async def approve_request(
    request_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_verified_blood_bank),
):
    blood_request = await BloodRequestService(db).approve_request(request_id, current_user)
    return ApiResponse(
        message="Request approved and blood issued successfully",
        data=BloodRequestResponse.model_validate(blood_request),
    )


@router.patch("/{request_id}/reject", response_model=ApiResponse[BloodRequestResponse])
async def reject_request(
    request_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_verified_blood_bank),
):
    blood_request = await BloodRequestService(db).reject_request(request_id, current_user)
    return ApiResponse(
        message="Request rejected",
        data=BloodRequestResponse.model_validate(blood_request),
    )


@router.patch("/{request_id}/fulfill", response_model=ApiResponse[BloodRequestResponse])
async def fulfill_request(
    request_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.HOSPITAL)),
):
    blood_request = await BloodRequestService(db).fulfill_request(request_id, current_user)
    return ApiResponse(
        message="Request marked as fulfilled",
        data=BloodRequestResponse.model_validate(blood_request),
    )
