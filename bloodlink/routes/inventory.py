from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from bloodlink.config import settings
from bloodlink.dependencies import get_db
from bloodlink.models.user import User
from bloodlink.schemas.base_schema import ApiResponse, UserRole
from bloodlink.schemas.inventory import (
    ConsumedLot,
    InventoryLotResponse,
    InventoryOverview,
    InventoryTransactionResponse,
    IssueResponse,
    StockAddRequest,
    StockIssueRequest,
)
from bloodlink.services.inventory import InventoryLedger
from bloodlink.utils.permission_checker import require_verified_blood_bank
from bloodlink.utils.security import get_current_user

router = APIRouter(prefix="/inventory", tags=["inventory"])


@router.get("", response_model=ApiResponse[InventoryOverview])
async def get_inventory(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Blood banks see their own stock, everyone else sees every blood bank.
    Returns per (blood bank, blood group) totals with their lots plus the raw lots.
    """
    blood_bank_id = current_user.id if current_user.role == UserRole.BLOOD_BANK.value else None
    overview = await InventoryLedger(db).get_overview(blood_bank_id)
    return ApiResponse(data=overview)


@router.post(
    "",
    response_model=ApiResponse[InventoryLotResponse],
    status_code=status.HTTP_201_CREATED,
)
async def add_stock(
    stock: StockAddRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_verified_blood_bank),
):
    lot = await InventoryLedger(db).add_stock(
        blood_bank_id=current_user.id,
        blood_group=stock.blood_group,
        quantity=stock.quantity,
        expiry_date=stock.expiry_date,
        source=stock.source,
        notes=stock.notes,
    )
    return ApiResponse(
        message="Inventory added successfully",
        data=InventoryLotResponse.model_validate(lot),
    )


@router.post("/issue", response_model=ApiResponse[IssueResponse])
async def issue_stock(
    issue: StockIssueRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_verified_blood_bank),
):
    """Manually issue units, oldest lots first"""
    result = await InventoryLedger(db).issue(
        blood_bank_id=current_user.id,
        blood_group=issue.blood_group,
        quantity=issue.quantity,
        reason=issue.reason,
        related_request_id=issue.related_request_id,
        notes=issue.notes,
    )
    return ApiResponse(
        message="Blood issued successfully",
        data=IssueResponse(
            transaction=InventoryTransactionResponse.model_validate(result.transaction),
            consumed_lots=[
                ConsumedLot(
                    lot_id=c.lot_id,
                    consumed=c.consumed,
                    remaining=c.remaining,
                    deleted=c.deleted,
                )
                for c in result.consumed_lots
            ],
        ),
    )


@router.get(
    "/transactions",
    response_model=ApiResponse[List[InventoryTransactionResponse]],
)
async def list_transactions(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_verified_blood_bank),
):
    """Newest movements of the caller's own ledger"""
    transactions = await InventoryLedger(db).list_transactions(
        current_user.id, limit=settings.TRANSACTION_LIST_LIMIT
    )
    return ApiResponse(
        data=[InventoryTransactionResponse.model_validate(t) for t in transactions]
    )
