from datetime import datetime
from typing import Annotated, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator

from bloodlink.schemas.base_schema import (
    BaseSchema,
    BloodGroup,
    LotSource,
    TransactionDirection,
    TransactionReason,
)
from bloodlink.utils.generators import to_naive_utc

OUTBOUND_REASONS = {
    TransactionReason.ISSUE,
    TransactionReason.TRANSFER_OUT,
    TransactionReason.EXPIRED,
    TransactionReason.OTHER,
}


class StockAddRequest(BaseSchema):
    blood_group: BloodGroup = Field(..., description="Blood group (e.g., A+, B-, O+)")
    quantity: int = Field(..., gt=0, description="Units added")
    expiry_date: Optional[datetime] = Field(None, description="Expiry of the lot")
    source: LotSource = Field(default=LotSource.DONATION)
    notes: Optional[Annotated[str, StringConstraints(max_length=500)]] = None

    @field_validator("expiry_date")
    @classmethod
    def strip_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v) if v is not None else v


class StockIssueRequest(BaseSchema):
    blood_group: BloodGroup
    quantity: int = Field(..., gt=0, description="Units to issue")
    reason: TransactionReason = Field(default=TransactionReason.ISSUE)
    related_request_id: Optional[UUID] = None
    notes: Optional[Annotated[str, StringConstraints(max_length=500)]] = None

    @field_validator("reason")
    @classmethod
    def validate_outbound_reason(cls, v: TransactionReason) -> TransactionReason:
        if v not in OUTBOUND_REASONS:
            raise ValueError(
                f"Reason must be one of: {', '.join(sorted(r.value for r in OUTBOUND_REASONS))}"
            )
        return v


class InventoryLotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    blood_bank_id: UUID
    blood_group: BloodGroup
    quantity: int
    expiry_date: Optional[datetime] = None
    source: LotSource
    notes: Optional[str] = None
    created_at: datetime


class InventoryTransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    blood_bank_id: UUID
    blood_group: BloodGroup
    direction: TransactionDirection
    quantity: int
    reason: TransactionReason
    related_request_id: Optional[UUID] = None
    related_camp_id: Optional[UUID] = None
    notes: Optional[str] = None
    created_at: datetime


class ConsumedLot(BaseModel):
    lot_id: UUID
    consumed: int
    remaining: int
    deleted: bool


class IssueResponse(BaseModel):
    transaction: InventoryTransactionResponse
    consumed_lots: List[ConsumedLot]


class InventoryAggregate(BaseModel):
    """Total units held by one blood bank for one blood group"""

    blood_bank_id: UUID
    blood_bank_name: Optional[str] = None
    blood_group: BloodGroup
    total_quantity: int
    lots: List[InventoryLotResponse] = []


class InventoryOverview(BaseModel):
    aggregated: List[InventoryAggregate]
    lots: List[InventoryLotResponse]
