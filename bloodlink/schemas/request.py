from datetime import datetime
from typing import Annotated, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from bloodlink.schemas.base_schema import BaseSchema, BloodGroup, RequestStatus, Urgency
from bloodlink.schemas.user import UserSummary


class BloodRequestCreate(BaseSchema):
    blood_bank_id: UUID = Field(..., description="Blood bank the units are requested from")
    blood_group: BloodGroup
    quantity: int = Field(..., ge=1, description="Units requested")
    urgency: Urgency = Field(default=Urgency.MEDIUM)
    patient_name: Optional[Annotated[str, StringConstraints(max_length=150)]] = None
    patient_age: Optional[int] = Field(None, ge=0, le=150)
    reason: Optional[Annotated[str, StringConstraints(max_length=500)]] = None
    notes: Optional[Annotated[str, StringConstraints(max_length=1000)]] = None


class BloodRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    hospital_id: UUID
    blood_bank_id: UUID
    blood_group: BloodGroup
    quantity: int
    urgency: Urgency
    status: RequestStatus
    patient_name: Optional[str] = None
    patient_age: Optional[int] = None
    reason: Optional[str] = None
    notes: Optional[str] = None
    responded_at: Optional[datetime] = None
    fulfilled_at: Optional[datetime] = None
    created_at: datetime
    hospital: Optional[UserSummary] = None
    blood_bank: Optional[UserSummary] = None


class BloodBankSearchResult(BaseModel):
    """Verified blood bank with its live stock per blood group"""

    id: UUID
    name: str
    email: str
    phone: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    inventory: Dict[str, int]
