from datetime import datetime
from typing import Annotated, List, Optional
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    ValidationInfo,
    field_validator,
)

from bloodlink.schemas.base_schema import BaseSchema, BloodGroup
from bloodlink.utils.generators import to_naive_utc

TimeOfDay = Annotated[str, StringConstraints(pattern=r"^([01]\d|2[0-3]):[0-5]\d$")]


class CampCreate(BaseSchema):
    name: Annotated[str, StringConstraints(min_length=2, max_length=200)]
    description: Optional[str] = None
    date: datetime
    start_time: TimeOfDay
    end_time: TimeOfDay
    address: Annotated[str, StringConstraints(min_length=1, max_length=255)]
    city: Annotated[str, StringConstraints(min_length=1, max_length=100)]
    state: Annotated[str, StringConstraints(min_length=1, max_length=100)]
    zip_code: Optional[Annotated[str, StringConstraints(max_length=20)]] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    target_donors: int = Field(default=0, ge=0)

    @field_validator("date")
    @classmethod
    def strip_timezone(cls, v: datetime) -> datetime:
        return to_naive_utc(v)


class CampUpdate(BaseSchema):
    name: Optional[Annotated[str, StringConstraints(min_length=2, max_length=200)]] = None
    description: Optional[str] = None
    date: Optional[datetime] = None
    start_time: Optional[TimeOfDay] = None
    end_time: Optional[TimeOfDay] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    target_donors: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None

    @field_validator("date")
    @classmethod
    def strip_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v) if v is not None else v

    @field_validator("name", "date", "target_donors", "is_active")
    @classmethod
    def required_columns_not_null(cls, v, info: ValidationInfo):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class CampRegistrationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    donor_id: UUID
    registered_at: datetime


class CampResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    blood_bank_id: UUID
    name: str
    description: Optional[str] = None
    date: datetime
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    target_donors: int
    is_active: bool
    created_at: datetime
    registrations: List[CampRegistrationResponse] = []


class DonationCreate(BaseSchema):
    donor_id: UUID
    blood_group: BloodGroup
    quantity: int = Field(default=1, ge=1)
    notes: Optional[Annotated[str, StringConstraints(max_length=500)]] = None


class DonationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    donor_id: UUID
    blood_bank_id: UUID
    camp_id: Optional[UUID] = None
    blood_group: BloodGroup
    quantity: int
    donation_date: datetime
    expiry_date: datetime
    notes: Optional[str] = None
    certificate_generated: bool


class EligibilityResponse(BaseModel):
    can_donate: bool
    reason: Optional[str] = None
    last_donation_date: Optional[datetime] = None
    days_since_last_donation: Optional[int] = None
