from datetime import date, datetime
from typing import Annotated, Literal, Optional, Union
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    SerializeAsAny,
    StringConstraints,
    field_validator,
)

from bloodlink.schemas.base_schema import BaseSchema, BloodGroup, Gender, UserRole


Name = Annotated[str, StringConstraints(min_length=2, max_length=150)]
Password = Annotated[str, StringConstraints(min_length=6, max_length=128)]


# --- Registration ---
class RegisterBase(BaseSchema):
    email: EmailStr
    password: Password
    name: Name
    phone: Optional[Annotated[str, StringConstraints(max_length=20)]] = None
    street: Optional[str] = None
    city: Optional[Annotated[str, StringConstraints(max_length=100)]] = None
    state: Optional[Annotated[str, StringConstraints(max_length=100)]] = None
    zip_code: Optional[Annotated[str, StringConstraints(max_length=20)]] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()


class DonorRegister(RegisterBase):
    role: Literal["donor"]
    blood_group: Optional[BloodGroup] = None
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None

    @field_validator("date_of_birth")
    @classmethod
    def validate_date_of_birth(cls, v: Optional[date]) -> Optional[date]:
        if v is not None and v > date.today():
            raise ValueError("Date of birth cannot be in the future")
        return v


class BloodBankRegister(RegisterBase):
    role: Literal["bloodbank"]
    license_number: Optional[Annotated[str, StringConstraints(max_length=100)]] = None


class HospitalRegister(RegisterBase):
    role: Literal["hospital"]
    registration_number: Optional[Annotated[str, StringConstraints(max_length=100)]] = None


UserRegister = Union[DonorRegister, BloodBankRegister, HospitalRegister]


class LoginRequest(BaseSchema):
    email: EmailStr
    password: str


# --- Profile updates ---
class ProfileUpdate(BaseSchema):
    """Fields every role may change on its own profile"""

    name: Optional[Name] = None
    phone: Optional[Annotated[str, StringConstraints(max_length=20)]] = None
    street: Optional[str] = None
    city: Optional[Annotated[str, StringConstraints(max_length=100)]] = None
    state: Optional[Annotated[str, StringConstraints(max_length=100)]] = None
    zip_code: Optional[Annotated[str, StringConstraints(max_length=20)]] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    @field_validator("name")
    @classmethod
    def name_not_null(cls, v: Optional[str]) -> str:
        if v is None:
            raise ValueError("Name cannot be null")
        return v


class DonorProfileUpdate(ProfileUpdate):
    blood_group: Optional[BloodGroup] = None
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None


class BloodBankProfileUpdate(ProfileUpdate):
    license_number: Optional[str] = None


class HospitalProfileUpdate(ProfileUpdate):
    registration_number: Optional[str] = None


PROFILE_UPDATE_SCHEMAS = {
    UserRole.ADMIN.value: ProfileUpdate,
    UserRole.BLOOD_BANK.value: BloodBankProfileUpdate,
    UserRole.HOSPITAL.value: HospitalProfileUpdate,
    UserRole.DONOR.value: DonorProfileUpdate,
}


# --- Responses ---
class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    role: UserRole
    name: str
    phone: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_verified: bool
    is_active: bool
    created_at: datetime


class DonorResponse(UserResponse):
    blood_group: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    last_donation_date: Optional[datetime] = None


class BloodBankResponse(UserResponse):
    license_number: Optional[str] = None


class HospitalResponse(UserResponse):
    registration_number: Optional[str] = None


_RESPONSE_SCHEMAS = {
    UserRole.ADMIN.value: UserResponse,
    UserRole.BLOOD_BANK.value: BloodBankResponse,
    UserRole.HOSPITAL.value: HospitalResponse,
    UserRole.DONOR.value: DonorResponse,
}


def serialize_user(user) -> UserResponse:
    """Build the response schema matching the account's role"""
    return _RESPONSE_SCHEMAS[user.role].model_validate(user)


class UserSummary(BaseModel):
    """Compact account reference embedded in other resources"""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    role: UserRole


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: SerializeAsAny[UserResponse]
