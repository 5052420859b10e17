from enum import Enum
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema shared by request bodies"""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        extra="forbid",
        from_attributes=True,
    )


class BloodGroup(str, Enum):
    """ABO/Rh blood groups"""

    A_POSITIVE = "A+"
    A_NEGATIVE = "A-"
    B_POSITIVE = "B+"
    B_NEGATIVE = "B-"
    AB_POSITIVE = "AB+"
    AB_NEGATIVE = "AB-"
    O_POSITIVE = "O+"
    O_NEGATIVE = "O-"

    @classmethod
    def get_values(cls) -> List[str]:
        """Get all valid blood group values"""
        return [item.value for item in cls]


class UserRole(str, Enum):
    ADMIN = "admin"
    BLOOD_BANK = "bloodbank"
    HOSPITAL = "hospital"
    DONOR = "donor"


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    FULFILLED = "fulfilled"


class LotSource(str, Enum):
    DONATION = "donation"
    TRANSFER = "transfer"
    PURCHASE = "purchase"


class TransactionDirection(str, Enum):
    IN = "in"
    OUT = "out"


class TransactionReason(str, Enum):
    DONATION = "donation"
    ISSUE = "issue"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    EXPIRED = "expired"
    OTHER = "other"

    @classmethod
    def for_source(cls, source: "LotSource") -> "TransactionReason":
        """Reason recorded for an inbound movement from the given lot source"""
        return {
            LotSource.DONATION: cls.DONATION,
            LotSource.TRANSFER: cls.TRANSFER_IN,
            LotSource.PURCHASE: cls.OTHER,
        }[LotSource(source)]


class NotificationType(str, Enum):
    REQUEST = "request"
    INFO = "info"
    ALERT = "alert"


T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Standard response envelope"""

    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    errors: Optional[List[Any]] = None
