import uuid
from datetime import date, datetime
from typing import Optional
from sqlalchemy import String, Boolean, DateTime, Date, Float, Index
from sqlalchemy.orm import Mapped, mapped_column
from bloodlink.db.base import Base, UUID
from bloodlink.schemas.base_schema import UserRole
from bloodlink.utils.generators import utcnow


class User(Base):
    """
    Account shared by every party in the system.

    The ``role`` column is the discriminator: rows are loaded as
    ``Administrator``, ``BloodBank``, ``Hospital`` or ``Donor`` and each
    subclass carries only its own profile fields.
    """

    __tablename__ = "users"

    # --- Columns ---
    id: Mapped[uuid.UUID] = mapped_column(
        UUID, primary_key=True, default=uuid.uuid4, index=True
    )
    email: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    # Common profile
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    street: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    state: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    zip_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Administrator-controlled trust marker for blood banks and hospitals
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    # Base-class loads carry every role's columns
    __mapper_args__ = {"polymorphic_on": "role", "with_polymorphic": "*"}

    __table_args__ = (Index("idx_users_role_city", "role", "city"),)

    # --- Methods ---
    def __str__(self) -> str:
        return f"{self.name} ({self.email})"

    def has_role(self, *roles: str) -> bool:
        return self.role in {UserRole(r).value for r in roles}


class Administrator(User):
    __mapper_args__ = {"polymorphic_identity": UserRole.ADMIN.value}


class BloodBank(User):
    license_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    __mapper_args__ = {"polymorphic_identity": UserRole.BLOOD_BANK.value}


class Hospital(User):
    registration_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    __mapper_args__ = {"polymorphic_identity": UserRole.HOSPITAL.value}


class Donor(User):
    blood_group: Mapped[Optional[str]] = mapped_column(String(3), nullable=True)
    date_of_birth: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    gender: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    last_donation_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    __mapper_args__ = {"polymorphic_identity": UserRole.DONOR.value}


ROLE_MODELS = {
    UserRole.ADMIN.value: Administrator,
    UserRole.BLOOD_BANK.value: BloodBank,
    UserRole.HOSPITAL.value: Hospital,
    UserRole.DONOR.value: Donor,
}
