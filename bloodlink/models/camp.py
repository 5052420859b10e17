import uuid
from datetime import datetime
from typing import List, Optional
from sqlalchemy import (
    String, Integer, DateTime, Boolean, Float, Text, ForeignKey, Index, UniqueConstraint
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from bloodlink.db.base import Base, UUID
from bloodlink.utils.generators import utcnow


class Camp(Base):
    """A scheduled donation event hosted by a blood bank."""

    __tablename__ = "camps"

    # --- Columns ---
    id: Mapped[uuid.UUID] = mapped_column(UUID, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Schedule
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    start_time: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    end_time: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    # Location
    address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    zip_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    target_donors: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    # --- Relationships ---
    blood_bank_id: Mapped[uuid.UUID] = mapped_column(
        UUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    blood_bank = relationship("BloodBank", foreign_keys=[blood_bank_id])
    registrations: Mapped[List["CampRegistration"]] = relationship(
        "CampRegistration",
        back_populates="camp",
        cascade="all, delete-orphan",
        order_by="CampRegistration.registered_at",
    )

    def __str__(self) -> str:
        return self.name

    __table_args__ = (Index("idx_camps_active_date", "is_active", "date"),)


class CampRegistration(Base):
    """Donor sign-up for a camp; one row per (camp, donor)."""

    __tablename__ = "camp_registrations"

    id: Mapped[uuid.UUID] = mapped_column(UUID, primary_key=True, default=uuid.uuid4)
    registered_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    camp_id: Mapped[uuid.UUID] = mapped_column(
        UUID, ForeignKey("camps.id", ondelete="CASCADE"), nullable=False
    )
    donor_id: Mapped[uuid.UUID] = mapped_column(
        UUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    camp: Mapped["Camp"] = relationship("Camp", back_populates="registrations")
    donor = relationship("Donor", foreign_keys=[donor_id])

    __table_args__ = (
        UniqueConstraint("camp_id", "donor_id", name="uq_camp_registration_donor"),
    )
