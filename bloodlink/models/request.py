import uuid
from datetime import datetime
from typing import Optional
from sqlalchemy import String, Integer, DateTime, ForeignKey, Text, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from bloodlink.db.base import Base, UUID, enum_type
from bloodlink.schemas.base_schema import BloodGroup, RequestStatus, Urgency
from bloodlink.utils.generators import utcnow


class BloodRequest(Base):
    """A hospital's request for units from one blood bank."""

    __tablename__ = "blood_requests"

    # --- Columns ---
    id: Mapped[uuid.UUID] = mapped_column(UUID, primary_key=True, default=uuid.uuid4)
    blood_group: Mapped[BloodGroup] = mapped_column(enum_type(BloodGroup, 3), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    urgency: Mapped[Urgency] = mapped_column(
        enum_type(Urgency), nullable=False, default=Urgency.MEDIUM
    )
    status: Mapped[RequestStatus] = mapped_column(
        enum_type(RequestStatus), nullable=False, default=RequestStatus.PENDING, index=True
    )

    # Patient metadata
    patient_name: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)
    patient_age: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    responded_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    fulfilled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    # --- Relationships ---
    hospital_id: Mapped[uuid.UUID] = mapped_column(
        UUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    blood_bank_id: Mapped[uuid.UUID] = mapped_column(
        UUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    hospital = relationship("Hospital", foreign_keys=[hospital_id])
    blood_bank = relationship("BloodBank", foreign_keys=[blood_bank_id])

    def __repr__(self) -> str:
        return f"<BloodRequest(id={self.id}, hospital_id={self.hospital_id}, status={self.status})>"

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_blood_requests_quantity_positive"),
        Index("idx_request_hospital_created", "hospital_id", "created_at"),
        Index("idx_request_bank_status", "blood_bank_id", "status"),
    )
