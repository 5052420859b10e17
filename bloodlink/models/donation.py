import uuid
from datetime import datetime
from typing import Optional
from sqlalchemy import Integer, DateTime, Boolean, Text, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from bloodlink.db.base import Base, UUID, enum_type
from bloodlink.schemas.base_schema import BloodGroup
from bloodlink.utils.generators import utcnow


class Donation(Base):
    """One physical donation event. Immutable apart from the certificate flag."""

    __tablename__ = "donations"

    # --- Columns ---
    id: Mapped[uuid.UUID] = mapped_column(UUID, primary_key=True, default=uuid.uuid4)
    blood_group: Mapped[BloodGroup] = mapped_column(enum_type(BloodGroup, 3), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    donation_date: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    expiry_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    certificate_generated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    # --- Relationships ---
    donor_id: Mapped[uuid.UUID] = mapped_column(
        UUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    blood_bank_id: Mapped[uuid.UUID] = mapped_column(
        UUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    camp_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID, ForeignKey("camps.id", ondelete="SET NULL"), nullable=True
    )

    donor = relationship("Donor", foreign_keys=[donor_id])
    blood_bank = relationship("BloodBank", foreign_keys=[blood_bank_id])
    camp = relationship("Camp", foreign_keys=[camp_id])

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_donations_quantity_positive"),
        Index("idx_donations_donor_date", "donor_id", "donation_date"),
    )
