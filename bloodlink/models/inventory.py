import uuid
from datetime import datetime
from typing import Optional
from sqlalchemy import String, DateTime, Integer, Text, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from bloodlink.db.base import Base, UUID, enum_type
from bloodlink.schemas.base_schema import (
    BloodGroup,
    LotSource,
    TransactionDirection,
    TransactionReason,
)
from bloodlink.utils.generators import utcnow


class InventoryLot(Base):
    """Units of one blood group added to a blood bank at one time."""

    __tablename__ = "inventory_lots"

    # --- Columns ---
    id: Mapped[uuid.UUID] = mapped_column(UUID, primary_key=True, default=uuid.uuid4)
    blood_group: Mapped[BloodGroup] = mapped_column(enum_type(BloodGroup, 3), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    expiry_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, index=True)
    source: Mapped[LotSource] = mapped_column(
        enum_type(LotSource), nullable=False, default=LotSource.DONATION
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    # --- Relationships ---
    blood_bank_id: Mapped[uuid.UUID] = mapped_column(
        UUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    blood_bank = relationship("BloodBank", foreign_keys=[blood_bank_id])

    def __str__(self) -> str:
        return f"{self.blood_group} x{self.quantity}"

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_inventory_lots_quantity_non_negative"),
        Index("idx_lots_bank_group_created", "blood_bank_id", "blood_group", "created_at"),
    )


class InventoryTransaction(Base):
    """Append-only record of every inbound and outbound ledger movement."""

    __tablename__ = "inventory_transactions"

    # --- Columns ---
    id: Mapped[uuid.UUID] = mapped_column(UUID, primary_key=True, default=uuid.uuid4)
    blood_group: Mapped[BloodGroup] = mapped_column(enum_type(BloodGroup, 3), nullable=False)
    direction: Mapped[TransactionDirection] = mapped_column(
        enum_type(TransactionDirection, 3), nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[TransactionReason] = mapped_column(enum_type(TransactionReason), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)

    # --- Relationships ---
    blood_bank_id: Mapped[uuid.UUID] = mapped_column(
        UUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    related_request_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID, ForeignKey("blood_requests.id", ondelete="SET NULL"), nullable=True, index=True
    )
    related_camp_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID, ForeignKey("camps.id", ondelete="SET NULL"), nullable=True
    )

    blood_bank = relationship("BloodBank", foreign_keys=[blood_bank_id])
    related_request = relationship("BloodRequest", foreign_keys=[related_request_id])
    related_camp = relationship("Camp", foreign_keys=[related_camp_id])

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_inventory_transactions_quantity_positive"),
        Index("idx_transactions_bank_created", "blood_bank_id", "created_at"),
    )
