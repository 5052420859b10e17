from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import delete, func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm.attributes import set_committed_value

from bloodlink.models.inventory import InventoryLot, InventoryTransaction
from bloodlink.models.request import BloodRequest
from bloodlink.models.user import BloodBank
from bloodlink.schemas.base_schema import (
    BloodGroup,
    LotSource,
    TransactionDirection,
    TransactionReason,
)
from bloodlink.schemas.inventory import InventoryAggregate, InventoryLotResponse, InventoryOverview
from bloodlink.utils.exceptions import (
    AuthorizationError,
    ConcurrentModificationError,
    InsufficientInventoryError,
    NotFoundError,
    ValidationError,
)
from bloodlink.utils.generators import utcnow
from bloodlink.utils.logging_config import get_logger, log_audit_event

logger = get_logger(__name__)


@dataclass
class LotConsumption:
    lot_id: UUID
    consumed: int
    remaining: int

    @property
    def deleted(self) -> bool:
        return self.remaining == 0


@dataclass
class IssueResult:
    transaction: InventoryTransaction
    consumed_lots: List[LotConsumption] = field(default_factory=list)


def _blood_group(value) -> BloodGroup:
    try:
        return BloodGroup(value)
    except ValueError as e:
        raise ValidationError(
            f"Blood group must be one of: {', '.join(BloodGroup.get_values())}"
        ) from e


def _positive_quantity(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError("Quantity must be a positive integer")
    return value


class InventoryLedger:
    """
    Lots of blood units per blood bank plus the append-only transaction log.

    Every inbound movement writes one lot and one ``in`` transaction; every
    outbound movement consumes lots oldest first and writes exactly one
    ``out`` transaction. Methods that take ``commit=False`` leave the unit of
    work open so a caller can compose them into a larger transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add_stock(
        self,
        blood_bank_id: UUID,
        blood_group: str,
        quantity: int,
        expiry_date: Optional[datetime] = None,
        source: LotSource = LotSource.DONATION,
        notes: Optional[str] = None,
        related_camp_id: Optional[UUID] = None,
        commit: bool = True,
    ) -> InventoryLot:
        """Create one lot and its inbound transaction"""
        group = _blood_group(blood_group)
        quantity = _positive_quantity(quantity)
        source = LotSource(source)

        lot = InventoryLot(
            blood_bank_id=blood_bank_id,
            blood_group=group,
            quantity=quantity,
            expiry_date=expiry_date,
            source=source,
            notes=notes,
        )
        transaction = InventoryTransaction(
            blood_bank_id=blood_bank_id,
            blood_group=group,
            direction=TransactionDirection.IN,
            quantity=quantity,
            reason=TransactionReason.for_source(source),
            related_camp_id=related_camp_id,
            notes=notes,
        )
        self.db.add_all([lot, transaction])
        await self.db.flush()

        if commit:
            await self.db.commit()

        log_audit_event(
            action="inventory_add",
            resource_type="inventory_lot",
            resource_id=str(lot.id),
            new_values={
                "blood_group": group.value,
                "quantity": quantity,
                "source": source.value,
            },
            user_id=str(blood_bank_id),
        )
        return lot

    async def issue(
        self,
        blood_bank_id: UUID,
        blood_group: str,
        quantity: int,
        reason: TransactionReason = TransactionReason.ISSUE,
        related_request_id: Optional[UUID] = None,
        notes: Optional[str] = None,
        commit: bool = True,
    ) -> IssueResult:
        """
        Consume ``quantity`` units, oldest lots first.

        Raises InsufficientInventoryError without touching any row when the
        lots hold fewer units than requested. Each lot is decremented with a
        conditional UPDATE; if another writer got there first the whole
        unit of work is rolled back and ConcurrentModificationError raised.
        """
        group = _blood_group(blood_group)
        quantity = _positive_quantity(quantity)
        if related_request_id is not None:
            await self._check_related_request(blood_bank_id, related_request_id)

        lots = await self._lots_oldest_first(blood_bank_id, group)
        available = sum(lot.quantity for lot in lots)
        if available < quantity:
            logger.info(
                "Issue refused: insufficient inventory",
                extra={
                    "event_type": "inventory_insufficient",
                    "blood_bank_id": str(blood_bank_id),
                    "blood_group": group.value,
                    "available": available,
                    "requested": quantity,
                },
            )
            raise InsufficientInventoryError(available=available, requested=quantity)

        consumed: List[LotConsumption] = []
        still_needed = quantity
        try:
            for lot in lots:
                if still_needed == 0:
                    break
                take = min(lot.quantity, still_needed)
                remaining = await self._decrement_lot(lot, take)
                if remaining == 0:
                    await self.db.delete(lot)
                consumed.append(LotConsumption(lot_id=lot.id, consumed=take, remaining=remaining))
                still_needed -= take

            transaction = InventoryTransaction(
                blood_bank_id=blood_bank_id,
                blood_group=group,
                direction=TransactionDirection.OUT,
                quantity=quantity,
                reason=TransactionReason(reason),
                related_request_id=related_request_id,
                notes=notes,
            )
            self.db.add(transaction)
            await self.db.flush()
        except ConcurrentModificationError:
            await self.db.rollback()
            raise

        if commit:
            await self.db.commit()

        log_audit_event(
            action="inventory_issue",
            resource_type="inventory_transaction",
            resource_id=str(transaction.id),
            new_values={
                "blood_group": group.value,
                "quantity": quantity,
                "reason": TransactionReason(reason).value,
                "lots": [
                    {"lot_id": str(c.lot_id), "consumed": c.consumed, "remaining": c.remaining}
                    for c in consumed
                ],
            },
            user_id=str(blood_bank_id),
        )
        return IssueResult(transaction=transaction, consumed_lots=consumed)

    async def _check_related_request(self, blood_bank_id: UUID, request_id: UUID) -> None:
        """An outbound movement may only reference a request addressed to the same blood bank"""
        owner_id = (
            await self.db.execute(
                select(BloodRequest.blood_bank_id).where(BloodRequest.id == request_id)
            )
        ).scalar_one_or_none()
        if owner_id is None:
            raise NotFoundError("Related request not found")
        if owner_id != blood_bank_id:
            raise AuthorizationError("Related request belongs to another blood bank")

    async def _lots_oldest_first(self, blood_bank_id: UUID, group: BloodGroup) -> List[InventoryLot]:
        """
        Lots holding units, by creation time. Lots created in the same
        microsecond are consumed in id order, which is stable but not
        necessarily insertion order.
        """
        result = await self.db.execute(
            select(InventoryLot)
            .where(
                InventoryLot.blood_bank_id == blood_bank_id,
                InventoryLot.blood_group == group,
                InventoryLot.quantity > 0,
            )
            .order_by(InventoryLot.created_at.asc(), InventoryLot.id.asc())
        )
        return list(result.scalars().all())

    async def _decrement_lot(self, lot: InventoryLot, take: int) -> int:
        """Atomically subtract ``take`` units; returns the lot's remaining quantity"""
        result = await self.db.execute(
            update(InventoryLot)
            .where(InventoryLot.id == lot.id, InventoryLot.quantity >= take)
            .values(quantity=InventoryLot.quantity - take, updated_at=utcnow())
            .returning(InventoryLot.quantity),
            execution_options={"synchronize_session": False},
        )
        remaining = result.scalar_one_or_none()
        if remaining is None:
            logger.warning(
                "Lot changed during issue",
                extra={"event_type": "inventory_conflict", "lot_id": str(lot.id)},
            )
            raise ConcurrentModificationError()

        set_committed_value(lot, "quantity", remaining)
        return remaining

    async def get_aggregate(
        self, blood_bank_id: Optional[UUID] = None
    ) -> Dict[Tuple[UUID, BloodGroup], int]:
        """Total units per (blood bank, blood group) over current lots"""
        query = select(
            InventoryLot.blood_bank_id,
            InventoryLot.blood_group,
            func.sum(InventoryLot.quantity),
        ).group_by(InventoryLot.blood_bank_id, InventoryLot.blood_group)
        if blood_bank_id is not None:
            query = query.where(InventoryLot.blood_bank_id == blood_bank_id)

        result = await self.db.execute(query)
        return {(bank_id, BloodGroup(group)): int(total or 0) for bank_id, group, total in result.all()}

    async def stock_by_group(self, blood_bank_id: UUID) -> Dict[str, int]:
        aggregate = await self.get_aggregate(blood_bank_id)
        return {group.value: total for (_, group), total in aggregate.items()}

    async def list_lots(self, blood_bank_id: Optional[UUID] = None) -> List[InventoryLot]:
        query = select(InventoryLot).order_by(
            InventoryLot.blood_group.asc(), InventoryLot.created_at.asc()
        )
        if blood_bank_id is not None:
            query = query.where(InventoryLot.blood_bank_id == blood_bank_id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_overview(self, blood_bank_id: Optional[UUID] = None) -> InventoryOverview:
        """Aggregated totals with their lots, plus the raw lot list"""
        lots = await self.list_lots(blood_bank_id)

        bank_ids = {lot.blood_bank_id for lot in lots}
        names: Dict[UUID, str] = {}
        if bank_ids:
            result = await self.db.execute(
                select(BloodBank.id, BloodBank.name).where(BloodBank.id.in_(bank_ids))
            )
            names = dict(result.all())

        grouped: Dict[Tuple[UUID, BloodGroup], InventoryAggregate] = {}
        for lot in lots:
            key = (lot.blood_bank_id, BloodGroup(lot.blood_group))
            entry = grouped.get(key)
            if entry is None:
                entry = grouped[key] = InventoryAggregate(
                    blood_bank_id=lot.blood_bank_id,
                    blood_bank_name=names.get(lot.blood_bank_id),
                    blood_group=key[1],
                    total_quantity=0,
                    lots=[],
                )
            entry.total_quantity += lot.quantity
            entry.lots.append(InventoryLotResponse.model_validate(lot))

        return InventoryOverview(
            aggregated=list(grouped.values()),
            lots=[InventoryLotResponse.model_validate(lot) for lot in lots],
        )

    async def list_transactions(self, blood_bank_id: UUID, limit: int = 100) -> List[InventoryTransaction]:
        result = await self.db.execute(
            select(InventoryTransaction)
            .where(InventoryTransaction.blood_bank_id == blood_bank_id)
            .order_by(InventoryTransaction.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def sweep_expired(self, now: Optional[datetime] = None) -> int:
        """
        Remove every lot whose expiry date is before today, one ``expired``
        transaction each. Each lot is deleted on its own and the transaction
        records the quantity the lot held at that moment.
        """
        now = now or utcnow()
        start_of_today = datetime(now.year, now.month, now.day)

        result = await self.db.execute(
            select(InventoryLot.id).where(
                InventoryLot.expiry_date.is_not(None),
                InventoryLot.expiry_date < start_of_today,
            )
        )
        lot_ids = list(result.scalars().all())

        removed = 0
        for lot_id in lot_ids:
            deleted = (
                await self.db.execute(
                    delete(InventoryLot)
                    .where(InventoryLot.id == lot_id)
                    .returning(
                        InventoryLot.blood_bank_id,
                        InventoryLot.blood_group,
                        InventoryLot.quantity,
                        InventoryLot.expiry_date,
                    )
                )
            ).one_or_none()
            # Already drained and removed by a concurrent issue
            if deleted is None:
                continue

            bank_id, group, quantity, expiry_date = deleted
            removed += 1
            if quantity > 0:
                self.db.add(
                    InventoryTransaction(
                        blood_bank_id=bank_id,
                        blood_group=BloodGroup(group),
                        direction=TransactionDirection.OUT,
                        quantity=quantity,
                        reason=TransactionReason.EXPIRED,
                        notes=f"Lot {lot_id} expired on {expiry_date:%Y-%m-%d}",
                    )
                )

        if removed:
            await self.db.commit()

        logger.info(
            "Expired lots removed",
            extra={"event_type": "inventory_expiry_sweep", "lots_removed": removed},
        )
        return removed
