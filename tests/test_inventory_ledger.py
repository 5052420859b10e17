"""
Inventory ledger tests: stock intake, FIFO issuance, shortage handling,
conflicting writers and the expiry sweep.
"""

from datetime import timedelta
from uuid import uuid4

import pytest
from sqlalchemy import func, select, update

from bloodlink.models.inventory import InventoryLot, InventoryTransaction
from bloodlink.schemas.base_schema import (
    BloodGroup,
    LotSource,
    TransactionDirection,
    TransactionReason,
)
from bloodlink.services.inventory import InventoryLedger
from bloodlink.utils.exceptions import (
    AuthorizationError,
    ConcurrentModificationError,
    InsufficientInventoryError,
    NotFoundError,
    ValidationError,
)
from bloodlink.utils.generators import utcnow
from tests.conftest import TestDataFactory


async def _transactions(db, blood_bank_id, direction=None):
    query = select(InventoryTransaction).where(InventoryTransaction.blood_bank_id == blood_bank_id)
    if direction is not None:
        query = query.where(InventoryTransaction.direction == direction)
    return list((await db.execute(query)).scalars().all())


class TestAddStock:
    async def test_add_stock_creates_lot_and_inbound_transaction(self, db_session, blood_bank):
        ledger = InventoryLedger(db_session)
        expiry = utcnow() + timedelta(days=30)

        lot = await ledger.add_stock(blood_bank.id, "A+", 12, expiry_date=expiry)

        assert lot.quantity == 12
        assert lot.blood_group == BloodGroup.A_POSITIVE
        assert lot.expiry_date == expiry

        transactions = await _transactions(db_session, blood_bank.id)
        assert len(transactions) == 1
        assert transactions[0].direction == TransactionDirection.IN
        assert transactions[0].reason == TransactionReason.DONATION
        assert transactions[0].quantity == 12

    async def test_source_maps_to_transaction_reason(self, db_session, blood_bank):
        ledger = InventoryLedger(db_session)
        await ledger.add_stock(blood_bank.id, "B-", 3, source=LotSource.TRANSFER)

        transactions = await _transactions(db_session, blood_bank.id)
        assert transactions[0].reason == TransactionReason.TRANSFER_IN

    @pytest.mark.parametrize("quantity", [0, -4])
    async def test_non_positive_quantity_rejected(self, db_session, blood_bank, quantity):
        with pytest.raises(ValidationError):
            await InventoryLedger(db_session).add_stock(blood_bank.id, "O+", quantity)

        assert await _transactions(db_session, blood_bank.id) == []

    async def test_unknown_blood_group_rejected(self, db_session, blood_bank):
        with pytest.raises(ValidationError) as exc_info:
            await InventoryLedger(db_session).add_stock(blood_bank.id, "Z+", 2)

        assert "Blood group must be one of" in exc_info.value.message


class TestIssue:
    async def test_issue_consumes_oldest_lot_first(self, db_session, blood_bank):
        now = utcnow()
        older = await TestDataFactory.create_lot(
            db_session, blood_bank, 5, created_at=now - timedelta(days=2)
        )
        newer = await TestDataFactory.create_lot(
            db_session, blood_bank, 7, created_at=now - timedelta(days=1)
        )
        older_id, newer_id = older.id, newer.id

        result = await InventoryLedger(db_session).issue(blood_bank.id, "O+", 5)

        assert [(c.lot_id, c.consumed, c.remaining) for c in result.consumed_lots] == [
            (older_id, 5, 0)
        ]
        assert result.consumed_lots[0].deleted is True

        remaining = (await db_session.execute(select(InventoryLot))).scalars().all()
        assert [(lot.id, lot.quantity) for lot in remaining] == [(newer_id, 7)]

    async def test_issue_spans_lots(self, db_session, blood_bank):
        now = utcnow()
        first = await TestDataFactory.create_lot(
            db_session, blood_bank, 5, created_at=now - timedelta(hours=3)
        )
        second = await TestDataFactory.create_lot(
            db_session, blood_bank, 7, created_at=now - timedelta(hours=1)
        )

        result = await InventoryLedger(db_session).issue(
            blood_bank.id, BloodGroup.O_POSITIVE, 8, notes="theatre"
        )

        assert [(c.lot_id, c.consumed, c.remaining) for c in result.consumed_lots] == [
            (first.id, 5, 0),
            (second.id, 3, 4),
        ]
        assert result.transaction.direction == TransactionDirection.OUT
        assert result.transaction.quantity == 8
        assert result.transaction.reason == TransactionReason.ISSUE
        assert second.quantity == 4

    async def test_insufficient_stock_mutates_nothing(self, db_session, blood_bank):
        lot = await TestDataFactory.create_lot(db_session, blood_bank, 3)

        with pytest.raises(InsufficientInventoryError) as exc_info:
            await InventoryLedger(db_session).issue(blood_bank.id, "O+", 5)

        assert exc_info.value.available == 3
        assert exc_info.value.requested == 5
        assert exc_info.value.status_code == 400

        quantity = (
            await db_session.execute(select(InventoryLot.quantity).where(InventoryLot.id == lot.id))
        ).scalar_one()
        assert quantity == 3
        assert await _transactions(db_session, blood_bank.id, TransactionDirection.OUT) == []

    async def test_other_groups_and_banks_are_not_touched(self, db_session, blood_bank):
        other_bank = await TestDataFactory.create_user(db_session, "bloodbank")
        await TestDataFactory.create_lot(db_session, blood_bank, 4, blood_group=BloodGroup.A_NEGATIVE)
        await TestDataFactory.create_lot(db_session, other_bank, 10)

        with pytest.raises(InsufficientInventoryError) as exc_info:
            await InventoryLedger(db_session).issue(blood_bank.id, "O+", 1)

        assert exc_info.value.available == 0

    async def test_quantity_is_conserved(self, db_session, blood_bank):
        ledger = InventoryLedger(db_session)
        await ledger.add_stock(blood_bank.id, "O+", 10)
        await ledger.add_stock(blood_bank.id, "O+", 5)
        await ledger.issue(blood_bank.id, "O+", 4)
        await ledger.issue(blood_bank.id, "O+", 6)

        assert await ledger.stock_by_group(blood_bank.id) == {"O+": 5}
        assert len(await _transactions(db_session, blood_bank.id, TransactionDirection.OUT)) == 2

    async def test_conflicting_writer_aborts_issue(self, db_session, blood_bank):
        lot = await TestDataFactory.create_lot(db_session, blood_bank, 5)
        lot_id, bank_id = lot.id, blood_bank.id

        # Another writer drains the lot; this session still holds the old quantity
        await db_session.execute(
            update(InventoryLot).where(InventoryLot.id == lot_id).values(quantity=1),
            execution_options={"synchronize_session": False},
        )
        await db_session.commit()
        assert lot.quantity == 5

        with pytest.raises(ConcurrentModificationError) as exc_info:
            await InventoryLedger(db_session).issue(bank_id, "O+", 3)

        assert exc_info.value.status_code == 409
        quantity = (
            await db_session.execute(select(InventoryLot.quantity).where(InventoryLot.id == lot_id))
        ).scalar_one()
        assert quantity == 1
        outbound = (
            await db_session.execute(
                select(func.count(InventoryTransaction.id)).where(
                    InventoryTransaction.direction == TransactionDirection.OUT
                )
            )
        ).scalar_one()
        assert outbound == 0


    async def test_same_timestamp_lots_consumed_in_id_order(self, db_session, blood_bank):
        created = utcnow() - timedelta(hours=1)
        first = await TestDataFactory.create_lot(db_session, blood_bank, 3, created_at=created)
        second = await TestDataFactory.create_lot(db_session, blood_bank, 3, created_at=created)
        low, high = sorted([first.id, second.id])

        result = await InventoryLedger(db_session).issue(blood_bank.id, "O+", 4)

        assert [(c.lot_id, c.consumed) for c in result.consumed_lots] == [(low, 3), (high, 1)]


class TestIssueLinkedToRequest:
    async def test_issue_linked_to_own_request(self, db_session, hospital, blood_bank):
        request = await TestDataFactory.create_request(db_session, hospital, blood_bank)
        await TestDataFactory.create_lot(db_session, blood_bank, 5)

        result = await InventoryLedger(db_session).issue(
            blood_bank.id, "O+", 2, related_request_id=request.id
        )

        assert result.transaction.related_request_id == request.id

    async def test_request_of_another_blood_bank_rejected(self, db_session, hospital, blood_bank):
        other_bank = await TestDataFactory.create_user(db_session, "bloodbank")
        foreign = await TestDataFactory.create_request(db_session, hospital, other_bank)
        await TestDataFactory.create_lot(db_session, blood_bank, 5)

        with pytest.raises(AuthorizationError):
            await InventoryLedger(db_session).issue(
                blood_bank.id, "O+", 2, related_request_id=foreign.id
            )

        assert await _transactions(db_session, blood_bank.id, TransactionDirection.OUT) == []
        assert await InventoryLedger(db_session).stock_by_group(blood_bank.id) == {"O+": 5}

    async def test_unknown_request_rejected(self, db_session, blood_bank):
        await TestDataFactory.create_lot(db_session, blood_bank, 5)

        with pytest.raises(NotFoundError) as exc_info:
            await InventoryLedger(db_session).issue(
                blood_bank.id, "O+", 2, related_request_id=uuid4()
            )

        assert exc_info.value.message == "Related request not found"
        assert await _transactions(db_session, blood_bank.id, TransactionDirection.OUT) == []

class TestReadModels:
    async def test_aggregate_per_bank_and_group(self, db_session, blood_bank):
        other_bank = await TestDataFactory.create_user(db_session, "bloodbank")
        await TestDataFactory.create_lot(db_session, blood_bank, 4)
        await TestDataFactory.create_lot(db_session, blood_bank, 6)
        await TestDataFactory.create_lot(db_session, blood_bank, 2, blood_group=BloodGroup.AB_NEGATIVE)
        await TestDataFactory.create_lot(db_session, other_bank, 9)

        ledger = InventoryLedger(db_session)
        aggregate = await ledger.get_aggregate()

        assert aggregate[(blood_bank.id, BloodGroup.O_POSITIVE)] == 10
        assert aggregate[(blood_bank.id, BloodGroup.AB_NEGATIVE)] == 2
        assert aggregate[(other_bank.id, BloodGroup.O_POSITIVE)] == 9
        assert await ledger.get_aggregate(blood_bank.id) == {
            (blood_bank.id, BloodGroup.O_POSITIVE): 10,
            (blood_bank.id, BloodGroup.AB_NEGATIVE): 2,
        }

    async def test_overview_groups_lots(self, db_session, blood_bank):
        await TestDataFactory.create_lot(db_session, blood_bank, 4)
        await TestDataFactory.create_lot(db_session, blood_bank, 6)

        overview = await InventoryLedger(db_session).get_overview(blood_bank.id)

        assert len(overview.lots) == 2
        assert len(overview.aggregated) == 1
        entry = overview.aggregated[0]
        assert entry.blood_bank_name == "Central Blood Bank"
        assert entry.total_quantity == 10
        assert len(entry.lots) == 2


class TestExpirySweep:
    async def test_sweep_removes_expired_lots(self, db_session, blood_bank):
        now = utcnow()
        expired = await TestDataFactory.create_lot(
            db_session, blood_bank, 3, expiry_date=now - timedelta(days=2)
        )
        fresh = await TestDataFactory.create_lot(
            db_session, blood_bank, 8, expiry_date=now + timedelta(days=20)
        )
        undated = await TestDataFactory.create_lot(db_session, blood_bank, 1)
        expired_id = expired.id

        removed = await InventoryLedger(db_session).sweep_expired(now)

        assert removed == 1
        remaining_ids = set(
            (await db_session.execute(select(InventoryLot.id))).scalars().all()
        )
        assert remaining_ids == {fresh.id, undated.id}

        outbound = await _transactions(db_session, blood_bank.id, TransactionDirection.OUT)
        assert len(outbound) == 1
        assert outbound[0].reason == TransactionReason.EXPIRED
        assert outbound[0].quantity == 3
        assert str(expired_id) in outbound[0].notes

    async def test_sweep_with_nothing_expired(self, db_session, blood_bank):
        await TestDataFactory.create_lot(
            db_session, blood_bank, 3, expiry_date=utcnow() + timedelta(days=1)
        )

        assert await InventoryLedger(db_session).sweep_expired() == 0

    async def test_sweep_records_quantity_held_at_deletion(self, db_session, blood_bank):
        lot = await TestDataFactory.create_lot(
            db_session, blood_bank, 5, expiry_date=utcnow() - timedelta(days=3)
        )
        lot_id = lot.id

        # A concurrent issue drained part of the lot; this session still holds 5
        await db_session.execute(
            update(InventoryLot).where(InventoryLot.id == lot_id).values(quantity=2),
            execution_options={"synchronize_session": False},
        )
        await db_session.commit()

        assert await InventoryLedger(db_session).sweep_expired() == 1

        outbound = await _transactions(db_session, blood_bank.id, TransactionDirection.OUT)
        assert [(t.reason, t.quantity) for t in outbound] == [(TransactionReason.EXPIRED, 2)]
