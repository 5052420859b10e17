from datetime import timedelta

from sqlalchemy import select

from bloodlink.models.inventory import InventoryLot
from bloodlink.services import scheduler as scheduler_module
from bloodlink.utils.generators import utcnow
from tests.conftest import TestDataFactory


async def test_sweep_job_uses_its_own_session(monkeypatch, session_factory, db_session, blood_bank):
    await TestDataFactory.create_lot(
        db_session, blood_bank, 2, expiry_date=utcnow() - timedelta(days=2)
    )
    monkeypatch.setattr(scheduler_module, "async_sessionmaker", session_factory)

    assert await scheduler_module.sweep_expired_inventory() == 1

    async with session_factory() as fresh:
        assert (await fresh.execute(select(InventoryLot))).scalars().all() == []


async def test_sweep_job_swallows_errors(monkeypatch):
    def broken_factory():
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(scheduler_module, "async_sessionmaker", broken_factory)

    assert await scheduler_module.sweep_expired_inventory() == 0


async def test_scheduler_registers_sweep_job():
    scheduler_module.start_scheduler()
    try:
        job = scheduler_module.scheduler.get_job("inventory_expiry_sweep")
        assert job is not None
        assert job.func is scheduler_module.sweep_expired_inventory
    finally:
        scheduler_module.stop_scheduler()

    assert scheduler_module.scheduler is None
