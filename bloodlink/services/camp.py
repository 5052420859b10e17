from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from bloodlink.config import settings
from bloodlink.models.camp import Camp, CampRegistration
from bloodlink.models.donation import Donation
from bloodlink.models.user import User
from bloodlink.schemas.base_schema import LotSource, UserRole
from bloodlink.schemas.camp import CampCreate, CampUpdate, DonationCreate
from bloodlink.services.inventory import InventoryLedger
from bloodlink.utils.exceptions import (
    AlreadyRegisteredError,
    AuthorizationError,
    CampClosedError,
    CampExpiredError,
    NotFoundError,
)
from bloodlink.utils.generators import calculate_expiry_date, utcnow
from bloodlink.utils.logging_config import get_logger, log_audit_event

logger = get_logger(__name__)


class CampService:
    """Donation camps, donor registration and donation recording"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = InventoryLedger(db)

    async def create_camp(self, blood_bank: User, data: CampCreate) -> Camp:
        camp = Camp(blood_bank_id=blood_bank.id, **data.model_dump())
        self.db.add(camp)
        await self.db.commit()

        log_audit_event(
            action="camp_created",
            resource_type="camp",
            resource_id=str(camp.id),
            new_values={"name": camp.name, "date": camp.date.isoformat()},
            user_id=str(blood_bank.id),
        )
        return await self.get_camp(camp.id)

    async def get_camp(self, camp_id: UUID) -> Camp:
        result = await self.db.execute(
            select(Camp)
            .options(selectinload(Camp.registrations))
            .where(Camp.id == camp_id)
            .execution_options(populate_existing=True)
        )
        camp = result.scalar_one_or_none()
        if camp is None:
            raise NotFoundError("Camp not found")
        return camp

    async def list_camps(self, user: User, now: Optional[datetime] = None) -> List[Camp]:
        """
        Blood banks see their own camps, donors the active upcoming ones,
        everybody else every camp. Ordered by date.
        """
        query = select(Camp).options(selectinload(Camp.registrations))
        if user.role == UserRole.BLOOD_BANK.value:
            query = query.where(Camp.blood_bank_id == user.id)
        elif user.role == UserRole.DONOR.value:
            query = query.where(Camp.is_active.is_(True), Camp.date >= (now or utcnow()))

        result = await self.db.execute(query.order_by(Camp.date.asc()))
        return list(result.scalars().all())

    async def _owned_camp(self, camp_id: UUID, blood_bank: User, action: str) -> Camp:
        camp = await self.get_camp(camp_id)
        if camp.blood_bank_id != blood_bank.id:
            raise AuthorizationError(f"Not authorized to {action} this camp")
        return camp

    async def update_camp(self, camp_id: UUID, blood_bank: User, data: CampUpdate) -> Camp:
        camp = await self._owned_camp(camp_id, blood_bank, "update")

        changes = data.model_dump(exclude_unset=True)
        old_values = {key: getattr(camp, key) for key in changes}
        for key, value in changes.items():
            setattr(camp, key, value)
        await self.db.commit()

        log_audit_event(
            action="camp_updated",
            resource_type="camp",
            resource_id=str(camp.id),
            old_values={k: str(v) for k, v in old_values.items()},
            new_values={k: str(v) for k, v in changes.items()},
            user_id=str(blood_bank.id),
        )
        return await self.get_camp(camp.id)

    async def deactivate_camp(self, camp_id: UUID, blood_bank: User) -> Camp:
        camp = await self._owned_camp(camp_id, blood_bank, "delete")
        camp.is_active = False
        await self.db.commit()

        log_audit_event(
            action="camp_deactivated",
            resource_type="camp",
            resource_id=str(camp.id),
            user_id=str(blood_bank.id),
        )
        return camp

    async def register_for_camp(
        self, camp_id: UUID, donor: User, now: Optional[datetime] = None
    ) -> Camp:
        """
        Append the donor to the camp's registrations.

        Checked in order: the camp is active, its date has not passed, the
        donor is not registered yet. The first failing check wins.
        """
        camp = await self.get_camp(camp_id)
        now = now or utcnow()

        if not camp.is_active:
            raise CampClosedError()
        if camp.date < now:
            raise CampExpiredError()
        if any(reg.donor_id == donor.id for reg in camp.registrations):
            raise AlreadyRegisteredError()

        self.db.add(CampRegistration(camp_id=camp.id, donor_id=donor.id, registered_at=now))
        try:
            await self.db.commit()
        except IntegrityError as e:
            # A concurrent registration for the same donor won the unique constraint
            await self.db.rollback()
            raise AlreadyRegisteredError() from e

        logger.info(
            "Donor registered for camp",
            extra={
                "event_type": "camp_registration",
                "camp_id": str(camp.id),
                "donor_id": str(donor.id),
            },
        )
        return await self.get_camp(camp.id)

    async def record_donation(
        self, camp_id: UUID, blood_bank: User, data: DonationCreate
    ) -> Donation:
        """
        Record a donation taken at the camp.

        The donation row, the inventory lot, its inbound transaction and
        the donor's last donation date are committed together or not at all.
        """
        camp = await self._owned_camp(camp_id, blood_bank, "record donations for")

        donor = await self.db.get(User, data.donor_id)
        if donor is None or donor.role != UserRole.DONOR.value:
            raise NotFoundError("Donor not found")

        donation_date = utcnow()
        expiry_date = calculate_expiry_date(donation_date, settings.DONATION_SHELF_LIFE_DAYS)

        donation = Donation(
            donor_id=donor.id,
            blood_bank_id=blood_bank.id,
            camp_id=camp.id,
            blood_group=data.blood_group,
            quantity=data.quantity,
            donation_date=donation_date,
            expiry_date=expiry_date,
            notes=data.notes,
        )
        try:
            self.db.add(donation)
            await self.ledger.add_stock(
                blood_bank_id=blood_bank.id,
                blood_group=data.blood_group,
                quantity=data.quantity,
                expiry_date=expiry_date,
                source=LotSource.DONATION,
                notes=f"Donation from camp: {camp.name}",
                related_camp_id=camp.id,
                commit=False,
            )
            donor.last_donation_date = donation_date
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            logger.error(
                "Recording donation failed, rolled back",
                extra={"event_type": "donation_failed", "camp_id": str(camp_id)},
                exc_info=True,
            )
            raise

        log_audit_event(
            action="donation_recorded",
            resource_type="donation",
            resource_id=str(donation.id),
            new_values={
                "donor_id": str(donor.id),
                "camp_id": str(camp.id),
                "blood_group": donation.blood_group.value,
                "quantity": donation.quantity,
            },
            user_id=str(blood_bank.id),
        )
        return donation
