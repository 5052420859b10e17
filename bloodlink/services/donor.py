from datetime import datetime
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from bloodlink.config import settings
from bloodlink.models.donation import Donation
from bloodlink.models.user import User
from bloodlink.schemas.camp import EligibilityResponse
from bloodlink.utils.generators import days_between, utcnow


class DonorService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_donations(self, donor: User) -> List[Donation]:
        result = await self.db.execute(
            select(Donation)
            .where(Donation.donor_id == donor.id)
            .order_by(Donation.donation_date.desc())
        )
        return list(result.scalars().all())

    async def last_donation_date(self, donor: User) -> Optional[datetime]:
        """Most recent recorded donation, falling back to the profile field"""
        result = await self.db.execute(
            select(Donation.donation_date)
            .where(Donation.donor_id == donor.id)
            .order_by(Donation.donation_date.desc())
            .limit(1)
        )
        latest = result.scalar_one_or_none()
        return latest or getattr(donor, "last_donation_date", None)

    async def check_eligibility(
        self, donor: User, now: Optional[datetime] = None
    ) -> EligibilityResponse:
        last_donation = await self.last_donation_date(donor)
        return evaluate_eligibility(last_donation, now or utcnow())


def evaluate_eligibility(last_donation: Optional[datetime], now: datetime) -> EligibilityResponse:
    if last_donation is None:
        return EligibilityResponse(can_donate=True)

    days = days_between(last_donation, now)
    minimum = settings.MIN_DAYS_BETWEEN_DONATIONS
    if days < minimum:
        return EligibilityResponse(
            can_donate=False,
            reason=(
                f"Minimum {minimum} days required between donations. "
                f"Last donation was {days} days ago."
            ),
            last_donation_date=last_donation,
            days_since_last_donation=days,
        )

    return EligibilityResponse(
        can_donate=True,
        last_donation_date=last_donation,
        days_since_last_donation=days,
    )
