from typing import List
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from bloodlink.models.donation import Donation
from bloodlink.models.inventory import InventoryLot
from bloodlink.models.request import BloodRequest
from bloodlink.models.user import BloodBank, Hospital, User
from bloodlink.schemas.admin import AnalyticsResponse, BloodGroupTotal
from bloodlink.schemas.base_schema import BloodGroup, RequestStatus, UserRole
from bloodlink.utils.exceptions import AuthorizationError, NotFoundError, ValidationError
from bloodlink.utils.logging_config import get_logger, log_audit_event

logger = get_logger(__name__)

VERIFIABLE_ROLES = {UserRole.BLOOD_BANK.value, UserRole.HOSPITAL.value}


class AdminService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_blood_banks(self) -> List[BloodBank]:
        result = await self.db.execute(select(BloodBank).order_by(BloodBank.created_at.desc()))
        return list(result.scalars().all())

    async def list_hospitals(self) -> List[Hospital]:
        result = await self.db.execute(select(Hospital).order_by(Hospital.created_at.desc()))
        return list(result.scalars().all())

    async def _get_account(self, user_id: UUID) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def set_verified(self, user_id: UUID, verified: bool, admin: User) -> User:
        """Grant or withdraw the verification flag of a blood bank or hospital"""
        user = await self._get_account(user_id)
        if user.role not in VERIFIABLE_ROLES:
            raise ValidationError("Only blood banks and hospitals can be verified")

        previous = user.is_verified
        user.is_verified = verified
        await self.db.commit()

        log_audit_event(
            action="account_verified" if verified else "account_unverified",
            resource_type="user",
            resource_id=str(user.id),
            old_values={"is_verified": previous},
            new_values={"is_verified": verified},
            user_id=str(admin.id),
        )
        return user

    async def deactivate(self, user_id: UUID, admin: User) -> User:
        """Soft delete; administrator accounts cannot be removed"""
        user = await self._get_account(user_id)
        if user.role == UserRole.ADMIN.value:
            raise AuthorizationError("Cannot delete admin users")

        user.is_active = False
        await self.db.commit()

        log_audit_event(
            action="account_deactivated",
            resource_type="user",
            resource_id=str(user.id),
            old_values={"is_active": True},
            new_values={"is_active": False},
            user_id=str(admin.id),
        )
        return user

    @staticmethod
    def _count_role(role: UserRole):
        return select(func.count(User.id)).where(
            User.role == role.value, User.is_active.is_(True)
        )

    async def analytics(self) -> AnalyticsResponse:
        breakdown_rows = (
            await self.db.execute(
                select(InventoryLot.blood_group, func.sum(InventoryLot.quantity))
                .group_by(InventoryLot.blood_group)
                .order_by(InventoryLot.blood_group)
            )
        ).all()
        breakdown = [
            BloodGroupTotal(blood_group=BloodGroup(group), total_quantity=int(total or 0))
            for group, total in breakdown_rows
        ]

        async def count(query) -> int:
            return int((await self.db.execute(query)).scalar_one() or 0)

        return AnalyticsResponse(
            total_blood_units=sum(item.total_quantity for item in breakdown),
            blood_group_breakdown=breakdown,
            total_donors=await count(self._count_role(UserRole.DONOR)),
            pending_requests=await count(
                select(func.count(BloodRequest.id)).where(
                    BloodRequest.status == RequestStatus.PENDING
                )
            ),
            total_donations=await count(select(func.count(Donation.id))),
            total_blood_banks=await count(self._count_role(UserRole.BLOOD_BANK)),
            total_hospitals=await count(self._count_role(UserRole.HOSPITAL)),
        )
