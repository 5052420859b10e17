from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.attributes import set_committed_value

from bloodlink.models.inventory import InventoryLot
from bloodlink.models.request import BloodRequest
from bloodlink.models.user import BloodBank, User
from bloodlink.schemas.base_schema import (
    BloodGroup,
    NotificationType,
    RequestStatus,
    TransactionReason,
    UserRole,
)
from bloodlink.schemas.request import BloodBankSearchResult, BloodRequestCreate, BloodRequestResponse
from bloodlink.services.inventory import InventoryLedger
from bloodlink.services.notification_service import NotificationService
from bloodlink.utils.exceptions import (
    AuthorizationError,
    ConcurrentModificationError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from bloodlink.utils.generators import utcnow
from bloodlink.utils.logging_config import get_logger, log_audit_event

logger = get_logger(__name__)

NEW_REQUEST_EVENT = "new_blood_request"
REQUEST_UPDATED_EVENT = "request_updated"


class BloodRequestService:
    """
    Hospital requests for blood units and their status workflow.

    pending -> approved -> fulfilled
    pending -> rejected
    """

    def __init__(self, db: AsyncSession, notifications: Optional[NotificationService] = None):
        self.db = db
        self.ledger = InventoryLedger(db)
        self.notifications = notifications or NotificationService(db)

    async def create_request(self, hospital: User, data: BloodRequestCreate) -> BloodRequest:
        blood_bank = await self.db.get(User, data.blood_bank_id)
        if blood_bank is None or blood_bank.role != UserRole.BLOOD_BANK.value:
            raise NotFoundError("Blood bank not found")
        if not blood_bank.is_verified:
            raise ValidationError("Blood bank is not verified")

        request = BloodRequest(hospital_id=hospital.id, **data.model_dump())
        self.db.add(request)
        await self.db.commit()

        request = await self.get_request(request.id)
        log_audit_event(
            action="request_created",
            resource_type="blood_request",
            resource_id=str(request.id),
            new_values={
                "blood_bank_id": str(request.blood_bank_id),
                "blood_group": request.blood_group.value,
                "quantity": request.quantity,
                "urgency": request.urgency.value,
            },
            user_id=str(hospital.id),
        )

        await self._announce_new_request(request, hospital)
        return request

    async def _announce_new_request(self, request: BloodRequest, hospital: User) -> None:
        snapshot = self.snapshot(request)
        group = request.blood_group.value

        await self.notifications.notify(
            [request.blood_bank_id],
            title="New Blood Request",
            message=f"{hospital.name} requested {request.quantity} units of {group}",
            type=NotificationType.REQUEST,
            related_id=request.id,
            event=NEW_REQUEST_EVENT,
            payload={"request": snapshot, "notification_type": "personal"},
        )

        if hospital.city:
            await self.notifications.notify_by_city(
                hospital.city,
                title="Urgent Blood Need Nearby",
                message=f"{hospital.name} in {hospital.city} needs {request.quantity} units of {group}",
                type=NotificationType.ALERT,
                related_id=request.id,
                event=NEW_REQUEST_EVENT,
                payload={
                    "request": snapshot,
                    "notification_type": "broadcast",
                    "headline": f"Urgent: {group} needed at {hospital.name}",
                },
            )

    async def get_request(self, request_id: UUID) -> BloodRequest:
        result = await self.db.execute(
            select(BloodRequest)
            .options(selectinload(BloodRequest.hospital), selectinload(BloodRequest.blood_bank))
            .where(BloodRequest.id == request_id)
            .execution_options(populate_existing=True)
        )
        request = result.scalar_one_or_none()
        if request is None:
            raise NotFoundError("Request not found")
        return request

    async def list_requests(self, user: User) -> List[BloodRequest]:
        """Hospitals see their own requests, blood banks the ones addressed to them, admins all"""
        query = select(BloodRequest).options(
            selectinload(BloodRequest.hospital), selectinload(BloodRequest.blood_bank)
        )
        if user.role == UserRole.HOSPITAL.value:
            query = query.where(BloodRequest.hospital_id == user.id)
        elif user.role == UserRole.BLOOD_BANK.value:
            query = query.where(BloodRequest.blood_bank_id == user.id)
        elif user.role != UserRole.ADMIN.value:
            raise AuthorizationError("Not authorized to view blood requests")

        result = await self.db.execute(query.order_by(BloodRequest.created_at.desc()))
        return list(result.scalars().all())

    async def approve_request(self, request_id: UUID, blood_bank: User) -> BloodRequest:
        """Approve a pending request and issue its units from the ledger in one transaction"""
        request = await self.get_request(request_id)
        self._ensure_blood_bank_owner(request, blood_bank, "approve")
        self._ensure_status(request, RequestStatus.PENDING, f"Request is already {request.status.value}")

        # Stock is checked before anything is written, so a shortage leaves the
        # request pending and retryable
        try:
            await self.ledger.issue(
                blood_bank_id=request.blood_bank_id,
                blood_group=request.blood_group,
                quantity=request.quantity,
                reason=TransactionReason.ISSUE,
                related_request_id=request.id,
                notes=f"Approved request from {request.hospital.name}",
                commit=False,
            )
            await self._transition(
                request, RequestStatus.PENDING, RequestStatus.APPROVED, responded_at=utcnow()
            )
            await self.db.commit()
        except ConcurrentModificationError:
            await self.db.rollback()
            raise

        request = await self.get_request(request_id)
        await self._announce_status_change(
            request,
            recipient_id=request.hospital_id,
            actor_id=request.blood_bank_id,
            title="Blood Request Approved",
            message=f"{request.blood_bank.name} approved your request for "
            f"{request.quantity} units of {request.blood_group.value}",
        )
        return request

    async def reject_request(self, request_id: UUID, blood_bank: User) -> BloodRequest:
        request = await self.get_request(request_id)
        self._ensure_blood_bank_owner(request, blood_bank, "reject")
        self._ensure_status(request, RequestStatus.PENDING, f"Request is already {request.status.value}")

        try:
            await self._transition(
                request, RequestStatus.PENDING, RequestStatus.REJECTED, responded_at=utcnow()
            )
            await self.db.commit()
        except ConcurrentModificationError:
            await self.db.rollback()
            raise

        request = await self.get_request(request_id)
        await self._announce_status_change(
            request,
            recipient_id=request.hospital_id,
            actor_id=request.blood_bank_id,
            title="Blood Request Rejected",
            message=f"{request.blood_bank.name} rejected your request for "
            f"{request.quantity} units of {request.blood_group.value}",
        )
        return request

    async def fulfill_request(self, request_id: UUID, hospital: User) -> BloodRequest:
        """Hospital-side acknowledgement; stock was already consumed on approval"""
        request = await self.get_request(request_id)
        if request.hospital_id != hospital.id:
            raise AuthorizationError("Not authorized to fulfill this request")
        self._ensure_status(
            request, RequestStatus.APPROVED, "Only approved requests can be marked as fulfilled"
        )

        try:
            await self._transition(
                request, RequestStatus.APPROVED, RequestStatus.FULFILLED, fulfilled_at=utcnow()
            )
            await self.db.commit()
        except ConcurrentModificationError:
            await self.db.rollback()
            raise

        request = await self.get_request(request_id)
        await self._announce_status_change(
            request,
            recipient_id=request.blood_bank_id,
            actor_id=request.hospital_id,
            title="Blood Request Fulfilled",
            message=f"{request.hospital.name} marked the request for "
            f"{request.quantity} units of {request.blood_group.value} as fulfilled",
        )
        return request

    @staticmethod
    def _ensure_blood_bank_owner(request: BloodRequest, blood_bank: User, action: str) -> None:
        if request.blood_bank_id != blood_bank.id:
            raise AuthorizationError(f"Not authorized to {action} this request")

    @staticmethod
    def _ensure_status(request: BloodRequest, expected: RequestStatus, message: str) -> None:
        if RequestStatus(request.status) != expected:
            raise StateConflictError(message)

    async def _transition(
        self, request: BloodRequest, expected: RequestStatus, new: RequestStatus, **fields
    ) -> None:
        """Move the request to ``new`` only if it is still in ``expected``"""
        now = utcnow()
        result = await self.db.execute(
            update(BloodRequest)
            .where(BloodRequest.id == request.id, BloodRequest.status == expected)
            .values(status=new, updated_at=now, **fields)
            .returning(BloodRequest.id),
            execution_options={"synchronize_session": False},
        )
        if result.scalar_one_or_none() is None:
            logger.warning(
                "Request status changed concurrently",
                extra={
                    "event_type": "request_transition_conflict",
                    "request_id": str(request.id),
                    "expected_status": expected.value,
                },
            )
            raise ConcurrentModificationError()

        set_committed_value(request, "status", new)
        set_committed_value(request, "updated_at", now)
        for key, value in fields.items():
            set_committed_value(request, key, value)

        log_audit_event(
            action=f"request_{new.value}",
            resource_type="blood_request",
            resource_id=str(request.id),
            old_values={"status": expected.value},
            new_values={"status": new.value, **{k: v.isoformat() for k, v in fields.items()}},
        )

    async def _announce_status_change(
        self, request: BloodRequest, recipient_id: UUID, actor_id: UUID, title: str, message: str
    ) -> None:
        snapshot = self.snapshot(request)
        await self.notifications.notify(
            [recipient_id],
            title=title,
            message=message,
            type=NotificationType.REQUEST,
            related_id=request.id,
            event=REQUEST_UPDATED_EVENT,
            payload={"request": snapshot},
        )
        self.notifications.push(str(actor_id), REQUEST_UPDATED_EVENT, {"request": snapshot})

    @staticmethod
    def snapshot(request: BloodRequest) -> dict:
        return BloodRequestResponse.model_validate(request).model_dump(mode="json")

    async def search_blood_banks(
        self,
        blood_group: Optional[BloodGroup] = None,
        city: Optional[str] = None,
        state: Optional[str] = None,
    ) -> List[BloodBankSearchResult]:
        """Verified active blood banks with their current stock per blood group"""
        query = select(BloodBank).where(
            BloodBank.is_verified.is_(True), BloodBank.is_active.is_(True)
        )
        if city:
            query = query.where(func.lower(BloodBank.city).contains(city.strip().lower(), autoescape=True))
        if state:
            query = query.where(func.lower(BloodBank.state).contains(state.strip().lower(), autoescape=True))

        result = await self.db.execute(query.order_by(BloodBank.name.asc()))
        banks = list(result.scalars().all())
        if not banks:
            return []

        stock_query = (
            select(InventoryLot.blood_bank_id, InventoryLot.blood_group, func.sum(InventoryLot.quantity))
            .where(InventoryLot.blood_bank_id.in_([bank.id for bank in banks]))
            .group_by(InventoryLot.blood_bank_id, InventoryLot.blood_group)
        )
        if blood_group:
            stock_query = stock_query.where(InventoryLot.blood_group == BloodGroup(blood_group))

        stock: dict = {bank.id: {} for bank in banks}
        for bank_id, group, total in (await self.db.execute(stock_query)).all():
            stock[bank_id][BloodGroup(group).value] = int(total or 0)

        return [
            BloodBankSearchResult(
                id=bank.id,
                name=bank.name,
                email=bank.email,
                phone=bank.phone,
                street=bank.street,
                city=bank.city,
                state=bank.state,
                zip_code=bank.zip_code,
                inventory=stock[bank.id],
            )
            for bank in banks
        ]
