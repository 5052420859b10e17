import logging
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from bloodlink.config import settings
from bloodlink.models.user import ROLE_MODELS, Administrator, User
from bloodlink.schemas.user import PROFILE_UPDATE_SCHEMAS, UserRegister
from bloodlink.utils.exceptions import AuthenticationError, ValidationError
from bloodlink.utils.logging_config import log_audit_event, log_security_event
from bloodlink.utils.security import TokenManager, get_password_hash, verify_password

logger = logging.getLogger(__name__)


def _column_values(values: Dict[str, Any]) -> Dict[str, Any]:
    """Enum members become their plain values for the string profile columns"""
    return {k: v.value if isinstance(v, Enum) else v for k, v in values.items()}


class UserService:
    """Accounts: registration, login and profile maintenance"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(func.lower(User.email) == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def register(self, data: UserRegister) -> User:
        email = data.email.strip().lower()
        if await self.get_user_by_email(email):
            raise ValidationError("Email already registered")

        model = ROLE_MODELS[data.role]
        fields = _column_values(data.model_dump(exclude={"email", "password", "role"}))
        user = model(email=email, password=get_password_hash(data.password), **fields)

        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ValidationError("Email already registered") from e

        log_audit_event(
            action="user_registered",
            resource_type="user",
            resource_id=str(user.id),
            new_values={"email": email, "role": user.role},
            user_id=str(user.id),
        )
        return user

    async def authenticate(self, email: str, password: str, ip_address: Optional[str] = None) -> Tuple[User, str]:
        """Check credentials and issue an access token"""
        user = await self.get_user_by_email(email)
        if user is None or not verify_password(password, user.password):
            log_security_event(
                "failed_login",
                ip_address=ip_address,
                details={"email": email.strip().lower()},
            )
            raise AuthenticationError("Invalid email or password")

        if not user.is_active:
            log_security_event("inactive_account_login", user_id=str(user.id), ip_address=ip_address)
            raise AuthenticationError("Account is inactive")

        token = TokenManager.create_access_token({"sub": str(user.id), "role": user.role})
        logger.info(
            "User logged in",
            extra={"event_type": "login_success", "user_id": str(user.id), "role": user.role},
        )
        return user, token

    async def update_profile(self, user: User, changes: Dict[str, Any]) -> User:
        """Merge profile fields allowed for the caller's role"""
        schema = PROFILE_UPDATE_SCHEMAS[user.role]
        try:
            update = schema.model_validate(changes)
        except PydanticValidationError as e:
            raise ValidationError(
                "Validation failed",
                errors=e.errors(include_url=False, include_context=False),
            ) from e

        values = _column_values(update.model_dump(exclude_unset=True))
        old_values = {key: getattr(user, key) for key in values}
        for key, value in values.items():
            setattr(user, key, value)
        await self.db.commit()

        log_audit_event(
            action="profile_updated",
            resource_type="user",
            resource_id=str(user.id),
            old_values={k: str(v) if v is not None else None for k, v in old_values.items()},
            new_values={k: str(v) if v is not None else None for k, v in values.items()},
            user_id=str(user.id),
        )
        return user

    async def seed_admin(self) -> Optional[User]:
        """Create the configured administrator account if it does not exist yet"""
        if not settings.SYS_ADMIN or not settings.SYS_ADMIN_PASS:
            return None

        existing = await self.get_user_by_email(settings.SYS_ADMIN)
        if existing is not None:
            return existing

        admin = Administrator(
            email=settings.SYS_ADMIN.strip().lower(),
            password=get_password_hash(settings.SYS_ADMIN_PASS),
            name=settings.SYS_ADMIN_NAME,
            is_verified=True,
            is_active=True,
        )
        self.db.add(admin)
        await self.db.commit()
        logger.info("Administrator account created", extra={"event_type": "admin_seeded"})
        return admin
