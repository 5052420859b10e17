from fastapi import Depends, Request

from bloodlink.models.user import User
from bloodlink.schemas.base_schema import UserRole
from bloodlink.utils.exceptions import AuthorizationError
from bloodlink.utils.ip_address_finder import get_client_ip, get_user_agent
from bloodlink.utils.logging_config import get_logger, log_security_event
from bloodlink.utils.security import get_current_user

logger = get_logger(__name__)


def require_role(*roles: str):
    """
    Dependency factory restricting an endpoint to the given account roles.

    Usage:
        current_user: User = Depends(require_role("hospital"))
        current_user: User = Depends(require_role("bloodbank", "admin"))
    """
    allowed = {UserRole(role).value for role in roles}

    async def checker(request: Request, current_user: User = Depends(get_current_user)) -> User:
        if not current_user.has_role(*allowed):
            log_security_event(
                event_type="unauthorized_access",
                user_id=str(current_user.id),
                ip_address=get_client_ip(request),
                details={
                    "user_agent": get_user_agent(request),
                    "required_roles": sorted(allowed),
                    "user_role": current_user.role,
                    "path": request.url.path,
                },
            )
            raise AuthorizationError(
                f"Role '{current_user.role}' is not authorized to access this resource"
            )

        logger.debug(
            "Role check passed",
            extra={
                "event_type": "role_check_passed",
                "user_id": str(current_user.id),
                "required_roles": sorted(allowed),
            },
        )
        return current_user

    return checker


def require_verified(*roles: str):
    """Like ``require_role`` but the account must also carry the verification flag"""
    role_checker = require_role(*roles)

    async def checker(request: Request, current_user: User = Depends(role_checker)) -> User:
        if not current_user.is_verified:
            log_security_event(
                event_type="unverified_account_access",
                user_id=str(current_user.id),
                ip_address=get_client_ip(request),
                details={"path": request.url.path},
            )
            raise AuthorizationError(
                "Your account is pending verification by an administrator"
            )
        return current_user

    return checker


require_admin = require_role(UserRole.ADMIN)
require_verified_blood_bank = require_verified(UserRole.BLOOD_BANK)
