from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from argon2 import PasswordHasher
from argon2.exceptions import HashingError, InvalidHashError, VerificationError, VerifyMismatchError
from fastapi import Depends, HTTPException, Query, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from bloodlink.config import settings
from bloodlink.dependencies import get_db
from bloodlink.models.user import User
from bloodlink.utils.exceptions import AuthenticationError
from bloodlink.utils.ip_address_finder import get_client_ip
from bloodlink.utils.logging_config import get_logger, log_security_event, user_id as user_id_ctx

logger = get_logger(__name__)

# Argon2 password hashing configuration
ph = PasswordHasher(
    time_cost=3,
    memory_cost=65536,
    parallelism=1,
    hash_len=32,
    salt_len=16,
)

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_PREFIX}/auth/login", auto_error=False
)


class TokenManager:
    @staticmethod
    def create_access_token(
        data: dict, expires_delta: Optional[timedelta] = None
    ) -> str:
        """Create a signed JWT access token"""
        to_encode = data.copy()
        expire = datetime.now(timezone.utc) + (
            expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        )
        to_encode.update({"exp": expire, "type": "access"})
        return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    @staticmethod
    def decode_token(token: str) -> dict:
        """Decode and verify a JWT token"""
        try:
            return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        except JWTError as e:
            raise ValueError("Invalid or expired token") from e


def get_password_hash(password: str) -> str:
    """Hash a plaintext password using Argon2"""
    try:
        return ph.hash(password)
    except HashingError as e:
        logger.error(
            "Password hashing failed",
            extra={"event_type": "password_hashing_failed", "error": str(e)},
        )
        raise HTTPException(status_code=500, detail="Password hashing failed") from e


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against an Argon2 hashed password"""
    try:
        ph.verify(hashed_password, plain_password)
        return True
    except VerifyMismatchError:
        return False
    except (VerificationError, InvalidHashError) as e:
        logger.error(
            "Password verification error",
            extra={"event_type": "password_verification_error", "error": str(e)},
        )
        return False


async def resolve_user_from_token(
    db: AsyncSession, token: Optional[str], request: Optional[Request] = None
) -> User:
    """Load the active account a bearer token was issued for"""
    ip_address = get_client_ip(request) if request else None

    if not token:
        raise AuthenticationError("Not authenticated")

    try:
        payload = TokenManager.decode_token(token)
    except ValueError as e:
        log_security_event(
            "invalid_token", ip_address=ip_address, details={"error": str(e)}
        )
        raise AuthenticationError("Invalid authentication credentials") from e

    subject = payload.get("sub")
    if subject is None or payload.get("type") != "access":
        log_security_event("invalid_token", ip_address=ip_address)
        raise AuthenticationError("Invalid authentication credentials")

    try:
        account_id = UUID(subject)
    except ValueError as e:
        raise AuthenticationError("Invalid authentication credentials") from e

    result = await db.execute(select(User).where(User.id == account_id))
    user = result.scalar_one_or_none()

    if user is None:
        raise AuthenticationError("User not found")

    if not user.is_active:
        log_security_event(
            "inactive_account_access", user_id=str(user.id), ip_address=ip_address
        )
        raise AuthenticationError("Account is inactive")

    user_id_ctx.set(str(user.id))
    return user


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
    token: Optional[str] = Depends(oauth2_scheme),
) -> User:
    return await resolve_user_from_token(db, token, request)


async def get_current_user_stream(
    request: Request,
    db: AsyncSession = Depends(get_db),
    token: Optional[str] = Depends(oauth2_scheme),
    access_token: Optional[str] = Query(None, description="Token for EventSource clients"),
) -> User:
    """Like ``get_current_user`` but also accepts the token as a query parameter"""
    return await resolve_user_from_token(db, token or access_token, request)
