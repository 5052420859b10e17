"""
Test configuration and fixtures for the blood donation coordination API.
Provides an in-memory database, account factories and authenticated clients.
"""

import os
from datetime import datetime, timedelta
from typing import AsyncGenerator
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Test database configuration
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Override environment variables before the application reads its settings
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["SECRET_KEY"] = "test-secret-key-for-jwt-tokens"
os.environ["ENABLE_SCHEDULER"] = "false"
os.environ["CREATE_TABLES_ON_STARTUP"] = "false"
os.environ["LOG_TO_FILE"] = "false"
os.environ["SYS_ADMIN"] = ""

from bloodlink.db.base import Base  # noqa: E402
from bloodlink.dependencies import get_db  # noqa: E402
from bloodlink.main import app  # noqa: E402
from bloodlink.models.camp import Camp  # noqa: E402
from bloodlink.models.inventory import InventoryLot  # noqa: E402
from bloodlink.models.request import BloodRequest  # noqa: E402
from bloodlink.models.user import ROLE_MODELS, User  # noqa: E402
from bloodlink.schemas.base_schema import BloodGroup, LotSource  # noqa: E402
from bloodlink.services.notification_sse import ConnectionManager  # noqa: E402
from bloodlink.utils.generators import utcnow  # noqa: E402
from bloodlink.utils.security import TokenManager, get_password_hash  # noqa: E402

TEST_PASSWORD = "Password123!"
# Hashed once; argon2 is deliberately slow
TEST_PASSWORD_HASH = get_password_hash(TEST_PASSWORD)


@pytest.fixture
async def test_engine():
    """Fresh in-memory schema for every test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        bind=test_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app; every request gets its own session."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def connections() -> ConnectionManager:
    """Isolated pub/sub manager so tests never share subscribers."""
    return ConnectionManager()


# --- Data Factories ---


class TestDataFactory:
    """Factory for accounts, stock and camps."""

    __test__ = False

    @staticmethod
    def unique_email(prefix: str = "user") -> str:
        return f"{prefix}_{uuid4().hex[:8]}@example.com"

    @staticmethod
    async def create_user(db: AsyncSession, role: str, **overrides) -> User:
        fields = {
            "email": TestDataFactory.unique_email(role),
            "password": TEST_PASSWORD_HASH,
            "name": f"Test {role.title()} {uuid4().hex[:4]}",
            "is_verified": role != "donor",
            "is_active": True,
        }
        fields.update(overrides)
        user = ROLE_MODELS[role](**fields)
        db.add(user)
        await db.commit()
        return user

    @staticmethod
    async def create_lot(
        db: AsyncSession,
        blood_bank: User,
        quantity: int,
        blood_group: BloodGroup = BloodGroup.O_POSITIVE,
        created_at: datetime = None,
        expiry_date: datetime = None,
    ) -> InventoryLot:
        """Insert a lot directly, bypassing the ledger, with a controlled creation time"""
        lot = InventoryLot(
            blood_bank_id=blood_bank.id,
            blood_group=blood_group,
            quantity=quantity,
            source=LotSource.DONATION,
            created_at=created_at or utcnow(),
            expiry_date=expiry_date,
        )
        db.add(lot)
        await db.commit()
        return lot

    @staticmethod
    async def create_request(
        db: AsyncSession, hospital: User, blood_bank: User, quantity: int = 2
    ) -> BloodRequest:
        request = BloodRequest(
            hospital_id=hospital.id,
            blood_bank_id=blood_bank.id,
            blood_group=BloodGroup.O_POSITIVE,
            quantity=quantity,
        )
        db.add(request)
        await db.commit()
        return request

    @staticmethod
    async def create_camp(db: AsyncSession, blood_bank: User, **overrides) -> Camp:
        fields = {
            "name": f"Community Drive {uuid4().hex[:4]}",
            "date": utcnow() + timedelta(days=7),
            "start_time": "09:00",
            "end_time": "15:00",
            "address": "1 Main Street",
            "city": "Accra",
            "state": "Greater Accra",
            "target_donors": 50,
            "is_active": True,
        }
        fields.update(overrides)
        camp = Camp(blood_bank_id=blood_bank.id, **fields)
        db.add(camp)
        await db.commit()
        return camp


@pytest.fixture
async def blood_bank(db_session: AsyncSession) -> User:
    return await TestDataFactory.create_user(
        db_session, "bloodbank", name="Central Blood Bank", city="Accra", state="Greater Accra"
    )


@pytest.fixture
async def hospital(db_session: AsyncSession) -> User:
    return await TestDataFactory.create_user(
        db_session, "hospital", name="Korle Bu Hospital", city="Accra", state="Greater Accra"
    )


@pytest.fixture
async def donor(db_session: AsyncSession) -> User:
    return await TestDataFactory.create_user(
        db_session, "donor", name="Ama Mensah", city="accra", blood_group="O+"
    )


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await TestDataFactory.create_user(db_session, "admin", name="Site Admin")


def auth_headers_for(user: User) -> dict:
    token = TokenManager.create_access_token({"sub": str(user.id), "role": user.role})
    return {"Authorization": f"Bearer {token}"}


# --- Utility Functions ---


def assert_response_success(response, expected_status: int = 200):
    """Assert response is successful with proper structure."""
    assert response.status_code == expected_status, response.text
    data = response.json()
    assert data["success"] is True
    assert "data" in data
    return data["data"]


def assert_response_error(response, expected_status: int = 400):
    """Assert response is an error with proper structure."""
    assert response.status_code == expected_status, response.text
    data = response.json()
    assert data["success"] is False
    assert "message" in data
    return data
