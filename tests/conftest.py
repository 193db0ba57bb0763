"""Shared test fixtures — async DB, client, auth helpers, factories.

Reusable across all test modules (auth, core_hr, attendance, leave, reports).
Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Set test settings before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("TIMEZONE", "UTC")

import hashlib
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from hrms.auth.context import SessionContext
from hrms.common.constants import UserRole
from hrms.config import settings
from hrms.database import Base, get_db
from hrms.main import create_app

# Import ALL model modules so SQLAlchemy can resolve cross-module relationships
import hrms.attendance.models  # noqa: F401
import hrms.auth.models  # noqa: F401
import hrms.common.audit  # noqa: F401
import hrms.core_hr.models  # noqa: F401
import hrms.leave.models  # noqa: F401

from hrms.auth.models import UserSession
from hrms.core_hr.models import Department, Profile


# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset rate limiter storage between tests to prevent cross-test interference."""
    from hrms.common.rate_limit import limiter

    try:
        if hasattr(limiter, "_storage"):
            limiter._storage.reset()
    except Exception:
        pass
    yield


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app():
    """Create a fresh app instance with DB dependency overridden."""
    application = create_app()
    application.dependency_overrides[get_db] = _override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for direct DB operations in tests) ────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


# ── Model factories ─────────────────────────────────────────────────

def _make_profile(
    *,
    email: Optional[str] = None,
    full_name: str = "Test User",
    role: UserRole = UserRole.EMPLOYEE,
    department_id: Optional[uuid.UUID] = None,
    is_active: bool = True,
) -> dict:
    profile_id = uuid.uuid4()
    return dict(
        id=profile_id,
        email=email or f"user-{profile_id.hex[:8]}@example.com",
        full_name=full_name,
        employee_code=f"EMP-{profile_id.hex[:6].upper()}",
        role=role,
        department_id=department_id,
        hire_date=date(2024, 1, 15),
        is_active=is_active,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )


def _make_department(
    *,
    name: str = "Engineering",
    hod_id: Optional[uuid.UUID] = None,
) -> dict:
    return dict(
        id=uuid.uuid4(),
        name=name,
        description=f"{name} department",
        hod_id=hod_id,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )


async def seed_profile(db: AsyncSession, **kwargs) -> Profile:
    """Insert and commit a profile so API requests in other sessions see it."""
    profile = Profile(**_make_profile(**kwargs))
    db.add(profile)
    await db.commit()
    return profile


async def seed_department(db: AsyncSession, **kwargs) -> Department:
    dept = Department(**_make_department(**kwargs))
    db.add(dept)
    await db.commit()
    return dept


def session_for(profile: Profile) -> SessionContext:
    """SessionContext snapshot for calling services directly."""
    return SessionContext(
        user_id=profile.id,
        email=profile.email,
        role=profile.role,
        department_id=profile.department_id,
    )


# ── Auth helpers ────────────────────────────────────────────────────

def create_access_token(
    user_id: uuid.UUID,
    email: str = "test.user@example.com",
    *,
    full_name: Optional[str] = None,
    expired: bool = False,
    audience: Optional[str] = None,
) -> str:
    """Generate a provider-style JWT access token for testing."""
    if expired:
        exp = datetime.now(timezone.utc) - timedelta(hours=1)
    else:
        exp = datetime.now(timezone.utc) + timedelta(hours=1)
    payload: dict = {
        "sub": str(user_id),
        "email": email,
        "exp": exp,
        # Unique per call so two tokens never share a session row
        "jti": uuid.uuid4().hex,
    }
    if full_name is not None:
        payload["user_metadata"] = {"full_name": full_name}
    if audience is not None:
        payload["aud"] = audience
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


async def login(db: AsyncSession, profile: Profile) -> dict[str, str]:
    """Return Bearer auth headers with a live session persisted in the DB."""
    token = create_access_token(profile.id, profile.email)
    db.add(UserSession(
        id=uuid.uuid4(),
        profile_id=profile.id,
        token_hash=hashlib.sha256(token.encode()).hexdigest(),
        expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        is_revoked=False,
        created_at=datetime.now(timezone.utc),
    ))
    await db.commit()
    return {"Authorization": f"Bearer {token}"}


# ── Common fixtures ─────────────────────────────────────────────────

@pytest.fixture
async def employee(db) -> Profile:
    return await seed_profile(db, full_name="Erin Employee", email="erin@example.com")


@pytest.fixture
async def manager(db) -> Profile:
    return await seed_profile(
        db, full_name="Morgan Manager", email="morgan@example.com", role=UserRole.MANAGER,
    )


@pytest.fixture
async def hr(db) -> Profile:
    return await seed_profile(
        db, full_name="Harper HR", email="harper@example.com", role=UserRole.HR,
    )


@pytest.fixture
async def employee_headers(db, employee) -> dict[str, str]:
    return await login(db, employee)


@pytest.fixture
async def manager_headers(db, manager) -> dict[str, str]:
    return await login(db, manager)


@pytest.fixture
async def hr_headers(db, hr) -> dict[str, str]:
    return await login(db, hr)
