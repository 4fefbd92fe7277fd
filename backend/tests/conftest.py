"""
MediCamp Backend - Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Service and route tests run against a throwaway file-backed SQLite
       database (aiosqlite) so the unique constraint, CHECK constraints and
       atomic UPDATE statements behave as they do in production.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── engine: async engine on a fresh SQLite file with all tables created
    ├── session_factory: sessionmaker bound to that engine
    ├── db: one open session
    ├── organizer / participant / other_participant: resolved Callers
    ├── seeded: users for the three callers plus two camps
    └── test_client: HTTPX AsyncClient whose requests use the test database
"""

import os
import tempfile
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator, Dict

# Override settings for testing BEFORE any medicamp imports
os.environ["DATABASE_URL"] = (
    f"sqlite+aiosqlite:///{tempfile.mkdtemp(prefix='medicamp_test_')}/app.db"
)
os.environ["ACCESS_TOKEN_SECRET"] = "test-secret-not-real-0123456789abcdef"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_not_real"
os.environ["ENVIRONMENT"] = "test"
os.environ["ORGANIZER_EMAILS"] = "organizer@example.com"
os.environ["LOG_LEVEL"] = "WARNING"  # Reduce noise during tests
os.environ["RATE_LIMIT_REQUESTS"] = "10000"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from medicamp import models  # noqa: F401
from medicamp.config import settings
from medicamp.database import Base, build_engine, get_db_session
from medicamp.models.camp import Camp
from medicamp.models.user import Role, User
from medicamp.security.policy import Caller
from medicamp.security.tokens import issue_token

ORGANIZER_EMAIL = "organizer@example.com"
PARTICIPANT_EMAIL = "alice@example.com"
OTHER_EMAIL = "bob@example.com"


def _auth_headers(email: str) -> Dict[str, str]:
    return {"Cookie": f"{settings.access_token_cookie}={issue_token(email)}"}


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path}/medicamp.db")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# Callers & Seed Data
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def organizer() -> Caller:
    return Caller(email=ORGANIZER_EMAIL, role=Role.ORGANIZER)


@pytest.fixture
def participant() -> Caller:
    return Caller(email=PARTICIPANT_EMAIL)


@pytest.fixture
def other_participant() -> Caller:
    return Caller(email=OTHER_EMAIL)


@pytest_asyncio.fixture
async def seeded(session_factory) -> dict:
    """
    Commits three users and two camps.

    Returns a dict with `camp_id` (fees 25.50) and `free_camp_id` (fees 0).
    """
    now = datetime.now(timezone.utc)
    async with session_factory() as session:
        session.add_all([
            User(email=ORGANIZER_EMAIL, name="Dr. Organizer", role=Role.ORGANIZER.value),
            User(email=PARTICIPANT_EMAIL, name="Alice Smith", photo="https://img/alice.png"),
            User(email=OTHER_EMAIL, name="Bob Jones", role="user"),
        ])
        camp = Camp(
            name="Eye Care Camp",
            location="Dhaka",
            date=now + timedelta(days=30),
            fees=Decimal("25.50"),
            healthcare_professional="Dr. Rahman",
            description="Free eye screening and glasses",
            created_by=ORGANIZER_EMAIL,
        )
        free_camp = Camp(
            name="Dental Checkup",
            location="Chittagong",
            date=now + timedelta(days=45),
            fees=Decimal("0"),
            healthcare_professional="Dr. Akter",
            description="",
            created_by=ORGANIZER_EMAIL,
        )
        session.add_all([camp, free_camp])
        await session.commit()
        return {"camp_id": camp.id, "free_camp_id": free_camp.id}


# ══════════════════════════════════════════════════════════════════════════
# HTTP Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX AsyncClient talking to a fresh app instance.

    get_db_session is overridden so requests use the per-test database with
    the same commit-or-rollback behaviour as production.
    """
    from medicamp.main import create_app

    app = create_app()

    async def override_get_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """
    Returns a function building the Cookie header of a freshly signed
    session token for an email.

    Usage:
        response = await test_client.get("/users/a@x.com", headers=auth_headers("a@x.com"))
    """
    return _auth_headers
