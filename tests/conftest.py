"""
Shared test fixtures.

Each test gets a fresh file-backed SQLite database (via aiosqlite) in its
own tmp directory, so tests run without Docker / PostgreSQL / Redis and
concurrent sessions see each other's commits.  Per-ride locks use the
in-process ``LocalLockManager``.
"""

import os

# The module-level engine in src.infrastructure.database is built on import.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.config import Settings
from src.domain.entities import RideDetails
from src.infrastructure.database import Base, build_engine, build_session_factory
from src.infrastructure.locks import LocalLockManager
from src.services.identity import PasswordHasher
from src.services.registry import ServiceRegistry, build_services

DRIVER_ID = "driver-1"
OTHER_DRIVER_ID = "driver-2"
PASSENGER_ID = "passenger-1"
OTHER_PASSENGER_ID = "passenger-2"


class FakeClock:
    """Controllable clock; call it to read, ``advance`` to move forward."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class PlainTextHasher(PasswordHasher):
    """Fast stand-in for bcrypt in service tests."""

    def hash_password(self, plain_password: str) -> str:
        return f"plain:{plain_password}"

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        return hashed_password == f"plain:{plain_password}"


def ride_details(clock_now: datetime, **overrides) -> RideDetails:
    """Valid ride fields departing a day after *clock_now*."""
    fields = dict(
        start_location="Manila City Hall",
        end_location="Makati CBD",
        departure_time=clock_now + timedelta(days=1),
        available_seats=3,
        distance=10.0,
        duration=30,
        notes="",
    )
    fields.update(overrides)
    return RideDetails(**fields)


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite://",
        lock_backend="local",
        lock_timeout_seconds=2.0,
        jwt_secret="test-secret",
        rate_limit="1000/minute",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2030, 3, 1, 8, 0, tzinfo=timezone.utc))


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Create tables in a fresh database, yield a session factory, dispose."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'carpool.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield build_session_factory(engine)

    await engine.dispose()


@pytest.fixture
def services(session_factory, test_settings, clock) -> ServiceRegistry:
    return build_services(
        session_factory,
        LocalLockManager(test_settings.lock_timeout_seconds),
        test_settings,
        hasher=PlainTextHasher(),
        clock=clock,
    )


@pytest_asyncio.fixture
async def client(session_factory, test_settings) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient against the real app wired to the test database."""
    from src.api.app import create_app
    from src.api.middleware import limiter

    limiter.reset()
    app = create_app(
        session_factory=session_factory,
        lock_manager=LocalLockManager(test_settings.lock_timeout_seconds),
        settings=test_settings,
    )
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
