"""
Pytest configuration and shared fixtures.

Each test gets its own SQLite database file (through aiosqlite) with the
full schema, a fixed "today" of Wednesday 2025-10-15 and a handful of
seeded users.
"""

from dataclasses import dataclass
from datetime import date
from random import Random
from types import SimpleNamespace

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from clinic.core.security import create_access_token, hash_password
from clinic.db.sql import build_engine, build_sessionmaker, get_sessionmaker, init_db
from clinic.dependencies import get_clock, get_payment_gateway
from clinic.main import create_app
from clinic.modules.payments.gateway import SandboxGateway
from clinic.modules.users.models import UserRole
from clinic.modules.users.repository import UserRepository

TODAY = date(2025, 10, 15)  # Wednesday
THURSDAY = date(2025, 10, 16)
SATURDAY = date(2025, 10, 18)
PASSWORD = "Password123"


@dataclass
class FixedClock:
    day: date = TODAY

    def today(self) -> date:
        return self.day


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture(scope="session")
def password_hash():
    """Hash once; bcrypt is slow on purpose."""
    return hash_password(PASSWORD)


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'clinic.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_sessionmaker(engine)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def users(session_factory, password_hash):
    """Two doctors, two patients, one inactive doctor and one admin."""
    async with session_factory() as session:
        repo = UserRepository(session)

        async def make(email, name, role, **extra):
            user = await repo.create_user(
                email=email, password_hash=password_hash, name=name, role=role, **extra
            )
            return user.id

        ids = SimpleNamespace(
            doctor=await make(
                "doctor@example.com", "Dr. Ana Souza", UserRole.DOCTOR, specialization="Cardiology"
            ),
            other_doctor=await make(
                "doctor2@example.com", "Dr. Paulo Lima", UserRole.DOCTOR, specialization="Dermatology"
            ),
            inactive_doctor=await make(
                "retired@example.com", "Dr. Retired", UserRole.DOCTOR, is_active=False
            ),
            patient=await make("patient@example.com", "Maria Silva", UserRole.PATIENT),
            other_patient=await make("joao@example.com", "Joao Santos", UserRole.PATIENT),
            admin=await make("admin@example.com", "Clinic Admin", UserRole.ADMIN),
        )
        await session.commit()
    return ids


@pytest.fixture
def gateway():
    """Never declines on its own; only cards ending in 0 fail."""
    return SandboxGateway(failure_rate=0.0, rng=Random(7))


@pytest_asyncio.fixture
async def client(session_factory, clock, gateway, users):
    app = create_app(run_lifespan=False)
    app.dependency_overrides[get_sessionmaker] = lambda: session_factory
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_payment_gateway] = lambda: gateway

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def auth_headers(user_id, role):
    role_value = role.value if isinstance(role, UserRole) else role
    token = create_access_token(subject=str(user_id), role=role_value)
    return {"Authorization": f"Bearer {token}"}
