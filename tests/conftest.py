"""
Pytest configuration and fixtures.
Provides test app client, async DB session replacement, seeded staff and
projects, and a recording notification channel.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from dependency_injector import providers
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.main import app
from app.db import session as db_session_module
from app.db.base import Base
from app.db.session import get_db
from app.deps.di_container import get_container
from app.core.exceptions import DispatchError
from app.core.integrations.notification_channel import NotificationChannel
from app.models.employee import Employee, EmployeeStatus
from app.models.project import Project
from app.schemas.notification import DispatchResult


# Test database URL (in-memory SQLite for testing)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

COMPANY_ID = 1
OTHER_COMPANY_ID = 2

# Employee ids
WORKER_107 = 107        # embedded and legacy project 1003
WORKER_LEGACY = 108     # legacy current_project_id 1001 only
WORKER_EMBEDDED = 109   # embedded current_project 1002 only
WORKER_UNASSIGNED = 110
WORKER_INACTIVE = 111
SUPERVISOR_1003 = 201
SUPERVISOR_1001_1002 = 202
SUPERVISOR_NO_PROJECTS = 203


def user_id_of(employee_id: int) -> int:
    """Seeded employees log in with principal id employee_id + 1000."""
    return employee_id + 1000


def auth(employee_id: int) -> dict:
    """Headers carrying the principal of a seeded employee."""
    return {"X-User-Id": str(user_id_of(employee_id))}


class RecordingChannel(NotificationChannel):
    """Notification channel that keeps every payload it is given."""

    name = "recording"

    def __init__(self):
        self.sent = []

    async def send(self, payload):
        self.sent.append(payload)
        return DispatchResult(
            success=True,
            channel=self.name,
            notification_id=str(len(self.sent)),
            recipients=payload.recipients,
        )


class FailingChannel(NotificationChannel):
    """Notification channel whose delivery service is down."""

    name = "failing"

    def __init__(self):
        self.attempts = 0

    async def send(self, payload):
        self.attempts += 1
        raise DispatchError("Notification service unavailable")


@pytest.fixture(scope="function")
async def test_session_maker(monkeypatch):
    """
    Create a test database with all tables.
    Uses in-memory SQLite for fast tests.
    """
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    test_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    # Health checks open their own sessions
    monkeypatch.setattr(db_session_module, "async_session_maker", test_session_maker)

    yield test_session_maker

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture(scope="function")
async def test_db_session(test_session_maker, seeded):
    """A session on the seeded test database."""
    async with test_session_maker() as session:
        yield session


@pytest.fixture(scope="function")
async def seeded(test_session_maker):
    """
    Seed two companies' worth of staff and projects.

    Projects 1001 and 1002 belong to supervisor 202, project 1003 to
    supervisor 201. Supervisor 203 owns nothing. Project 1004 belongs to
    another company.
    """
    async with test_session_maker() as session:
        session.add_all([
            Employee(id=SUPERVISOR_1003, company_id=COMPANY_ID, user_id=user_id_of(SUPERVISOR_1003),
                     full_name="Sam Supervisor", email="sam@site.test", phone="+65 6000 0201"),
            Employee(id=SUPERVISOR_1001_1002, company_id=COMPANY_ID, user_id=user_id_of(SUPERVISOR_1001_1002),
                     full_name="Pat Foreman", email=None, phone=None),
            Employee(id=SUPERVISOR_NO_PROJECTS, company_id=COMPANY_ID, user_id=user_id_of(SUPERVISOR_NO_PROJECTS),
                     full_name="Lee Idle"),
            Employee(id=WORKER_107, company_id=COMPANY_ID, user_id=user_id_of(WORKER_107),
                     full_name="Ravi Kumar",
                     current_project={"id": 1003, "name": "Marina Tower", "code": "MT"},
                     current_project_id=1003),
            Employee(id=WORKER_LEGACY, company_id=COMPANY_ID, user_id=user_id_of(WORKER_LEGACY),
                     full_name="Ahmad Legacy", current_project_id=1001),
            Employee(id=WORKER_EMBEDDED, company_id=COMPANY_ID, user_id=user_id_of(WORKER_EMBEDDED),
                     full_name="Chen Embedded",
                     current_project={"id": 1002, "name": "Jurong Depot", "code": "JD"}),
            Employee(id=WORKER_UNASSIGNED, company_id=COMPANY_ID, user_id=user_id_of(WORKER_UNASSIGNED),
                     full_name="Nadia Bench"),
            Employee(id=WORKER_INACTIVE, company_id=COMPANY_ID, user_id=user_id_of(WORKER_INACTIVE),
                     full_name="Old Hand", status=EmployeeStatus.INACTIVE),
            Project(id=1001, company_id=COMPANY_ID, supervisor_id=SUPERVISOR_1001_1002, name="Changi Annex", code="CA"),
            Project(id=1002, company_id=COMPANY_ID, supervisor_id=SUPERVISOR_1001_1002, name="Jurong Depot", code="JD"),
            Project(id=1003, company_id=COMPANY_ID, supervisor_id=SUPERVISOR_1003, name="Marina Tower", code="MT"),
            Project(id=1004, company_id=OTHER_COMPANY_ID, supervisor_id=None, name="Elsewhere", code="EW"),
        ])
        await session.commit()
    return True


@pytest.fixture(scope="function")
def notification_channel():
    """Recording channel installed in the DI container for one test."""
    channel = RecordingChannel()
    container = get_container()
    container.notification_channel.override(providers.Object(channel))
    yield channel
    container.notification_channel.reset_override()


@pytest.fixture(scope="function")
def failing_channel():
    """Failing channel installed in the DI container for one test."""
    channel = FailingChannel()
    container = get_container()
    container.notification_channel.override(providers.Object(channel))
    yield channel
    container.notification_channel.reset_override()


@pytest.fixture(scope="function")
async def test_client(test_session_maker, seeded):
    """
    Create a test HTTP client.
    Each request gets its own session on the test database.
    """
    async def override_get_db():
        async with test_session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
