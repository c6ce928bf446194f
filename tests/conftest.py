import pytest
from datetime import date
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool
import app.models  # noqa: F401  registers every table on Base.metadata
from app.core.database import build_session_factory
from app.models.base import Base
from app.models.auth.user import User
from app.models.shared.enums import UserRole
from app.services.notification.notification_service import NotificationService, NotificationTransport
from app.services.workflow.status_transition import WorkflowPolicy

# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Monday of a normal working week
TODAY = date(2026, 10, 19)


class RecordingTransport(NotificationTransport):
    """Keeps every batch instead of queueing emails"""

    def __init__(self):
        self.sent = []

    def send(self, recipients, reason, summary):
        self.sent.append((tuple(r.user_id for r in recipients), reason, summary))

    def recipients_for(self, reason):
        return [user_id for user_ids, sent_reason, _ in self.sent if sent_reason == reason for user_id in user_ids]

    def clear(self):
        self.sent.clear()


class FailingTransport(NotificationTransport):
    def send(self, recipients, reason, summary):
        raise ConnectionError("broker unavailable")


@pytest.fixture
async def engine():
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
async def session(engine) -> AsyncGenerator[AsyncSession, None]:
    TestingSessionLocal = build_session_factory(engine)
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def notifier(session, transport) -> NotificationService:
    return NotificationService(session, transport)


@pytest.fixture
def policy() -> WorkflowPolicy:
    return WorkflowPolicy()


@pytest.fixture
async def users(session) -> dict:
    """One user per workflow role, keyed by what they do in the tests"""
    people = {
        "staff": ("amina.bello", "Amina", "Bello", UserRole.STAFF),
        "reviewer": ("chidi.okafor", "Chidi", "Okafor", UserRole.REVIEWER),
        "approver": ("ngozi.eze", "Ngozi", "Eze", UserRole.ADMIN),
        "finance": ("tunde.ade", "Tunde", "Ade", UserRole.REVIEWER),
        "procurement": ("fatima.musa", "Fatima", "Musa", UserRole.REVIEWER),
        "admin": ("kemi.ojo", "Kemi", "Ojo", UserRole.SUPER_ADMIN),
        "outsider": ("bayo.ali", "Bayo", "Ali", UserRole.STAFF),
    }
    created = {
        key: User(
            email=f"{login}@casfod.org",
            first_name=first_name,
            last_name=last_name,
            role=role,
            is_active=True,
            is_employment_info_locked=False,
        )
        for key, (login, first_name, last_name, role) in people.items()
    }
    session.add_all(created.values())
    await session.commit()
    return created
