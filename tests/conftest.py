"""
Shared fixtures for the TaskEarn test suite.

Key components:
1. Environment is configured BEFORE importing taskearn (settings are read at import).
2. Per-test in-memory SQLite database (aiosqlite + StaticPool) with the full schema.
3. Factories for users, admins and tasks built through the real services.
4. FastAPI app with get_db / get_notifier overridden and an httpx ASGI client.
"""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-for-taskearn-suite"
os.environ["ENV"] = "test"
os.environ["ADMIN_EMAIL"] = "admin@admin.com"
os.environ["RESEND_API_KEY"] = ""
os.environ["VAPID_PRIVATE_KEY"] = ""
os.environ["VAPID_PUBLIC_KEY"] = ""
os.environ["CORS_ORIGINS"] = ""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, List, Optional, Tuple

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import update
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from taskearn import create_app
from taskearn.core.database_core import Base, create_session_factory, get_db
from taskearn.crud.tasks_crud import TasksCRUD
from taskearn.crud.user_crud import ProfileCRUD
from taskearn.deps import get_notifier
from taskearn.models import Profile
from taskearn.services.admin.admin_rbac import grant_admin
from taskearn.services.auth_service import AuthResult, sign_up


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Notifier double
# ---------------------------------------------------------------------------
@dataclass
class RecordingNotifier:
    """Stands in for NotificationDispatcher: records schedule() calls."""

    calls: List[Tuple[str, str, Decimal]] = field(default_factory=list)

    def schedule(self, user_id: str, event_type: str, amount: Any) -> None:
        self.calls.append((user_id, event_type, Decimal(str(amount))))

    def events(self) -> List[str]:
        return [event for _, event, _ in self.calls]


@pytest.fixture
def notifier():
    return RecordingNotifier()


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------
async def make_user(
    db,
    email: str = "alice@example.com",
    username: str = "alice",
    password: str = "secret123",
    referral_code: Optional[str] = None,
) -> AuthResult:
    return await sign_up(db, email=email, password=password, username=username, referral_code=referral_code)


async def make_admin(db, email: str = "boss@example.com") -> AuthResult:
    result = await make_user(db, email=email, username="boss")
    await grant_admin(db, user_id=result.context.user_id, granted_by="system")
    return result


async def make_task(db, title: str = "Follow us", reward: str = "0.10", is_active: bool = True) -> int:
    """Returns the task id (ORM objects expire after service rollbacks)."""
    task = await TasksCRUD(db).create_task(
        title=title,
        url="https://example.com/" + title.replace(" ", "-").lower(),
        reward_amount=Decimal(reward),
        is_active=is_active,
    )
    await db.commit()
    return task.id


async def set_profile(db, user_id: str, **values: Any) -> None:
    await db.execute(update(Profile).where(Profile.user_id == user_id).values(**values))
    await db.commit()


async def get_profile(db, user_id: str) -> Profile:
    profile = await ProfileCRUD(db).get_by_user_id(user_id)
    assert profile is not None
    return profile


@pytest_asyncio.fixture
async def user(db) -> AuthResult:
    return await make_user(db)


@pytest_asyncio.fixture
async def admin(db) -> AuthResult:
    return await make_admin(db)


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------
@pytest.fixture
def app(session_factory, notifier):
    application = create_app()

    async def _override_db():
        async with session_factory() as session:
            yield session

    application.dependency_overrides[get_db] = _override_db
    application.dependency_overrides[get_notifier] = lambda: notifier
    return application


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


def bearer(result: AuthResult) -> dict:
    return {"Authorization": f"Bearer {result.access_token}"}
