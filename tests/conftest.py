"""
Shared fixtures.

Every test gets a fresh in-memory SQLite database, the mock payment
service with no latency or failures, and a scripted assistant whose
replies the test controls.
"""

import os

os.environ["ENV_MODE"] = "development"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import select  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from tableside import models  # noqa: E402,F401
from tableside.core.rate_limit import limiter  # noqa: E402
from tableside.database import Base, get_db  # noqa: E402
from tableside.main import app  # noqa: E402
from tableside.models import MenuItem, User  # noqa: E402
from tableside.seed import seed_database  # noqa: E402
from tableside.services.assistant import BaseAssistantService, get_assistant_service  # noqa: E402
from tableside.services.assistant.base import CompletionResult  # noqa: E402
from tableside.services.payment import MockPaymentService, get_payment_service  # noqa: E402


class ScriptedAssistant(BaseAssistantService):
    """Replies from a queue and records every prompt it receives."""

    def __init__(self):
        self.replies: list[str] = []
        self.calls: list[list[dict]] = []
        self.fail = False

    @property
    def provider_name(self) -> str:
        return "scripted"

    async def complete(self, messages: list[dict]) -> CompletionResult:
        self.calls.append(messages)
        if self.fail:
            return CompletionResult(success=False, error_code="api_error", error_message="assistant offline")
        content = self.replies.pop(0) if self.replies else "Happy to help with the menu!"
        return CompletionResult(success=True, content=content, model="scripted")

    async def health_check(self) -> bool:
        return not self.fail


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def payment_service():
    return MockPaymentService(failure_rate=0.0, min_latency=0, max_latency=0)


@pytest.fixture
def assistant():
    return ScriptedAssistant()


@pytest_asyncio.fixture
async def client(session_maker, payment_service, assistant):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_service] = lambda: payment_service
    app.dependency_overrides[get_assistant_service] = lambda: assistant

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def disable_rate_limits():
    limiter.enabled = False
    yield
    limiter.enabled = False
    limiter.reset()


@pytest_asyncio.fixture
async def seeded(db):
    await seed_database(db)
    return db


@pytest_asyncio.fixture
async def users(seeded):
    result = await seeded.execute(select(User))
    by_email = {u.email: u for u in result.scalars().all()}
    return {
        "admin": by_email["admin@restaurant.com"],
        "staff": by_email["staff@restaurant.com"],
        "customer": by_email["customer@example.com"],
        "jane": by_email["jane.doe@example.com"],
    }


@pytest_asyncio.fixture
async def menu(seeded):
    result = await seeded.execute(select(MenuItem))
    return {item.name: item for item in result.scalars().all()}

