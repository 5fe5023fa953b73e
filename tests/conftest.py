"""Pytest configuration and fixtures."""

import os

# Settings are read at import time; configure before importing studyplan.
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite+aiosqlite:///:memory:")
os.environ["ANTHROPIC_API_KEY"] = ""

from collections.abc import AsyncGenerator  # noqa: E402
from datetime import date  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from studyplan.api.deps import create_access_token, get_text_generator  # noqa: E402
from studyplan.db.base import Base  # noqa: E402
from studyplan.db.models import User  # noqa: E402
from studyplan.db.session import get_db  # noqa: E402
from studyplan.db.store import RecordStore  # noqa: E402
from studyplan.errors import GenerationUnavailable  # noqa: E402
from studyplan.main import app  # noqa: E402

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# A Monday. Service tests pass it explicitly as "today".
TODAY = date(2026, 3, 2)


class StubGenerator:
    """Stands in for TextGenerator. Raises GenerationUnavailable when text is None."""

    def __init__(self, text: str | None = None):
        self.text = text
        self.calls: list[list[dict]] = []

    async def generate(self, turns, *, max_tokens, temperature=0.7, timeout=None) -> str:
        self.calls.append(turns)
        if self.text is None:
            raise GenerationUnavailable("Text generation is not configured")
        return self.text


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def store(db: AsyncSession) -> RecordStore:
    return RecordStore(db)


@pytest.fixture
async def user(store: RecordStore) -> User:
    return await store.insert(User(name="Test Learner"))


@pytest.fixture
async def other_user(store: RecordStore) -> User:
    return await store.insert(User(name="Other Learner"))


@pytest.fixture
def offline_generator() -> StubGenerator:
    return StubGenerator()


@pytest.fixture
def make_generator():
    """Factory for a generator that answers every call with fixed text."""
    return StubGenerator


@pytest.fixture
def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
async def client(db: AsyncSession, offline_generator: StubGenerator) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI endpoints against the test database."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_text_generator] = lambda: offline_generator
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
