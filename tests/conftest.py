"""Pytest configuration and shared fixtures for tests."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from src.api.deps import get_db
from src.assessments.autosave import AutosaveScheduler
from src.assessments.drafts import DISCARD_IF_UNCHANGED_SCRIPT, DraftStore
from src.assessments.service import make_flush_callback
from src.core.database import create_all_tables, create_engine, create_session_factory
from src.main import app
from src.models.user import User, UserRole


class FakeRedis:
    """In-memory stand-in for the redis.asyncio client (bytes in, bytes out)."""

    def __init__(self, should_fail: bool = False) -> None:
        self.should_fail = should_fail
        self.store: dict[str, bytes] = {}
        self.expiry: dict[str, int | None] = {}

    def _check(self) -> None:
        if self.should_fail:
            raise ConnectionError("redis unavailable")

    async def get(self, key: str) -> bytes | None:
        self._check()
        return self.store.get(key)

    async def set(self, key: str, value: bytes | str, ex: int | None = None) -> bool:
        self._check()
        self.store[key] = value.encode() if isinstance(value, str) else value
        self.expiry[key] = ex
        return True

    async def delete(self, *keys: str) -> int:
        self._check()
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
            self.expiry.pop(key, None)
        return removed

    async def eval(self, script: str, numkeys: int, *keys_and_args: object) -> int:
        """Run the draft compare-and-delete script, the only one the app uses."""
        self._check()
        if script != DISCARD_IF_UNCHANGED_SCRIPT:
            raise NotImplementedError("FakeRedis only understands the draft discard script")
        keys, args = keys_and_args[:numkeys], keys_and_args[numkeys:]
        key, expected = keys[0], args[0]
        if self.store.get(key) != expected:
            return 0
        return await self.delete(key)

    async def ping(self) -> bool:
        self._check()
        return True

    async def aclose(self) -> None:
        return None


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests.

    Returns:
        Backend name string.
    """
    return "asyncio"


@pytest.fixture
def fake_redis() -> FakeRedis:
    """Fresh in-memory Redis double."""
    return FakeRedis()


@pytest.fixture
def drafts(fake_redis: FakeRedis) -> DraftStore:
    """Draft store backed by the fake Redis."""
    return DraftStore(fake_redis)


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Sqlite-backed session factory with every table created."""
    engine = create_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    await create_all_tables(engine)

    factory = create_session_factory(engine)
    app.state.async_session = factory
    try:
        yield factory
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Single session for service-level tests."""
    async with session_factory() as session:
        yield session


async def _add_user(
    factory: async_sessionmaker[AsyncSession],
    email: str,
    full_name: str,
    role: UserRole,
    is_active: bool = True,
) -> User:
    async with factory() as session:
        user = User(
            email=email,
            full_name=full_name,
            role=role,
            is_active=is_active,
            email_verified=True,
        )
        session.add(user)
        await session.commit()
        return user


@pytest_asyncio.fixture
async def staff_user(session_factory: async_sessionmaker[AsyncSession]) -> User:
    """Active care manager."""
    return await _add_user(
        session_factory, "casey@example.com", "Casey Morgan", UserRole.CARE_MANAGER
    )


@pytest_asyncio.fixture
async def admin_user(session_factory: async_sessionmaker[AsyncSession]) -> User:
    """Active administrator."""
    return await _add_user(
        session_factory, "avery@example.com", "Avery Admin", UserRole.ADMIN
    )


@pytest_asyncio.fixture
async def inactive_user(session_factory: async_sessionmaker[AsyncSession]) -> User:
    """Deactivated care manager."""
    return await _add_user(
        session_factory,
        "former@example.com",
        "Former Staff",
        UserRole.CARE_MANAGER,
        is_active=False,
    )


@pytest.fixture
def staff_headers(staff_user: User) -> dict[str, str]:
    return {"X-User-Id": str(staff_user.id)}


@pytest.fixture
def admin_headers(admin_user: User) -> dict[str, str]:
    return {"X-User-Id": str(admin_user.id)}


@pytest_asyncio.fixture
async def autosave(
    fake_redis: FakeRedis,
) -> AsyncGenerator[AutosaveScheduler, None]:
    """Scheduler whose timers never fire on their own during a test."""
    scheduler = AutosaveScheduler(
        make_flush_callback(lambda: app.state.async_session, DraftStore(fake_redis)),
        delay_seconds=3600,
    )
    try:
        yield scheduler
    finally:
        for assessment_id in scheduler.pending_ids:
            scheduler.cancel(assessment_id)


@pytest_asyncio.fixture
async def api_client(
    session_factory: async_sessionmaker[AsyncSession],
    fake_redis: FakeRedis,
    autosave: AutosaveScheduler,
) -> AsyncGenerator[AsyncClient, None]:
    """API client with DB, Redis and autosave wired to test doubles."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.state.redis = fake_redis
    app.state.autosave = autosave
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    app.dependency_overrides.clear()
