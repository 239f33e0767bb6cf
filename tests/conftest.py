"""Pytest configuration and fixtures."""
import os
import uuid
from decimal import Decimal
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config as AlembicConfig
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

# Point the application at a throwaway SQLite database before it is imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["ENVIRONMENT"] = "test"
os.environ["INACTIVITY_SWEEP_ENABLED"] = "false"
os.environ["REDIS_URL"] = ""

from backoffice.config import get_settings


BASE_DIR = Path(__file__).resolve().parent.parent
TEST_DB_PATH = BASE_DIR / "test.db"
settings = get_settings()

DEFAULT_PASSWORD = "StaffPass123"


@pytest.fixture(scope="session", autouse=True)
def apply_migrations():
    """Apply database migrations against the test database."""
    if TEST_DB_PATH.exists():
        TEST_DB_PATH.unlink()

    alembic_cfg = AlembicConfig(str(BASE_DIR / "alembic.ini"))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.database_url)
    command.upgrade(alembic_cfg, "head")

    yield

    if TEST_DB_PATH.exists():
        try:
            TEST_DB_PATH.unlink()
        except PermissionError:
            # Still open on Windows; the next run removes it
            pass


@pytest.fixture
async def test_engine():
    """Engine on the migrated test database."""
    engine = create_async_engine(settings.database_url, echo=False, pool_pre_ping=True)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db_session(session_factory):
    """Create test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()
        await session.close()


@pytest.fixture
async def test_app(session_factory):
    """Application with ``get_db`` bound to the test database."""
    from backoffice.main import app
    from backoffice.database import get_db

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            finally:
                await session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()


def unique_name(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


@pytest.fixture
async def player_factory(db_session):
    """Factory for players with unique names."""
    from backoffice.services.player_service import PlayerService

    player_service = PlayerService(db_session)

    async def _create_player(name: str | None = None, referred_by: str | None = None):
        name = name or unique_name("player")
        return await player_service.create_player(
            name,
            f"https://facebook.com/{name}",
            referred_by=referred_by,
        )

    return _create_player


@pytest.fixture
async def game_factory(db_session):
    """Factory for games with unique names and a chosen starting balance."""
    from backoffice.services.game_service import GameService

    game_service = GameService(db_session)

    async def _create_game(name: str | None = None, balance: Decimal | int | str = 1000):
        return await game_service.create_game(name or unique_name("Cosmic"), balance=balance)

    return _create_game


@pytest.fixture
async def staff_factory(db_session):
    """Factory for staff accounts; every account uses DEFAULT_PASSWORD unless given."""
    from backoffice.models.base import StaffRole
    from backoffice.services.staff_service import StaffService

    staff_service = StaffService(db_session)

    async def _create_staff(
        role: StaffRole = StaffRole.ADMIN,
        email: str | None = None,
        password: str = DEFAULT_PASSWORD,
    ):
        email = email or f"{unique_name('staff')}@la777.test"
        return await staff_service.create_staff(unique_name("Staff"), email, password, role)

    return _create_staff


@pytest.fixture
async def auth_headers(db_session, staff_factory):
    """Build Bearer headers for a new staff member of the given role."""
    from backoffice.models.base import StaffRole
    from backoffice.services.auth_service import AuthService

    async def _headers(role: StaffRole = StaffRole.ADMIN) -> dict[str, str]:
        staff = await staff_factory(role=role)
        token, _ = AuthService(db_session).create_access_token(staff)
        return {"Authorization": f"Bearer {token}"}

    return _headers
