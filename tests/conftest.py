import logging
import os
import tempfile

# Settings are read at import time; configure the test environment first
os.environ.setdefault("SECRET_KEY", "test-secret-key-that-is-at-least-32-characters-long")
os.environ.setdefault("BOOTSTRAP_ADMIN_PASSWORD", "bootstrap-admin-pass")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test_digital_forms_app.db"
os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_DIR"] = os.path.join(tempfile.gettempdir(), "digital_forms_test_logs")

import pytest
from typing import AsyncGenerator, Generator
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from digital_forms.database import Base, build_engine, get_db
from digital_forms.core.access import Principal
from digital_forms.core.security import create_access_token
from digital_forms.models.user import User, UserRole
from digital_forms.services.user_service import UserService

# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite:///./test_digital_forms.db"

# Same engine setup as the application (NullPool + BEGIN IMMEDIATE)
test_engine = build_engine(TEST_DATABASE_URL)

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    # Create tables
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # Create session
    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    # Drop tables
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(scope="function")
def client() -> Generator:
    """Create a sync test client (runs startup against the app database)."""
    from fastapi.testclient import TestClient
    from digital_forms.main import app

    # Startup reconfigures the root logger; restore it so later tests stay isolated
    root_logger = logging.getLogger()
    saved_level = root_logger.level
    saved_handlers = list(root_logger.handlers)
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        for handler in root_logger.handlers:
            if handler not in saved_handlers:
                handler.close()
        root_logger.handlers[:] = saved_handlers
        root_logger.setLevel(saved_level)


@pytest.fixture(scope="function")
async def async_client(db_session: AsyncSession) -> AsyncGenerator:
    """Create an async test client with database session override."""
    from httpx import AsyncClient, ASGITransport
    from digital_forms.main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


async def make_user(
    db: AsyncSession,
    username: str,
    role: UserRole = UserRole.AGENT,
    password: str = "password123"
) -> User:
    """Create a user with a predictable e-mail and password."""
    return await UserService.create_user(
        db=db,
        username=username,
        password=password,
        email=f"{username}@example.com",
        full_name=username.title(),
        role=role
    )


def principal_for(user: User) -> Principal:
    return Principal(user_id=user.id, username=user.username, role=user.role)


def auth_headers(user: User) -> dict:
    token = create_access_token({"sub": str(user.id), "username": user.username, "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "admin1", role=UserRole.ADMIN)


@pytest.fixture
async def agent_a(db_session: AsyncSession) -> User:
    return await make_user(db_session, "agenta")


@pytest.fixture
async def agent_b(db_session: AsyncSession) -> User:
    return await make_user(db_session, "agentb")
