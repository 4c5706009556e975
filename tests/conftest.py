import os

# Settings and the engine are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET", "test-secret-do-not-use-in-production")
os.environ.setdefault("COOKIE_SECURE", "false")

from typing import Any, AsyncGenerator

import pytest
from asyncstdlib import anext
from fastapi import Depends, FastAPI
from fastapi_users.db import SQLAlchemyUserDatabase
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from mentorlink.auth_config import AUTH_COOKIE_NAME, get_user_manager
from mentorlink.db import get_db_session, get_user_db
from mentorlink.main import create_app
from mentorlink.models import Conversation, User, metadata
from mentorlink.realtime.bus import EventBus
from mentorlink.schemas.user import UserCreate, UserRole

# Use an in-memory SQLite database for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

test_engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool)
test_async_session_maker = async_sessionmaker(test_engine, expire_on_commit=False)

TEST_PASSWORD = "password123"


# Master fixture to manage table creation/dropping and provide session maker
@pytest.fixture(scope="function")
async def db_test_session_manager() -> (
    AsyncGenerator[async_sessionmaker[AsyncSession], None]
):
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    yield test_async_session_maker

    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)


@pytest.fixture(scope="function")
async def session(
    db_test_session_manager: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """A single session for service-level tests."""
    async with db_test_session_manager() as session:
        yield session


@pytest.fixture(scope="function")
def bus() -> EventBus:
    return EventBus()


async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
    async with test_async_session_maker() as session:
        yield session


async def override_get_user_db(
    session: AsyncSession = Depends(get_db_session),
) -> SQLAlchemyUserDatabase[User, Any]:
    yield SQLAlchemyUserDatabase(session, User)


# A fresh application per test so bus subscriptions never leak between tests
@pytest.fixture(scope="function")
def test_app(
    db_test_session_manager: async_sessionmaker[AsyncSession],
) -> FastAPI:
    app = create_app()
    app.dependency_overrides[get_db_session] = override_get_db_session
    app.dependency_overrides[get_user_db] = override_get_user_db
    yield app
    app.state.connections.close_all()
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def test_client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=test_app), base_url="http://test"
    ) as client:
        yield client


# Helper function to register a user through the real user manager
async def register_user(
    session_maker: async_sessionmaker[AsyncSession],
    email: str,
    role: UserRole,
    username: str | None = None,
) -> User:
    user_data = UserCreate(
        email=email,
        password=TEST_PASSWORD,
        username=username or email.split("@")[0],
        role=role,
    )
    async with session_maker() as session:
        user_manager_gen = get_user_manager(SQLAlchemyUserDatabase(session, User))
        user_manager = await anext(user_manager_gen)
        try:
            user = await user_manager.create(user_data)
            await session.commit()
            await session.refresh(user)
            return user
        finally:
            await user_manager_gen.aclose()


async def login(client: AsyncClient, email: str) -> dict[str, str]:
    """Logs in and returns the Cookie header for subsequent requests."""
    res = await client.post(
        "/auth/jwt/login", data={"username": email, "password": TEST_PASSWORD}
    )
    assert res.status_code in (200, 204), res.text
    access_token = res.cookies.get(AUTH_COOKIE_NAME) or (
        res.headers["Set-Cookie"].split(";")[0].split("=", 1)[1]
    )
    return {"Cookie": f"{AUTH_COOKIE_NAME}={access_token}"}


@pytest.fixture(scope="function")
async def mentor(db_test_session_manager: async_sessionmaker[AsyncSession]) -> User:
    return await register_user(
        db_test_session_manager, "mentor@example.com", UserRole.MENTOR
    )


@pytest.fixture(scope="function")
async def mentee(db_test_session_manager: async_sessionmaker[AsyncSession]) -> User:
    return await register_user(
        db_test_session_manager, "mentee@example.com", UserRole.MENTEE
    )


@pytest.fixture(scope="function")
async def outsider(db_test_session_manager: async_sessionmaker[AsyncSession]) -> User:
    return await register_user(
        db_test_session_manager, "outsider@example.com", UserRole.MENTEE
    )


@pytest.fixture(scope="function")
async def conversation(
    db_test_session_manager: async_sessionmaker[AsyncSession],
    mentor: User,
    mentee: User,
) -> Conversation:
    async with db_test_session_manager() as session:
        conversation = Conversation(mentor_id=mentor.id, mentee_id=mentee.id)
        session.add(conversation)
        await session.commit()
        await session.refresh(conversation)
        return conversation


@pytest.fixture(scope="function")
async def mentor_headers(test_client: AsyncClient, mentor: User) -> dict[str, str]:
    return await login(test_client, mentor.email)


@pytest.fixture(scope="function")
async def mentee_headers(test_client: AsyncClient, mentee: User) -> dict[str, str]:
    return await login(test_client, mentee.email)


@pytest.fixture(scope="function")
async def outsider_headers(test_client: AsyncClient, outsider: User) -> dict[str, str]:
    return await login(test_client, outsider.email)
