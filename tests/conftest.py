"""Shared fixtures: a throwaway SQLite database per test and an API client"""
import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set up test environment BEFORE importing anything that uses settings
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["ENVIRONMENT"] = "test"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import portfolio.models  # noqa: F401
from portfolio.database import Base, get_db
from portfolio.main import app
from portfolio.models.user import User
from portfolio.services.auth import AuthService, get_password_hash

TEST_PASSWORD = "TestPassword123!"


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'portfolio_test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


async def _create_user(session_maker, email: str) -> User:
    async with session_maker() as session:
        user = User(email=email, hashed_password=get_password_hash(TEST_PASSWORD), full_name=email.split("@")[0])
        session.add(user)
        await session.commit()
        return user


@pytest_asyncio.fixture
async def owner(session_maker) -> User:
    return await _create_user(session_maker, "owner@example.com")


@pytest_asyncio.fixture
async def other_owner(session_maker) -> User:
    return await _create_user(session_maker, "neighbor@example.com")


def auth_headers(user: User) -> dict:
    token = AuthService.create_access_token(data={"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def client(session_maker):
    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
