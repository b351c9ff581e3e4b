"""Shared fixtures: in-memory SQLite schema per test and a few users."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from promptvault.models import Base, User


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


async def create_user(session_factory, username: str) -> str:
    """Insert a user directly (no bcrypt) and return its id."""
    async with session_factory() as session:
        user = User(username=username, password_hash="unused")
        session.add(user)
        await session.commit()
        return user.id


@pytest_asyncio.fixture
async def alice(session_factory):
    return await create_user(session_factory, "alice")


@pytest_asyncio.fixture
async def bob(session_factory):
    return await create_user(session_factory, "bob")


@pytest_asyncio.fixture
async def carol(session_factory):
    return await create_user(session_factory, "carol")


@pytest.fixture
def fresh(db):
    """``await fresh(Model, id)`` re-reads a row after a rolled back operation."""
    async def _fresh(model, ident):
        return await db.get(model, ident, populate_existing=True)
    return _fresh
