"""Shared fixtures: in-memory and file-backed SQLite stores, identity factory, API client."""

from __future__ import annotations

import os

os.environ.setdefault("DB_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from community.db.models import Base, User
from community.db.session import get_db
from community.utils.auth import create_access_token


@pytest.fixture
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
    return sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def file_session_factory(tmp_path):
    """Store backed by a file, so every session gets its own connection."""
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield sessionmaker(bind=eng, class_=AsyncSession, expire_on_commit=False)
    await eng.dispose()


@pytest.fixture
async def locking_session_factory(file_session_factory, tmp_path):
    """
    The same file store, with each transaction taking the write lock up front.

    SQLite ignores ``FOR UPDATE``; ``BEGIN IMMEDIATE`` serialises writers the
    way row locks do on PostgreSQL.
    """
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}")

    @event.listens_for(eng.sync_engine, "connect")
    def _no_implicit_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(eng.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    yield sessionmaker(bind=eng, class_=AsyncSession, expire_on_commit=False)
    await eng.dispose()


@pytest.fixture
def seed(file_session_factory):
    async def _seed(*names: str) -> list[str]:
        async with file_session_factory() as session:
            users = [
                User(full_name=name, username=name.lower(), email=f"{name.lower()}@example.com")
                for name in names
            ]
            session.add_all(users)
            await session.commit()
            return [u.id for u in users]

    return _seed


@pytest.fixture
def load(file_session_factory):
    """Committed state of several users from a fresh session."""

    async def _load(*user_ids: str) -> list[User]:
        async with file_session_factory() as session:
            return [await session.get(User, uid) for uid in user_ids]

    return _load


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    async def _make(full_name: str | None = None, *, role: str = "user", **fields) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            full_name=full_name or f"User {n}",
            username=fields.pop("username", f"user{n}"),
            email=fields.pop("email", f"user{n}@example.com"),
            role=role,
            followers=fields.pop("followers", []),
            following=fields.pop("following", []),
            **fields,
        )
        db.add(user)
        await db.commit()
        return user

    return _make


@pytest.fixture
def reload(db):
    """Fetch the committed state of a user, bypassing the identity map."""

    async def _reload(user_id: str) -> User:
        return await db.get(User, user_id, populate_existing=True)

    return _reload


@pytest.fixture
async def client(session_factory):
    from community.main import app

    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}

    return _headers
