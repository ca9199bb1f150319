"""
Test configuration and shared fixtures.
Uses a fresh in-memory SQLite database per test for fast, isolated tests.
"""
from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from sprintboard.core.rate_limit import limiter
from sprintboard.db.base import Base
from sprintboard.db.session import get_db
from sprintboard.main import app
import sprintboard.models  # noqa: F401
from sprintboard.services.storage_service import LocalObjectStorage, get_object_storage

# ── Test database ─────────────────────────────────────────────────────────────
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    """Provide a session bound to a brand-new in-memory database."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        try:
            yield session
            await session.rollback()
        finally:
            await session.close()
    await engine.dispose()


@pytest.fixture
def storage(tmp_path) -> LocalObjectStorage:
    return LocalObjectStorage(str(tmp_path / "uploads"), "/uploads")


@pytest_asyncio.fixture
async def client(
    db: AsyncSession, storage: LocalObjectStorage
) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP test client with the test DB and storage injected."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        # Same request transaction as get_db, on the shared test session.
        try:
            yield db
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_object_storage] = lambda: storage
    limiter.reset()

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ── Helper fixtures ───────────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def default_sprints(client: AsyncClient) -> list[dict[str, Any]]:
    """Priority Sprint and Backlog, in column order."""
    response = await client.post("/api/v1/sprints/defaults")
    assert response.status_code == 200, response.text
    return response.json()


@pytest_asyncio.fixture
async def sprint(client: AsyncClient) -> dict[str, Any]:
    response = await client.post("/api/v1/sprints", json={"name": "Sprint 1"})
    assert response.status_code == 201, response.text
    return response.json()


@pytest_asyncio.fixture
async def other_sprint(client: AsyncClient, sprint: dict) -> dict[str, Any]:
    response = await client.post("/api/v1/sprints", json={"name": "Sprint 2"})
    assert response.status_code == 201, response.text
    return response.json()
