"""Integration-test fixtures.

All integration tests share a single event-loop so that the module-level
SQLAlchemy async engine pool (created at import time) remains valid across
the entire test session.
"""

import uuid

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.main import app


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client — keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def register_and_login(
    client: AsyncClient, prefix: str = "player", username: str | None = None
) -> dict[str, str]:
    """Register a fresh user; returns {"token", "user_id", "username"}."""
    username = username or f"{prefix}_{uuid.uuid4().hex[:8]}"
    reg = await client.post("/api/v1/auth/register", json={
        "username": username,
        "email": f"{username}@example.com",
        "password": "TestPass123!",
    })
    user_id = reg.json()["data"]["user_id"]
    login = await client.post("/api/v1/auth/login", json={
        "username": username,
        "password": "TestPass123!",
    })
    return {
        "token": login.json()["data"]["access_token"],
        "user_id": user_id,
        "username": username,
    }
