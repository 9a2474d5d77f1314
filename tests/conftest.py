"""Shared test fixtures."""

from collections.abc import AsyncGenerator
from unittest.mock import MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from src.hl_common.database import get_db_session
from src.main import app


async def _detached_session() -> AsyncGenerator[MagicMock, None]:
    yield MagicMock()


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with no database behind it.

    ASGITransport does not run the lifespan, so no DB or Redis is contacted;
    router tests patch the ledger service and get a placeholder session.
    """
    app.dependency_overrides[get_db_session] = _detached_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
