"""Fixtures for API unit tests: app with in-memory service, AsyncClient, logged-in client."""

import pytest
from httpx import ASGITransport, AsyncClient

from keyadmin.main import app
from tests.factories import ADMIN_PASSWORD


@pytest.fixture
def app_with_overrides(customer_service):
    """App with CustomerService overridden: fake repositories, AsyncMock key manager."""
    from keyadmin.api import dependencies

    app.dependency_overrides[dependencies.get_customer_service] = lambda: customer_service
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def async_client(app_with_overrides):
    """Async HTTP client without a session."""
    transport = ASGITransport(app=app_with_overrides)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def admin_client(async_client):
    """Same client after a successful login; the session cookie is in its jar."""
    r = await async_client.post("/api/auth/login", json={"password": ADMIN_PASSWORD})
    assert r.status_code == 200
    return async_client
