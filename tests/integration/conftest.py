"""Fixtures for tests that go through the HTTP app."""

import pytest
from httpx import ASGITransport, AsyncClient

from clinic_inbox.api.deps import get_redis
from clinic_inbox.db.session import get_db
from clinic_inbox.main import create_app


@pytest.fixture
def app(db_session, fake_redis):
    """Fresh application (and rate limiter) with test database and Redis."""
    application = create_app()

    async def override_get_db():
        yield db_session

    async def override_get_redis():
        yield fake_redis

    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_redis] = override_get_redis
    return application


@pytest.fixture
async def http_client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
