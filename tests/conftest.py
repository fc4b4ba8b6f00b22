"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator
from typing import Any
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from redis.exceptions import WatchError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from clinic_inbox.db.base import Base
from clinic_inbox.models import Client, Clinic, Lead


# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

INSTANCE_ID = "1101000001"


@pytest.fixture
async def async_engine():
    """Create async engine for testing."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine (what workers open per cycle)."""
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for testing."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def sample_clinic(db_session: AsyncSession) -> Clinic:
    """A clinic with a configured, enabled and authorized Green API instance."""
    clinic = Clinic(
        id=uuid4(),
        name="Dental Care Haifa",
        whatsapp_instance_id=INSTANCE_ID,
        whatsapp_api_token="test-token",
        whatsapp_enabled=True,
        whatsapp_authorized=True,
    )
    db_session.add(clinic)
    await db_session.commit()
    await db_session.refresh(clinic)
    return clinic


@pytest.fixture
async def sample_client(db_session: AsyncSession, sample_clinic: Clinic) -> Client:
    client = Client(
        id=uuid4(),
        clinic_id=sample_clinic.id,
        first_name="Dana",
        last_name="Levi",
        phone_primary="0501234567",
        status="active",
    )
    db_session.add(client)
    await db_session.commit()
    await db_session.refresh(client)
    return client


@pytest.fixture
async def sample_lead(db_session: AsyncSession, sample_clinic: Clinic) -> Lead:
    lead = Lead(
        id=uuid4(),
        clinic_id=sample_clinic.id,
        first_name="Yossi",
        phone="0527654321",
        status="new",
    )
    db_session.add(lead)
    await db_session.commit()
    await db_session.refresh(lead)
    return lead


@pytest.fixture
def incoming_notification() -> dict[str, Any]:
    """Green API incomingMessageReceived body (webhook and queue share it)."""
    return {
        "typeWebhook": "incomingMessageReceived",
        "instanceData": {
            "idInstance": int(INSTANCE_ID),
            "wid": "972500000000@c.us",
            "typeInstance": "whatsapp",
        },
        "timestamp": 1760860800,
        "idMessage": "abc123",
        "senderData": {
            "chatId": "972501234567@c.us",
            "sender": "972501234567@c.us",
            "senderName": "Dana",
        },
        "messageData": {
            "typeMessage": "textMessage",
            "textMessageData": {"textMessage": "Hi, can I move my appointment?"},
        },
    }


class FakePipeline:
    """Queues list commands and applies them on execute().

    After watch() reads run immediately; execute() raises WatchError if a
    watched key was written in the meantime.
    """

    def __init__(self, redis: "FakeRedis"):
        self.redis = redis
        self.commands: list[tuple] = []
        self.watched: dict[str, int] = {}

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.watched = {}
        return False

    async def watch(self, *keys):
        self.watched = {key: self.redis.versions.get(key, 0) for key in keys}

    async def lrange(self, key, start, end):
        return await self.redis.lrange(key, start, end)

    def multi(self):
        self.commands = []

    def lpush(self, key, value):
        self.commands.append(("lpush", key, value))

    def ltrim(self, key, start, end):
        self.commands.append(("ltrim", key, start, end))

    def lset(self, key, index, value):
        self.commands.append(("lset", key, index, value))

    def expire(self, key, seconds):
        self.commands.append(("expire", key, seconds))

    async def execute(self):
        commands, self.commands = self.commands, []
        watched, self.watched = self.watched, {}
        if any(self.redis.versions.get(key, 0) != version for key, version in watched.items()):
            raise WatchError("Watched variable changed.")

        for command in commands:
            if command[0] == "lpush":
                self.redis.lists.setdefault(command[1], []).insert(0, command[2])
            elif command[0] == "ltrim":
                items = self.redis.lists.get(command[1], [])
                self.redis.lists[command[1]] = items[command[2] : command[3] + 1]
            elif command[0] == "lset":
                self.redis.lists[command[1]][command[2]] = command[3]
            self.redis.touch(command[1])


class FakeRedis:
    """In-memory stand-in for the few redis.asyncio calls the app makes."""

    def __init__(self):
        self.lists: dict[str, list[str]] = {}
        self.versions: dict[str, int] = {}
        self.published: list[tuple[str, str]] = []

    def touch(self, key):
        self.versions[key] = self.versions.get(key, 0) + 1

    async def publish(self, channel, message):
        self.published.append((channel, message))
        return 1

    def pipeline(self, transaction=True):
        return FakePipeline(self)

    async def lrange(self, key, start, end):
        items = self.lists.get(key, [])
        return items[start:] if end == -1 else items[start : end + 1]

    async def delete(self, key):
        self.lists.pop(key, None)
        self.touch(key)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def mock_green_api_client():
    """Mock Green API client for testing."""
    client = MagicMock()
    client.config = MagicMock(can_send=True, can_poll=True)
    client.send_text = AsyncMock(return_value="BAE5F4886F6F2D05")
    client.receive_notification = AsyncMock(return_value=None)
    client.delete_notification = AsyncMock(return_value=True)
    client.last_incoming_messages = AsyncMock(return_value=[])
    client.last_outgoing_messages = AsyncMock(return_value=[])
    return client
