"""
Test fixtures for Bondly API tests.
"""

import asyncio
import os
from collections import defaultdict

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set test configuration before importing app
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "development"

from bondly.advice import AdviceContent, Perspective
from bondly.api.deps import get_advice_generator, get_event_stream
from bondly.config import Settings, get_settings
from bondly.db import Base, get_sessionmaker
from bondly.main import app
from bondly.stream import StreamEvent
from factories import CREATOR_PAYLOAD, PARTNER_PAYLOAD

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class InMemoryEventStream:
    """Stand-in for the Redis event stream."""

    def __init__(self):
        self.published: list[tuple[str, str, dict]] = []
        self._subscribers: dict[str, list[asyncio.Queue]] = defaultdict(list)

    async def publish(self, session_id: str, event_type: str, data: dict) -> str:
        self.published.append((session_id, event_type, data))
        event = StreamEvent(str(len(self.published)), event_type, data)
        for queue in self._subscribers[session_id]:
            queue.put_nowait(event)
        return event.id

    async def subscribe(self, session_id: str, last_id: str = "$", block_ms: int = 5000, event_types=None):
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers[session_id].append(queue)
        try:
            while True:
                event = await queue.get()
                if event_types is None or event.type in event_types:
                    yield event
        finally:
            self._subscribers[session_id].remove(queue)

    async def close(self) -> None:
        pass

    def statuses(self, session_id: str) -> list[str]:
        return [
            data["status"]
            for sid, event_type, data in self.published
            if sid == session_id and event_type == "status"
        ]


class FakeAdviceGenerator:
    """Returns advice naming both parties.

    Set ``error`` to fail every call, or ``errors[name]`` to fail only the
    call addressed to that participant.
    """

    def __init__(self):
        self.calls: list[tuple[Perspective, Perspective]] = []
        self.error: Exception | None = None
        self.errors: dict[str, Exception] = {}

    async def generate(self, recipient: Perspective, counterpart: Perspective) -> AdviceContent:
        self.calls.append((recipient, counterpart))
        error = self.errors.get(recipient.name, self.error)
        if error is not None:
            raise error
        return AdviceContent(
            advice=f"Advice for {recipient.name} about {counterpart.name}",
            action_steps=["Listen", "Reflect", "Talk"],
            conversation_starters=["How are you?", "I hear you.", "Can we talk?"],
        )

    def call_for(self, name: str) -> tuple[Perspective, Perspective]:
        return next(call for call in self.calls if call[0].name == name)


@pytest.fixture
async def engine():
    """In-memory SQLite shared over a single connection, tables created."""
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def sessionmaker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def events():
    return InMemoryEventStream()


@pytest.fixture
def generator():
    return FakeAdviceGenerator()


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        database_url=TEST_DATABASE_URL,
        environment="development",
        cron_secret="s3cret",
        response_poll_attempts=3,
        response_poll_delay=0,
        status_poll_interval=0.01,
        site_url="https://bondly.test",
    )


@pytest.fixture
async def client(sessionmaker, events, generator, settings):
    """Async HTTP client for testing FastAPI app."""
    app.dependency_overrides[get_sessionmaker] = lambda: sessionmaker
    app.dependency_overrides[get_event_stream] = lambda: events
    app.dependency_overrides[get_advice_generator] = lambda: generator
    app.dependency_overrides[get_settings] = lambda: settings

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def db_session(sessionmaker):
    """Direct database session for test setup/assertions."""
    async with sessionmaker() as session:
        yield session


@pytest.fixture
async def waiting_session(client):
    """A session where only the creator has answered."""
    response = await client.post("/api/sessions", json=CREATOR_PAYLOAD)
    assert response.status_code == 200
    return response.json()


@pytest.fixture
async def completed_session(client, waiting_session):
    """A session where both participants have answered."""
    token = waiting_session["session"]["shareToken"]
    response = await client.post(f"/api/partner/{token}/responses", json=PARTNER_PAYLOAD)
    assert response.status_code == 200
    return {
        "id": waiting_session["session"]["id"],
        "token": token,
        "creator_user_id": waiting_session["userId"],
        "partner_user_id": response.json()["userId"],
    }

