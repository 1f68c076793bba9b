"""
Pytest configuration and shared fixtures for Flowgazer tests.

Provides:
- FakeConnection / FakeConnector standing in for the aiohttp WebSocket
- make_event() factory producing structurally valid events
- A controllable signature verifier
- RecordingSurface counting render refreshes
"""

import asyncio
import itertools
import json
import logging
from collections.abc import Callable
from typing import Any

import pytest

from flowgazer.client.configs import (
    ProfileBatcherConfig,
    RelayLinkConfig,
    ViewRouterConfig,
)
from flowgazer.models import Event


PK_ALICE = "a1" * 32
PK_BOB = "b2" * 32
PK_CAROL = "c3" * 32
PK_ME = "e4" * 32
SIG = "f" * 128

RELAY_URL = "wss://relay.test"

_event_ids = itertools.count(1)


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)


# ============================================================================
# Event Factories
# ============================================================================


def make_event(
    kind: int = 1,
    pubkey: str = PK_ALICE,
    created_at: int = 1_700_000_000,
    tags: list[list[str]] | None = None,
    content: str = "hello",
    event_id: str | None = None,
) -> Event:
    """Build a structurally valid event with a unique id."""
    return Event(
        id=event_id or f"{next(_event_ids):064x}",
        pubkey=pubkey,
        created_at=created_at,
        kind=kind,
        tags=tags or [],
        content=content,
        sig=SIG,
    )


def make_profile_event(pubkey: str, name: str, created_at: int = 1_700_000_000) -> Event:
    return make_event(kind=0, pubkey=pubkey, created_at=created_at, content=json.dumps({"name": name}))


class Verifier:
    """Signature verifier accepting everything except explicitly rejected ids."""

    def __init__(self) -> None:
        self.rejected: set[str] = set()
        self.calls: list[str] = []

    def __call__(self, event: Event) -> bool:
        self.calls.append(event.id)
        return event.id not in self.rejected


@pytest.fixture
def verifier() -> Verifier:
    return Verifier()


# ============================================================================
# Transport Fakes
# ============================================================================


class FakeConnection:
    """In-memory connection: tests feed relay messages and inspect sent frames."""

    def __init__(self, close_delay: float = 0.0) -> None:
        self.incoming: asyncio.Queue[str | None] = asyncio.Queue()
        self.sent: list[list[Any]] = []
        self.closed = False
        self._close_delay = close_delay

    async def send(self, text: str) -> None:
        self.sent.append(json.loads(text))

    async def receive(self) -> str | None:
        return await self.incoming.get()

    async def close(self) -> None:
        if self._close_delay:
            await asyncio.sleep(self._close_delay)
        self.closed = True

    def feed(self, message: list[Any]) -> None:
        self.incoming.put_nowait(json.dumps(message))

    def feed_raw(self, raw: str) -> None:
        self.incoming.put_nowait(raw)

    def drop(self) -> None:
        """Simulate the relay closing the socket."""
        self.incoming.put_nowait(None)

    def sent_of_type(self, frame_type: str) -> list[list[Any]]:
        return [frame for frame in self.sent if frame[0] == frame_type]


class FakeConnector:
    """Connector returning FakeConnections; can fail, hang, or be slow on demand."""

    def __init__(self) -> None:
        self.urls: list[str] = []
        self.connections: list[FakeConnection] = []
        self.failures: list[BaseException] = []
        self.hang = False
        self.delay = 0.0
        self.close_delay = 0.0

    async def __call__(self, url: str) -> FakeConnection:
        self.urls.append(url)
        if self.hang:
            await asyncio.sleep(3600)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.failures:
            raise self.failures.pop(0)
        conn = FakeConnection(self.close_delay)
        self.connections.append(conn)
        return conn

    @property
    def latest(self) -> FakeConnection:
        return self.connections[-1]


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


async def settle(delay: float = 0.01) -> None:
    """Let reader, writer, and dispatch tasks run."""
    await asyncio.sleep(delay)


# ============================================================================
# Config and Surface Fixtures
# ============================================================================


@pytest.fixture
def fast_link_config() -> RelayLinkConfig:
    """Millisecond-scale backoff (2, 4, 8 ms) with the default cap of 3."""
    return RelayLinkConfig(
        connect_timeout=0.05,
        reconnect_base_delay=0.001,
        reconnect_max_delay=0.01,
        max_reconnect_attempts=3,
    )


@pytest.fixture
def fast_batcher_config() -> ProfileBatcherConfig:
    return ProfileBatcherConfig(debounce=0.01, max_batch_size=100)


@pytest.fixture
def fast_router_config() -> ViewRouterConfig:
    return ViewRouterConfig(render_delay=0.01, auto_update=True)


class RecordingSurface:
    """Render surface counting refresh calls, optionally running a hook."""

    def __init__(self, on_refresh: Callable[[], None] | None = None) -> None:
        self.refreshes = 0
        self._on_refresh = on_refresh

    def refresh(self) -> None:
        self.refreshes += 1
        if self._on_refresh is not None:
            self._on_refresh()


@pytest.fixture
def surface() -> RecordingSurface:
    return RecordingSurface()
