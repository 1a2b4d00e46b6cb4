"""Shared fixtures for flowstream tests.

Provides a small diamond-shaped network, a helper to fold event sequences
through the reducer, and fake aiohttp WebSocket objects for connection tests
that do not need a real server.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Iterable, List, Optional

import aiohttp
import pytest

from flowstream.model.state import FlowState
from flowstream.protocol.events import Event
from flowstream.reducer import reduce

#   0 --3--> 1 --2--> 3
#   |        |1       ^
#   +--2---> 2 --3----+
DIAMOND_NODES: List[Dict[str, Any]] = [
    {"id": 0, "x": 0.0, "y": 50.0, "label": "s"},
    {"id": 1, "x": 50.0, "y": 0.0},
    {"id": 2, "x": 50.0, "y": 100.0},
    {"id": 3, "x": 100.0, "y": 50.0, "label": "t"},
]
DIAMOND_EDGES: List[Dict[str, Any]] = [
    {"source": 0, "target": 1, "capacity": 3, "flow": 0},
    {"source": 0, "target": 2, "capacity": 2, "flow": 0},
    {"source": 1, "target": 2, "capacity": 1, "flow": 0},
    {"source": 1, "target": 3, "capacity": 2, "flow": 0},
    {"source": 2, "target": 3, "capacity": 3, "flow": 0},
]


def _fold(events: Iterable[Event], state: Optional[FlowState] = None) -> FlowState:
    """Apply ``events`` in order starting from ``state`` (empty by default)."""
    state = state if state is not None else FlowState()
    for event in events:
        state = reduce(state, event)
    return state


def _init_event() -> Event:
    return Event.of("init", nodes=DIAMOND_NODES, edges=DIAMOND_EDGES)


@pytest.fixture
def fold():
    """Return a helper that folds a list of events through the reducer."""
    return _fold


@pytest.fixture
def init_event() -> Event:
    """``init`` event carrying the diamond network."""
    return _init_event()


@pytest.fixture
def diamond_state() -> FlowState:
    """Snapshot right after ``init`` of the diamond network."""
    return _fold([_init_event()])


class FakeMessage:
    def __init__(self, type: aiohttp.WSMsgType, data: Any = None) -> None:
        self.type = type
        self.data = data


class FakeWebSocket:
    """Minimal stand-in for ``aiohttp.ClientWebSocketResponse``.

    Messages pushed with :meth:`feed` are yielded by async iteration; calling
    :meth:`finish` ends the iteration as a server-side close would.
    """

    def __init__(self, fail_send: bool = False) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self.sent: List[Dict[str, Any]] = []
        self.closed = False
        self.fail_send = fail_send

    def feed(self, data: Any) -> None:
        self._queue.put_nowait(FakeMessage(aiohttp.WSMsgType.TEXT, data))

    def finish(self) -> None:
        self._queue.put_nowait(None)

    async def send_json(self, data: Dict[str, Any]) -> None:
        if self.fail_send:
            raise ConnectionResetError("socket went away")
        self.sent.append(data)

    async def close(self) -> None:
        self.closed = True
        self.finish()

    def exception(self) -> Optional[BaseException]:
        return None

    def __aiter__(self) -> "FakeWebSocket":
        return self

    async def __anext__(self) -> FakeMessage:
        msg = await self._queue.get()
        if msg is None:
            self.closed = True
            raise StopAsyncIteration
        return msg


class FakeSession:
    """Fake aiohttp session whose ``ws_connect`` fails a set number of times."""

    def __init__(self, failures: int = 0) -> None:
        self.failures = failures
        self.attempts = 0
        self.sockets: List[FakeWebSocket] = []

    async def ws_connect(self, url: str, **kwargs: Any) -> FakeWebSocket:
        self.attempts += 1
        if self.attempts <= self.failures:
            raise aiohttp.ClientConnectionError(f"connection refused: {url}")
        ws = FakeWebSocket()
        self.sockets.append(ws)
        return ws


@pytest.fixture
def fake_session() -> FakeSession:
    """Session whose connects always succeed."""
    return FakeSession()


@pytest.fixture
def failing_session():
    """Factory for sessions failing the first ``n`` connect attempts."""
    return FakeSession


async def _wait_until(predicate, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached before timeout")
        await asyncio.sleep(0.005)


@pytest.fixture
def wait_until():
    """Return a coroutine function polling ``predicate`` until it holds."""
    return _wait_until
