"""WebSocket connection lifecycle for the engine's event stream.

``disconnected -> connecting -> connected -> disconnected`` on close or
error. After a failure the manager waits according to
:class:`~flowstream.transport.backoff.BackoffPolicy` and tries again until the
attempt cap is reached; from then on only :meth:`ConnectionManager.reconnect`
starts a new attempt. Every state change goes through the store, the manager
itself keeps only the socket handle and its tasks.

Inbound messages are decoded with :func:`~flowstream.protocol.events.parse_event`
and dispatched to the store in delivery order. Undecodable messages are logged
and dropped.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Dict, Optional

import aiohttp

from flowstream.errors import EventParseError
from flowstream.logging import get_logger
from flowstream.protocol.events import RawMessage, encode_command, parse_event
from flowstream.reducer import with_connection
from flowstream.store import StateStore
from flowstream.transport.backoff import BackoffPolicy
from flowstream.types.base import ConnectionStatus

logger = get_logger(__name__)

_DATA_MESSAGES = (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY)


class ConnectionManager:
    """Owns the streaming connection and its reconnect schedule.

    Args:
        store: Store receiving decoded events and connection state.
        session: aiohttp session used to open the WebSocket.
        ws_url: Streaming endpoint.
        policy: Reconnect backoff policy.
        connect_timeout_s: Timeout for a single connect attempt.
        heartbeat_s: WebSocket ping interval, or None to disable.
        clock: Monotonic clock used for backoff gating.
    """

    def __init__(
        self,
        store: StateStore,
        session: aiohttp.ClientSession,
        ws_url: str,
        policy: Optional[BackoffPolicy] = None,
        connect_timeout_s: float = 10.0,
        heartbeat_s: Optional[float] = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._session = session
        self._url = ws_url
        self._policy = policy if policy is not None else BackoffPolicy()
        self._connect_timeout_s = connect_timeout_s
        self._heartbeat_s = heartbeat_s
        self._clock = clock

        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._reader: Optional[asyncio.Task] = None
        self._retry: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()
        self._closing = False

    @property
    def policy(self) -> BackoffPolicy:
        return self._policy

    @property
    def is_connected(self) -> bool:
        return (
            self._ws is not None
            and not self._ws.closed
            and self._store.state.connection.is_connected
        )

    @property
    def retry_pending(self) -> bool:
        return self._retry is not None and not self._retry.done()

    async def connect(self) -> bool:
        """Open the stream unless it is already open.

        Returns:
            True when connected afterwards.
        """
        self._closing = False
        async with self._lock:
            if self.is_connected:
                return True
            return await self._open()

    async def reconnect(self) -> bool:
        """Manual reconnect: reset the attempt counter and connect now."""
        self._cancel_retry()
        self._store.apply(with_connection, reconnect_attempt=0)
        return await self.connect()

    async def send(self, message: Dict[str, Any]) -> bool:
        """Send one JSON message over the open stream.

        Returns:
            False if not connected or the transport rejected the message.
        """
        ws = self._ws
        if ws is None or ws.closed:
            logger.warning("Cannot send %s: not connected", message)
            return False
        try:
            await ws.send_json(message)
        except (aiohttp.ClientError, ConnectionError, RuntimeError) as exc:
            logger.warning("Failed to send %s: %r", message, exc)
            return False
        return True

    async def send_command(self, name: str) -> bool:
        return await self.send(encode_command(name))

    async def close(self) -> None:
        """Close the stream and stop automatic reconnects."""
        self._closing = True
        self._cancel_retry()
        ws, self._ws = self._ws, None
        if ws is not None and not ws.closed:
            await ws.close()
        reader, self._reader = self._reader, None
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass
        self._store.apply(with_connection, status=ConnectionStatus.DISCONNECTED)

    async def wait_closed(self) -> None:
        """Wait until the current reader task has finished."""
        if self._reader is not None:
            await asyncio.shield(self._reader)

    def handle_message(self, raw: RawMessage) -> None:
        """Decode one inbound message and hand it to the store."""
        try:
            event = parse_event(raw)
        except EventParseError as exc:
            logger.warning("Dropping unparseable message: %s", exc)
            return
        self._store.dispatch(event)

    # ---- internals -------------------------------------------------------
    async def _open(self) -> bool:
        self._store.apply(
            with_connection,
            status=ConnectionStatus.CONNECTING,
            last_attempt_at=self._clock(),
        )
        try:
            ws = await asyncio.wait_for(
                self._session.ws_connect(self._url, heartbeat=self._heartbeat_s),
                timeout=self._connect_timeout_s,
            )
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
            logger.warning("WebSocket connection to %s failed: %r", self._url, exc)
            self._store.apply(with_connection, status=ConnectionStatus.DISCONNECTED)
            self._schedule_reconnect()
            return False

        self._ws = ws
        self._store.apply(
            with_connection, status=ConnectionStatus.CONNECTED, reconnect_attempt=0
        )
        logger.info("WebSocket connection established: %s", self._url)
        self._reader = asyncio.create_task(self._read_loop(ws))
        return True

    async def _read_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        try:
            async for msg in ws:
                if msg.type in _DATA_MESSAGES:
                    self.handle_message(msg.data)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    logger.warning("WebSocket error: %r", ws.exception())
                    break
        except (aiohttp.ClientError, ConnectionError) as exc:
            logger.warning("WebSocket receive failed: %r", exc)
        finally:
            self._on_closed(ws)

    def _on_closed(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        if self._ws is not ws:
            return
        self._ws = None
        logger.info("WebSocket connection closed")
        self._store.apply(with_connection, status=ConnectionStatus.DISCONNECTED)
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if self._closing or self.retry_pending:
            return
        attempt = self._store.state.connection.reconnect_attempt
        if not self._policy.can_retry(attempt):
            logger.warning(
                "Giving up after %d reconnect attempt(s); reconnect manually",
                attempt,
            )
            return
        self._retry = asyncio.get_running_loop().create_task(
            self._retry_after(attempt)
        )

    async def _retry_after(self, attempt: int) -> None:
        connection = self._store.state.connection
        wait = self._policy.remaining_wait(
            attempt, self._clock(), connection.last_attempt_at
        )
        logger.info(
            "Reconnecting in %.1fs (attempt %d/%d)",
            wait,
            attempt + 1,
            self._policy.max_attempts,
        )
        await asyncio.sleep(wait)
        # Cleared before connecting so a failed attempt can schedule the next
        self._retry = None
        if self.is_connected:
            return
        self._store.apply(with_connection, reconnect_attempt=attempt + 1)
        await self.connect()

    def _cancel_retry(self) -> None:
        retry, self._retry = self._retry, None
        if retry is None or retry.done() or retry is asyncio.current_task():
            return
        retry.cancel()
