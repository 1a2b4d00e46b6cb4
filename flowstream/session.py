"""Composition root wiring store, transport and commands for one client.

Example:
    >>> async with FlowSession(ClientConfig()) as session:
    ...     session.store.subscribe(render)
    ...     await session.connect()
    ...     await session.start(StartRequest(source=0, graph_file="SG.json"))
"""

from __future__ import annotations

from types import TracebackType
from typing import Optional, Type

import aiohttp

from flowstream.commands import CommandDispatcher, CommandResult
from flowstream.config import ClientConfig
from flowstream.logging import get_logger
from flowstream.store import StateStore
from flowstream.transport.backoff import BackoffPolicy
from flowstream.transport.connection import ConnectionManager
from flowstream.transport.http import EngineClient, EngineOptions, StartRequest

logger = get_logger(__name__)


class FlowSession:
    """One client session against one engine.

    The session owns its aiohttp ``ClientSession`` unless one is passed in.
    Use it as an async context manager, or call :meth:`close` explicitly.

    Args:
        config: Client configuration; defaults to :class:`ClientConfig`.
        http: Optional externally owned aiohttp session.
        store: Optional pre-built store (e.g. with subscribers attached).
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        http: Optional[aiohttp.ClientSession] = None,
        store: Optional[StateStore] = None,
    ) -> None:
        self.config = config if config is not None else ClientConfig()
        self._owns_http = http is None
        self._http = http
        self.store = (
            store
            if store is not None
            else StateStore(limits=self.config.history_limits())
        )
        self.connection: Optional[ConnectionManager] = None
        self.engine: Optional[EngineClient] = None
        self.commands: Optional[CommandDispatcher] = None

    async def open(self) -> "FlowSession":
        """Create the HTTP session and wire components. Idempotent."""
        if self.commands is not None:
            return self
        if self._http is None:
            self._http = aiohttp.ClientSession()
        cfg = self.config
        self.engine = EngineClient(self._http, cfg.base_url, cfg.request_timeout_s)
        self.connection = ConnectionManager(
            self.store,
            self._http,
            cfg.ws_url,
            policy=BackoffPolicy(
                base_ms=cfg.backoff_base_ms,
                max_ms=cfg.backoff_max_ms,
                max_attempts=cfg.max_reconnect_attempts,
            ),
            connect_timeout_s=cfg.connect_timeout_s,
            heartbeat_s=cfg.heartbeat_s,
        )
        self.commands = CommandDispatcher(
            self.store,
            self.connection,
            self.engine,
            stop_fallback_ms=cfg.stop_fallback_ms,
            stop_fallback_reconnect_ms=cfg.stop_fallback_reconnect_ms,
        )
        return self

    async def connect(self) -> bool:
        await self.open()
        return await self.connection.connect()

    async def reconnect(self) -> bool:
        await self.open()
        return await self.connection.reconnect()

    async def fetch_options(self) -> EngineOptions:
        await self.open()
        return await self.engine.fetch_options()

    async def start(self, request: StartRequest) -> CommandResult:
        await self.open()
        return await self.commands.start(request)

    async def stop(self) -> CommandResult:
        await self.open()
        return await self.commands.stop()

    async def close(self) -> None:
        """Cancel timers, close the stream and release the HTTP session."""
        if self.commands is not None:
            self.commands.cancel_pending()
        if self.connection is not None:
            await self.connection.close()
        if self._owns_http and self._http is not None and not self._http.closed:
            await self._http.close()
        logger.debug("Session closed")

    async def __aenter__(self) -> "FlowSession":
        return await self.open()

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.close()
