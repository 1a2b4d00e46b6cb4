"""Command dispatcher: start and stop requests with local state correction.

``start`` only reports success after the engine accepted the request; any
local failure rolls the run back to ``idle`` (never reached the engine) or
``error`` (engine rejected it) and surfaces the message.

``stop`` is best-effort. It sends the stop command when it can and always arms
a fallback timer that forces the run back to ``idle``, so a missing
acknowledgment can never leave the client believing a run is active. The
timer says nothing about whether the engine actually stopped.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

from flowstream.errors import EngineRequestError
from flowstream.logging import get_logger
from flowstream.protocol.events import STOP_COMMAND
from flowstream.reducer import mark_error, mark_idle, start_accepted, start_requested
from flowstream.store import StateStore
from flowstream.transport.connection import ConnectionManager
from flowstream.transport.http import EngineClient, StartRequest
from flowstream.types.base import RunStatus

logger = get_logger(__name__)

NOT_CONNECTED = "Not connected to server. Please wait for connection to establish."


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a user command.

    Attributes:
        ok: True when the command reached the engine.
        detail: Failure message, or a short note on success.
    """

    ok: bool
    detail: str = ""


class CommandDispatcher:
    """Translate user intents into engine requests.

    Args:
        store: Store holding the run state.
        connection: Streaming connection used for commands.
        engine: HTTP client for start/stop requests.
        stop_fallback_ms: Fallback delay when already connected at stop time.
        stop_fallback_reconnect_ms: Fallback delay when stop had to reconnect.
    """

    def __init__(
        self,
        store: StateStore,
        connection: ConnectionManager,
        engine: EngineClient,
        stop_fallback_ms: int = 1000,
        stop_fallback_reconnect_ms: int = 500,
    ) -> None:
        self._store = store
        self._connection = connection
        self._engine = engine
        self._stop_fallback_ms = stop_fallback_ms
        self._stop_fallback_reconnect_ms = stop_fallback_reconnect_ms
        self._fallback: Optional[asyncio.TimerHandle] = None

    @property
    def fallback_pending(self) -> bool:
        return self._fallback is not None and not self._fallback.cancelled()

    async def start(self, request: StartRequest) -> CommandResult:
        """Start a run, connecting first if needed."""
        if not self._connection.is_connected:
            await self._connection.connect()
        if not self._connection.is_connected:
            self._store.apply(mark_error, NOT_CONNECTED, status=RunStatus.IDLE)
            self._store.publish_error(NOT_CONNECTED)
            return CommandResult(ok=False, detail=NOT_CONNECTED)

        self.cancel_pending()
        self._store.apply(
            start_requested,
            source=request.source,
            sink=request.sink,
            algorithm=request.algorithm,
            graph_type=request.graph_type,
            graph_file=request.graph_file,
            speed=request.normalized_speed,
        )
        try:
            await self._engine.start_algorithm(request)
        except EngineRequestError as exc:
            message = f"Failed to start algorithm: {exc.detail}"
            self._store.apply(mark_error, message)
            self._store.publish_error(message)
            return CommandResult(ok=False, detail=message)

        self._store.apply(start_accepted)
        return CommandResult(ok=True, detail="Algorithm started")

    async def stop(self) -> CommandResult:
        """Request a stop and arm the local fallback reset."""
        if self._connection.is_connected:
            delay_ms = self._stop_fallback_ms
        else:
            delay_ms = self._stop_fallback_reconnect_ms
            await self._connection.connect()

        self._arm_fallback(delay_ms)

        if self._connection.is_connected and await self._connection.send_command(
            STOP_COMMAND
        ):
            return CommandResult(ok=True, detail="Stop command sent")

        try:
            await self._engine.stop_algorithm()
        except EngineRequestError as exc:
            message = f"Failed to stop algorithm: {exc.detail}"
            logger.warning("%s", message)
            return CommandResult(ok=False, detail=message)
        return CommandResult(ok=True, detail="Stop request sent")

    def cancel_pending(self) -> None:
        """Cancel an armed stop fallback, if any."""
        if self._fallback is not None:
            self._fallback.cancel()
            self._fallback = None

    def _arm_fallback(self, delay_ms: int) -> None:
        self.cancel_pending()
        loop = asyncio.get_running_loop()
        self._fallback = loop.call_later(delay_ms / 1000.0, self._force_idle)

    def _force_idle(self) -> None:
        self._fallback = None
        if self._store.state.execution.status.is_active:
            logger.info("No stop acknowledgment received; resetting run to idle")
        self._store.apply(mark_idle, "Algorithm stopped by user")
