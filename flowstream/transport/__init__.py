"""Network transport to the max-flow engine.

:class:`ConnectionManager` owns the WebSocket event stream and its reconnect
schedule; :class:`EngineClient` covers the HTTP start/stop/config endpoints.
"""

from flowstream.transport.backoff import BackoffPolicy
from flowstream.transport.connection import ConnectionManager
from flowstream.transport.http import EngineClient, EngineOptions, StartRequest

__all__ = [
    "BackoffPolicy",
    "ConnectionManager",
    "EngineClient",
    "EngineOptions",
    "StartRequest",
]
