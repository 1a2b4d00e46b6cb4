"""Exception types raised inside the flowstream core."""

from __future__ import annotations

from typing import Optional


class FlowStreamError(Exception):
    """Base class for flowstream errors."""


class EventParseError(FlowStreamError, ValueError):
    """An inbound message could not be decoded into an event envelope."""


class ConfigError(FlowStreamError, ValueError):
    """Client configuration is malformed."""


class EngineRequestError(FlowStreamError):
    """A request to the engine's HTTP API failed.

    Attributes:
        detail: Human-readable failure message (server ``detail`` when present).
        status: HTTP status code, or None when the request never got a response.
    """

    def __init__(self, detail: str, status: Optional[int] = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status = status
