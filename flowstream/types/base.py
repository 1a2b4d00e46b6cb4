"""Base enums and aliases shared across the client."""

from __future__ import annotations

from enum import Enum
from typing import Tuple, Union

#: Numeric flow or capacity value as reported by the engine.
FlowValue = Union[int, float]

#: Integer node identifier assigned by the engine.
NodeId = int

#: Directed edge key ``(source, target)``.
EdgeKey = Tuple[int, int]

#: Ordered node sequence of a path.
NodePath = Tuple[int, ...]


class _StrEnum(str, Enum):
    """String-valued enum with case-insensitive parsing."""

    @classmethod
    def from_string(cls, value: str):
        """Parse a string into an enum member.

        Args:
            value: Case-insensitive member value or name (e.g., "running", "BFS").

        Returns:
            The corresponding enum member.

        Raises:
            ValueError: If the string doesn't match any member.
        """
        key = value.strip().lower()
        for member in cls:
            if member.value == key:
                return member
        valid = ", ".join(m.value for m in cls)
        raise ValueError(
            f"Invalid {cls.__name__} '{value}'. Valid values are: {valid}"
        )

    def __str__(self) -> str:
        return self.value


class RunStatus(_StrEnum):
    """Lifecycle of one algorithm run as seen by the client."""

    IDLE = "idle"
    CONNECTING = "connecting"
    RUNNING = "running"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def is_active(self) -> bool:
        """True while a run is requested or in progress."""
        return self in (RunStatus.CONNECTING, RunStatus.RUNNING)


class Phase(_StrEnum):
    """Traversal strategy currently active in the engine."""

    NONE = "none"
    BFS = "bfs"
    DFS = "dfs"


class ConnectionStatus(_StrEnum):
    """State of the streaming transport."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
