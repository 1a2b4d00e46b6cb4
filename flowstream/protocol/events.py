"""Event envelope codec for the engine's streaming protocol.

Each inbound message is one JSON object carrying a ``type`` tag plus
type-specific fields. :func:`parse_event` turns a raw message into an
:class:`Event`; anything that is not a JSON object with a string ``type``
raises :class:`~flowstream.errors.EventParseError`. Field-level validation is
left to the reducer, which tolerates missing or malformed fields per event.

Outbound commands are JSON objects of the form ``{"command": <name>}``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Union

from flowstream.errors import EventParseError

INIT = "init"
NODE_VISITED = "node_visited"
EDGE_EXPLORED = "edge_explored"
EDGE_EXAMINED = "edge_examined"
EDGE_UPDATED = "edge_updated"
BFS_START = "bfs_start"
BFS_COMPLETE = "bfs_complete"
BFS_FRONTIER = "bfs_frontier"
DFS_START = "dfs_start"
DFS_COMPLETE = "dfs_complete"
DFS_VISIT = "dfs_visit"
PATH_FOUND = "path_found"
PATH_REJECTED = "path_rejected"
BACKTRACK = "backtrack"
ITERATION_START = "iteration_start"
FLOW_UPDATE = "flow_update"
ALGORITHM_COMPLETE = "algorithm_complete"
ALGORITHM_STOPPED = "algorithm_stopped"
RESULT = "result"
READY = "ready"
ERROR = "error"

#: All event types the reducer understands.
EVENT_TYPES: FrozenSet[str] = frozenset(
    {
        INIT,
        NODE_VISITED,
        EDGE_EXPLORED,
        EDGE_EXAMINED,
        EDGE_UPDATED,
        BFS_START,
        BFS_COMPLETE,
        BFS_FRONTIER,
        DFS_START,
        DFS_COMPLETE,
        DFS_VISIT,
        PATH_FOUND,
        PATH_REJECTED,
        BACKTRACK,
        ITERATION_START,
        FLOW_UPDATE,
        ALGORITHM_COMPLETE,
        ALGORITHM_STOPPED,
        RESULT,
        READY,
        ERROR,
    }
)

STOP_COMMAND = "stop"

RawMessage = Union[str, bytes, bytearray, Mapping[str, Any]]


@dataclass(frozen=True)
class Event:
    """A decoded stream event.

    Attributes:
        type: Event type tag.
        payload: Remaining fields of the envelope, read-only.
    """

    type: str
    payload: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def of(cls, type: str, **fields: Any) -> "Event":
        """Build an event directly from keyword fields."""
        return cls(type=type, payload=MappingProxyType(dict(fields)))

    @property
    def is_known(self) -> bool:
        return self.type in EVENT_TYPES

    def get(self, key: str, default: Any = None) -> Any:
        return self.payload.get(key, default)

    def __getitem__(self, key: str) -> Any:
        return self.payload[key]

    def to_dict(self) -> Dict[str, Any]:
        """Return the envelope as a plain dict, ``type`` included."""
        data = dict(self.payload)
        data["type"] = self.type
        return data


def parse_event(raw: RawMessage) -> Event:
    """Decode one inbound message into an :class:`Event`.

    Args:
        raw: JSON text, UTF-8 bytes, or an already-decoded mapping.

    Returns:
        The decoded event.

    Raises:
        EventParseError: If the message is not valid JSON, not an object, or has
            no string ``type`` field.
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise EventParseError(f"message is not UTF-8: {exc}") from exc

    if isinstance(raw, str):
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise EventParseError(f"message is not valid JSON: {exc.msg}") from exc
    else:
        data = raw

    if not isinstance(data, Mapping):
        raise EventParseError(
            f"message must be a JSON object, got {type(data).__name__}"
        )

    event_type = data.get("type")
    if not isinstance(event_type, str) or not event_type:
        raise EventParseError("message has no string 'type' field")

    payload = {k: v for k, v in data.items() if k != "type"}
    return Event(type=event_type, payload=MappingProxyType(payload))


def encode_command(name: str) -> Dict[str, str]:
    """Return the outbound command envelope for ``name``."""
    return {"command": name}
