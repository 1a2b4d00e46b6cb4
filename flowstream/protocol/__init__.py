"""Wire protocol spoken by the max-flow engine."""

from flowstream.protocol.events import (
    EVENT_TYPES,
    STOP_COMMAND,
    Event,
    encode_command,
    parse_event,
)

__all__ = [
    "Event",
    "EVENT_TYPES",
    "STOP_COMMAND",
    "parse_event",
    "encode_command",
]
