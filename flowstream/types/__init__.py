"""Shared typing constructs for flowstream.

Enums for run, phase and connection status plus the aliases used to describe
nodes, edges and paths. Contains no runtime logic beyond enum parsing.
"""

from flowstream.types.base import (
    ConnectionStatus,
    EdgeKey,
    FlowValue,
    NodeId,
    NodePath,
    Phase,
    RunStatus,
)

__all__ = [
    # Enums
    "RunStatus",
    "Phase",
    "ConnectionStatus",
    # Type aliases
    "FlowValue",
    "NodeId",
    "EdgeKey",
    "NodePath",
]
