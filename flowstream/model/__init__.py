"""Client-side data model.

Frozen snapshots of the graph under computation together with execution,
traversal and connection state. The store owns a single :class:`FlowState`
and replaces it on every transition.
"""

from flowstream.model.graph import EdgeState, GraphSnapshot, NodeInfo
from flowstream.model.state import (
    DEFAULT_FRONTIER_LIMIT,
    ConnectionState,
    ExecutionState,
    FlowState,
    HistoryLimits,
    TraversalState,
)

__all__ = [
    # Graph
    "GraphSnapshot",
    "NodeInfo",
    "EdgeState",
    # State
    "FlowState",
    "ExecutionState",
    "TraversalState",
    "ConnectionState",
    "HistoryLimits",
    "DEFAULT_FRONTIER_LIMIT",
]
