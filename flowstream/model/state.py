"""Execution, traversal and connection state plus the aggregate snapshot.

Every dataclass here is frozen. Collections are tuples or frozensets so a
snapshot handed to a subscriber can never change underneath it; transitions
produce new instances with :func:`dataclasses.replace`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import FrozenSet, Optional, Sequence, Tuple

from flowstream.model.graph import GraphSnapshot
from flowstream.types.base import (
    ConnectionStatus,
    FlowValue,
    NodeId,
    NodePath,
    Phase,
    RunStatus,
)

#: Number of BFS frontiers retained by default.
DEFAULT_FRONTIER_LIMIT = 10


@dataclass(frozen=True)
class HistoryLimits:
    """Caps on accumulating traversal collections.

    ``None`` leaves a collection unbounded for the duration of a run.

    Attributes:
        frontiers: Maximum number of frontiers kept (oldest dropped first).
        parallel_paths: Maximum number of parallel paths kept.
        rejected_paths: Maximum number of rejected paths kept.
    """

    frontiers: Optional[int] = DEFAULT_FRONTIER_LIMIT
    parallel_paths: Optional[int] = None
    rejected_paths: Optional[int] = None

    def __post_init__(self) -> None:
        for name in ("frontiers", "parallel_paths", "rejected_paths"):
            value = getattr(self, name)
            if value is not None and value < 1:
                raise ValueError(f"{name} limit must be >= 1 or None, got {value}")


def append_capped(items: Tuple, item, limit: Optional[int]) -> Tuple:
    """Append ``item`` and drop the oldest entries beyond ``limit``."""
    result = items + (item,)
    if limit is not None and len(result) > limit:
        result = result[len(result) - limit :]
    return result


@dataclass(frozen=True)
class ExecutionState:
    """Progress of the algorithm run.

    ``iteration`` never decreases within a run; ``init`` resets it to 0.
    ``max_flow`` and ``execution_time_ms`` stay None until completion.
    """

    status: RunStatus = RunStatus.IDLE
    phase: Phase = Phase.NONE
    iteration: int = 0
    current_flow: FlowValue = 0
    max_flow: Optional[FlowValue] = None
    execution_time_ms: Optional[float] = None
    source: Optional[NodeId] = None
    sink: Optional[NodeId] = None
    algorithm: Optional[str] = None
    graph_type: Optional[str] = None
    graph_file: Optional[str] = None
    speed: Optional[float] = None
    last_event: str = ""
    error: Optional[str] = None

    @property
    def is_running(self) -> bool:
        return self.status.is_active


@dataclass(frozen=True)
class TraversalState:
    """Where the traversal currently is inside the graph."""

    visited_nodes: FrozenSet[NodeId] = frozenset()
    current_path: NodePath = ()
    parallel_paths: Tuple[NodePath, ...] = ()
    rejected_paths: Tuple[NodePath, ...] = ()
    last_rejected_node: Optional[NodeId] = None
    frontiers: Tuple[Tuple[NodeId, ...], ...] = ()
    active_bfs_nodes: FrozenSet[NodeId] = frozenset()
    active_dfs_nodes: FrozenSet[NodeId] = frozenset()
    current_bfs_node: Optional[NodeId] = None
    current_dfs_node: Optional[NodeId] = None

    def cleared_for_iteration(self) -> "TraversalState":
        """Drop per-iteration collections, keeping rejected-path history."""
        return replace(
            self,
            visited_nodes=frozenset(),
            current_path=(),
            parallel_paths=(),
            frontiers=(),
            active_bfs_nodes=frozenset(),
            active_dfs_nodes=frozenset(),
            current_bfs_node=None,
            current_dfs_node=None,
        )


@dataclass(frozen=True)
class ConnectionState:
    """Transport status as tracked by the connection manager.

    Attributes:
        status: Current transport state.
        reconnect_attempt: Consecutive failed attempts since the last success.
        last_attempt_at: Monotonic timestamp of the latest connect attempt.
    """

    status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    reconnect_attempt: int = 0
    last_attempt_at: Optional[float] = None

    @property
    def is_connected(self) -> bool:
        return self.status is ConnectionStatus.CONNECTED


@dataclass(frozen=True)
class FlowState:
    """Aggregate snapshot owned by the store."""

    graph: GraphSnapshot = field(default_factory=GraphSnapshot)
    execution: ExecutionState = field(default_factory=ExecutionState)
    traversal: TraversalState = field(default_factory=TraversalState)
    connection: ConnectionState = field(default_factory=ConnectionState)


def as_path(values: Sequence) -> NodePath:
    """Convert a payload sequence into a node path.

    Raises:
        TypeError: If ``values`` is not a list or tuple.
        ValueError: If an element is not an integer node id.
    """
    if not isinstance(values, (list, tuple)):
        raise TypeError(f"path must be a list, got {type(values).__name__}")
    return tuple(int(v) for v in values)
