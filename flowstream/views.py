"""Derived, presentation-only projections of a :class:`FlowState`.

Nothing here mutates the snapshot. :class:`ViewComputer` keeps exactly one
previous result and returns it when asked about the same snapshot object
again; any other snapshot is recomputed from scratch.

Traversal levels are a heuristic reconstruction of BFS depth from whatever
the stream reported, not a real breadth-first search over the graph.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from flowstream.model.graph import EdgeState
from flowstream.model.state import FlowState
from flowstream.types.base import (
    EdgeKey,
    FlowValue,
    NodeId,
    NodePath,
    Phase,
    RunStatus,
)

_PHASE_LABELS = {
    Phase.BFS: "Finding augmenting path (BFS)",
    Phase.DFS: "Augmenting flow (DFS)",
}


def path_segments(path: NodePath) -> Tuple[EdgeKey, ...]:
    """Return consecutive ``(u, v)`` pairs of ``path``."""
    return tuple(zip(path, path[1:]))


def _edges_of(paths: Iterable[NodePath]) -> FrozenSet[EdgeKey]:
    keys = set()
    for path in paths:
        keys.update(path_segments(path))
    return frozenset(keys)


def path_edges(state: FlowState) -> FrozenSet[EdgeKey]:
    """Edges on the current path or any parallel path."""
    traversal = state.traversal
    return _edges_of((traversal.current_path, *traversal.parallel_paths))


def rejected_edges(state: FlowState) -> FrozenSet[EdgeKey]:
    """Edges on any rejected (dead-end) path."""
    return _edges_of(state.traversal.rejected_paths)


def traversal_levels(state: FlowState) -> Dict[NodeId, int]:
    """Assign every known node an approximate BFS depth.

    Rules, applied in order:

    1. The first node of the current path is level 0.
    2. A node first seen in ``frontiers[i]`` gets level ``i + 1``.
    3. A remaining visited node (ascending id) takes ``level(pred) + 1`` from the
       first incoming edge whose source already has a level.
    4. Every other node defaults to level 0.

    Args:
        state: Snapshot to project.

    Returns:
        Mapping of node id to level covering graph nodes, visited nodes and
        frontier members.
    """
    traversal = state.traversal
    levels: Dict[NodeId, int] = {}

    if traversal.current_path:
        levels[traversal.current_path[0]] = 0

    for depth, frontier in enumerate(traversal.frontiers, start=1):
        for node in frontier:
            levels.setdefault(node, depth)

    for node in sorted(traversal.visited_nodes):
        if node in levels:
            continue
        for edge in state.graph.incoming(node):
            if edge.source in levels:
                levels[node] = levels[edge.source] + 1
                break

    for node in state.graph.nodes:
        levels.setdefault(node, 0)
    for node in traversal.visited_nodes:
        levels.setdefault(node, 0)
    return levels


def path_bottleneck(state: FlowState, path: NodePath) -> FlowValue:
    """Smallest residual capacity along the known edges of ``path``.

    Segments without a matching edge are skipped; returns 0 when none match.
    """
    residuals: List[FlowValue] = []
    for source, target in path_segments(path):
        edge = state.graph.edge(source, target)
        if edge is not None:
            residuals.append(edge.residual)
    return min(residuals) if residuals else 0


def edge_utilization(edge: EdgeState) -> float:
    """Flow over capacity clamped to ``[0, 1]`` for rendering."""
    if edge.capacity <= 0:
        return 0.0
    return max(0.0, min(1.0, edge.flow / edge.capacity))


def phase_label(state: FlowState) -> str:
    execution = state.execution
    label = _PHASE_LABELS.get(execution.phase)
    if label is not None:
        return label
    return "Processing..." if execution.is_running else "Idle"


@dataclass(frozen=True)
class StatusSummary:
    """Numbers shown by a status panel."""

    status: str
    phase: str
    iteration: int
    current_flow: FlowValue
    max_flow: Optional[FlowValue]
    visited_count: int
    total_nodes: int
    visited_percentage: float
    progress: Optional[float]
    last_event: str


def status_summary(state: FlowState) -> StatusSummary:
    """Summarize execution progress for status displays.

    ``progress`` is ``current_flow / max_flow`` in percent once ``max_flow``
    is known, otherwise None.
    """
    execution = state.execution
    total = len(state.graph.nodes)
    visited = len(state.traversal.visited_nodes)
    progress: Optional[float] = None
    if execution.max_flow:
        progress = min(100.0, 100.0 * execution.current_flow / execution.max_flow)
    elif execution.max_flow == 0 and execution.status is RunStatus.COMPLETE:
        progress = 100.0
    return StatusSummary(
        status=execution.status.value,
        phase=phase_label(state),
        iteration=execution.iteration,
        current_flow=execution.current_flow,
        max_flow=execution.max_flow,
        visited_count=visited,
        total_nodes=total,
        visited_percentage=(100.0 * visited / total) if total else 0.0,
        progress=progress,
        last_event=execution.last_event,
    )


@dataclass(frozen=True)
class DerivedView:
    """All projections computed for one snapshot."""

    path_edges: FrozenSet[EdgeKey]
    rejected_edges: FrozenSet[EdgeKey]
    levels: Dict[NodeId, int]
    summary: StatusSummary

    @classmethod
    def of(cls, state: FlowState) -> "DerivedView":
        return cls(
            path_edges=path_edges(state),
            rejected_edges=rejected_edges(state),
            levels=traversal_levels(state),
            summary=status_summary(state),
        )


class ViewComputer:
    """Compute :class:`DerivedView` objects, caching the previous one."""

    def __init__(self) -> None:
        self._last_state: Optional[FlowState] = None
        self._last_view: Optional[DerivedView] = None

    def compute(self, state: FlowState) -> DerivedView:
        if self._last_view is not None and state is self._last_state:
            return self._last_view
        view = DerivedView.of(state)
        self._last_state = state
        self._last_view = view
        return view
