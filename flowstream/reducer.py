"""Event reducer: fold one stream event into the next :class:`FlowState`.

``reduce(state, event)`` is deterministic and never raises for payload
content. Unknown event types return the state unchanged and are logged;
a recognized event with a missing or malformed field is logged and dropped.

Phase-completion events (``bfs_complete``, ``dfs_complete``) intentionally
leave traversal highlighting in place. It is cleared by the next
phase-start or ``iteration_start`` event so the viewer keeps the last known
focus until it is superseded.

Besides stream events the module exposes the local transitions used by the
command dispatcher and connection manager (:func:`start_requested`,
:func:`start_accepted`, :func:`mark_idle`, :func:`mark_error`,
:func:`with_connection`). They are pure as well.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable, Dict, Optional

from flowstream.logging import get_logger
from flowstream.model.graph import GraphSnapshot, non_negative_flow, numeric_value
from flowstream.model.state import (
    FlowState,
    HistoryLimits,
    TraversalState,
    append_capped,
    as_path,
)
from flowstream.protocol import events as ev
from flowstream.protocol.events import Event
from flowstream.types.base import Phase, RunStatus

logger = get_logger(__name__)

Handler = Callable[[FlowState, Event, HistoryLimits], FlowState]

DEFAULT_LIMITS = HistoryLimits()

_HANDLERS: Dict[str, Handler] = {}


def _handles(*event_types: str) -> Callable[[Handler], Handler]:
    def register(fn: Handler) -> Handler:
        for event_type in event_types:
            _HANDLERS[event_type] = fn
        return fn

    return register


def reduce(
    state: FlowState, event: Event, limits: Optional[HistoryLimits] = None
) -> FlowState:
    """Apply one event to ``state`` and return the resulting snapshot.

    Args:
        state: Current snapshot. Not modified.
        event: Decoded stream event.
        limits: History caps; defaults to :data:`DEFAULT_LIMITS`.

    Returns:
        The next snapshot. ``state`` itself when the event is ignored.
    """
    handler = _HANDLERS.get(event.type)
    if handler is None:
        logger.debug("Unhandled event type: %s", event.type)
        return state
    try:
        return handler(state, event, limits or DEFAULT_LIMITS)
    except (KeyError, TypeError, ValueError) as exc:
        logger.warning("Dropping malformed '%s' event: %r", event.type, exc)
        return state


def _execution(state: FlowState, **changes: Any) -> FlowState:
    return replace(state, execution=replace(state.execution, **changes))


def _traversal(state: FlowState, **changes: Any) -> FlowState:
    return replace(state, traversal=replace(state.traversal, **changes))


def _edge_key(event: Event):
    return (int(event["source"]), int(event["target"]))


# ---- Graph lifecycle -----------------------------------------------------


@_handles(ev.INIT)
def _on_init(state: FlowState, event: Event, limits: HistoryLimits) -> FlowState:
    graph = GraphSnapshot.from_payload(event["nodes"], event.get("edges") or [])
    execution = replace(
        state.execution,
        status=RunStatus.RUNNING,
        phase=Phase.NONE,
        iteration=0,
        current_flow=0,
        max_flow=None,
        execution_time_ms=None,
        error=None,
        last_event="Graph initialized",
    )
    return replace(
        state, graph=graph, execution=execution, traversal=TraversalState()
    )


@_handles(ev.NODE_VISITED)
def _on_node_visited(
    state: FlowState, event: Event, limits: HistoryLimits
) -> FlowState:
    node = int(event["node_id"])
    traversal = state.traversal
    changes: Dict[str, Any] = {"visited_nodes": traversal.visited_nodes | {node}}
    if state.execution.phase is Phase.BFS:
        changes["active_bfs_nodes"] = traversal.active_bfs_nodes | {node}
        changes["current_bfs_node"] = node
    state = _traversal(state, **changes)
    return _execution(state, last_event=f"Node {node} visited")


@_handles(ev.EDGE_EXAMINED)
def _on_edge_examined(
    state: FlowState, event: Event, limits: HistoryLimits
) -> FlowState:
    key = _edge_key(event)
    flow = event.get("flow")
    if flow is None:
        existing = state.graph.edges.get(key)
        flow = existing.flow if existing is not None else 0
    graph = state.graph.mark_examining(key, non_negative_flow(flow))
    state = replace(state, graph=graph)
    state = _traversal(state, current_dfs_node=key[1])
    return _execution(
        state,
        phase=Phase.DFS,
        last_event=f"Edge {key[0]}->{key[1]} examined (flow: {flow})",
    )


@_handles(ev.EDGE_EXPLORED, ev.EDGE_UPDATED)
def _on_edge_flow(state: FlowState, event: Event, limits: HistoryLimits) -> FlowState:
    key = _edge_key(event)
    flow = non_negative_flow(event["flow"])
    capacity = event.get("capacity")
    if capacity is not None:
        capacity = numeric_value(capacity, "capacity")
    updated = event.type == ev.EDGE_UPDATED
    graph = state.graph.update_flow(key, flow, capacity, clear_examining=updated)
    verb = "updated" if updated else "explored"
    shown = f"{flow}/{capacity}" if capacity is not None else f"{flow}"
    return _execution(
        replace(state, graph=graph),
        last_event=f"Edge {key[0]}->{key[1]} {verb} (flow: {shown})",
    )


# ---- Breadth-first phase -------------------------------------------------


@_handles(ev.BFS_START)
def _on_bfs_start(state: FlowState, event: Event, limits: HistoryLimits) -> FlowState:
    state = _traversal(
        state,
        current_path=(),
        frontiers=(),
        active_bfs_nodes=frozenset(),
        active_dfs_nodes=frozenset(),
        current_bfs_node=None,
        current_dfs_node=None,
    )
    return _execution(state, phase=Phase.BFS, last_event="BFS search started")


@_handles(ev.BFS_FRONTIER)
def _on_bfs_frontier(
    state: FlowState, event: Event, limits: HistoryLimits
) -> FlowState:
    raw = event.get("frontier")
    if raw is None:
        raw = event["nodes"]
    frontier = as_path(raw)
    if not frontier:
        return state
    traversal = state.traversal
    state = _traversal(
        state,
        frontiers=append_capped(traversal.frontiers, frontier, limits.frontiers),
        active_bfs_nodes=frozenset(frontier),
    )
    return _execution(
        state, last_event=f"BFS frontier reached {len(frontier)} node(s)"
    )


@_handles(ev.BFS_COMPLETE)
def _on_bfs_complete(
    state: FlowState, event: Event, limits: HistoryLimits
) -> FlowState:
    found = event.get("path_found")
    if found is None:
        message = "BFS complete"
    elif found:
        message = "BFS found an augmenting path"
    else:
        message = "BFS could not find an augmenting path"
    return _execution(state, last_event=message)


# ---- Depth-first phase ---------------------------------------------------


@_handles(ev.DFS_START)
def _on_dfs_start(state: FlowState, event: Event, limits: HistoryLimits) -> FlowState:
    state = _traversal(
        state,
        current_path=(),
        parallel_paths=(),
        frontiers=(),
        active_bfs_nodes=frozenset(),
        active_dfs_nodes=frozenset(),
        current_bfs_node=None,
        current_dfs_node=None,
    )
    return _execution(state, phase=Phase.DFS, last_event="DFS search started")


@_handles(ev.DFS_VISIT)
def _on_dfs_visit(state: FlowState, event: Event, limits: HistoryLimits) -> FlowState:
    traversal = state.traversal
    node_id = event.get("node_id")
    raw_path = event.get("path")
    if raw_path is None:
        path = traversal.current_path + (int(node_id),)
    else:
        path = as_path(raw_path)
    if node_id is not None:
        terminal = int(node_id)
    elif path:
        terminal = path[-1]
    else:
        raise ValueError("dfs_visit carries neither a path nor a node_id")

    parallel = traversal.parallel_paths
    if path and not any(p and p[-1] == terminal for p in parallel):
        parallel = append_capped(parallel, path, limits.parallel_paths)

    state = _traversal(
        state,
        parallel_paths=parallel,
        current_path=path,
        active_dfs_nodes=traversal.active_dfs_nodes | {terminal},
        current_dfs_node=terminal,
    )
    return _execution(state, last_event=f"DFS visited node {terminal}")


@_handles(ev.PATH_FOUND)
def _on_path_found(state: FlowState, event: Event, limits: HistoryLimits) -> FlowState:
    path = as_path(event["path"])
    if not path:
        raise ValueError("found path is empty")
    traversal = state.traversal
    parallel = traversal.parallel_paths
    if path not in parallel:
        parallel = append_capped(parallel, path, limits.parallel_paths)
    focus = path[-1]
    state = _traversal(
        state, parallel_paths=parallel, current_path=path, current_dfs_node=focus
    )
    shown = " -> ".join(str(n) for n in path)
    return _execution(state, last_event=f"Path found: {shown}")


@_handles(ev.PATH_REJECTED, ev.BACKTRACK)
def _on_path_rejected(
    state: FlowState, event: Event, limits: HistoryLimits
) -> FlowState:
    raw = event.get("rejected_path")
    if raw is None:
        raw = event["path"]
    path = as_path(raw)
    if not path:
        raise ValueError("rejected path is empty")
    dead_end = path[-1]
    traversal = state.traversal
    state = _traversal(
        state,
        rejected_paths=append_capped(
            traversal.rejected_paths, path, limits.rejected_paths
        ),
        last_rejected_node=dead_end,
        current_dfs_node=dead_end,
    )
    return _execution(state, last_event=f"Dead end at node {dead_end}")


@_handles(ev.DFS_COMPLETE)
def _on_dfs_complete(
    state: FlowState, event: Event, limits: HistoryLimits
) -> FlowState:
    return _execution(state, last_event="DFS complete")


# ---- Iterations and flow -------------------------------------------------


@_handles(ev.ITERATION_START)
def _on_iteration_start(
    state: FlowState, event: Event, limits: HistoryLimits
) -> FlowState:
    reported = int(event["iteration"])
    iteration = state.execution.iteration
    if reported < iteration:
        logger.debug(
            "iteration_start %d behind current iteration %d", reported, iteration
        )
    else:
        iteration = reported
    state = replace(state, traversal=state.traversal.cleared_for_iteration())
    return _execution(
        state,
        iteration=iteration,
        phase=Phase.NONE,
        last_event=f"Starting iteration {reported}",
    )


@_handles(ev.FLOW_UPDATE)
def _on_flow_update(state: FlowState, event: Event, limits: HistoryLimits) -> FlowState:
    current_flow = non_negative_flow(event["current_flow"])
    changes: Dict[str, Any] = {"current_flow": current_flow}
    reported = event.get("iteration")
    if reported is not None and int(reported) > state.execution.iteration:
        changes["iteration"] = int(reported)
    augmentation = event.get("augmentation")
    if augmentation is not None:
        changes["last_event"] = f"Flow augmented by {augmentation}"
    else:
        changes["last_event"] = f"Flow updated to {current_flow}"
    return _execution(state, **changes)


@_handles(ev.ALGORITHM_COMPLETE, ev.ALGORITHM_STOPPED, ev.RESULT)
def _on_complete(state: FlowState, event: Event, limits: HistoryLimits) -> FlowState:
    execution = state.execution
    max_flow = event.get("max_flow")
    if max_flow is None:
        max_flow = execution.current_flow
    else:
        max_flow = numeric_value(max_flow, "max_flow")
    elapsed = event.get("execution_time_ms")
    if elapsed is None:
        elapsed = execution.execution_time_ms
    else:
        elapsed = numeric_value(elapsed, "execution_time_ms")

    traversal = state.traversal
    focus = traversal.current_dfs_node
    if focus is None and traversal.current_path:
        focus = traversal.current_path[-1]
    state = _traversal(
        state,
        active_bfs_nodes=frozenset(),
        current_bfs_node=None,
        current_dfs_node=focus,
    )
    if event.type == ev.ALGORITHM_STOPPED:
        message = "Algorithm stopped"
    else:
        message = f"Algorithm completed: max flow = {max_flow}"
    return _execution(
        state,
        status=RunStatus.COMPLETE,
        phase=Phase.NONE,
        max_flow=max_flow,
        execution_time_ms=elapsed,
        last_event=message,
    )


@_handles(ev.READY)
def _on_ready(state: FlowState, event: Event, limits: HistoryLimits) -> FlowState:
    source = event.get("source")
    sink = event.get("sink")
    return _execution(
        state,
        source=int(source) if source is not None else state.execution.source,
        sink=int(sink) if sink is not None else state.execution.sink,
        last_event="Algorithm ready to start",
    )


@_handles(ev.ERROR)
def _on_error(state: FlowState, event: Event, limits: HistoryLimits) -> FlowState:
    message = str(event.get("message") or "Unknown engine error")
    return mark_error(state, message)


# ---- Local transitions ---------------------------------------------------


def start_requested(
    state: FlowState,
    *,
    source: int,
    sink: Optional[int],
    algorithm: str,
    graph_type: str,
    graph_file: str,
    speed: float,
) -> FlowState:
    """Record a start request and move the run to ``connecting``."""
    return _execution(
        state,
        status=RunStatus.CONNECTING,
        phase=Phase.NONE,
        iteration=0,
        current_flow=0,
        max_flow=None,
        execution_time_ms=None,
        source=source,
        sink=sink,
        algorithm=algorithm,
        graph_type=graph_type,
        graph_file=graph_file,
        speed=speed,
        error=None,
        last_event="Starting algorithm...",
    )


def start_accepted(state: FlowState) -> FlowState:
    """Mark the run as running once the engine accepted the start request.

    Leaves the status alone if stream events already moved it on.
    """
    if state.execution.status is not RunStatus.CONNECTING:
        return state
    return _execution(state, status=RunStatus.RUNNING, last_event="Algorithm started")


def mark_idle(state: FlowState, reason: str = "Algorithm stopped by user") -> FlowState:
    """Force a requested or running run back to ``idle``.

    Completed and failed runs are left as they are.
    """
    if not state.execution.status.is_active:
        return state
    return _execution(
        state, status=RunStatus.IDLE, phase=Phase.NONE, last_event=reason
    )


def mark_error(
    state: FlowState, message: str, status: RunStatus = RunStatus.ERROR
) -> FlowState:
    """Record ``message`` as the current error and settle the run in ``status``.

    ``status`` is ``error`` for engine failures; commands that never reached
    the engine pass ``idle`` instead.
    """
    return _execution(
        state,
        status=status,
        phase=Phase.NONE,
        error=message,
        last_event=f"Error: {message}",
    )


def with_connection(state: FlowState, **changes: Any) -> FlowState:
    """Replace fields of the connection state."""
    return replace(state, connection=replace(state.connection, **changes))
