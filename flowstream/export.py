"""Snapshot export for renderers and offline tooling.

Two formats are provided:

- :func:`to_networkx` builds a ``networkx.DiGraph`` with node positions, edge
  capacity/flow and the derived highlight flags as attributes.
- :func:`snapshot_to_dict` produces a JSON-safe dict (lists instead of
  tuples/sets, string enum values) for files or HTTP responses.

Example:
    >>> from flowstream.export import to_networkx
    >>> G = to_networkx(store.state)
    >>> G.edges[0, 1]["flow"]
    3
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from flowstream.model.state import FlowState
from flowstream.views import DerivedView, edge_utilization

if TYPE_CHECKING:
    import networkx as nx


def to_networkx(state: FlowState, view: Optional[DerivedView] = None) -> "nx.DiGraph":
    """Convert a snapshot into a NetworkX directed graph.

    Node attributes: ``x``, ``y``, ``label``, ``visited``, ``level``,
    ``bfs_active``, ``dfs_active``. Edge attributes: ``capacity``, ``flow``,
    ``utilization``, ``examining``, ``examined``, ``on_path``, ``rejected``.
    Graph attributes mirror the execution state.

    Args:
        state: Snapshot to convert.
        view: Precomputed derived view; computed when omitted.

    Returns:
        A new ``networkx.DiGraph``.
    """
    import networkx as nx

    if view is None:
        view = DerivedView.of(state)
    traversal = state.traversal
    execution = state.execution

    G = nx.DiGraph(
        status=execution.status.value,
        phase=execution.phase.value,
        iteration=execution.iteration,
        current_flow=execution.current_flow,
        max_flow=execution.max_flow,
        source=execution.source,
        sink=execution.sink,
    )
    for node_id, node in state.graph.nodes.items():
        G.add_node(
            node_id,
            x=node.x,
            y=node.y,
            label=node.label,
            visited=node_id in traversal.visited_nodes,
            level=view.levels.get(node_id, 0),
            bfs_active=node_id in traversal.active_bfs_nodes,
            dfs_active=node_id in traversal.active_dfs_nodes,
        )
    for key, edge in state.graph.edges.items():
        G.add_edge(
            edge.source,
            edge.target,
            capacity=edge.capacity,
            flow=edge.flow,
            utilization=edge_utilization(edge),
            examining=edge.is_examining,
            examined=edge.is_examined,
            on_path=key in view.path_edges,
            rejected=key in view.rejected_edges,
        )
    return G


def snapshot_to_dict(state: FlowState) -> Dict[str, Any]:
    """Return a JSON-safe representation of ``state``.

    Node ids in sets are sorted; paths keep their order.
    """
    execution = state.execution
    traversal = state.traversal
    connection = state.connection
    return {
        "nodes": [
            {"id": n.node_id, "x": n.x, "y": n.y, "label": n.label}
            for n in state.graph.nodes.values()
        ],
        "edges": [
            {
                "source": e.source,
                "target": e.target,
                "capacity": e.capacity,
                "flow": e.flow,
                "is_examining": e.is_examining,
                "is_examined": e.is_examined,
            }
            for e in state.graph.edges.values()
        ],
        "execution": {
            "status": execution.status.value,
            "phase": execution.phase.value,
            "iteration": execution.iteration,
            "current_flow": execution.current_flow,
            "max_flow": execution.max_flow,
            "execution_time_ms": execution.execution_time_ms,
            "source": execution.source,
            "sink": execution.sink,
            "algorithm": execution.algorithm,
            "graph_type": execution.graph_type,
            "graph_file": execution.graph_file,
            "speed": execution.speed,
            "last_event": execution.last_event,
            "error": execution.error,
        },
        "traversal": {
            "visited_nodes": sorted(traversal.visited_nodes),
            "current_path": list(traversal.current_path),
            "parallel_paths": [list(p) for p in traversal.parallel_paths],
            "rejected_paths": [list(p) for p in traversal.rejected_paths],
            "last_rejected_node": traversal.last_rejected_node,
            "frontiers": [list(f) for f in traversal.frontiers],
            "active_bfs_nodes": sorted(traversal.active_bfs_nodes),
            "active_dfs_nodes": sorted(traversal.active_dfs_nodes),
            "current_bfs_node": traversal.current_bfs_node,
            "current_dfs_node": traversal.current_dfs_node,
        },
        "connection": {
            "status": connection.status.value,
            "reconnect_attempt": connection.reconnect_attempt,
        },
    }
