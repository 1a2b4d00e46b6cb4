"""Graph snapshot: node placement and per-edge flow state for one run.

Nodes are fixed at ``init``. Edges keep their identity for the whole run while
``flow`` and the examining/examined markers change with later events. All
containers are replaced rather than mutated; helpers return new snapshots.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional

from flowstream.logging import get_logger
from flowstream.types.base import EdgeKey, FlowValue, NodeId

logger = get_logger(__name__)


@dataclass(frozen=True)
class NodeInfo:
    """A graph node with its engine-supplied position.

    Attributes:
        node_id: Unique integer identifier.
        x: Horizontal position supplied by the engine.
        y: Vertical position supplied by the engine.
        label: Display label; defaults to the stringified id.
    """

    node_id: NodeId
    x: float = 0.0
    y: float = 0.0
    label: str = ""

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "NodeInfo":
        """Build a node from an ``init`` payload entry.

        Raises:
            KeyError: If ``id`` is missing.
            ValueError: If ``id`` or a coordinate is not numeric.
        """
        node_id = int(data["id"])
        label = data.get("label")
        return cls(
            node_id=node_id,
            x=float(data.get("x", 0.0)),
            y=float(data.get("y", 0.0)),
            label=str(label) if label is not None else str(node_id),
        )


@dataclass(frozen=True)
class EdgeState:
    """Directed edge with capacity and the flow last reported for it."""

    source: NodeId
    target: NodeId
    capacity: FlowValue = 0
    flow: FlowValue = 0
    is_examining: bool = False
    is_examined: bool = False

    @property
    def key(self) -> EdgeKey:
        return (self.source, self.target)

    @property
    def residual(self) -> FlowValue:
        """Remaining capacity; may be negative if the engine over-reports flow."""
        return self.capacity - self.flow

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "EdgeState":
        """Build an edge from an ``init`` payload entry."""
        return cls(
            source=int(data["source"]),
            target=int(data["target"]),
            capacity=numeric_value(data.get("capacity", 0) or 0, "capacity"),
            flow=non_negative_flow(data.get("flow", 0) or 0),
        )


def numeric_value(value: Any, name: str) -> FlowValue:
    """Validate a non-negative numeric engine field such as a capacity.

    Raises:
        TypeError: If the value is not numeric.
        ValueError: If the value is negative.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{name} must be numeric, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} must be >= 0, got {value}")
    return value


def non_negative_flow(value: Any) -> FlowValue:
    """Coerce an engine flow value, flooring negatives at zero.

    Raises:
        TypeError: If the value is not numeric.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"flow must be numeric, got {type(value).__name__}")
    if value < 0:
        logger.warning("Negative flow %s reported; treating as 0", value)
        return 0
    return value


def _freeze(mapping: Dict) -> Mapping:
    return MappingProxyType(mapping)


@dataclass(frozen=True)
class GraphSnapshot:
    """Nodes and edges of the network being processed.

    Attributes:
        nodes: Read-only mapping of node id to :class:`NodeInfo`.
        edges: Read-only mapping of ``(source, target)`` to :class:`EdgeState`.
        examining: Key of the single edge currently being examined, if any.
    """

    nodes: Mapping[NodeId, NodeInfo] = field(
        default_factory=lambda: _freeze({})
    )
    edges: Mapping[EdgeKey, EdgeState] = field(
        default_factory=lambda: _freeze({})
    )
    examining: Optional[EdgeKey] = None

    @classmethod
    def from_payload(
        cls, nodes: Iterable[Mapping[str, Any]], edges: Iterable[Mapping[str, Any]]
    ) -> "GraphSnapshot":
        """Create a snapshot from ``init`` node and edge lists.

        Duplicate node ids or edge keys keep the last occurrence.
        """
        node_map: Dict[NodeId, NodeInfo] = {}
        for raw in nodes:
            node = NodeInfo.from_payload(raw)
            node_map[node.node_id] = node
        edge_map: Dict[EdgeKey, EdgeState] = {}
        for raw in edges:
            edge = EdgeState.from_payload(raw)
            edge_map[edge.key] = edge
        return cls(nodes=_freeze(node_map), edges=_freeze(edge_map))

    def edge(self, source: NodeId, target: NodeId) -> Optional[EdgeState]:
        return self.edges.get((source, target))

    def incoming(self, node_id: NodeId) -> Iterator[EdgeState]:
        """Yield edges whose target is ``node_id`` in insertion order."""
        for edge in self.edges.values():
            if edge.target == node_id:
                yield edge

    def with_edge(self, edge: EdgeState) -> "GraphSnapshot":
        """Return a snapshot with ``edge`` replacing the entry for its key."""
        edges = dict(self.edges)
        edges[edge.key] = edge
        return replace(self, edges=_freeze(edges))

    def mark_examining(self, key: EdgeKey, flow: FlowValue) -> "GraphSnapshot":
        """Mark ``key`` as the only examining edge and record its flow.

        Unknown keys are logged and leave the snapshot unchanged.
        """
        current = self.edges.get(key)
        if current is None:
            logger.debug("edge_examined for unknown edge %s", key)
            return self
        edges = dict(self.edges)
        if self.examining is not None and self.examining != key:
            previous = edges.get(self.examining)
            if previous is not None:
                edges[self.examining] = replace(previous, is_examining=False)
        edges[key] = replace(current, flow=flow, is_examining=True, is_examined=True)
        return replace(self, edges=_freeze(edges), examining=key)

    def update_flow(
        self,
        key: EdgeKey,
        flow: FlowValue,
        capacity: Optional[FlowValue] = None,
        clear_examining: bool = False,
    ) -> "GraphSnapshot":
        """Record a new flow (and optionally capacity) for one edge."""
        current = self.edges.get(key)
        if current is None:
            logger.debug("flow update for unknown edge %s", key)
            return self
        changes: Dict[str, Any] = {"flow": flow}
        if capacity is not None:
            changes["capacity"] = capacity
        examining = self.examining
        if clear_examining:
            changes["is_examining"] = False
            if examining == key:
                examining = None
        edges = dict(self.edges)
        edges[key] = replace(current, **changes)
        return replace(self, edges=_freeze(edges), examining=examining)
