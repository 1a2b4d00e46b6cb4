"""Tests for graph snapshot helpers and state containers."""

from __future__ import annotations

import dataclasses

import pytest

from flowstream.model.graph import EdgeState, GraphSnapshot, NodeInfo, non_negative_flow
from flowstream.model.state import (
    ConnectionState,
    FlowState,
    HistoryLimits,
    append_capped,
    as_path,
)
from flowstream.types.base import ConnectionStatus, RunStatus


def _snapshot() -> GraphSnapshot:
    return GraphSnapshot.from_payload(
        [{"id": 0}, {"id": 1, "label": "mid"}, {"id": 2}],
        [
            {"source": 0, "target": 1, "capacity": 4},
            {"source": 1, "target": 2, "capacity": 2, "flow": 1},
            {"source": 0, "target": 2, "capacity": 1},
        ],
    )


class TestGraphSnapshot:
    def test_from_payload(self):
        graph = _snapshot()
        assert graph.nodes[1] == NodeInfo(node_id=1, label="mid")
        assert graph.edge(1, 2).flow == 1
        assert graph.edge(2, 1) is None

    def test_mappings_are_read_only(self):
        graph = _snapshot()
        with pytest.raises(TypeError):
            graph.edges[(0, 1)] = EdgeState(0, 1)  # type: ignore[index]

    def test_incoming_in_insertion_order(self):
        graph = _snapshot()
        assert [e.source for e in graph.incoming(2)] == [1, 0]

    def test_mark_examining_returns_new_snapshot(self):
        graph = _snapshot()
        marked = graph.mark_examining((0, 1), 3)
        assert marked is not graph
        assert graph.edge(0, 1).is_examining is False
        assert marked.edge(0, 1).flow == 3
        assert marked.examining == (0, 1)

    def test_mark_examining_unknown_edge(self):
        graph = _snapshot()
        assert graph.mark_examining((2, 0), 1) is graph

    def test_with_edge_replaces_entry(self):
        graph = _snapshot().with_edge(EdgeState(0, 1, capacity=9))
        assert graph.edge(0, 1).capacity == 9

    def test_residual_can_go_negative(self):
        assert EdgeState(0, 1, capacity=2, flow=5).residual == -3

    def test_node_without_id_rejected(self):
        with pytest.raises(KeyError):
            NodeInfo.from_payload({"x": 1})


class TestNonNegativeFlow:
    def test_values(self):
        assert non_negative_flow(3) == 3
        assert non_negative_flow(2.5) == 2.5
        assert non_negative_flow(-1) == 0

    @pytest.mark.parametrize("value", ["3", None, True])
    def test_rejects_non_numeric(self, value):
        with pytest.raises(TypeError):
            non_negative_flow(value)


class TestStateContainers:
    def test_defaults(self):
        state = FlowState()
        assert state.execution.status is RunStatus.IDLE
        assert state.execution.max_flow is None
        assert state.connection.status is ConnectionStatus.DISCONNECTED
        assert not state.execution.is_running

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            FlowState().execution.iteration = 3  # type: ignore[misc]

    def test_connection_state_flag(self):
        assert ConnectionState(status=ConnectionStatus.CONNECTED).is_connected

    def test_history_limits_validation(self):
        with pytest.raises(ValueError):
            HistoryLimits(frontiers=0)
        assert HistoryLimits(frontiers=None).frontiers is None

    def test_append_capped(self):
        assert append_capped((1, 2), 3, None) == (1, 2, 3)
        assert append_capped((1, 2), 3, 2) == (2, 3)

    def test_as_path(self):
        assert as_path([1, "2", 3.0]) == (1, 2, 3)
        with pytest.raises(TypeError):
            as_path("123")
