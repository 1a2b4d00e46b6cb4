"""Tests for derived view projections."""

from __future__ import annotations

from dataclasses import replace

import pytest

from flowstream.model.graph import EdgeState
from flowstream.model.state import ExecutionState, FlowState, TraversalState
from flowstream.protocol.events import Event
from flowstream.types.base import Phase, RunStatus
from flowstream.views import (
    DerivedView,
    ViewComputer,
    edge_utilization,
    path_bottleneck,
    path_edges,
    path_segments,
    phase_label,
    rejected_edges,
    status_summary,
    traversal_levels,
)


def _ev(event_type: str, **fields) -> Event:
    return Event.of(event_type, **fields)


class TestPathEdges:
    def test_segments(self):
        assert path_segments((0, 1, 3)) == ((0, 1), (1, 3))
        assert path_segments((4,)) == ()
        assert path_segments(()) == ()

    def test_union_of_current_and_parallel_paths(self, fold, diamond_state):
        state = fold(
            [_ev("path_found", path=[0, 1, 3]), _ev("dfs_visit", path=[0, 2])],
            diamond_state,
        )
        assert path_edges(state) == frozenset({(0, 1), (1, 3), (0, 2)})

    def test_rejected_edges(self, fold, diamond_state):
        state = fold(
            [
                _ev("path_rejected", rejected_path=[0, 1, 2]),
                _ev("backtrack", path=[0, 2]),
            ],
            diamond_state,
        )
        assert rejected_edges(state) == frozenset({(0, 1), (1, 2), (0, 2)})
        assert path_edges(state) == frozenset()


class TestTraversalLevels:
    def test_frontiers_define_levels(self, fold, diamond_state):
        state = fold(
            [
                _ev("bfs_start"),
                _ev("bfs_frontier", frontier=[1, 2]),
                _ev("bfs_frontier", frontier=[3]),
            ],
            diamond_state,
        )
        levels = traversal_levels(state)
        assert levels[1] == 1
        assert levels[2] == 1
        assert levels[3] == 2
        assert levels[0] == 0

    def test_first_frontier_wins(self, fold, diamond_state):
        state = fold(
            [
                _ev("bfs_frontier", frontier=[1]),
                _ev("bfs_frontier", frontier=[1, 2]),
            ],
            diamond_state,
        )
        levels = traversal_levels(state)
        assert levels[1] == 1
        assert levels[2] == 2

    def test_path_start_is_level_zero(self, fold, diamond_state):
        state = fold(
            [
                _ev("bfs_frontier", frontier=[1]),
                _ev("dfs_visit", path=[1, 3]),
            ],
            diamond_state,
        )
        assert traversal_levels(state)[1] == 0

    def test_visited_nodes_inherit_from_predecessor(self, fold, diamond_state):
        state = fold(
            [
                _ev("bfs_frontier", frontier=[1]),
                _ev("node_visited", node_id=3),
                _ev("node_visited", node_id=2),
            ],
            diamond_state,
        )
        levels = traversal_levels(state)
        # 2 via 1->2 (first incoming edge with a level), then 3 via 1->3
        assert levels[2] == 2
        assert levels[3] == 2

    def test_nodes_never_reported_default_to_zero(self):
        state = FlowState(traversal=TraversalState(visited_nodes=frozenset({7})))
        assert traversal_levels(state) == {7: 0}


class TestCapacityViews:
    def test_bottleneck_uses_residual(self, fold, diamond_state):
        state = fold(
            [_ev("edge_explored", source=0, target=1, flow=2)], diamond_state
        )
        # residuals: 0->1 = 1, 1->3 = 2
        assert path_bottleneck(state, (0, 1, 3)) == 1

    def test_bottleneck_skips_unknown_segments(self, diamond_state):
        assert path_bottleneck(diamond_state, (3, 0)) == 0
        assert path_bottleneck(diamond_state, (3, 0, 2)) == 2
        assert path_bottleneck(diamond_state, (1, 2, 3)) == 1

    @pytest.mark.parametrize(
        "capacity,flow,expected",
        [(4, 1, 0.25), (2, 5, 1.0), (0, 3, 0.0), (3, 0, 0.0)],
    )
    def test_utilization_is_clamped(self, capacity, flow, expected):
        edge = EdgeState(0, 1, capacity=capacity, flow=flow)
        assert edge_utilization(edge) == pytest.approx(expected)


class TestStatusSummary:
    def test_running_summary(self, fold, diamond_state):
        state = fold(
            [
                _ev("bfs_start"),
                _ev("node_visited", node_id=0),
                _ev("node_visited", node_id=1),
                _ev("flow_update", current_flow=2),
            ],
            diamond_state,
        )
        summary = status_summary(state)
        assert summary.status == "running"
        assert summary.phase == "Finding augmenting path (BFS)"
        assert summary.visited_count == 2
        assert summary.total_nodes == 4
        assert summary.visited_percentage == pytest.approx(50.0)
        assert summary.progress is None
        assert summary.current_flow == 2

    def test_complete_progress(self, fold, diamond_state):
        state = fold(
            [_ev("flow_update", current_flow=5), _ev("algorithm_complete")],
            diamond_state,
        )
        assert status_summary(state).progress == pytest.approx(100.0)

    def test_zero_max_flow_counts_as_done(self, diamond_state):
        state = replace(
            diamond_state,
            execution=ExecutionState(status=RunStatus.COMPLETE, max_flow=0),
        )
        assert status_summary(state).progress == pytest.approx(100.0)

    def test_phase_labels(self):
        idle = FlowState()
        assert phase_label(idle) == "Idle"
        running = FlowState(execution=ExecutionState(status=RunStatus.RUNNING))
        assert phase_label(running) == "Processing..."
        dfs = FlowState(
            execution=ExecutionState(status=RunStatus.RUNNING, phase=Phase.DFS)
        )
        assert phase_label(dfs) == "Augmenting flow (DFS)"

    def test_empty_graph(self):
        assert status_summary(FlowState()).visited_percentage == 0.0


class TestViewComputer:
    def test_same_snapshot_reuses_result(self, diamond_state):
        computer = ViewComputer()
        first = computer.compute(diamond_state)
        assert computer.compute(diamond_state) is first

    def test_new_snapshot_recomputes(self, diamond_state):
        from flowstream.reducer import reduce

        computer = ViewComputer()
        first = computer.compute(diamond_state)
        changed = reduce(diamond_state, _ev("path_found", path=[0, 2, 3]))
        second = computer.compute(changed)
        assert second is not first
        assert (0, 2) in second.path_edges

    def test_only_one_previous_result_is_kept(self, diamond_state):
        computer = ViewComputer()
        first = computer.compute(diamond_state)
        computer.compute(FlowState())
        again = computer.compute(diamond_state)
        assert again is not first
        assert again == DerivedView.of(diamond_state)
