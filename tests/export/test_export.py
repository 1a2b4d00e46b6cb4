"""Tests for snapshot export to NetworkX and JSON-safe dicts."""

from __future__ import annotations

import json

from flowstream.export import snapshot_to_dict, to_networkx
from flowstream.protocol.events import Event
from flowstream.reducer import reduce


def _progressed(fold, diamond_state):
    return fold(
        [
            Event.of("bfs_start"),
            Event.of("node_visited", node_id=1),
            Event.of("path_found", path=[0, 1, 3]),
            Event.of("path_rejected", rejected_path=[0, 2]),
            Event.of("edge_examined", source=0, target=1, flow=3),
        ],
        diamond_state,
    )


def test_to_networkx_attributes(fold, diamond_state):
    state = _progressed(fold, diamond_state)
    G = to_networkx(state)

    assert set(G.nodes) == {0, 1, 2, 3}
    assert G.number_of_edges() == 5
    assert G.nodes[0]["label"] == "s"
    assert G.nodes[1]["visited"] is True
    assert G.nodes[2]["visited"] is False

    edge = G.edges[0, 1]
    assert edge["flow"] == 3
    assert edge["capacity"] == 3
    assert edge["utilization"] == 1.0
    assert edge["examining"] is True
    assert edge["on_path"] is True
    assert G.edges[0, 2]["rejected"] is True
    assert G.edges[2, 3]["on_path"] is False
    assert G.graph["status"] == "running"
    assert G.graph["phase"] == "dfs"


def test_to_networkx_reuses_given_view(diamond_state):
    from flowstream.views import DerivedView

    state = reduce(diamond_state, Event.of("path_found", path=[0, 2, 3]))
    view = DerivedView.of(state)
    G = to_networkx(state, view)
    assert G.edges[0, 2]["on_path"] is True


def test_snapshot_to_dict_is_json_safe(fold, diamond_state):
    state = _progressed(fold, diamond_state)
    data = snapshot_to_dict(state)

    decoded = json.loads(json.dumps(data))
    assert decoded["execution"]["status"] == "running"
    assert decoded["traversal"]["parallel_paths"] == [[0, 1, 3]]
    assert decoded["traversal"]["rejected_paths"] == [[0, 2]]
    assert decoded["traversal"]["visited_nodes"] == [1]
    assert decoded["connection"]["status"] == "disconnected"
    assert len(decoded["edges"]) == 5
