"""
Unit tests for the graph codec.
"""

import logging
import pytest
from services.api.domain.codec import serialize, deserialize, parse_strict
from shared.exceptions import ValidationError
from shared.types import Node, Edge, Position


def make_graph():
    nodes = [
        Node(id="n1", type="navigate", position=Position(x=0, y=0), data={"url": "https://example.com"}),
        Node(id="n2", type="click", position=Position(x=120.5, y=80), data={"selector": "#submit"}),
        Node(id="n3", type="extract", position=Position(x=240, y=160)),
    ]
    edges = [
        Edge(id="e1", source="n1", target="n2", source_handle="out"),
        Edge(id="e2", source="n2", target="n3", label="then"),
    ]
    return nodes, edges


def dump(items):
    return [item.model_dump() for item in items]


def test_round_trip_preserves_graph():
    """deserialize(serialize(g)) gives back the same graph in the same order"""
    nodes, edges = make_graph()

    restored_nodes, restored_edges = deserialize(*serialize(nodes, edges))

    assert dump(restored_nodes) == dump(nodes)
    assert dump(restored_edges) == dump(edges)
    assert [n.id for n in restored_nodes] == ["n1", "n2", "n3"]
    assert [(e.source, e.target) for e in restored_edges] == [("n1", "n2"), ("n2", "n3")]


def test_serialize_uses_editor_field_names():
    """Persisted edges use the camelCase handle names the editor renders from"""
    nodes, edges = make_graph()

    persisted_nodes, persisted_edges = serialize(nodes, edges)

    assert persisted_edges[0]["sourceHandle"] == "out"
    assert persisted_nodes[1]["position"] == {"x": 120.5, "y": 80.0}


def test_unknown_fields_survive_round_trip():
    """Rendering extras the model doesn't name are kept"""
    persisted_nodes = [{"id": "a", "position": {"x": 1, "y": 2}, "style": {"color": "red"}}]

    nodes, _ = deserialize(persisted_nodes, [])
    again, _ = serialize(nodes, [])

    assert again[0]["style"] == {"color": "red"}


def test_none_is_an_empty_graph():
    assert deserialize(None, None) == ([], [])


def test_empty_lists_stay_empty():
    nodes, edges = serialize([], [])
    assert nodes == []
    assert edges == []
    assert deserialize(nodes, edges) == ([], [])


def test_dangling_edge_is_pruned(caplog):
    """Edges pointing at missing nodes are dropped, nodes are untouched"""
    persisted_nodes = [{"id": "a", "position": {"x": 0, "y": 0}}, {"id": "b", "position": {"x": 1, "y": 1}}]
    persisted_edges = [
        {"id": "e1", "source": "a", "target": "ghost"},
        {"id": "e2", "source": "a", "target": "b"},
    ]

    with caplog.at_level(logging.WARNING):
        nodes, edges = deserialize(persisted_nodes, persisted_edges)

    assert [n.id for n in nodes] == ["a", "b"]
    assert [e.id for e in edges] == ["e2"]
    assert any("Dangling edge pruned" in r.getMessage() for r in caplog.records)


def test_pruning_is_idempotent():
    persisted_nodes = [{"id": "a", "position": {"x": 0, "y": 0}}]
    persisted_edges = [
        {"id": "e1", "source": "missing", "target": "a"},
        {"id": "e2", "source": "a", "target": "a"},
    ]

    first_nodes, first_edges = deserialize(persisted_nodes, persisted_edges)
    second_nodes, second_edges = deserialize(*serialize(first_nodes, first_edges))

    assert dump(second_nodes) == dump(first_nodes)
    assert dump(second_edges) == dump(first_edges)
    assert [e.id for e in second_edges] == ["e2"]


def test_duplicate_node_keeps_first():
    persisted_nodes = [
        {"id": "a", "position": {"x": 0, "y": 0}},
        {"id": "a", "position": {"x": 9, "y": 9}},
    ]

    nodes, _ = deserialize(persisted_nodes, [])

    assert len(nodes) == 1
    assert nodes[0].position.x == 0


def test_invalid_node_entries_are_dropped():
    """Entries without an id or that are not objects are skipped"""
    persisted_nodes = [{"id": "a"}, {"position": {"x": 0, "y": 0}}, "garbage"]
    persisted_edges = [{"id": "e1", "source": "a", "target": "a"}]

    nodes, edges = deserialize(persisted_nodes, persisted_edges)

    assert [n.id for n in nodes] == ["a"]
    assert [e.id for e in edges] == ["e1"]


def test_parse_strict_keeps_valid_graph():
    nodes, edges = parse_strict([{"id": "a"}, {"id": "b"}], [{"id": "e1", "source": "a", "target": "b"}])

    assert [n.id for n in nodes] == ["a", "b"]
    assert [e.id for e in edges] == ["e1"]


def test_parse_strict_raises_where_deserialize_prunes():
    persisted_nodes = [{"id": 1}, {"id": "b"}]

    with pytest.raises(ValidationError) as exc_info:
        parse_strict(persisted_nodes, [])

    assert exc_info.value.context["index"] == 0
    assert [n.id for n in deserialize(persisted_nodes, [])[0]] == ["b"]


def test_parse_strict_rejects_non_object_entries():
    with pytest.raises(ValidationError):
        parse_strict([{"id": "a"}], ["a->a"])

    assert parse_strict(None, None) == ([], [])
