"""Tests for the graph store and snapshot representation."""

import json
from pathlib import Path

import pytest

from flowmap_cli.errors import InvalidGraphError, SnapshotError
from flowmap_cli.models import Direction, Edge, Node
from flowmap_cli.storage import GraphStore, ensure_graph, load_snapshot, save_snapshot


class TestGraphStore:
    """Tests for GraphStore mutation and queries."""

    def test_add_and_find_node(self, empty_store: GraphStore):
        """A node can be found by id after it is added."""
        node = Node("model_user", "User", "model", attributes={"table": "users"})

        assert empty_store.add_node(node) is True
        assert empty_store.find_node("model_user") == node
        assert "model_user" in empty_store

    def test_add_node_overwrites_existing_id(self, empty_store: GraphStore):
        """Re-adding an id replaces the node and reports it was not new."""
        empty_store.add_node(Node("model_user", "User", "model"))

        assert empty_store.add_node(Node("model_user", "Account", "model")) is False
        assert empty_store.node_count == 1
        assert empty_store.find_node("model_user").name == "Account"

    def test_find_missing_node_returns_none(self, empty_store: GraphStore):
        assert empty_store.find_node("nope") is None

    def test_duplicate_edge_is_ignored(self, user_post_store: GraphStore):
        """Edges are identified by (src, dst, type); the label is not part of identity."""
        assert user_post_store.edge_count == 1

        added = user_post_store.add_edge(Edge("post", "user", "belongs_to", label="author"))

        assert added is False
        assert user_post_store.edge_count == 1
        assert user_post_store.get_edges()[0].label is None

    def test_distinct_edge_types_between_same_pair(self, user_post_store: GraphStore):
        assert user_post_store.add_edge(Edge("post", "user", "has_one")) is True
        assert user_post_store.edge_count == 2

    def test_dangling_edges_are_tolerated(self, user_post_store: GraphStore):
        assert user_post_store.add_edge(Edge("post", "model_ghost", "belongs_to")) is True

        dangling = user_post_store.dangling_edges()
        assert [e.dst for e in dangling] == ["model_ghost"]
        assert user_post_store.connected_nodes("post", Direction.OUTGOING) == [
            user_post_store.find_node("user")
        ]

    def test_nodes_and_edges_by_type(self, blog_store: GraphStore):
        models = blog_store.nodes_by_type("model")
        assert [n.name for n in models] == ["User", "Post", "Comment"]
        assert len(blog_store.edges_by_type("belongs_to")) == 3
        assert blog_store.nodes_by_type("unknown_tag") == []

    def test_connected_nodes_directions(self, blog_store: GraphStore):
        outgoing = blog_store.connected_nodes("action_users_show", Direction.OUTGOING)
        incoming = blog_store.connected_nodes("action_users_show", Direction.INCOMING)
        both = blog_store.connected_nodes("action_users_show")

        assert [n.node_id for n in outgoing] == ["model_user", "service_user"]
        assert [n.node_id for n in incoming] == ["route_get_api_v1_users_id", "controller_users"]
        assert len(both) == 4

    def test_connected_nodes_are_deduplicated(self, empty_store: GraphStore):
        """A neighbor reachable through several edges appears once."""
        empty_store.add_node(Node("a", "A", "model"))
        empty_store.add_node(Node("b", "B", "model"))
        empty_store.add_edge(Edge("a", "b", "belongs_to"))
        empty_store.add_edge(Edge("a", "b", "has_one"))
        empty_store.add_edge(Edge("b", "a", "has_many"))

        assert [n.node_id for n in empty_store.connected_nodes("a")] == ["b"]

    def test_incident_edges_keep_insertion_order(self, empty_store: GraphStore):
        empty_store.add_edge(Edge("x", "a", "t1"))
        empty_store.add_edge(Edge("a", "y", "t2"))
        empty_store.add_edge(Edge("a", "a", "self"))
        empty_store.add_edge(Edge("z", "a", "t3"))

        assert [e.edge_type for e in empty_store.incident_edges("a")] == ["t1", "t2", "self", "t3"]

    def test_merge_prefers_other_nodes_and_dedups_edges(self, user_post_store: GraphStore):
        other = GraphStore()
        other.add_node(Node("user", "Member", "model"))
        other.add_node(Node("comment", "Comment", "model"))
        other.add_edge(Edge("post", "user", "belongs_to"))
        other.add_edge(Edge("comment", "post", "belongs_to"))

        user_post_store.merge_from(other)

        assert user_post_store.node_count == 3
        assert user_post_store.edge_count == 2
        assert user_post_store.find_node("user").name == "Member"

    def test_copy_is_independent(self, blog_store: GraphStore):
        """Mutating a copy's node attributes leaves the original untouched."""
        clone = blog_store.copy()

        clone.find_node("model_user").attributes["associations"] = ["likes"]
        clone.find_node("model_post").attributes["table"] = "articles"

        assert blog_store.find_node("model_user").attributes["associations"] == ["posts", "comments"]
        assert "table" not in blog_store.find_node("model_post").attributes
        assert clone.to_dict()["edges"] == blog_store.to_dict()["edges"]

    def test_type_counts(self, blog_store: GraphStore):
        counts = blog_store.type_counts()
        assert counts["model"] == 3
        assert counts["route"] == 3
        assert counts["service"] == 1


class TestSnapshots:
    """Tests for the plain nested snapshot representation."""

    def test_to_dict_and_back(self, blog_store: GraphStore):
        restored = GraphStore.from_dict(blog_store.to_dict())

        assert restored.to_dict() == blog_store.to_dict()
        assert [e.key for e in restored.get_edges()] == [e.key for e in blog_store.get_edges()]

    def test_from_dict_accepts_node_list(self):
        payload = {
            "nodes": [
                {"id": "model_user", "name": "User", "type": "model"},
                {"id": "model_post", "name": "Post", "type": "model"},
            ],
            "edges": [{"from": "model_post", "to": "model_user", "type": "belongs_to"}],
        }

        store = GraphStore.from_dict(payload)

        assert store.node_count == 2
        assert store.find_node("model_post").attributes == {}
        assert store.get_edges()[0].label is None

    def test_null_name_falls_back_to_id(self):
        store = GraphStore.from_dict({"nodes": {"a": {"name": None, "type": "model"}}, "edges": []})

        assert store.find_node("a").name == "a"

    @pytest.mark.parametrize(
        "payload",
        [
            [],
            {"nodes": "oops"},
            {"nodes": {"a": {"name": "A"}}},
            {"nodes": {}, "edges": [{"from": "a"}]},
            {"nodes": {}, "edges": {"from": "a"}},
        ],
    )
    def test_from_dict_rejects_malformed_payload(self, payload):
        with pytest.raises(SnapshotError):
            GraphStore.from_dict(payload)

    def test_save_and_load_snapshot(self, blog_store: GraphStore, tmp_path: Path):
        path = tmp_path / "nested" / "graph.json"
        save_snapshot(blog_store, path)

        loaded = load_snapshot(path)
        assert loaded.node_count == blog_store.node_count
        assert loaded.edge_count == blog_store.edge_count
        assert json.loads(path.read_text())["nodes"]["model_user"]["name"] == "User"

    def test_load_invalid_json(self, tmp_path: Path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(SnapshotError) as excinfo:
            load_snapshot(path)
        assert excinfo.value.category == "parsing"

    def test_load_missing_file(self, tmp_path: Path):
        with pytest.raises(SnapshotError):
            load_snapshot(tmp_path / "missing.json")


def test_ensure_graph_rejects_other_values():
    with pytest.raises(InvalidGraphError):
        ensure_graph({"nodes": {}})
    with pytest.raises(TypeError):
        ensure_graph(None)
