"""Pytest configuration and fixtures for flowmap tests."""

import json
from pathlib import Path
from typing import Callable

import pytest

from flowmap_cli.models import Edge, Node
from flowmap_cli.storage import GraphStore


def model(name: str, **attributes) -> Node:
    return Node(node_id=f"model_{name.lower()}", name=name, node_type="model", attributes=attributes)


@pytest.fixture
def empty_store() -> GraphStore:
    """An empty graph."""
    return GraphStore()


@pytest.fixture
def user_post_store() -> GraphStore:
    """Two models, Post belongs_to User."""
    store = GraphStore()
    store.add_node(Node("user", "User", "model"))
    store.add_node(Node("post", "Post", "model"))
    store.add_edge(Edge("post", "user", "belongs_to"))
    return store


@pytest.fixture
def blog_store() -> GraphStore:
    """A small blog application: models, a controller, actions, routes and a service.

    Layout::

        route /api/v1/users/:id --routes_to--> UsersController#show
        route /api/v1/users     --routes_to--> UsersController#index
        UsersController --has_action--> show, index
        show  --accesses_model--> User
        index --accesses_model--> User
        show  --calls_service--> UserService
        Post  --belongs_to--> User
        Comment --belongs_to--> Post, User
        route /health (isolated) --routes_to--> HealthController#check
    """
    store = GraphStore()
    nodes = [
        model("User", associations=["posts", "comments"]),
        model("Post", associations=["user", "comments"]),
        model("Comment", associations=["user", "post"]),
        Node("controller_users", "UsersController", "controller"),
        Node("action_users_show", "UsersController#show", "action"),
        Node("action_users_index", "UsersController#index", "action"),
        Node("service_user", "UserService", "service"),
        Node(
            "route_get_api_v1_users_id",
            "GET /api/v1/users/:id",
            "route",
            attributes={"path": "/api/v1/users/:id", "verb": "GET"},
        ),
        Node(
            "route_get_api_v1_users",
            "GET /api/v1/users",
            "route",
            attributes={"path": "/api/v1/users", "verb": "GET"},
        ),
        Node("controller_health", "HealthController", "controller"),
        Node("action_health_check", "HealthController#check", "action"),
        Node(
            "route_get_health",
            "GET /health",
            "route",
            attributes={"path": "/health", "verb": "GET"},
        ),
    ]
    for node in nodes:
        store.add_node(node)

    edges = [
        Edge("route_get_api_v1_users_id", "action_users_show", "routes_to"),
        Edge("route_get_api_v1_users", "action_users_index", "routes_to"),
        Edge("controller_users", "action_users_show", "has_action"),
        Edge("controller_users", "action_users_index", "has_action"),
        Edge("action_users_show", "model_user", "accesses_model"),
        Edge("action_users_index", "model_user", "accesses_model"),
        Edge("action_users_show", "service_user", "calls_service"),
        Edge("model_post", "model_user", "belongs_to"),
        Edge("model_comment", "model_post", "belongs_to"),
        Edge("model_comment", "model_user", "belongs_to"),
        Edge("route_get_health", "action_health_check", "routes_to"),
        Edge("controller_health", "action_health_check", "has_action"),
    ]
    for edge in edges:
        store.add_edge(edge)
    return store


@pytest.fixture
def write_snapshot(tmp_path: Path) -> Callable[[GraphStore, str], Path]:
    """Write a store to a JSON snapshot file under ``tmp_path``."""

    def _write(store: GraphStore, name: str = "graph.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(store.to_dict(), indent=2), encoding="utf-8")
        return path

    return _write
