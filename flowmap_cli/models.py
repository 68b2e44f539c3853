"""Core data models shared by the graph store, extractor, diff engine and analyzer."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

EdgeKey = Tuple[str, str, str]


class _OpenTag(str, Enum):
    """String enum whose unknown values collapse to ``OTHER``."""

    @classmethod
    def parse(cls, tag: Any):
        try:
            return cls(str(tag))
        except ValueError:
            return cls.OTHER  # type: ignore[attr-defined]


class NodeType(_OpenTag):
    MODEL = "model"
    CONTROLLER = "controller"
    ACTION = "action"
    ROUTE = "route"
    SERVICE = "service"
    RESPONSE = "response"
    OTHER = "other"


class EdgeType(_OpenTag):
    BELONGS_TO = "belongs_to"
    HAS_ONE = "has_one"
    HAS_MANY = "has_many"
    HAS_AND_BELONGS_TO_MANY = "has_and_belongs_to_many"
    HAS_ACTION = "has_action"
    ROUTES_TO = "routes_to"
    ACCESSES_MODEL = "accesses_model"
    CALLS_SERVICE = "calls_service"
    RESPONDS_WITH = "responds_with"
    OTHER = "other"


ASSOCIATION_EDGE_TYPES = frozenset({
    EdgeType.BELONGS_TO.value,
    EdgeType.HAS_ONE.value,
    EdgeType.HAS_MANY.value,
    EdgeType.HAS_AND_BELONGS_TO_MANY.value,
})


class Direction(str, Enum):
    OUTGOING = "outgoing"
    INCOMING = "incoming"
    BOTH = "both"


class MatchKind(str, Enum):
    """How an endpoint selector resolved to a route node."""
    EXACT = "exact"
    PATTERN = "pattern"
    FALLBACK = "fallback"


_ID_UNSAFE_RE = re.compile(r"[^a-z0-9_]+")


def make_node_id(node_type: str, name: str) -> str:
    """Build a stable ``<type>_<canonical-name>`` identifier.

    Producers should derive ids from the identity of the entity so that two
    independent runs over the same architecture yield comparable snapshots.
    """
    canonical = _ID_UNSAFE_RE.sub("_", str(name).strip().lower()).strip("_")
    return f"{node_type}_{canonical}"


@dataclass
class Node:
    node_id: str
    name: str
    node_type: str
    attributes: Dict[str, Any] = field(default_factory=dict)
    file_path: Optional[str] = None
    line_number: Optional[int] = None

    def is_model(self) -> bool:
        return self.node_type == NodeType.MODEL.value

    def is_controller(self) -> bool:
        return self.node_type == NodeType.CONTROLLER.value

    def is_action(self) -> bool:
        return self.node_type == NodeType.ACTION.value

    def is_route(self) -> bool:
        return self.node_type == NodeType.ROUTE.value

    @property
    def kind(self) -> NodeType:
        return NodeType.parse(self.node_type)

    def copy(self) -> "Node":
        """Return a copy that does not share its ``attributes`` dict."""
        return replace(self, attributes=dict(self.attributes))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.node_id,
            "name": self.name,
            "type": self.node_type,
            "attributes": self.attributes,
            "file_path": self.file_path,
            "line_number": self.line_number,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any], node_id: Optional[str] = None) -> "Node":
        node_id = node_id if node_id is not None else payload["id"]
        return cls(
            node_id=str(node_id),
            name=str(payload.get("name") or node_id),
            node_type=str(payload["type"]),
            attributes=dict(payload.get("attributes") or {}),
            file_path=payload.get("file_path"),
            line_number=payload.get("line_number"),
        )


@dataclass
class Edge:
    src: str
    dst: str
    edge_type: str
    label: Optional[str] = None
    attributes: Dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> EdgeKey:
        """Identity used for dedup and diffing; label and attributes are ignored."""
        return (self.src, self.dst, self.edge_type)

    @property
    def kind(self) -> EdgeType:
        return EdgeType.parse(self.edge_type)

    def is_association(self) -> bool:
        return self.edge_type in ASSOCIATION_EDGE_TYPES

    def other_end(self, node_id: str) -> str:
        return self.dst if self.src == node_id else self.src

    def copy(self) -> "Edge":
        return replace(self, attributes=dict(self.attributes))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.src,
            "to": self.dst,
            "type": self.edge_type,
            "label": self.label,
            "attributes": self.attributes,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Edge":
        return cls(
            src=str(payload["from"]),
            dst=str(payload["to"]),
            edge_type=str(payload["type"]),
            label=payload.get("label"),
            attributes=dict(payload.get("attributes") or {}),
        )


# ---------------------------------------------------------------------------
# Diff records
# ---------------------------------------------------------------------------

@dataclass
class NodeModification:
    before: Node
    after: Node
    changes: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def node_id(self) -> str:
        return self.after.node_id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.node_id,
            "before": self.before.to_dict(),
            "after": self.after.to_dict(),
            "changes": self.changes,
        }


@dataclass
class CountChange:
    before: int
    after: int

    @property
    def change(self) -> int:
        return self.after - self.before

    def to_dict(self) -> Dict[str, int]:
        return {"before": self.before, "after": self.after, "change": self.change}


@dataclass
class ComplexityChange(CountChange):
    @property
    def percentage(self) -> float:
        if self.before == 0:
            return 0.0
        return round(self.change * 100.0 / self.before, 2)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = dict(super().to_dict())
        payload["percentage"] = self.percentage
        return payload


@dataclass
class MetricsChange:
    nodes: CountChange
    edges: CountChange
    complexity: ComplexityChange

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": self.nodes.to_dict(),
            "edges": self.edges.to_dict(),
            "complexity": self.complexity.to_dict(),
        }


@dataclass
class DiffSummary:
    total_changes: int = 0
    breaking_changes: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_changes": self.total_changes,
            "breaking_changes": list(self.breaking_changes),
            "recommendations": list(self.recommendations),
        }


@dataclass
class GraphDiff:
    added_nodes: List[Node]
    removed_nodes: List[Node]
    modified_nodes: List[NodeModification]
    added_edges: List[Edge]
    removed_edges: List[Edge]
    metrics_change: MetricsChange
    summary: DiffSummary = field(default_factory=DiffSummary)

    @property
    def is_empty(self) -> bool:
        return self.summary.total_changes == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "added_nodes": [n.to_dict() for n in self.added_nodes],
            "removed_nodes": [n.to_dict() for n in self.removed_nodes],
            "modified_nodes": [m.to_dict() for m in self.modified_nodes],
            "added_edges": [e.to_dict() for e in self.added_edges],
            "removed_edges": [e.to_dict() for e in self.removed_edges],
            "metrics_change": self.metrics_change.to_dict(),
            "summary": self.summary.to_dict(),
        }


# ---------------------------------------------------------------------------
# Analysis records
# ---------------------------------------------------------------------------

@dataclass
class RouteMatch:
    node: Node
    kind: MatchKind


@dataclass
class DependencyBreakdown:
    outgoing: int = 0
    outgoing_types: List[str] = field(default_factory=list)
    incoming: int = 0
    incoming_types: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.outgoing + self.incoming

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outgoing": self.outgoing,
            "outgoing_types": list(self.outgoing_types),
            "incoming": self.incoming,
            "incoming_types": list(self.incoming_types),
        }
