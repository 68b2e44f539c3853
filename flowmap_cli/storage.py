"""In-memory graph store for architecture snapshots.

Architecture:
- Nodes live in an id-keyed dict; re-adding an id overwrites the node.
- Edges live in an ordered list, deduplicated on ``(src, dst, edge_type)``.
- Per-node outgoing / incoming indexes keep neighbor lookups O(degree).

A store is populated by one producer pass and is then treated as a
read-only snapshot by the extractor, diff engine and analyzer.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Set

from .errors import InvalidGraphError, SnapshotError
from .models import Direction, Edge, EdgeKey, Node

logger = logging.getLogger(__name__)


class GraphStore:
    """Owning container of nodes and edges."""

    def __init__(self) -> None:
        self._nodes: Dict[str, Node] = {}
        self._edges: List[Edge] = []
        self._edge_index: Dict[EdgeKey, int] = {}
        self._outgoing: Dict[str, List[Edge]] = {}
        self._incoming: Dict[str, List[Edge]] = {}

    def __repr__(self) -> str:
        return f"GraphStore(nodes={self.node_count}, edges={self.edge_count})"

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[Node]:
        return iter(list(self._nodes.values()))

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_node(self, node: Node) -> bool:
        """Insert or overwrite *node*. Returns ``True`` if the id was new."""
        is_new = node.node_id not in self._nodes
        self._nodes[node.node_id] = node
        return is_new

    def add_edge(self, edge: Edge) -> bool:
        """Append *edge* unless its ``(src, dst, edge_type)`` is already present."""
        key = edge.key
        if key in self._edge_index:
            return False
        self._edge_index[key] = len(self._edges)
        self._edges.append(edge)
        self._outgoing.setdefault(edge.src, []).append(edge)
        self._incoming.setdefault(edge.dst, []).append(edge)
        return True

    def merge_from(self, other: "GraphStore") -> "GraphStore":
        """Union copies of *other's* nodes and edges into this store.

        Nodes from *other* win on id collision. Returns ``self``.
        """
        for node in other.get_nodes():
            self.add_node(node.copy())
        added = sum(
            1 for edge in other.get_edges()
            if not self.has_edge(*edge.key) and self.add_edge(edge.copy())
        )
        logger.debug(
            "Merged %d nodes and %d new edges into graph",
            other.node_count, added,
        )
        return self

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return len(self._edges)

    def get_nodes(self) -> List[Node]:
        return list(self._nodes.values())

    def get_node_ids(self) -> List[str]:
        return list(self._nodes.keys())

    def get_edges(self) -> List[Edge]:
        return list(self._edges)

    def find_node(self, node_id: str) -> Optional[Node]:
        return self._nodes.get(node_id)

    def has_edge(self, src: str, dst: str, edge_type: str) -> bool:
        return (src, dst, edge_type) in self._edge_index

    def nodes_by_type(self, node_type: str) -> List[Node]:
        """Filter nodes by type tag.

        Args:
            node_type: Tag string or a :class:`NodeType` member

        Returns:
            Matching nodes in insertion order
        """
        tag = getattr(node_type, "value", node_type)
        return [n for n in self._nodes.values() if n.node_type == tag]

    def edges_by_type(self, edge_type: str) -> List[Edge]:
        """Filter edges by type tag, in insertion order."""
        tag = getattr(edge_type, "value", edge_type)
        return [e for e in self._edges if e.edge_type == tag]

    def outgoing_edges(self, node_id: str) -> List[Edge]:
        """Edges whose source is *node_id*.

        Args:
            node_id: Node to look up; it need not exist in the node map

        Returns:
            Edges in insertion order, empty when there are none
        """
        return list(self._outgoing.get(node_id, ()))

    def incoming_edges(self, node_id: str) -> List[Edge]:
        """Edges whose target is *node_id*, in insertion order."""
        return list(self._incoming.get(node_id, ()))

    def incident_edges(self, node_id: str) -> List[Edge]:
        """Edges touching *node_id* as either end, in insertion order.

        A self loop is returned once.
        """
        positions = {self._edge_index[e.key] for e in self._outgoing.get(node_id, ())}
        positions.update(self._edge_index[e.key] for e in self._incoming.get(node_id, ()))
        return [self._edges[pos] for pos in sorted(positions)]

    def connected_nodes(
        self,
        node_id: str,
        direction: Direction = Direction.BOTH,
    ) -> List[Node]:
        """Return distinct neighbor nodes in first-seen order.

        Neighbors referenced by dangling edges are skipped.
        """
        direction = Direction(direction)
        neighbor_ids: List[str] = []
        if direction in (Direction.OUTGOING, Direction.BOTH):
            neighbor_ids.extend(e.dst for e in self._outgoing.get(node_id, ()))
        if direction in (Direction.INCOMING, Direction.BOTH):
            neighbor_ids.extend(e.src for e in self._incoming.get(node_id, ()))

        seen: Set[str] = set()
        result: List[Node] = []
        for nid in neighbor_ids:
            if nid in seen:
                continue
            seen.add(nid)
            node = self._nodes.get(nid)
            if node is not None:
                result.append(node)
        return result

    def dangling_edges(self) -> List[Edge]:
        """Edges whose source or target is not in the node map."""
        return [
            e for e in self._edges
            if e.src not in self._nodes or e.dst not in self._nodes
        ]

    def type_counts(self) -> Dict[str, int]:
        """Number of nodes per type tag, unknown tags included."""
        counts: Dict[str, int] = {}
        for node in self._nodes.values():
            counts[node.node_type] = counts.get(node.node_type, 0) + 1
        return counts

    # ------------------------------------------------------------------
    # Snapshot representation
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Plain nested snapshot: ``{"nodes": {id: {...}}, "edges": [...]}``."""
        return {
            "nodes": {nid: node.to_dict() for nid, node in self._nodes.items()},
            "edges": [edge.to_dict() for edge in self._edges],
        }

    @classmethod
    def from_dict(cls, payload: Any) -> "GraphStore":
        """Rebuild a store from its snapshot representation.

        ``nodes`` may be an id-keyed mapping or a list of node records.
        """
        if not isinstance(payload, dict):
            raise SnapshotError("Snapshot must be a mapping with 'nodes' and 'edges'")

        store = cls()
        raw_nodes = payload.get("nodes") or {}
        raw_edges = payload.get("edges") or []

        try:
            if isinstance(raw_nodes, dict):
                for node_id, record in raw_nodes.items():
                    store.add_node(Node.from_dict(record, node_id=node_id))
            elif isinstance(raw_nodes, list):
                for record in raw_nodes:
                    store.add_node(Node.from_dict(record))
            else:
                raise SnapshotError("Snapshot 'nodes' must be a mapping or a list")

            if not isinstance(raw_edges, list):
                raise SnapshotError("Snapshot 'edges' must be a list")
            for record in raw_edges:
                store.add_edge(Edge.from_dict(record))
        except (KeyError, TypeError, AttributeError) as exc:
            raise SnapshotError(
                f"Malformed snapshot record: {exc!r}",
                context={"error": str(exc)},
            ) from exc

        return store

    def copy(self) -> "GraphStore":
        """Independent copy; node and edge attribute dicts are not shared."""
        return GraphStore().merge_from(self)


def load_snapshot(path: Path) -> GraphStore:
    """Read a JSON snapshot file into a new store."""
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as exc:
        raise SnapshotError(f"Cannot read snapshot {path}: {exc}", context={"path": str(path)}) from exc
    except json.JSONDecodeError as exc:
        raise SnapshotError(f"Snapshot {path} is not valid JSON: {exc}", context={"path": str(path)}) from exc

    store = GraphStore.from_dict(payload)
    logger.info(
        "Loaded snapshot %s: %d nodes, %d edges",
        path, store.node_count, store.edge_count,
    )
    return store


def save_snapshot(store: GraphStore, path: Path) -> None:
    """Write *store* as an indented JSON snapshot.

    Args:
        store: Graph to serialize
        path: Destination file; missing parent directories are created
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(store.to_dict(), indent=2), encoding="utf-8")


def ensure_graph(value: object, role: str = "graph") -> GraphStore:
    """Return *value* if it is a :class:`GraphStore`, else raise ``InvalidGraphError``."""
    if not isinstance(value, GraphStore):
        raise InvalidGraphError(
            f"Expected a GraphStore for {role}, got {type(value).__name__}",
            context={"role": role, "received": type(value).__name__},
        )
    return value
