"""GraphDiffEngine for comparing two architecture snapshots."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from .config import FlowMapConfig
from .models import (
    ComplexityChange,
    CountChange,
    DiffSummary,
    Edge,
    GraphDiff,
    MetricsChange,
    Node,
    NodeModification,
)
from .storage import GraphStore, ensure_graph

logger = logging.getLogger(__name__)

ASSOCIATIONS_ATTRIBUTE = "associations"


def graph_complexity(store: GraphStore) -> int:
    """Coarse size metric: node count plus twice the edge count."""
    return store.node_count + 2 * store.edge_count


class GraphDiffEngine:
    """Computes structural differences between a ``before`` and ``after`` graph."""

    def __init__(self, config: Optional[FlowMapConfig] = None):
        """Initialize GraphDiffEngine.

        Args:
            config: Thresholds for breaking-change and recommendation rules.
                Defaults to :class:`FlowMapConfig` defaults.
        """
        self.config = config or FlowMapConfig()

    def diff(self, before: Optional[GraphStore], after: Optional[GraphStore]) -> GraphDiff:
        """Compare two snapshots.

        ``None`` on either side is treated as an empty graph, so everything in
        the other snapshot shows up as added or removed.

        Args:
            before: Snapshot of the earlier state
            after: Snapshot of the later state

        Returns:
            GraphDiff with node/edge changes, metrics and summary
        """
        before = GraphStore() if before is None else ensure_graph(before, "before")
        after = GraphStore() if after is None else ensure_graph(after, "after")

        added_nodes = [n for n in after.get_nodes() if n.node_id not in before]
        removed_nodes: List[Node] = []
        modified_nodes: List[NodeModification] = []

        for node in before.get_nodes():
            current = after.find_node(node.node_id)
            if current is None:
                removed_nodes.append(node)
            elif node_changed(node, current):
                modified_nodes.append(
                    NodeModification(
                        before=node,
                        after=current,
                        changes=detect_node_changes(node, current),
                    )
                )

        added_edges = [e for e in after.get_edges() if not before.has_edge(*e.key)]
        removed_edges = [e for e in before.get_edges() if not after.has_edge(*e.key)]

        result = GraphDiff(
            added_nodes=added_nodes,
            removed_nodes=removed_nodes,
            modified_nodes=modified_nodes,
            added_edges=added_edges,
            removed_edges=removed_edges,
            metrics_change=self.metrics_change(before, after),
        )
        result.summary = self.summarize(result)

        logger.info(
            "Graph diff: +%d/-%d/~%d nodes, +%d/-%d edges",
            len(added_nodes), len(removed_nodes), len(modified_nodes),
            len(added_edges), len(removed_edges),
        )
        return result

    def metrics_change(self, before: GraphStore, after: GraphStore) -> MetricsChange:
        return MetricsChange(
            nodes=CountChange(before.node_count, after.node_count),
            edges=CountChange(before.edge_count, after.edge_count),
            complexity=ComplexityChange(graph_complexity(before), graph_complexity(after)),
        )

    def summarize(self, diff: GraphDiff) -> DiffSummary:
        total = (
            len(diff.added_nodes)
            + len(diff.removed_nodes)
            + len(diff.modified_nodes)
            + len(diff.added_edges)
            + len(diff.removed_edges)
        )
        return DiffSummary(
            total_changes=total,
            breaking_changes=self.detect_breaking_changes(diff.removed_nodes, diff.removed_edges),
            recommendations=self.recommendations(diff),
        )

    def detect_breaking_changes(
        self,
        removed_nodes: Iterable[Node],
        removed_edges: Iterable[Edge],
    ) -> List[str]:
        """Describe removals likely to break external consumers."""
        breaking = []
        for node in removed_nodes:
            if node.node_type in self.config.breaking_node_types:
                breaking.append(f"{node.node_type.capitalize()} '{node.name}' was removed")

        for edge in removed_edges:
            if edge.edge_type in self.config.breaking_edge_types:
                breaking.append(f"Association removed: {edge.src} {edge.edge_type} {edge.dst}")

        return breaking

    def recommendations(self, diff: GraphDiff) -> List[str]:
        recs = []
        added_nodes = len(diff.added_nodes)
        added_edges = len(diff.added_edges)

        if added_nodes > self.config.large_changeset_threshold:
            recs.append("Consider breaking down the changes into smaller changesets")

        percentage = diff.metrics_change.complexity.percentage
        if percentage > self.config.complexity_increase_threshold:
            recs.append(f"Complexity increased by {percentage}%. Consider refactoring")

        if added_edges > added_nodes * self.config.edge_to_node_ratio:
            recs.append("Many new dependencies added. Check for circular dependencies")

        return recs


def node_changed(before: Node, after: Node) -> bool:
    return (
        before.name != after.name
        or before.node_type != after.node_type
        or before.attributes != after.attributes
    )


def detect_node_changes(before: Node, after: Node) -> List[Dict[str, Any]]:
    """List the name and association changes between two versions of a node.

    Only the conventional ``associations`` attribute is inspected; other
    attribute differences mark the node as modified without detail records.
    """
    changes: List[Dict[str, Any]] = []

    if before.name != after.name:
        changes.append({"type": "name", "before": before.name, "after": after.name})

    if before.attributes != after.attributes:
        before_assoc = _string_list(before.attributes.get(ASSOCIATIONS_ATTRIBUTE))
        after_assoc = _string_list(after.attributes.get(ASSOCIATIONS_ATTRIBUTE))

        added = _ordered_difference(after_assoc, before_assoc)
        removed = _ordered_difference(before_assoc, after_assoc)
        if added:
            changes.append({"type": "associations_added", "items": added})
        if removed:
            changes.append({"type": "associations_removed", "items": removed})

    return changes


def _string_list(value: Any) -> List[str]:
    if value is None or isinstance(value, (str, bytes, dict)):
        return []
    try:
        return [str(item) for item in value]
    except TypeError:
        return []


def _ordered_difference(items: List[str], exclude: List[str]) -> List[str]:
    excluded = set(exclude)
    seen = set()
    result = []
    for item in items:
        if item in excluded or item in seen:
            continue
        seen.add(item)
        result.append(item)
    return result


def diff_graphs(
    before: Optional[GraphStore],
    after: Optional[GraphStore],
    config: Optional[FlowMapConfig] = None,
) -> GraphDiff:
    return GraphDiffEngine(config).diff(before, after)
