"""Connectivity scoring and circular-dependency detection."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

from .config import FlowMapConfig
from .models import DependencyBreakdown, Edge, EdgeType, Node, NodeType
from .storage import GraphStore, ensure_graph

logger = logging.getLogger(__name__)


class ComplexityAnalyzer:
    """Analyze a graph snapshot for over-connected nodes and cycles."""

    def __init__(self, store: GraphStore, config: Optional[FlowMapConfig] = None):
        self.store = ensure_graph(store)
        self.config = config or FlowMapConfig()

    # ------------------------------------------------------------------
    # Scores
    # ------------------------------------------------------------------

    def complexity_score(self, node_id: str) -> int:
        """In-degree plus out-degree of *node_id*."""
        return len(self.store.incoming_edges(node_id)) + len(self.store.outgoing_edges(node_id))

    def most_connected(
        self,
        node_type: str = NodeType.MODEL.value,
        limit: Optional[int] = None,
    ) -> List[Tuple[Node, int]]:
        """Nodes of *node_type* ranked by complexity score, highest first.

        ``sorted`` is stable, so ties keep graph order.

        Args:
            node_type: Type tag to rank, models by default
            limit: Keep only the first *limit* entries when given

        Returns:
            List of ``(node, score)`` pairs
        """
        scored = [(node, self.complexity_score(node.node_id)) for node in self.store.nodes_by_type(node_type)]
        ranked = sorted(scored, key=lambda item: -item[1])
        return ranked[:limit] if limit is not None else ranked

    def dependencies(
        self,
        node_type: str = NodeType.MODEL.value,
        limit: Optional[int] = None,
    ) -> List[Tuple[Node, DependencyBreakdown]]:
        """Incoming and outgoing edge counts per node, with distinct edge types.

        Args:
            node_type: Type tag to inspect, models by default
            limit: Keep only the first *limit* entries when given

        Returns:
            List of ``(node, DependencyBreakdown)`` pairs ranked by total edges
        """
        breakdowns = []
        for node in self.store.nodes_by_type(node_type):
            outgoing = self.store.outgoing_edges(node.node_id)
            incoming = self.store.incoming_edges(node.node_id)
            breakdowns.append((
                node,
                DependencyBreakdown(
                    outgoing=len(outgoing),
                    outgoing_types=_distinct_types(outgoing),
                    incoming=len(incoming),
                    incoming_types=_distinct_types(incoming),
                ),
            ))
        ranked = sorted(breakdowns, key=lambda item: -item[1].total)
        return ranked[:limit] if limit is not None else ranked

    def god_objects(self) -> List[Tuple[Node, int]]:
        """Models whose score exceeds ``config.god_object_threshold``."""
        threshold = self.config.god_object_threshold
        return [(node, score) for node, score in self.most_connected(NodeType.MODEL.value) if score > threshold]

    def controller_action_counts(self, limit: Optional[int] = None) -> List[Tuple[Node, int]]:
        """Controllers ranked by their number of ``has_action`` edges.

        Args:
            limit: Keep only the first *limit* entries when given

        Returns:
            List of ``(controller, action_count)`` pairs, highest first
        """
        counts = []
        for controller in self.store.nodes_by_type(NodeType.CONTROLLER.value):
            actions = sum(
                1 for e in self.store.outgoing_edges(controller.node_id)
                if e.edge_type == EdgeType.HAS_ACTION.value
            )
            counts.append((controller, actions))
        ranked = sorted(counts, key=lambda item: -item[1])
        return ranked[:limit] if limit is not None else ranked

    def service_usage(self, limit: Optional[int] = None) -> List[Tuple[Node, int]]:
        """Services ranked by incoming ``calls_service`` edges, highest first."""
        usage = []
        for service in self.store.nodes_by_type(NodeType.SERVICE.value):
            callers = sum(
                1 for e in self.store.incoming_edges(service.node_id)
                if e.edge_type == EdgeType.CALLS_SERVICE.value
            )
            usage.append((service, callers))
        ranked = sorted(usage, key=lambda item: -item[1])
        return ranked[:limit] if limit is not None else ranked

    # ------------------------------------------------------------------
    # Cycles
    # ------------------------------------------------------------------

    def detect_cycles(self) -> List[List[str]]:
        """Find circular dependencies over directed edges.

        Depth-first search from every unvisited node, in graph order. When an
        edge leads back to a node on the current path, the path segment from
        that node to the current one is recorded (as display names) and the
        search from that root stops. This reports at most one cycle per root;
        it is not an enumeration of every simple cycle.
        """
        cycles: List[List[str]] = []
        visited: Set[str] = set()

        for root in self.store.get_node_ids():
            if root in visited:
                continue
            cycle = self._first_cycle_from(root, visited)
            if cycle:
                cycles.append([self._display_name(nid) for nid in cycle])

        if cycles:
            logger.info("Detected %d circular dependencies", len(cycles))
        return cycles

    def has_cycles(self) -> bool:
        return bool(self.detect_cycles())

    def _first_cycle_from(self, root: str, visited: Set[str]) -> Optional[List[str]]:
        path: List[str] = []
        on_path: Set[str] = set()
        stack: List[Tuple[str, Iterator[Edge]]] = []

        def enter(node_id: str) -> None:
            visited.add(node_id)
            on_path.add(node_id)
            path.append(node_id)
            stack.append((node_id, iter(self.store.outgoing_edges(node_id))))

        enter(root)
        while stack:
            node_id, edges = stack[-1]
            edge = next(edges, None)
            if edge is None:
                stack.pop()
                path.pop()
                on_path.discard(node_id)
                continue

            target = edge.dst
            if target in on_path:
                return path[path.index(target):]
            if target not in visited:
                enter(target)

        return None

    def _display_name(self, node_id: str) -> str:
        node = self.store.find_node(node_id)
        return node.name if node is not None else node_id

    # ------------------------------------------------------------------
    # Report
    # ------------------------------------------------------------------

    def overview(self) -> Dict[str, Any]:
        """Graph totals and node counts per type.

        Returns:
            Dict with ``total_nodes``, ``total_edges``, ``by_type`` (every
            known tag, zero when absent) and ``other_types`` (unknown tags)
        """
        counts = self.store.type_counts()
        return {
            "total_nodes": self.store.node_count,
            "total_edges": self.store.edge_count,
            "by_type": {
                tag.value: counts.get(tag.value, 0)
                for tag in NodeType
                if tag is not NodeType.OTHER
            },
            "other_types": {
                tag: count for tag, count in counts.items()
                if NodeType.parse(tag) is NodeType.OTHER
            },
        }

    def recommendations(self) -> List[str]:
        """Refactoring hints driven by the configured thresholds.

        Returns:
            Human-readable suggestions, empty when nothing stands out
        """
        recs = []

        ranked_models = self.most_connected(NodeType.MODEL.value)
        if ranked_models and ranked_models[0][1] > self.config.relationship_warning_threshold:
            top = ranked_models[0][0]
            recs.append(f"Consider breaking down {top.name} - it has too many relationships")

        services = self.store.nodes_by_type(NodeType.SERVICE.value)
        controllers = self.store.nodes_by_type(NodeType.CONTROLLER.value)
        if not services and len(controllers) > self.config.service_layer_controller_threshold:
            recs.append("Consider implementing a service layer to separate business logic")

        fat = [
            controller.name for controller, count in self.controller_action_counts()
            if count > self.config.fat_controller_threshold
        ]
        if fat:
            recs.append(
                f"These controllers have too many actions: {', '.join(fat)}. "
                "Consider splitting into multiple controllers or using namespaces"
            )

        return recs

    def report(self, top_n: Optional[int] = None) -> Dict[str, Any]:
        """Aggregate every analysis into one plain dict."""
        top_n = top_n if top_n is not None else self.config.top_n
        services = self.store.nodes_by_type(NodeType.SERVICE.value)
        controllers = self.store.nodes_by_type(NodeType.CONTROLLER.value)

        return {
            "overview": self.overview(),
            "most_connected_models": [
                {"id": n.node_id, "name": n.name, "score": score}
                for n, score in self.most_connected(NodeType.MODEL.value, limit=top_n)
            ],
            "controller_actions": [
                {"id": n.node_id, "name": n.name, "actions": count}
                for n, count in self.controller_action_counts(limit=top_n)
            ],
            "model_dependencies": [
                {"id": n.node_id, "name": n.name, **deps.to_dict()}
                for n, deps in self.dependencies(NodeType.MODEL.value, limit=top_n)
            ],
            "service_layer": {
                "total_services": len(services),
                "services_per_controller": (
                    round(len(services) / len(controllers), 2) if controllers else None
                ),
                "most_used": [
                    {"id": n.node_id, "name": n.name, "callers": count}
                    for n, count in self.service_usage(limit=top_n)
                ],
            },
            "circular_dependencies": self.detect_cycles(),
            "god_objects": [
                {"id": n.node_id, "name": n.name, "score": score}
                for n, score in self.god_objects()
            ],
            "recommendations": self.recommendations(),
        }


def _distinct_types(edges: List[Edge]) -> List[str]:
    seen: List[str] = []
    for edge in edges:
        if edge.edge_type not in seen:
            seen.append(edge.edge_type)
    return seen


def detect_cycles(store: GraphStore) -> List[List[str]]:
    return ComplexityAnalyzer(store).detect_cycles()
