"""Endpoint-focused subgraph extraction.

Resolves a request path such as ``/api/v1/users/123`` to one route node and
returns the connected component around it as a new :class:`GraphStore`.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Pattern, Set, Tuple

from .config import FlowMapConfig
from .models import Edge, MatchKind, Node, NodeType, RouteMatch
from .storage import GraphStore, ensure_graph

logger = logging.getLogger(__name__)

# ``:param`` placeholders, ``*glob`` wildcards and ``( )`` optional groups
_TEMPLATE_TOKEN_RE = re.compile(r"(:\w+|\*\w*|\(|\))")


def route_pattern(template: str) -> Pattern[str]:
    """Compile a route template like ``/users/:id(.:format)`` into a regex.

    ``:name`` matches one path segment and ``*`` matches anything. A
    parenthesized group is optional, so ``/users/:id(.:format)`` accepts both
    ``/users/1`` and ``/users/1.json``. All other characters match literally.

    Args:
        template: Route path as stored on the route node

    Returns:
        Compiled pattern, meant to be used with ``fullmatch``
    """
    parts: List[str] = []
    depth = 0
    for token in _TEMPLATE_TOKEN_RE.split(template):
        if not token:
            continue
        if token == "(":
            parts.append("(?:")
            depth += 1
        elif token == ")" and depth:
            parts.append(")?")
            depth -= 1
        elif token.startswith(":") and len(token) > 1:
            parts.append("[^/]+")
        elif token.startswith("*"):
            parts.append(".*")
        else:
            parts.append(re.escape(token))
    # an unclosed group runs to the end of the template
    parts.append(")?" * depth)
    return re.compile("".join(parts))


@dataclass
class ExtractionResult:
    """Subgraph around the matched route, or an empty graph when nothing matched."""

    selector: str
    graph: GraphStore = field(default_factory=GraphStore)
    match: Optional[RouteMatch] = None

    @property
    def found(self) -> bool:
        return self.match is not None

    @property
    def route(self) -> Optional[Node]:
        return self.match.node if self.match else None


class SubgraphExtractor:
    """Find the route for an endpoint and collect everything connected to it."""

    def __init__(self, config: Optional[FlowMapConfig] = None):
        self.config = config or FlowMapConfig()

    def find_route(self, store: GraphStore, selector: str) -> Optional[RouteMatch]:
        """Resolve *selector* to a route node.

        Tries an exact path match, then template matching, then a substring
        match on the route's display name.
        """
        ensure_graph(store)
        routes = store.nodes_by_type(NodeType.ROUTE)
        path_key = self.config.path_attribute

        for route in routes:
            if str(route.attributes.get(path_key, "")) == selector:
                return RouteMatch(route, MatchKind.EXACT)

        for route in routes:
            template = route.attributes.get(path_key)
            if not template:
                continue
            if route_pattern(str(template)).fullmatch(selector):
                return RouteMatch(route, MatchKind.PATTERN)

        for route in routes:
            if selector in route.name:
                return RouteMatch(route, MatchKind.FALLBACK)

        return None

    def extract(self, store: GraphStore, selector: str) -> ExtractionResult:
        """Return the connected component reachable from the route for *selector*.

        Edge direction is ignored while walking. When no route matches, the
        result holds an empty graph and ``found`` is ``False``.
        """
        match = self.find_route(store, selector)
        if match is None:
            logger.warning("No route found for endpoint '%s'", selector)
            return ExtractionResult(selector=selector)

        subgraph = self._collect_component(store, match.node)
        logger.info(
            "Endpoint '%s' resolved to %s (%s match): %d nodes, %d edges",
            selector, match.node.node_id, match.kind.value,
            subgraph.node_count, subgraph.edge_count,
        )
        return ExtractionResult(selector=selector, graph=subgraph, match=match)

    def _collect_component(self, source: GraphStore, start: Node) -> GraphStore:
        target = GraphStore()
        visited: Set[str] = {start.node_id}
        target.add_node(start.copy())

        # Each frame walks the incident edges of one node; a neighbor is
        # entered as soon as its edge is seen, as a recursive walk would.
        stack: List[Tuple[str, Iterator[Edge]]] = [
            (start.node_id, iter(source.incident_edges(start.node_id)))
        ]
        while stack:
            node_id, edges = stack[-1]
            edge = next(edges, None)
            if edge is None:
                stack.pop()
                continue

            if not target.has_edge(*edge.key):
                target.add_edge(edge.copy())
            other_id = edge.other_end(node_id)
            if other_id in visited:
                continue
            other = source.find_node(other_id)
            if other is None:
                logger.debug("Edge %s -> %s is dangling; not descending", edge.src, edge.dst)
                continue

            visited.add(other_id)
            target.add_node(other.copy())
            stack.append((other_id, iter(source.incident_edges(other_id))))

        return target


def extract_endpoint(
    store: GraphStore,
    selector: str,
    config: Optional[FlowMapConfig] = None,
) -> ExtractionResult:
    return SubgraphExtractor(config).extract(store, selector)
