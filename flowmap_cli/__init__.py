"""flowmap: structural analysis of architecture graphs."""

from __future__ import annotations

__version__ = "0.3.0"

from .complexity import ComplexityAnalyzer, detect_cycles
from .config import FlowMapConfig, load_config
from .diff_engine import GraphDiffEngine, diff_graphs
from .errors import ConfigurationError, FlowMapError, InvalidGraphError, SnapshotError
from .extractor import ExtractionResult, SubgraphExtractor, extract_endpoint
from .models import (
    Direction,
    Edge,
    EdgeType,
    GraphDiff,
    MatchKind,
    Node,
    NodeType,
    make_node_id,
)
from .storage import GraphStore, load_snapshot, save_snapshot

__all__ = [
    "ComplexityAnalyzer",
    "ConfigurationError",
    "Direction",
    "Edge",
    "EdgeType",
    "ExtractionResult",
    "FlowMapConfig",
    "FlowMapError",
    "GraphDiff",
    "GraphDiffEngine",
    "GraphStore",
    "InvalidGraphError",
    "MatchKind",
    "Node",
    "NodeType",
    "SnapshotError",
    "SubgraphExtractor",
    "detect_cycles",
    "diff_graphs",
    "extract_endpoint",
    "load_config",
    "load_snapshot",
    "make_node_id",
    "save_snapshot",
]
