"""Context graph -- role classification, discovery, path finding and aggregation."""

from mfgctx.graph.context import ContextAggregator, ContextResult, InvalidEntityIdError
from mfgctx.graph.discovery import GraphBuilder
from mfgctx.graph.model import ContextGraph, EdgeDirection, GraphEdge, GraphNode, GraphPath, edge_direction
from mfgctx.graph.pathfinder import find_nearest
from mfgctx.graph.roles import ALL_ROLES, TYPE_PATTERNS, Role, TypePattern, classify

__all__ = [
    "ALL_ROLES",
    "ContextAggregator",
    "ContextGraph",
    "ContextResult",
    "EdgeDirection",
    "GraphBuilder",
    "GraphEdge",
    "GraphNode",
    "GraphPath",
    "InvalidEntityIdError",
    "Role",
    "TYPE_PATTERNS",
    "TypePattern",
    "classify",
    "edge_direction",
    "find_nearest",
]
