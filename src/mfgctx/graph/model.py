"""In-memory context graph: nodes, typed edges, adjacency and search paths."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from mfgctx.common.models import Entity
from mfgctx.graph.roles import Role

_BIDIRECTIONAL_MARKERS = ("AssociatedWith", "RelatedTo")
_REVERSE_MARKERS = ("PartOf", "BelongsTo", "ChildOf")


class EdgeDirection(str, Enum):
    FORWARD = "forward"
    REVERSE = "reverse"
    BIDIRECTIONAL = "bidirectional"


def edge_direction(label: str) -> EdgeDirection:
    """Derive an edge's direction from the naming convention of its label."""
    if any(marker in label for marker in _BIDIRECTIONAL_MARKERS):
        return EdgeDirection.BIDIRECTIONAL
    if any(marker in label for marker in _REVERSE_MARKERS):
        return EdgeDirection.REVERSE
    return EdgeDirection.FORWARD


@dataclass
class GraphNode:
    entity: Entity
    role: Role | None
    source_origin: str | None = None

    @property
    def id(self) -> str:
        return self.entity.id


@dataclass(frozen=True)
class GraphEdge:
    from_id: str
    to_id: str
    label: str
    direction: EdgeDirection


@dataclass
class GraphPath:
    """A BFS result: the hop sequence from the start node to a role holder."""

    node_ids: list[str]
    relationship_labels: list[str] = field(default_factory=list)
    cost: int = 0

    @property
    def end_id(self) -> str:
        return self.node_ids[-1]


@dataclass
class ContextGraph:
    """Cross-service entity graph.

    ``adjacency`` may reference ids that have no node (relationships to
    entities no source returned). Such ids are navigable but never classified.
    """

    nodes: dict[str, GraphNode] = field(default_factory=dict)
    edges: list[GraphEdge] = field(default_factory=list)
    adjacency: dict[str, list[str]] = field(default_factory=dict)
    built_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    _labels: dict[tuple[str, str], str] = field(default_factory=dict, repr=False)

    def add_node(self, node: GraphNode) -> None:
        self.nodes[node.id] = node
        self.adjacency.setdefault(node.id, [])

    def add_edge(self, edge: GraphEdge) -> None:
        self.edges.append(edge)
        self._labels.setdefault((edge.from_id, edge.to_id), edge.label)
        self._link(edge.from_id, edge.to_id)
        if edge.direction is EdgeDirection.BIDIRECTIONAL:
            self._link(edge.to_id, edge.from_id)

    def overlay(self) -> ContextGraph:
        """Request-local copy; nodes and edges added to it never reach this graph."""
        return ContextGraph(
            nodes=dict(self.nodes),
            edges=list(self.edges),
            adjacency={node_id: list(neighbors) for node_id, neighbors in self.adjacency.items()},
            built_at=self.built_at,
            _labels=dict(self._labels),
        )

    def link_relationships(self, entity: Entity) -> None:
        """Add one edge per relationship-list entry declared on ``entity``."""
        for label, target_ids in entity.relationships.items():
            direction = edge_direction(label)
            for target_id in target_ids:
                self.add_edge(GraphEdge(entity.id, target_id, label, direction))

    def _link(self, from_id: str, to_id: str) -> None:
        neighbors = self.adjacency.setdefault(from_id, [])
        if to_id not in neighbors:
            neighbors.append(to_id)

    def label_between(self, from_id: str, to_id: str) -> str | None:
        """Label of any edge joining the pair, preferring the stated direction."""
        return self._labels.get((from_id, to_id)) or self._labels.get((to_id, from_id))

    def neighbors(self, node_id: str) -> list[str]:
        return self.adjacency.get(node_id, [])

    def role_of(self, node_id: str) -> Role | None:
        node = self.nodes.get(node_id)
        return node.role if node else None

    def role_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for node in self.nodes.values():
            key = node.role.value if node.role else "unclassified"
            counts[key] = counts.get(key, 0) + 1
        return counts

    @property
    def is_empty(self) -> bool:
        return not self.nodes
