"""Breadth-first search for the nearest holder of each context role."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable

import structlog

from mfgctx.graph.model import ContextGraph, GraphPath
from mfgctx.graph.roles import Role

logger = structlog.get_logger(__name__)


def find_nearest(graph: ContextGraph, start_id: str, target_roles: Iterable[Role]) -> list[GraphPath]:
    """Find the closest node of each target role reachable from ``start_id``.

    Returns one path per role found, in the order the roles were reached.
    Since BFS dequeues in non-decreasing cost, the first path recorded for a
    role is a minimum-hop path. Roles that cannot be reached are simply
    absent from the result. The start node itself counts as a holder.
    """
    remaining = set(target_roles)
    paths: list[GraphPath] = []
    if not remaining or (start_id not in graph.adjacency and start_id not in graph.nodes):
        return paths

    visited = {start_id}
    queue: deque[GraphPath] = deque([GraphPath(node_ids=[start_id])])

    while queue and remaining:
        path = queue.popleft()
        current = path.end_id

        role = graph.role_of(current)
        if role is not None and role in remaining:
            paths.append(path)
            remaining.discard(role)
            if not remaining:
                break

        for neighbor in graph.neighbors(current):
            if neighbor in visited:
                continue
            visited.add(neighbor)
            label = graph.label_between(current, neighbor)
            queue.append(
                GraphPath(
                    node_ids=[*path.node_ids, neighbor],
                    relationship_labels=[*path.relationship_labels, label] if label else list(path.relationship_labels),
                    cost=path.cost + 1,
                )
            )

    logger.debug(
        "graph_paths_found",
        start_id=start_id,
        found=[graph.role_of(p.end_id).value for p in paths],  # type: ignore[union-attr]
        unreachable=sorted(r.value for r in remaining),
    )
    return paths
