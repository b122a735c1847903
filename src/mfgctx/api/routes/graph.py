"""Graph routes -- cache status, forced rebuild, and nearest-role paths."""

from __future__ import annotations

from datetime import datetime

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from mfgctx.api.deps import get_graph_builder
from mfgctx.graph.context import InvalidEntityIdError, validate_entity_id
from mfgctx.graph.discovery import GraphBuilder
from mfgctx.graph.model import ContextGraph
from mfgctx.graph.pathfinder import find_nearest
from mfgctx.graph.roles import ALL_ROLES, Role

logger = structlog.get_logger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class GraphStatus(BaseModel):
    cached: bool
    expired: bool
    built_at: datetime | None = None
    age_seconds: float | None = None
    ttl_seconds: int
    node_count: int = 0
    edge_count: int = 0
    role_counts: dict[str, int] = {}


class PathStep(BaseModel):
    role: Role
    node_ids: list[str]
    relationship_labels: list[str]
    cost: int


class PathsResponse(BaseModel):
    start_id: str
    paths: list[PathStep]
    unreachable: list[Role]


def _summarise(builder: GraphBuilder, graph: ContextGraph | None) -> GraphStatus:
    cache = builder.cache
    ttl = int(cache.ttl.total_seconds())
    if graph is None:
        return GraphStatus(cached=False, expired=False, ttl_seconds=ttl)
    age = (cache.now() - graph.built_at).total_seconds()
    return GraphStatus(
        cached=True,
        expired=cache.get() is None,
        built_at=graph.built_at,
        age_seconds=round(age, 1),
        ttl_seconds=ttl,
        node_count=len(graph.nodes),
        edge_count=len(graph.edges),
        role_counts=graph.role_counts(),
    )


@router.get("/graph/status", response_model=GraphStatus)
async def graph_status(builder: GraphBuilder = Depends(get_graph_builder)) -> GraphStatus:
    """Describe the cached graph without triggering discovery."""
    return _summarise(builder, builder.cache.peek())


@router.post("/graph/refresh", response_model=GraphStatus)
async def refresh_graph(builder: GraphBuilder = Depends(get_graph_builder)) -> GraphStatus:
    """Rebuild the graph from every source, replacing the cached one."""
    graph = await builder.discover(force_refresh=True)
    logger.info("graph_refresh_requested", nodes=len(graph.nodes))
    status = _summarise(builder, graph)
    if builder.cache.peek() is not graph:
        status.cached = False
    return status


@router.get("/graph/paths/{entity_id}", response_model=PathsResponse)
async def nearest_paths(
    entity_id: str,
    roles: list[Role] | None = Query(None, description="Roles to search for; defaults to all six"),
    builder: GraphBuilder = Depends(get_graph_builder),
) -> PathsResponse:
    """Shortest hop path from an entity to the nearest holder of each role."""
    try:
        validate_entity_id(entity_id)
    except InvalidEntityIdError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    graph = await builder.discover()
    if entity_id not in graph.nodes:
        raise HTTPException(status_code=404, detail=f"Entity '{entity_id}' is not in the context graph")

    targets = set(roles) if roles else set(ALL_ROLES)
    paths = find_nearest(graph, entity_id, targets)
    found = {graph.role_of(p.end_id) for p in paths}
    return PathsResponse(
        start_id=entity_id,
        paths=[
            PathStep(
                role=graph.role_of(p.end_id),  # type: ignore[arg-type]
                node_ids=p.node_ids,
                relationship_labels=p.relationship_labels,
                cost=p.cost,
            )
            for p in paths
        ],
        unreachable=sorted(targets - found, key=lambda r: r.value),
    )
