"""Builds and caches the cross-service context graph."""

from __future__ import annotations

import asyncio

import structlog

from mfgctx.common.cache import GraphCache
from mfgctx.common.models import Entity
from mfgctx.graph.model import ContextGraph, GraphNode
from mfgctx.graph.roles import classify
from mfgctx.sources.base import EntitySource, SourceListing

logger = structlog.get_logger(__name__)


def node_source_origin(entity: Entity, source_names: list[str]) -> str | None:
    """Service an entity came from: its tag, else a service named in its namespace."""
    if entity.source_origin:
        return entity.source_origin
    namespace = (entity.namespace or "").lower()
    for name in source_names:
        if name.lower() in namespace:
            return name
    return None


class GraphBuilder:
    """Discovers every entity reachable through the sources and links them.

    The resulting graph is cached for the cache's TTL; a rebuild always
    starts from scratch and replaces the cached graph in one swap. A rebuild
    during which no service answered is returned but never cached.
    """

    def __init__(self, source: EntitySource, cache: GraphCache, source_names: list[str] | None = None) -> None:
        self._source = source
        self._cache = cache
        self._source_names = source_names or []

    @property
    def cache(self) -> GraphCache:
        return self._cache

    def make_node(self, entity: Entity) -> GraphNode:
        return GraphNode(
            entity=entity,
            role=classify(entity),
            source_origin=node_source_origin(entity, self._source_names),
        )

    async def discover(self, force_refresh: bool = False) -> ContextGraph:
        """Return the cached graph, rebuilding it when expired or forced."""
        if not force_refresh:
            cached = self._cache.get()
            if cached is not None:
                return cached

        logger.info("graph_discovery_started", force_refresh=force_refresh)
        types, entities = await asyncio.gather(
            self._source.list_types(),
            self._source.list_entities(include_metadata=True),
        )
        logger.info("graph_types_discovered", count=len(types))
        logger.info("graph_entities_discovered", count=len(entities))

        graph = self.build(entities)
        graph.built_at = self._cache.now()

        if isinstance(entities, SourceListing) and entities.all_unavailable:
            # Keep the previous graph and retry on the next request
            logger.warning("graph_discovery_sources_unavailable", sources=entities.unavailable)
            return graph
        if graph.is_empty:
            logger.warning("graph_discovery_empty")

        await self._cache.replace(graph)
        logger.info(
            "graph_discovery_complete",
            nodes=len(graph.nodes),
            edges=len(graph.edges),
            roles=graph.role_counts(),
        )
        return graph

    def build(self, entities: list[Entity]) -> ContextGraph:
        """Assemble nodes, edges and adjacency from fetched entities."""
        graph = ContextGraph()
        for entity in entities:
            if entity.id in graph.nodes:
                logger.debug("graph_duplicate_entity", entity_id=entity.id, source=entity.source_origin)
            graph.add_node(self.make_node(entity))
        for node in list(graph.nodes.values()):
            graph.link_relationships(node.entity)
        return graph
