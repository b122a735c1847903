"""In-process TTL cache holding the current context graph."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from mfgctx.graph.model import ContextGraph

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GraphCache:
    """Single-slot cache for the context graph.

    The graph is never patched in place by a rebuild: ``replace`` swaps the
    whole reference under a writer lock, so readers keep seeing the previous
    (stale but consistent) graph until the swap happens.
    """

    def __init__(self, ttl_seconds: int, clock: Callable[[], datetime] = _utcnow) -> None:
        self.ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._graph: ContextGraph | None = None
        self._lock = asyncio.Lock()

    def get(self) -> ContextGraph | None:
        """Return the cached graph, or None when absent or expired."""
        graph = self._graph
        if graph is None:
            return None
        if self._clock() - graph.built_at >= self.ttl:
            logger.debug("graph_cache_expired", built_at=graph.built_at.isoformat())
            return None
        logger.debug("graph_cache_hit", nodes=len(graph.nodes))
        return graph

    def peek(self) -> ContextGraph | None:
        """Return the cached graph regardless of age."""
        return self._graph

    async def replace(self, graph: ContextGraph) -> None:
        async with self._lock:
            self._graph = graph
        logger.debug("graph_cache_set", nodes=len(graph.nodes), ttl=int(self.ttl.total_seconds()))

    async def invalidate(self) -> None:
        async with self._lock:
            self._graph = None

    def now(self) -> datetime:
        return self._clock()
