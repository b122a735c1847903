"""Entity source spanning several independent backend services.

The id space is partitioned across services with no shared directory, so
single-id lookups probe each service in configuration order and take the
first answer. Any probe failure is logged and treated as "not here".
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, TypeVar

import httpx
import structlog

from mfgctx.common.models import Entity, HistoricalValue, Namespace, ObjectType
from mfgctx.sources.base import EntitySource, SourceListing
from mfgctx.sources.client import ServiceClient, SourceError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class MultiSourceAdapter(EntitySource):
    """Uniform read/write access to every configured backend service."""

    def __init__(self, clients: list[ServiceClient]) -> None:
        self._clients: dict[str, ServiceClient] = {client.name: client for client in clients}
        self._origins: dict[str, str] = {}

    @classmethod
    def from_urls(cls, source_urls: dict[str, str], http: httpx.AsyncClient) -> MultiSourceAdapter:
        return cls([ServiceClient(name, url, http) for name, url in source_urls.items()])

    @property
    def source_names(self) -> list[str]:
        return list(self._clients)

    def origin_of(self, entity_id: str) -> str | None:
        """Service that last answered for ``entity_id``, if any."""
        return self._origins.get(entity_id)

    def _remember(self, entity: Entity | None) -> Entity | None:
        if entity is not None and entity.source_origin:
            self._origins[entity.id] = entity.source_origin
        return entity

    # ------------------------------------------------------------------
    # Dispatch strategies
    # ------------------------------------------------------------------
    async def _fan_out(
        self, operation: str, call: Callable[[ServiceClient], Awaitable[list[T]]]
    ) -> SourceListing:
        """Query every service concurrently; concatenate in configuration order."""
        clients = list(self._clients.values())
        results = await asyncio.gather(*(call(c) for c in clients), return_exceptions=True)

        merged = SourceListing(queried=len(clients))
        for client, result in zip(clients, results):
            if isinstance(result, SourceError):
                logger.warning("source_unavailable", source=client.name, operation=operation, error=str(result))
                merged.unavailable.append(client.name)
                continue
            if isinstance(result, BaseException):
                raise result
            merged.extend(result)
        if merged.all_unavailable:
            logger.warning("all_sources_unavailable", operation=operation, sources=merged.unavailable)
        return merged

    async def _probe(
        self, operation: str, key: str, call: Callable[[ServiceClient], Awaitable[T | None]]
    ) -> T | None:
        """Ask each service in order; first non-empty answer wins."""
        for client in self._clients.values():
            try:
                result = await call(client)
            except SourceError as exc:
                logger.warning("source_probe_failed", source=client.name, operation=operation, key=key, error=str(exc))
                continue
            if result is not None:
                return result
        logger.debug("source_probe_exhausted", operation=operation, key=key)
        return None

    async def _routed(
        self, operation: str, entity_id: str, call: Callable[[ServiceClient], Awaitable[T]]
    ) -> T | None:
        """Send a call straight to the service that owns ``entity_id``.

        Falls back to probing when the owner is unknown or the remembered
        owner fails.
        """
        origin = self._origins.get(entity_id)
        tried: set[str] = set()
        for _ in range(2):
            if origin is None:
                entity = await self.get_entity(entity_id)
                if entity is None:
                    return None
                origin = entity.source_origin
            if origin is None or origin in tried or origin not in self._clients:
                return None
            tried.add(origin)
            try:
                return await call(self._clients[origin])
            except SourceError as exc:
                logger.warning(
                    "source_routed_call_failed", source=origin, operation=operation, entity_id=entity_id, error=str(exc)
                )
                self._origins.pop(entity_id, None)
                origin = None
        return None

    # ------------------------------------------------------------------
    # EntitySource
    # ------------------------------------------------------------------
    async def list_namespaces(self) -> list[Namespace]:
        return await self._fan_out("list_namespaces", lambda c: c.list_namespaces())

    async def list_types(self, namespace: str | None = None) -> list[ObjectType]:
        return await self._fan_out("list_types", lambda c: c.list_types(namespace))

    async def get_type(self, type_id: str) -> ObjectType | None:
        return await self._probe("get_type", type_id, lambda c: c.get_type(type_id))

    async def list_entities(self, type_id: str | None = None, include_metadata: bool = False) -> list[Entity]:
        entities = await self._fan_out("list_entities", lambda c: c.list_entities(type_id, include_metadata))
        for entity in entities:
            self._remember(entity)
        return entities

    async def get_entity(self, entity_id: str, include_metadata: bool = False) -> Entity | None:
        entity = await self._probe("get_entity", entity_id, lambda c: c.get_entity(entity_id, include_metadata))
        return self._remember(entity)

    async def get_related(self, entity_id: str, label: str) -> list[Entity]:
        related = await self._fan_out("get_related", lambda c: c.get_related(entity_id, label))
        for entity in related:
            self._remember(entity)
        return related

    async def get_children(self, entity_id: str, include_metadata: bool = False) -> list[Entity]:
        children = await self._routed("get_children", entity_id, lambda c: c.get_children(entity_id, include_metadata))
        for child in children or []:
            self._remember(child)
        return children or []

    async def get_parent(self, entity_id: str, include_metadata: bool = False) -> Entity | None:
        parent = await self._probe("get_parent", entity_id, lambda c: c.get_parent(entity_id, include_metadata))
        return self._remember(parent)

    async def get_value(self, entity_id: str) -> dict[str, Any]:
        values = await self._routed("get_value", entity_id, lambda c: c.get_value(entity_id))
        return values or {}

    async def update_value(self, entity_id: str, values: dict[str, Any]) -> bool:
        updated = await self._routed("update_value", entity_id, lambda c: c.update_value(entity_id, values))
        if not updated:
            logger.warning("value_update_failed", entity_id=entity_id)
        return bool(updated)

    async def get_history(
        self,
        entity_id: str,
        start_time: datetime | None = None,
        end_time: datetime | None = None,
        max_points: int | None = None,
    ) -> list[HistoricalValue]:
        history = await self._routed(
            "get_history", entity_id, lambda c: c.get_history(entity_id, start_time, end_time, max_points)
        )
        return history or []

    async def health(self) -> dict[str, bool]:
        """Reachability of each configured service."""
        clients = list(self._clients.values())
        results = await asyncio.gather(*(c.health_check() for c in clients))
        return {client.name: ok for client, ok in zip(clients, results)}
