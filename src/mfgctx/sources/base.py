"""Abstract base class for entity sources."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from mfgctx.common.models import Entity, HistoricalValue, Namespace, ObjectType


class SourceListing(list):
    """List result of a multi-service query that records which services failed.

    Behaves exactly like a list; ``all_unavailable`` tells an empty answer
    from reachable services apart from one where no service answered.
    """

    def __init__(self, items=(), unavailable: list[str] | None = None, queried: int = 0) -> None:
        super().__init__(items)
        self.unavailable = list(unavailable or [])
        self.queried = queried

    @property
    def all_unavailable(self) -> bool:
        return self.queried > 0 and len(self.unavailable) == self.queried


class EntitySource(ABC):
    @abstractmethod
    async def list_namespaces(self) -> list[Namespace]:
        """List the domain namespaces the source exposes."""
        ...

    @abstractmethod
    async def list_types(self, namespace: str | None = None) -> list[ObjectType]:
        """List declared entity types, optionally within one namespace."""
        ...

    @abstractmethod
    async def get_type(self, type_id: str) -> ObjectType | None:
        ...

    @abstractmethod
    async def list_entities(self, type_id: str | None = None, include_metadata: bool = False) -> list[Entity]:
        """List entity instances, optionally of a single type."""
        ...

    @abstractmethod
    async def get_entity(self, entity_id: str, include_metadata: bool = False) -> Entity | None:
        """Fetch one entity by id, or None when no source has it."""
        ...

    @abstractmethod
    async def get_related(self, entity_id: str, label: str) -> list[Entity]:
        """Fetch the entities an entity points at under one relationship label."""
        ...

    @abstractmethod
    async def get_children(self, entity_id: str, include_metadata: bool = False) -> list[Entity]:
        ...

    @abstractmethod
    async def get_parent(self, entity_id: str, include_metadata: bool = False) -> Entity | None:
        ...

    @abstractmethod
    async def get_value(self, entity_id: str) -> dict[str, Any]:
        """Fetch the entity's current attribute values (empty when unknown)."""
        ...

    @abstractmethod
    async def update_value(self, entity_id: str, values: dict[str, Any]) -> bool:
        """Replace the entity's current values; True on success."""
        ...

    @abstractmethod
    async def get_history(
        self,
        entity_id: str,
        start_time: datetime | None = None,
        end_time: datetime | None = None,
        max_points: int | None = None,
    ) -> list[HistoricalValue]:
        ...
