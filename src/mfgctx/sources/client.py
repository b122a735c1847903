"""HTTP client for a single backend entity service."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from mfgctx.common.models import Entity, HistoricalValue, Namespace, ObjectType

logger = structlog.get_logger(__name__)

API_PREFIX = "/api/i3x"
MAX_PAGES = 1000


class SourceError(Exception):
    """A backend service could not answer: timeout, transport, status or body."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"[{source}] {message}")
        self.source = source


def _flag(value: bool) -> str:
    return "true" if value else "false"


def _timestamp(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


class ServiceClient:
    """Talks JSON over HTTP to one backend service.

    A 404 means "this service does not have it" and yields ``None`` (or an
    empty list); every other failure raises ``SourceError`` so the caller can
    decide whether to try the next service.
    """

    def __init__(self, name: str, base_url: str, http: httpx.AsyncClient) -> None:
        self.name = name
        self.base_url = base_url.rstrip("/")
        self._http = http

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> httpx.Response | None:
        url = f"{self.base_url}{API_PREFIX}{path}"
        try:
            response = await self._http.request(method, url, params=params, json=json)
        except httpx.TimeoutException as exc:
            raise SourceError(self.name, f"timeout on {method} {path}") from exc
        except httpx.HTTPError as exc:
            raise SourceError(self.name, f"{type(exc).__name__} on {method} {path}: {exc}") from exc

        if response.status_code == 404:
            return None
        if not response.is_success:
            raise SourceError(self.name, f"HTTP {response.status_code} on {method} {path}")
        return response

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        response = await self._request("GET", path, params=params)
        if response is None or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise SourceError(self.name, f"malformed JSON from {path}") from exc

    def _parse(self, model: type[BaseModel], payload: Any, path: str) -> Any:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise SourceError(self.name, f"malformed {model.__name__} from {path}: {exc.error_count()} errors") from exc

    def _parse_list(self, model: type[BaseModel], payload: Any, path: str) -> list[Any]:
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise SourceError(self.name, f"expected a list from {path}")
        return [self._parse(model, item, path) for item in payload]

    def _tag(self, entity: Entity) -> Entity:
        return entity.with_origin(self.name)

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------
    async def list_namespaces(self) -> list[Namespace]:
        path = "/namespaces"
        return self._parse_list(Namespace, await self._get_json(path), path)

    async def list_types(self, namespace: str | None = None) -> list[ObjectType]:
        path = "/types"
        params = {"namespaceUri": namespace} if namespace else None
        return self._parse_list(ObjectType, await self._get_json(path, params), path)

    async def get_type(self, type_id: str) -> ObjectType | None:
        path = f"/types/{quote(type_id, safe='')}"
        payload = await self._get_json(path)
        return None if payload is None else self._parse(ObjectType, payload, path)

    # ------------------------------------------------------------------
    # Instances
    # ------------------------------------------------------------------
    async def list_entities(self, type_id: str | None = None, include_metadata: bool = False) -> list[Entity]:
        """List instances, following paged envelopes when the service pages."""
        path = "/objects"
        params: dict[str, Any] = {"includeMetadata": _flag(include_metadata)}
        if type_id:
            params["typeId"] = type_id

        payload = await self._get_json(path, params)
        if payload is None or isinstance(payload, list):
            return [self._tag(e) for e in self._parse_list(Entity, payload, path)]
        if not isinstance(payload, dict) or "items" not in payload:
            raise SourceError(self.name, f"unexpected payload shape from {path}")

        entities: list[Entity] = []
        page = payload.get("pageNumber", 1)
        for _ in range(MAX_PAGES):
            items = self._parse_list(Entity, payload.get("items"), path)
            entities.extend(self._tag(e) for e in items)
            if not payload.get("hasMore") or not items:
                break
            page += 1
            payload = await self._get_json(path, {**params, "pageNumber": page})
            if not isinstance(payload, dict):
                break
        return entities

    async def get_entity(self, entity_id: str, include_metadata: bool = False) -> Entity | None:
        path = f"/objects/{quote(entity_id, safe='')}"
        payload = await self._get_json(path, {"includeMetadata": _flag(include_metadata)})
        return None if payload is None else self._tag(self._parse(Entity, payload, path))

    async def get_children(self, entity_id: str, include_metadata: bool = False) -> list[Entity]:
        path = f"/objects/{quote(entity_id, safe='')}/children"
        payload = await self._get_json(path, {"includeMetadata": _flag(include_metadata)})
        return [self._tag(e) for e in self._parse_list(Entity, payload, path)]

    async def get_parent(self, entity_id: str, include_metadata: bool = False) -> Entity | None:
        path = f"/objects/{quote(entity_id, safe='')}/parent"
        payload = await self._get_json(path, {"includeMetadata": _flag(include_metadata)})
        return None if payload is None else self._tag(self._parse(Entity, payload, path))

    async def get_related(self, entity_id: str, label: str) -> list[Entity]:
        path = f"/relationships/{quote(entity_id, safe='')}/{quote(label, safe='')}"
        payload = await self._get_json(path)
        return [self._tag(e) for e in self._parse_list(Entity, payload, path)]

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------
    async def get_value(self, entity_id: str) -> dict[str, Any] | None:
        path = f"/value/{quote(entity_id, safe='')}"
        payload = await self._get_json(path)
        if payload is None:
            return None
        if not isinstance(payload, dict):
            raise SourceError(self.name, f"expected an object from {path}")
        return payload

    async def update_value(self, entity_id: str, values: dict[str, Any]) -> bool:
        path = f"/value/{quote(entity_id, safe='')}"
        response = await self._request("PUT", path, json=values)
        return response is not None

    async def get_history(
        self,
        entity_id: str,
        start_time: datetime | None = None,
        end_time: datetime | None = None,
        max_points: int | None = None,
    ) -> list[HistoricalValue]:
        path = f"/history/{quote(entity_id, safe='')}"
        params: dict[str, Any] = {}
        if start_time:
            params["startTime"] = _timestamp(start_time)
        if end_time:
            params["endTime"] = _timestamp(end_time)
        if max_points is not None:
            params["maxPoints"] = max_points
        payload = await self._get_json(path, params or None)
        return self._parse_list(HistoricalValue, payload, path)

    async def health_check(self) -> bool:
        """Return True if the service answers its namespace listing."""
        try:
            await self.list_namespaces()
            return True
        except SourceError:
            logger.warning("source_health_check_failed", source=self.name, exc_info=True)
            return False
