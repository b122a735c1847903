"""Aggregated pass-through of the backend entity surface."""

from __future__ import annotations

from datetime import datetime
from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends, HTTPException, Query

from mfgctx.api.deps import get_source
from mfgctx.common.models import Entity, HistoricalValue, Namespace, ObjectType
from mfgctx.sources.aggregate import MultiSourceAdapter

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/i3x")


@router.get("/namespaces", response_model=list[Namespace])
async def list_namespaces(source: MultiSourceAdapter = Depends(get_source)) -> list[Namespace]:
    return await source.list_namespaces()


@router.get("/types", response_model=list[ObjectType])
async def list_types(
    namespace_uri: str | None = Query(None, alias="namespaceUri"),
    source: MultiSourceAdapter = Depends(get_source),
) -> list[ObjectType]:
    return await source.list_types(namespace_uri)


@router.get("/types/{type_id}", response_model=ObjectType)
async def get_type(type_id: str, source: MultiSourceAdapter = Depends(get_source)) -> ObjectType:
    object_type = await source.get_type(type_id)
    if object_type is None:
        raise HTTPException(status_code=404, detail=f"Object type '{type_id}' not found in any service")
    return object_type


@router.get("/objects", response_model=list[Entity])
async def list_objects(
    type_id: str | None = Query(None, alias="typeId"),
    include_metadata: bool = Query(False, alias="includeMetadata"),
    source: MultiSourceAdapter = Depends(get_source),
) -> list[Entity]:
    return await source.list_entities(type_id, include_metadata)


@router.get("/objects/{entity_id}", response_model=Entity)
async def get_object(
    entity_id: str,
    include_metadata: bool = Query(False, alias="includeMetadata"),
    source: MultiSourceAdapter = Depends(get_source),
) -> Entity:
    entity = await source.get_entity(entity_id, include_metadata)
    if entity is None:
        raise HTTPException(status_code=404, detail=f"Object '{entity_id}' not found in any service")
    return entity


@router.get("/objects/{entity_id}/children", response_model=list[Entity])
async def get_children(
    entity_id: str,
    include_metadata: bool = Query(False, alias="includeMetadata"),
    source: MultiSourceAdapter = Depends(get_source),
) -> list[Entity]:
    return await source.get_children(entity_id, include_metadata)


@router.get("/objects/{entity_id}/parent", response_model=Entity)
async def get_parent(
    entity_id: str,
    include_metadata: bool = Query(False, alias="includeMetadata"),
    source: MultiSourceAdapter = Depends(get_source),
) -> Entity:
    parent = await source.get_parent(entity_id, include_metadata)
    if parent is None:
        raise HTTPException(status_code=404, detail=f"Parent not found for '{entity_id}'")
    return parent


@router.get("/relationships/{entity_id}/{label}", response_model=list[Entity])
async def get_related(
    entity_id: str,
    label: str,
    source: MultiSourceAdapter = Depends(get_source),
) -> list[Entity]:
    return await source.get_related(entity_id, label)


@router.get("/value/{entity_id}")
async def get_value(entity_id: str, source: MultiSourceAdapter = Depends(get_source)) -> dict[str, Any]:
    values = await source.get_value(entity_id)
    if not values:
        raise HTTPException(status_code=404, detail=f"No values found for '{entity_id}'")
    return values


@router.put("/value/{entity_id}")
async def update_value(
    entity_id: str,
    values: dict[str, Any] = Body(...),
    source: MultiSourceAdapter = Depends(get_source),
) -> dict[str, Any]:
    if not await source.update_value(entity_id, values):
        raise HTTPException(status_code=400, detail=f"Failed to update value for '{entity_id}'")
    logger.info("value_updated", entity_id=entity_id, keys=sorted(values))
    return {"elementId": entity_id, "updated": True}


@router.get("/history/{entity_id}", response_model=list[HistoricalValue])
async def get_history(
    entity_id: str,
    start_time: datetime | None = Query(None, alias="startTime"),
    end_time: datetime | None = Query(None, alias="endTime"),
    max_points: int | None = Query(None, alias="maxPoints", ge=1),
    source: MultiSourceAdapter = Depends(get_source),
) -> list[HistoricalValue]:
    return await source.get_history(entity_id, start_time, end_time, max_points)
