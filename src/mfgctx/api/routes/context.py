"""Context route -- full operational context for one entity."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException

from mfgctx.api.deps import get_context_aggregator
from mfgctx.graph.context import ContextAggregator, ContextResult, InvalidEntityIdError

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/context/{entity_id}", response_model=ContextResult)
async def get_context(
    entity_id: str,
    aggregator: ContextAggregator = Depends(get_context_aggregator),
) -> ContextResult:
    """Resolve the nearest order, job, line, equipment, operator and batch.

    An id no service knows returns an all-empty context, not a 404.
    """
    try:
        return await aggregator.build_context(entity_id)
    except InvalidEntityIdError as exc:
        logger.info("context_invalid_entity_id", entity_id=entity_id, error=str(exc))
        raise HTTPException(status_code=400, detail=str(exc)) from exc
