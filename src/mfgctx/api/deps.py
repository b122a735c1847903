"""FastAPI dependency injection."""

from __future__ import annotations

from fastapi import HTTPException, Request

from mfgctx.graph.context import ContextAggregator
from mfgctx.graph.discovery import GraphBuilder
from mfgctx.sources.aggregate import MultiSourceAdapter


def _state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(status_code=503, detail=f"{name} is not initialised")
    return value


def get_source(request: Request) -> MultiSourceAdapter:
    source: MultiSourceAdapter = _state(request, "source")
    return source


def get_graph_builder(request: Request) -> GraphBuilder:
    builder: GraphBuilder = _state(request, "graph_builder")
    return builder


def get_context_aggregator(request: Request) -> ContextAggregator:
    aggregator: ContextAggregator = _state(request, "context_aggregator")
    return aggregator
