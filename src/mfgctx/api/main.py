"""FastAPI application factory."""

from contextlib import asynccontextmanager

import httpx
import structlog
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mfgctx.api.deps import get_source
from mfgctx.api.middleware import CorrelationIdMiddleware, RequestLoggingMiddleware
from mfgctx.api.routes import context, entities, graph
from mfgctx.common.cache import GraphCache
from mfgctx.common.config import settings
from mfgctx.common.logging import configure_logging
from mfgctx.graph.context import ContextAggregator
from mfgctx.graph.discovery import GraphBuilder
from mfgctx.sources.aggregate import MultiSourceAdapter

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    configure_logging(settings.log_level)

    # --- Shared HTTP client for every backend service ---
    http = httpx.AsyncClient(timeout=settings.source_timeout_seconds)
    app.state.http_client = http

    # --- Entity sources ---
    source = MultiSourceAdapter.from_urls(settings.source_urls, http)
    app.state.source = source
    logger.info("sources_configured", sources=settings.source_urls, timeout=settings.source_timeout_seconds)

    # --- Context graph ---
    cache = GraphCache(ttl_seconds=settings.graph_cache_ttl_seconds)
    builder = GraphBuilder(source, cache, source_names=source.source_names)
    app.state.graph_builder = builder
    app.state.context_aggregator = ContextAggregator(source, builder)

    yield

    # Shutdown
    await http.aclose()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Manufacturing Context API",
        description="Cross-service operational context for ERP, MES and SCADA entities",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Middleware: the last one added runs outermost
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["Content-Type", "X-Correlation-ID"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    # Routes
    app.include_router(context.router, prefix="/api", tags=["context"])
    app.include_router(graph.router, prefix="/api", tags=["graph"])
    app.include_router(entities.router, prefix="/api", tags=["entities"])

    @app.get("/api/health")
    async def health(source: MultiSourceAdapter = Depends(get_source)):
        services = {name: "up" if ok else "down" for name, ok in (await source.health()).items()}
        all_up = all(v == "up" for v in services.values())
        return JSONResponse(
            status_code=200 if all_up else 503,
            content={"status": "healthy" if all_up else "unhealthy", "services": services},
        )

    return app


app = create_app()
