"""API test fixtures -- async client with dependency overrides."""

from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from mfgctx.api.deps import get_context_aggregator, get_graph_builder, get_source
from mfgctx.api.main import create_app
from mfgctx.common.cache import GraphCache
from mfgctx.graph.context import ContextAggregator, ContextResult
from mfgctx.graph.discovery import GraphBuilder
from mfgctx.sources.aggregate import MultiSourceAdapter


@pytest.fixture
def mock_source():
    source = AsyncMock(spec=MultiSourceAdapter)
    source.health = AsyncMock(return_value={"erp": True, "mes": True, "scada": True})
    return source


@pytest.fixture
def mock_aggregator():
    aggregator = AsyncMock(spec=ContextAggregator)
    aggregator.build_context = AsyncMock(return_value=ContextResult())
    return aggregator


@pytest.fixture
def graph_builder(plant_source, clock):
    return GraphBuilder(plant_source, GraphCache(ttl_seconds=1800, clock=clock), source_names=["erp", "mes", "scada"])


@pytest.fixture
def app(mock_source, mock_aggregator, graph_builder):
    """Create app with all dependencies overridden."""
    application = create_app()
    application.dependency_overrides[get_source] = lambda: mock_source
    application.dependency_overrides[get_context_aggregator] = lambda: mock_aggregator
    application.dependency_overrides[get_graph_builder] = lambda: graph_builder
    return application


@pytest.fixture
async def client(app):
    """Async test client that bypasses lifespan."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
