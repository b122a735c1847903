"""ASGI middleware: correlation ids and per-request access logging.

Both classes speak raw ASGI so responses stream through untouched.
"""

import time

import structlog
from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from mfgctx.common.logging import set_correlation_id

logger = structlog.get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"
_CORRELATION_HEADER_RAW = CORRELATION_HEADER.lower().encode("latin-1")


class CorrelationIdMiddleware:
    """Adopt the caller's ``X-Correlation-ID`` (or mint one) and echo it back."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        incoming = next(
            (value.decode("latin-1") for name, value in scope.get("headers", []) if name == _CORRELATION_HEADER_RAW),
            None,
        )
        cid = set_correlation_id(incoming)

        async def send_with_cid(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message).append(CORRELATION_HEADER, cid)
            await send(message)

        await self.app(scope, receive, send_with_cid)


class RequestLoggingMiddleware:
    """Log method, path, status and latency once the response has started."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = time.perf_counter()
        status_code = 0

        async def capture_status(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, capture_status)
        finally:
            logger.info(
                "http_request",
                method=scope["method"],
                path=scope["path"],
                status_code=status_code or 500,
                latency_ms=round((time.perf_counter() - started) * 1000, 1),
            )
