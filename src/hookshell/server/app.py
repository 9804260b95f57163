"""FastAPI HTTP server for the command gateway.

Exposes a liveness gauge at ``/metrics`` and hands every other request
to the Gateway pipeline, which decides whether and what to execute.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from hookshell import __version__
from hookshell.config.settings import Settings
from hookshell.domain.models import IncomingRequest, RouteTable
from hookshell.gateway.pipeline import Gateway, build_gateway
from hookshell.server.middleware import RequestLoggingMiddleware

logger = logging.getLogger(__name__)

METRICS_BODY = "# TYPE hookshell_up gauge\nhookshell_up 1\n"

# Every method reaches the pipeline so that unsupported ones get the
# gateway's own 405 rather than the router's.
ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]

BODY_METHODS = frozenset({"POST"})


def create_app(
    settings: Settings | None = None,
    routes: RouteTable | None = None,
    gateway: Gateway | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Resolved configuration. Defaults apply if None.
        routes: Resolved route table. Empty if None.
        gateway: Optional pre-built Gateway (for testing); otherwise one
                 is assembled from ``settings`` and ``routes``.
    """
    settings = settings or Settings()
    if gateway is None:
        gateway = build_gateway(settings, routes if routes is not None else RouteTable())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        g: Gateway = app.state.gateway
        logger.info(
            "Gateway started: %d routes, allowed ips %s, rate limit %d/min",
            len(g.routes),
            sorted(g.guard.allowed) if g.guard.enabled else "(filtering disabled)",
            g.limiter.limit,
        )
        yield
        logger.info("Gateway stopped")

    app = FastAPI(
        title="hookshell",
        description="HTTP-triggered shell command gateway",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.gateway = gateway
    app.add_middleware(RequestLoggingMiddleware, verbose=settings.response.verbose)

    @app.get("/metrics", response_class=PlainTextResponse)
    async def metrics() -> str:
        return METRICS_BODY

    @app.api_route("/{full_path:path}", methods=ALL_METHODS)
    async def run_route(request: Request) -> PlainTextResponse:
        g: Gateway = app.state.gateway
        incoming = await _to_incoming(request)
        result = await g.handle(incoming, is_disconnected=request.is_disconnected)
        if result.outcome is not None:
            request.state.outcome = result.outcome
        return PlainTextResponse(result.body, status_code=result.status_code)

    return app


async def _to_incoming(request: Request) -> IncomingRequest:
    if request.client is None:
        raise ValueError("request has no peer address")
    query: dict[str, list[str]] = {}
    for name, value in request.query_params.multi_items():
        query.setdefault(name, []).append(value)
    body = await request.body() if request.method in BODY_METHODS else None
    return IncomingRequest(
        method=request.method,
        path=request.url.path,
        remote_address=request.client.host,
        query=query,
        body=body,
    )
