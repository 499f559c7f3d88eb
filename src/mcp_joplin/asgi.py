"""Streamable HTTP hosting: the MCP app behind an API-key guard, plus /health."""

from __future__ import annotations

import contextlib
import logging
import secrets
from collections.abc import AsyncIterator

import httpx
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route
from starlette.types import ASGIApp, Receive, Scope, Send

from .errors import JoplinError
from .joplin_client import JoplinClient
from .mcp_server import create_mcp_server
from .settings import Settings, resolve_connection

logger = logging.getLogger(__name__)

OPEN_PATHS = ("/health", "/.well-known/")


def _presented_key(scope: Scope) -> str | None:
    headers = {k.decode("latin-1").lower(): v.decode("latin-1") for k, v in scope["headers"]}
    if "x-api-key" in headers:
        return headers["x-api-key"]
    scheme, _, credentials = headers.get("authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


class ApiKeyGuard:
    """Reject HTTP requests lacking ``MCP_API_KEY`` as ``X-API-Key`` or a bearer token.

    Plain ASGI rather than ``BaseHTTPMiddleware`` so streamed MCP responses pass
    through untouched.
    """

    def __init__(self, app: ASGIApp, *, api_key: str) -> None:
        self.app = app
        self._api_key = api_key

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["path"].startswith(OPEN_PATHS):
            await self.app(scope, receive, send)
            return
        presented = _presented_key(scope)
        if presented is None or not secrets.compare_digest(presented, self._api_key):
            response = JSONResponse({"error": "unauthorized"}, status_code=401)
            await response(scope, receive, send)
            return
        await self.app(scope, receive, send)


async def health(request: Request) -> Response:
    """Always 200 while the server runs; ``joplin`` says whether the Data API answers."""
    joplin: JoplinClient = request.app.state.joplin
    try:
        await joplin.ping()
    except JoplinError as exc:
        logger.debug("Health ping failed: %s", exc)
        return JSONResponse({"ok": True, "joplin": "unreachable"})
    return JSONResponse({"ok": True, "joplin": "reachable"})


def create_app(
    settings: Settings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Starlette:
    settings = settings or Settings()
    if not settings.mcp_api_key:
        raise ValueError("MCP_API_KEY must be set to serve over Streamable HTTP")
    connection = resolve_connection(settings)
    mcp = create_mcp_server(settings, transport=transport)

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        app.state.joplin = JoplinClient(
            base_url=connection.base_url,
            token=connection.token,
            timeout_seconds=connection.timeout_seconds,
            transport=transport,
        )
        try:
            async with mcp.session_manager.run():
                yield
        finally:
            await app.state.joplin.aclose()

    app = Starlette(routes=[Route("/health", endpoint=health, methods=["GET"])], lifespan=lifespan)
    app.mount("/", mcp.streamable_http_app())
    app.add_middleware(ApiKeyGuard, api_key=settings.mcp_api_key)
    logger.info("Serving MCP over Streamable HTTP at /mcp")
    return app
