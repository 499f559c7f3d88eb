from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from mcp_joplin.api import JoplinApi
from mcp_joplin.settings import ConnectionConfig

Responder = Callable[[httpx.Request], httpx.Response]


class FakeJoplin:
    """A scripted stand-in for the Joplin Data API, used as an httpx MockTransport handler."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._routes: list[tuple[str, str, Responder]] = []

    def on(self, method: str, path: str, response: Any) -> None:
        if callable(response):
            responder = response
        else:
            def responder(_: httpx.Request, body: Any = response) -> httpx.Response:
                return httpx.Response(200, json=body)

        # Later registrations win so tests can override defaults.
        self._routes.insert(0, (method, path, responder))

    def on_page(self, path: str, pages: list[list[Any]]) -> None:
        """Serve ``pages`` by the ``page`` query parameter."""

        def responder(request: httpx.Request) -> httpx.Response:
            page = int(request.url.params["page"])
            return httpx.Response(
                200,
                json={"items": pages[page - 1], "has_more": page < len(pages)},
            )

        self.on("GET", path, responder)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for method, path, responder in self._routes:
            if request.method == method and request.url.path == path:
                return responder(request)
        return httpx.Response(404, text=f"no route for {request.method} {request.url.path}")

    @property
    def calls(self) -> list[tuple[str, str]]:
        return [(r.method, r.url.path) for r in self.requests]

    def calls_to(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def fake() -> FakeJoplin:
    return FakeJoplin()


@pytest.fixture
def connection() -> ConnectionConfig:
    return ConnectionConfig(base_url="http://joplin.test:41184", token="secret-token")


@pytest.fixture
def api(fake: FakeJoplin, connection: ConnectionConfig) -> JoplinApi:
    return JoplinApi(connection, transport=httpx.MockTransport(fake))
