"""Async transport for the Joplin Data API (Web Clipper)."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from pathlib import Path
from typing import Any
from urllib.parse import urlencode

import anyio
import httpx

from .constants import DEFAULT_PAGE_SIZE
from .errors import JoplinApiError, JoplinConnectionError, JoplinProtocolError

logger = logging.getLogger(__name__)


def build_endpoint(path: str, params: Mapping[str, Any] | None = None) -> str:
    """Return ``path`` with the non-empty ``params`` appended as a query string."""
    query = {k: v for k, v in (params or {}).items() if v is not None and v != ""}
    if not query:
        return path
    return f"{path}?{urlencode(query, safe=',')}"


@contextmanager
def _translate_transport_errors() -> Iterator[None]:
    try:
        yield
    except httpx.TransportError as exc:
        raise JoplinConnectionError(reason=str(exc) or type(exc).__name__) from exc


class JoplinClient:
    """Thin wrapper around Joplin's REST API.

    Every request carries the API token as the ``token`` query parameter. Each
    call is a single attempt: there are no retries at this layer.
    """

    def __init__(
        self,
        *,
        base_url: str,
        token: str,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._token = token
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout_seconds),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    def _auth_params(self) -> dict[str, str]:
        return {"token": self._token}

    def _url(self, endpoint: str) -> httpx.URL:
        # The endpoint already carries its own query; the token is merged into it.
        path = endpoint if endpoint.startswith("/") else f"/{endpoint}"
        return httpx.URL(path).copy_merge_params(self._auth_params())

    @staticmethod
    def _raise_for_status(resp: httpx.Response) -> None:
        if resp.status_code < 400:
            return
        raise JoplinApiError(
            status_code=resp.status_code,
            method=resp.request.method,
            # Never echo the token back in error messages.
            url=str(resp.request.url.copy_remove_param("token")),
            response_text=(resp.text or "").strip(),
        )

    @staticmethod
    def _decode(resp: httpx.Response, endpoint: str) -> Any:
        text = resp.text
        if not text.strip():
            # DELETE and friends answer with an empty body.
            return None
        try:
            return json.loads(text)
        except ValueError as exc:
            raise JoplinProtocolError(
                endpoint=endpoint, detail="Joplin returned a body that is not JSON"
            ) from exc

    async def _send(self, method: str, endpoint: str, **kwargs: Any) -> httpx.Response:
        with _translate_transport_errors():
            resp = await self._client.request(method.upper(), self._url(endpoint), **kwargs)
        self._raise_for_status(resp)
        return resp

    async def request(
        self,
        method: str,
        endpoint: str,
        body: Mapping[str, Any] | None = None,
    ) -> Any:
        """Perform one JSON request; ``None`` means success without a body."""
        json_body = dict(body) if body is not None else None
        resp = await self._send(method, endpoint, json=json_body)
        return self._decode(resp, endpoint)

    async def paginate(self, endpoint: str, *, limit: int | None = None) -> list[Any]:
        """Walk every page of a collection endpoint and return all items in order."""
        page_size = limit or DEFAULT_PAGE_SIZE
        separator = "&" if "?" in endpoint else "?"
        items: list[Any] = []
        page = 1
        while True:
            paged_endpoint = f"{endpoint}{separator}limit={page_size}&page={page}"
            data = await self.request("GET", paged_endpoint)
            if data is None:
                raise JoplinProtocolError(
                    endpoint=paged_endpoint,
                    detail="Unexpected empty response from paginated endpoint",
                )
            if not isinstance(data, dict):
                raise JoplinProtocolError(
                    endpoint=paged_endpoint,
                    detail=f"Expected a page envelope, got {type(data).__name__}",
                )

            page_items = data.get("items")
            if not isinstance(page_items, list):
                page_items = []
            items.extend(page_items)

            has_more = data.get("has_more") is True
            logger.debug(
                "Fetched page %d of %s (%d items, has_more=%s)",
                page,
                endpoint,
                len(page_items),
                has_more,
            )
            if not has_more:
                return items
            if not page_items:
                raise JoplinProtocolError(
                    endpoint=paged_endpoint,
                    detail="Empty page reported has_more=true",
                )
            page += 1

    async def ping(self) -> str:
        """Return Joplin's plain-text ping answer."""
        resp = await self._send("GET", "/ping")
        return resp.text

    async def request_bytes(self, endpoint: str) -> tuple[bytes, dict[str, str]]:
        resp = await self._send("GET", endpoint)
        return resp.content, dict(resp.headers)

    async def download_to_file(self, endpoint: str, output_path: str | Path) -> int:
        """Stream a binary endpoint to ``output_path``; returns bytes written."""
        written = 0
        with _translate_transport_errors():
            async with self._client.stream("GET", self._url(endpoint)) as resp:
                if resp.status_code >= 400:
                    await resp.aread()
                    self._raise_for_status(resp)
                async with await anyio.open_file(output_path, "wb") as fh:
                    async for chunk in resp.aiter_bytes():
                        await fh.write(chunk)
                        written += len(chunk)
        logger.debug("Downloaded %d bytes from %s to %s", written, endpoint, output_path)
        return written

    async def send_multipart(
        self,
        method: str,
        endpoint: str,
        *,
        filename: str,
        data: bytes,
        mime: str | None = None,
        props: Mapping[str, Any] | None = None,
    ) -> Any:
        """Send a ``props`` JSON part plus a binary ``data`` part."""
        files: dict[str, Any] = {}
        if props:
            files["props"] = (None, json.dumps(dict(props)))
        if mime:
            files["data"] = (filename, data, mime)
        else:
            files["data"] = (filename, data)
        resp = await self._send(method, endpoint, files=files)
        return self._decode(resp, endpoint)
