"""Resource (attachment) operations."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import anyio

from .constants import (
    NOTE_RESOURCE_FIELDS,
    RESOURCE_FIELDS,
    RESOURCE_LIST_FIELDS,
    RESOURCE_NOTE_FIELDS,
    OrderDir,
)
from .joplin_client import JoplinClient, build_endpoint


class ResourcesApi:
    """Raw resource operations.

    ``delete_resource`` is unconditional; see ``policies`` for the variant that
    refuses to delete a resource still referenced by notes.
    """

    def __init__(self, http: JoplinClient) -> None:
        self._http = http

    async def list_all_resources(
        self,
        fields: str | None = None,
        order_by: str | None = None,
        order_dir: OrderDir | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        endpoint = build_endpoint(
            "/resources",
            {"fields": fields or RESOURCE_LIST_FIELDS, "order_by": order_by, "order_dir": order_dir},
        )
        return await self._http.paginate(endpoint, limit=limit)

    async def get_resource_metadata(
        self, resource_id: str, fields: str | None = None
    ) -> dict[str, Any]:
        endpoint = build_endpoint(f"/resources/{resource_id}", {"fields": fields or RESOURCE_FIELDS})
        return await self._http.request("GET", endpoint)

    async def get_note_resources(
        self,
        note_id: str,
        fields: str | None = None,
        order_by: str | None = None,
        order_dir: OrderDir | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        endpoint = build_endpoint(
            f"/notes/{note_id}/resources",
            {"fields": fields or NOTE_RESOURCE_FIELDS, "order_by": order_by, "order_dir": order_dir},
        )
        return await self._http.paginate(endpoint, limit=limit)

    async def get_resource_notes(
        self,
        resource_id: str,
        fields: str | None = None,
        order_by: str | None = None,
        order_dir: OrderDir | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Reverse lookup: the notes that embed this resource."""
        endpoint = build_endpoint(
            f"/resources/{resource_id}/notes",
            {"fields": fields or RESOURCE_NOTE_FIELDS, "order_by": order_by, "order_dir": order_dir},
        )
        return await self._http.paginate(endpoint, limit=limit)

    async def download_resource(self, resource_id: str) -> bytes:
        data, _headers = await self._http.request_bytes(f"/resources/{resource_id}/file")
        return data

    async def download_resource_to_file(self, resource_id: str, output_path: str | Path) -> int:
        return await self._http.download_to_file(f"/resources/{resource_id}/file", output_path)

    async def upload_resource(
        self,
        file_path: str | Path,
        title: str | None = None,
        mime: str | None = None,
    ) -> dict[str, Any]:
        path = Path(file_path)
        props: dict[str, Any] = {"title": title or path.name}
        if mime:
            props["mime"] = mime
        data = await anyio.Path(path).read_bytes()
        return await self._http.send_multipart(
            "POST", "/resources", filename=path.name, data=data, mime=mime, props=props
        )

    async def create_resource_from_bytes(
        self,
        *,
        filename: str,
        data: bytes,
        mime: str,
        title: str | None = None,
    ) -> dict[str, Any]:
        """Create a resource from in-memory bytes via multipart upload."""
        return await self._http.send_multipart(
            "POST",
            "/resources",
            filename=filename,
            data=data,
            mime=mime,
            props={"title": title or filename},
        )

    async def update_resource_with_file(
        self,
        resource_id: str,
        file_path: str | Path,
        *,
        title: str | None = None,
        mime: str | None = None,
    ) -> dict[str, Any]:
        """Replace a resource's content in place.

        The id is kept, so ``:/<id>`` links in notes keep pointing at it.
        """
        path = Path(file_path)
        props: dict[str, Any] = {}
        if title:
            props["title"] = title
        if mime:
            props["mime"] = mime
        data = await anyio.Path(path).read_bytes()
        return await self._http.send_multipart(
            "PUT",
            f"/resources/{resource_id}",
            filename=path.name,
            data=data,
            mime=mime,
            props=props,
        )

    async def update_resource_metadata(
        self, resource_id: str, *, title: str | None = None
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if title is not None:
            payload["title"] = title
        return await self._http.request("PUT", f"/resources/{resource_id}", payload)

    async def delete_resource(self, resource_id: str) -> None:
        await self._http.request("DELETE", f"/resources/{resource_id}")
