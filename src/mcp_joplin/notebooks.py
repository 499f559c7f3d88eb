"""Notebook (Joplin "folder") operations."""

from __future__ import annotations

from typing import Any

from .constants import NOTE_FIELDS, NOTEBOOK_FIELDS, OrderDir
from .joplin_client import JoplinClient, build_endpoint
from .models import FolderNode


def build_folder_tree(folders: list[dict[str, Any]]) -> list[FolderNode]:
    """Nest a flat folder list by ``parent_id``; siblings are sorted by title."""
    by_parent: dict[str | None, list[dict[str, Any]]] = {}
    for f in folders:
        # Joplin reports top-level folders with an empty parent_id.
        by_parent.setdefault(f.get("parent_id") or None, []).append(f)

    def build(parent_id: str | None) -> list[FolderNode]:
        children = []
        for f in sorted(by_parent.get(parent_id, []), key=lambda x: x.get("title") or ""):
            node = FolderNode(
                id=str(f.get("id")), title=f.get("title"), children=build(f.get("id"))
            )
            children.append(node)
        return children

    return build(None)


class NotebooksApi:
    def __init__(self, http: JoplinClient) -> None:
        self._http = http

    async def list_notebooks(
        self,
        fields: str | None = None,
        order_by: str | None = None,
        order_dir: OrderDir | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        endpoint = build_endpoint(
            "/folders",
            {"fields": fields or NOTEBOOK_FIELDS, "order_by": order_by, "order_dir": order_dir},
        )
        return await self._http.paginate(endpoint, limit=limit)

    async def get_notebook(self, notebook_id: str, fields: str | None = None) -> dict[str, Any]:
        endpoint = build_endpoint(f"/folders/{notebook_id}", {"fields": fields or NOTEBOOK_FIELDS})
        return await self._http.request("GET", endpoint)

    async def create_notebook(self, title: str, parent_id: str | None = None) -> dict[str, Any]:
        payload: dict[str, Any] = {"title": title}
        if parent_id:
            payload["parent_id"] = parent_id
        return await self._http.request("POST", "/folders", payload)

    async def get_notebook_notes(
        self,
        notebook_id: str,
        fields: str | None = None,
        order_by: str | None = None,
        order_dir: OrderDir | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        endpoint = build_endpoint(
            f"/folders/{notebook_id}/notes",
            {"fields": fields or NOTE_FIELDS, "order_by": order_by, "order_dir": order_dir},
        )
        return await self._http.paginate(endpoint, limit=limit)

    async def update_notebook(
        self,
        notebook_id: str,
        *,
        title: str | None = None,
        parent_id: str | None = None,
    ) -> dict[str, Any]:
        """Rename and/or move a notebook by changing its ``parent_id``."""
        payload: dict[str, Any] = {}
        if title is not None:
            payload["title"] = title
        if parent_id is not None:
            payload["parent_id"] = parent_id
        return await self._http.request("PUT", f"/folders/{notebook_id}", payload)

    async def delete_notebook(self, notebook_id: str) -> None:
        # Emptiness is enforced by Joplin, not here.
        await self._http.request("DELETE", f"/folders/{notebook_id}")

    async def get_notebook_tree(self) -> list[FolderNode]:
        folders = await self.list_notebooks(fields="id,title,parent_id")
        return build_folder_tree(folders)
