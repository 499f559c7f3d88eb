"""Note operations."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any, Protocol

from .constants import NOTE_FIELDS, OrderDir
from .errors import JoplinProtocolError
from .joplin_client import JoplinClient, build_endpoint

logger = logging.getLogger(__name__)

BODY_SEPARATOR = "\n\n"


class TagAssigner(Protocol):
    """Attaches comma-separated tag names to a note, creating missing tags."""

    async def __call__(self, note_id: str, tag_names: str) -> None: ...


class NotesApi:
    def __init__(self, http: JoplinClient) -> None:
        self._http = http
        self._assign_tags: TagAssigner | None = None

    def use_tag_assigner(self, assign_tags: TagAssigner) -> None:
        self._assign_tags = assign_tags

    async def list_all_notes(
        self,
        fields: str | None = None,
        include_deleted: bool = False,
        order_by: str | None = None,
        order_dir: OrderDir | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        endpoint = build_endpoint(
            "/notes",
            {
                "fields": fields or NOTE_FIELDS,
                "include_deleted": 1 if include_deleted else None,
                "order_by": order_by,
                "order_dir": order_dir,
            },
        )
        return await self._http.paginate(endpoint, limit=limit)

    async def search_notes(
        self,
        query: str,
        type: str | None = None,
        fields: str | None = None,
    ) -> list[dict[str, Any]]:
        """Run a Joplin search query; ``type`` is one of note, folder or tag."""
        endpoint = build_endpoint("/search", {"query": query, "type": type, "fields": fields})
        return await self._http.paginate(endpoint)

    async def get_note(self, note_id: str, fields: str | None = None) -> dict[str, Any]:
        """Fetch a note together with its tags.

        The note and its tag list are two independent reads issued concurrently,
        so the merged record is not an atomic snapshot.
        """
        endpoint = build_endpoint(f"/notes/{note_id}", {"fields": fields or NOTE_FIELDS})
        note, tags = await asyncio.gather(
            self._http.request("GET", endpoint),
            self._http.paginate(f"/notes/{note_id}/tags"),
        )
        return {**(note or {}), "tags": tags}

    async def create_note(
        self,
        title: str,
        body: str,
        notebook_id: str | None = None,
        tags: str | None = None,
        is_todo: int | None = None,
        todo_due: int | None = None,
        todo_completed: int | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"title": title, "body": body}
        if notebook_id:
            payload["parent_id"] = notebook_id
        if is_todo is not None:
            payload["is_todo"] = is_todo
        if todo_due is not None:
            payload["todo_due"] = todo_due
        if todo_completed is not None:
            payload["todo_completed"] = todo_completed

        # POST /notes does not accept tags, so they are attached afterwards.
        # A failure while tagging leaves the note in place.
        note = await self._http.request("POST", "/notes", payload)
        if not isinstance(note, dict) or not note.get("id"):
            raise JoplinProtocolError(
                endpoint="/notes", detail="Created note came back without an id"
            )
        if tags:
            if self._assign_tags is None:
                raise RuntimeError("NotesApi has no tag assigner configured")
            await self._assign_tags(note["id"], tags)
        return note

    async def update_note(self, note_id: str, updates: Mapping[str, Any]) -> dict[str, Any]:
        """Send only the fields that were supplied."""
        payload = {k: v for k, v in updates.items() if v is not None}
        return await self._http.request("PUT", f"/notes/{note_id}", payload)

    async def append_to_note(self, note_id: str, content: str) -> dict[str, Any]:
        note = await self.get_note(note_id, "id,body")
        body = note.get("body") or ""
        return await self.update_note(note_id, {"body": body + BODY_SEPARATOR + content})

    async def prepend_to_note(self, note_id: str, content: str) -> dict[str, Any]:
        note = await self.get_note(note_id, "id,body")
        body = note.get("body") or ""
        return await self.update_note(note_id, {"body": content + BODY_SEPARATOR + body})

    async def delete_note(self, note_id: str, permanent: bool = False) -> None:
        """Move a note to the trash, or remove it for good with ``permanent``."""
        endpoint = build_endpoint(f"/notes/{note_id}", {"permanent": 1 if permanent else None})
        logger.debug("Deleting note %s (permanent=%s)", note_id, permanent)
        await self._http.request("DELETE", endpoint)

    async def move_note_to_notebook(self, note_id: str, notebook_id: str) -> dict[str, Any]:
        return await self.update_note(note_id, {"parent_id": notebook_id})
