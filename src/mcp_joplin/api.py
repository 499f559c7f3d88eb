"""Composition root wiring the Joplin API groups together."""

from __future__ import annotations

from typing import Any

import httpx

from .joplin_client import JoplinClient
from .notebooks import NotebooksApi
from .notes import NotesApi
from .policies import delete_resource_if_unused
from .resources import ResourcesApi
from .revisions import RevisionsApi
from .settings import ConnectionConfig
from .tags import TagsApi


class JoplinApi:
    """All Joplin operations, grouped by resource family over one transport.

    Notes and tags depend on each other: creating a note may attach tags, and
    tag lookups by name go through note search. Each side receives only the one
    callable it needs, once both groups exist.
    """

    def __init__(
        self,
        connection: ConnectionConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.http = JoplinClient(
            base_url=connection.base_url,
            token=connection.token,
            timeout_seconds=connection.timeout_seconds,
            transport=transport,
        )
        self.notebooks = NotebooksApi(self.http)
        self.notes = NotesApi(self.http)
        self.tags = TagsApi(self.http)
        self.resources = ResourcesApi(self.http)
        self.revisions = RevisionsApi(self.http)

        self.notes.use_tag_assigner(self.tags.add_tags_to_note)
        self.tags.use_note_searcher(self.notes.search_notes)

    async def ping(self) -> str:
        return await self.http.ping()

    async def delete_resource_safely(self, resource_id: str) -> dict[str, Any]:
        return await delete_resource_if_unused(self.resources, resource_id)

    async def aclose(self) -> None:
        await self.http.aclose()
