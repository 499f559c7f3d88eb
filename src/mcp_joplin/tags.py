"""Tag operations, including name-based lookups built on Joplin search."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from .constants import NOTE_FIELDS, TAG_FIELDS, OrderDir
from .errors import JoplinApiError, TagNotFoundError
from .joplin_client import JoplinClient, build_endpoint

logger = logging.getLogger(__name__)


class NoteSearcher(Protocol):
    """Runs a Joplin search query restricted to one item type."""

    async def __call__(self, query: str, type: str | None = None) -> list[dict[str, Any]]: ...


def parse_tag_names(tag_names: str) -> list[str]:
    """Split a comma-separated list, dropping blanks."""
    return [name.strip() for name in tag_names.split(",") if name.strip()]


def find_exact_tag(candidates: list[dict[str, Any]], name: str) -> dict[str, Any] | None:
    """Return the first candidate whose title equals ``name`` ignoring case.

    Joplin search also returns prefix and fuzzy matches, so its results are
    only candidates.
    """
    wanted = name.lower()
    for tag in candidates:
        title = tag.get("title")
        if isinstance(title, str) and title.lower() == wanted:
            return tag
    return None


class TagsApi:
    def __init__(self, http: JoplinClient) -> None:
        self._http = http
        self._search: NoteSearcher | None = None

    def use_note_searcher(self, search: NoteSearcher) -> None:
        self._search = search

    async def _lookup(self, name: str) -> dict[str, Any] | None:
        if self._search is None:
            raise RuntimeError("TagsApi has no note searcher configured")
        candidates = await self._search(name, "tag")
        return find_exact_tag(candidates, name)

    async def _require_tag_id(self, name: str) -> str:
        tag = await self._lookup(name)
        if tag is None:
            raise TagNotFoundError(name=name)
        return tag["id"]

    async def _find_or_create_tag_id(self, name: str) -> str:
        tag = await self._lookup(name)
        if tag is not None:
            return tag["id"]
        created = await self.create_tag(name)
        logger.info("Created tag %r (%s)", name, created["id"])
        return created["id"]

    async def list_tags(
        self,
        fields: str | None = None,
        order_by: str | None = None,
        order_dir: OrderDir | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        endpoint = build_endpoint(
            "/tags",
            {"fields": fields or TAG_FIELDS, "order_by": order_by, "order_dir": order_dir},
        )
        return await self._http.paginate(endpoint, limit=limit)

    async def get_tag(self, tag_id: str, fields: str | None = None) -> dict[str, Any]:
        endpoint = build_endpoint(f"/tags/{tag_id}", {"fields": fields or TAG_FIELDS})
        return await self._http.request("GET", endpoint)

    async def create_tag(self, title: str) -> dict[str, Any]:
        return await self._http.request("POST", "/tags", {"title": title})

    async def rename_tag(self, tag_id: str, new_name: str) -> dict[str, Any]:
        return await self._http.request("PUT", f"/tags/{tag_id}", {"title": new_name})

    async def rename_tag_by_name(self, old_name: str, new_name: str) -> dict[str, Any]:
        tag_id = await self._require_tag_id(old_name)
        return await self.rename_tag(tag_id, new_name)

    async def delete_tag(self, tag_id: str) -> None:
        await self._http.request("DELETE", f"/tags/{tag_id}")

    async def tag_note(self, tag_id: str, note_id: str) -> None:
        # Joplin expects a body with {"id": <note_id>}.
        await self._http.request("POST", f"/tags/{tag_id}/notes", {"id": note_id})

    async def untag_note(self, tag_id: str, note_id: str) -> None:
        await self._http.request("DELETE", f"/tags/{tag_id}/notes/{note_id}")

    async def get_tag_notes(
        self,
        tag_id: str,
        fields: str | None = None,
        order_by: str | None = None,
        order_dir: OrderDir | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        endpoint = build_endpoint(
            f"/tags/{tag_id}/notes",
            {"fields": fields or NOTE_FIELDS, "order_by": order_by, "order_dir": order_dir},
        )
        return await self._http.paginate(endpoint, limit=limit)

    async def get_notes_by_tag_name(
        self,
        tag_name: str,
        fields: str | None = None,
        order_by: str | None = None,
        order_dir: OrderDir | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        tag_id = await self._require_tag_id(tag_name)
        return await self.get_tag_notes(tag_id, fields, order_by, order_dir, limit)

    async def add_tags_to_note(self, note_id: str, tag_names: str) -> None:
        """Attach each named tag to the note, creating tags that do not exist yet.

        Names are handled one after the other; a failure stops the loop and
        keeps the associations made so far.
        """
        for name in parse_tag_names(tag_names):
            tag_id = await self._find_or_create_tag_id(name)
            await self.tag_note(tag_id, note_id)

    async def remove_tags_from_note(self, note_id: str, tag_names: str) -> None:
        """Detach each named tag from the note.

        Unknown tags and tags that are not on the note are skipped, so the call
        can be repeated safely.
        """
        for name in parse_tag_names(tag_names):
            tag = await self._lookup(name)
            if tag is None:
                logger.debug("Tag %r does not exist; nothing to remove", name)
                continue
            try:
                await self.untag_note(tag["id"], note_id)
            except JoplinApiError as exc:
                logger.debug("Tag %r was not on note %s: %s", name, note_id, exc)
