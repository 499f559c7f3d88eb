"""Revision history operations."""

from __future__ import annotations

from typing import Any

from .constants import REVISION_FIELDS, REVISION_LIST_FIELDS, OrderDir
from .joplin_client import JoplinClient, build_endpoint


class RevisionsApi:
    def __init__(self, http: JoplinClient) -> None:
        self._http = http

    async def list_all_revisions(
        self,
        fields: str | None = None,
        order_by: str | None = None,
        order_dir: OrderDir | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """List revisions across all notes. Diffs are left out unless requested."""
        endpoint = build_endpoint(
            "/revisions",
            {"fields": fields or REVISION_LIST_FIELDS, "order_by": order_by, "order_dir": order_dir},
        )
        return await self._http.paginate(endpoint, limit=limit)

    async def get_revision(self, revision_id: str, fields: str | None = None) -> dict[str, Any]:
        endpoint = build_endpoint(f"/revisions/{revision_id}", {"fields": fields or REVISION_FIELDS})
        return await self._http.request("GET", endpoint)
