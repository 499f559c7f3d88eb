"""FastMCP server definition (tools + resources)."""

from __future__ import annotations

import base64
import binascii
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

import httpx
from mcp.server.fastmcp import Context, FastMCP

from .api import JoplinApi
from .constants import OrderDir
from .errors import JoplinError
from .models import (
    DeleteResult,
    Folder,
    FolderNode,
    Note,
    Resource,
    ResourceBlob,
    Revision,
    Tag,
)
from .settings import Settings, resolve_connection

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AppContext:
    settings: Settings
    joplin: JoplinApi


def _parse_fields(fields: str | None) -> str | None:
    if fields is None:
        return None
    cleaned = ",".join([f.strip() for f in fields.split(",") if f.strip()])
    return cleaned or None


def _app(ctx: Context) -> AppContext:
    return ctx.request_context.lifespan_context


def create_mcp_server(
    settings: Settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastMCP:
    connection = resolve_connection(settings)

    @asynccontextmanager
    async def lifespan(_: FastMCP) -> AsyncIterator[AppContext]:
        joplin = JoplinApi(connection, transport=transport)
        try:
            await joplin.ping()
        except JoplinError as exc:
            logger.warning(
                "Could not connect to Joplin at %s (%s). Make sure the desktop app is running "
                "and the Web Clipper service is enabled.",
                connection.base_url,
                exc,
            )
        try:
            yield AppContext(settings=settings, joplin=joplin)
        finally:
            await joplin.aclose()

    mcp = FastMCP(
        "Joplin",
        instructions=(
            "Access and manage Joplin notes via the local Joplin Data API (Web Clipper). "
            "List operations always return complete results; tags can be addressed by name. "
            "Use tools for CRUD operations and resources to load note content."
        ),
        lifespan=lifespan,
        # Only used when served over Streamable HTTP.
        stateless_http=True,
        json_response=True,
    )

    @mcp.resource("joplin-note://{note_id}")
    async def read_note_resource(note_id: str, ctx: Context) -> str:
        """Read a note's Markdown body."""
        note = await _app(ctx).joplin.notes.get_note(note_id, "id,title,body")
        title = note.get("title") or "(untitled)"
        body = note.get("body") or ""
        return f"# {title}\n\n{body}"

    @mcp.resource("joplin-folders://tree")
    async def read_folders_tree_resource(ctx: Context) -> list[FolderNode]:
        """Return the full folder tree."""
        return await _app(ctx).joplin.notebooks.get_notebook_tree()

    # Notebooks

    @mcp.tool()
    async def list_notebooks(
        ctx: Context,
        fields: str | None = None,
        order_by: str | None = None,
        order_dir: OrderDir | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """List all notebooks. ``limit`` sets the page size used while fetching."""
        return await _app(ctx).joplin.notebooks.list_notebooks(
            _parse_fields(fields), order_by, order_dir, limit
        )

    @mcp.tool()
    async def get_notebook_by_id(
        notebook_id: str, ctx: Context, fields: str | None = None
    ) -> Folder:
        """Get a single notebook by id."""
        raw = await _app(ctx).joplin.notebooks.get_notebook(notebook_id, _parse_fields(fields))
        return Folder.model_validate(raw)

    @mcp.tool()
    async def create_notebook(
        title: str,
        ctx: Context,
        parent_id: str | None = None,
    ) -> Folder:
        """Create a new notebook, optionally nested under ``parent_id``."""
        raw = await _app(ctx).joplin.notebooks.create_notebook(title, parent_id)
        return Folder.model_validate(raw)

    @mcp.tool()
    async def update_notebook(
        notebook_id: str,
        ctx: Context,
        title: str | None = None,
        parent_id: str | None = None,
    ) -> Folder:
        """Update a notebook (rename and/or move by changing parent_id)."""
        if title is None and parent_id is None:
            raise ValueError("At least one of 'title' or 'parent_id' must be provided")
        raw = await _app(ctx).joplin.notebooks.update_notebook(
            notebook_id, title=title, parent_id=parent_id
        )
        return Folder.model_validate(raw)

    @mcp.tool()
    async def delete_notebook(notebook_id: str, ctx: Context) -> dict[str, Any]:
        """Delete a notebook. Joplin refuses if it still contains notes."""
        await _app(ctx).joplin.notebooks.delete_notebook(notebook_id)
        return {"deleted": True, "id": notebook_id}

    @mcp.tool()
    async def get_notebook_notes(
        notebook_id: str,
        ctx: Context,
        fields: str | None = None,
        order_by: str | None = None,
        order_dir: OrderDir | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """List every note inside a notebook."""
        return await _app(ctx).joplin.notebooks.get_notebook_notes(
            notebook_id, _parse_fields(fields), order_by, order_dir, limit
        )

    @mcp.tool()
    async def get_notebook_tree(ctx: Context) -> list[FolderNode]:
        """Return the notebook hierarchy."""
        return await _app(ctx).joplin.notebooks.get_notebook_tree()

    # Notes

    @mcp.tool()
    async def list_all_notes(
        ctx: Context,
        fields: str | None = None,
        include_deleted: bool = False,
        order_by: str | None = None,
        order_dir: OrderDir | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """List every note, optionally including notes in the trash."""
        return await _app(ctx).joplin.notes.list_all_notes(
            _parse_fields(fields), include_deleted, order_by, order_dir, limit
        )

    @mcp.tool()
    async def search_notes(
        query: str,
        ctx: Context,
        type: str | None = None,
        fields: str | None = None,
    ) -> list[dict[str, Any]]:
        """Search with Joplin's query syntax.

        Supports field prefixes (``title:``, ``body:``, ``tag:``, ``notebook:``),
        wildcards, date filters such as ``created:20240101``, ``any:1`` for OR
        logic and ``-term`` to exclude. ``type`` is note, folder or tag.
        """
        return await _app(ctx).joplin.notes.search_notes(query, type, _parse_fields(fields))

    @mcp.tool()
    async def get_note(note_id: str, ctx: Context, fields: str | None = None) -> Note:
        """Get a single note by id, including its tags."""
        raw = await _app(ctx).joplin.notes.get_note(note_id, _parse_fields(fields))
        return Note.model_validate(raw)

    @mcp.tool()
    async def create_note(
        title: str,
        body: str,
        ctx: Context,
        notebook_id: str | None = None,
        tags: str | None = None,
        is_todo: int | None = None,
        todo_due: int | None = None,
        todo_completed: int | None = None,
    ) -> Note:
        """Create a new note. ``tags`` is a comma-separated list of tag names."""
        raw = await _app(ctx).joplin.notes.create_note(
            title, body, notebook_id, tags, is_todo, todo_due, todo_completed
        )
        return Note.model_validate(raw)

    @mcp.tool()
    async def update_note(
        note_id: str,
        ctx: Context,
        title: str | None = None,
        body: str | None = None,
        notebook_id: str | None = None,
        is_todo: int | None = None,
        todo_due: int | None = None,
        todo_completed: int | None = None,
    ) -> Note:
        """Update fields of an existing note. Omitted fields are left untouched."""
        updates = {
            "title": title,
            "body": body,
            "parent_id": notebook_id,
            "is_todo": is_todo,
            "todo_due": todo_due,
            "todo_completed": todo_completed,
        }
        if all(v is None for v in updates.values()):
            raise ValueError("Provide at least one field to update")
        raw = await _app(ctx).joplin.notes.update_note(note_id, updates)
        return Note.model_validate(raw)

    @mcp.tool()
    async def append_to_note(note_id: str, content: str, ctx: Context) -> Note:
        """Append content to the end of a note, separated by a blank line."""
        raw = await _app(ctx).joplin.notes.append_to_note(note_id, content)
        return Note.model_validate(raw)

    @mcp.tool()
    async def prepend_to_note(note_id: str, content: str, ctx: Context) -> Note:
        """Insert content at the start of a note, separated by a blank line."""
        raw = await _app(ctx).joplin.notes.prepend_to_note(note_id, content)
        return Note.model_validate(raw)

    @mcp.tool()
    async def delete_note(
        note_id: str, ctx: Context, permanent: bool = False
    ) -> dict[str, Any]:
        """Move a note to the trash, or delete it permanently."""
        await _app(ctx).joplin.notes.delete_note(note_id, permanent)
        return {"deleted": True, "id": note_id, "permanent": permanent}

    @mcp.tool()
    async def move_note_to_notebook(
        note_id: str, notebook_id: str, ctx: Context
    ) -> dict[str, Any]:
        """Move a note into another notebook."""
        await _app(ctx).joplin.notes.move_note_to_notebook(note_id, notebook_id)
        return {"id": note_id, "parent_id": notebook_id, "moved": True}

    # Tags

    @mcp.tool()
    async def add_tags_to_note(note_id: str, tags: str, ctx: Context) -> dict[str, Any]:
        """Tag a note with comma-separated names; missing tags are created."""
        await _app(ctx).joplin.tags.add_tags_to_note(note_id, tags)
        return {"note_id": note_id, "tags": tags, "attached": True}

    @mcp.tool()
    async def remove_tags_from_note(note_id: str, tags: str, ctx: Context) -> dict[str, Any]:
        """Remove comma-separated tag names from a note. Unknown tags are ignored."""
        await _app(ctx).joplin.tags.remove_tags_from_note(note_id, tags)
        return {"note_id": note_id, "tags": tags, "attached": False}

    @mcp.tool()
    async def list_tags(
        ctx: Context,
        fields: str | None = None,
        order_by: str | None = None,
        order_dir: OrderDir | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """List all tags."""
        return await _app(ctx).joplin.tags.list_tags(
            _parse_fields(fields), order_by, order_dir, limit
        )

    @mcp.tool()
    async def get_tag_by_id(tag_id: str, ctx: Context, fields: str | None = None) -> Tag:
        """Get a single tag by id."""
        raw = await _app(ctx).joplin.tags.get_tag(tag_id, _parse_fields(fields))
        return Tag.model_validate(raw)

    @mcp.tool()
    async def rename_tag(
        new_name: str,
        ctx: Context,
        tag_id: str | None = None,
        current_name: str | None = None,
    ) -> dict[str, Any]:
        """Rename a tag, addressed either by ``tag_id`` or by ``current_name``."""
        tags = _app(ctx).joplin.tags
        if tag_id:
            await tags.rename_tag(tag_id, new_name)
        elif current_name:
            await tags.rename_tag_by_name(current_name, new_name)
        else:
            raise ValueError("Must provide either tag_id or current_name")
        return {"renamed": True, "title": new_name}

    @mcp.tool()
    async def delete_tag(tag_id: str, ctx: Context) -> dict[str, Any]:
        """Delete a tag."""
        await _app(ctx).joplin.tags.delete_tag(tag_id)
        return {"deleted": True, "id": tag_id}

    @mcp.tool()
    async def get_notes_by_tag(
        ctx: Context,
        tag_id: str | None = None,
        tag_name: str | None = None,
        fields: str | None = None,
        order_by: str | None = None,
        order_dir: OrderDir | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """List the notes carrying a tag, addressed by ``tag_id`` or ``tag_name``."""
        tags = _app(ctx).joplin.tags
        parsed_fields = _parse_fields(fields)
        if tag_id:
            return await tags.get_tag_notes(tag_id, parsed_fields, order_by, order_dir, limit)
        if tag_name:
            return await tags.get_notes_by_tag_name(
                tag_name, parsed_fields, order_by, order_dir, limit
            )
        raise ValueError("Must provide either tag_id or tag_name")

    # Resources

    @mcp.tool()
    async def list_all_resources(
        ctx: Context,
        fields: str | None = None,
        order_by: str | None = None,
        order_dir: OrderDir | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """List every attachment (resource)."""
        return await _app(ctx).joplin.resources.list_all_resources(
            _parse_fields(fields), order_by, order_dir, limit
        )

    @mcp.tool()
    async def get_resource_metadata(
        resource_id: str, ctx: Context, fields: str | None = None
    ) -> Resource:
        """Get a single attachment's metadata by id."""
        raw = await _app(ctx).joplin.resources.get_resource_metadata(
            resource_id, _parse_fields(fields)
        )
        return Resource.model_validate(raw)

    @mcp.tool()
    async def get_note_attachments(
        note_id: str,
        ctx: Context,
        fields: str | None = None,
        order_by: str | None = None,
        order_dir: OrderDir | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """List attachments linked to a note."""
        return await _app(ctx).joplin.resources.get_note_resources(
            note_id, _parse_fields(fields), order_by, order_dir, limit
        )

    @mcp.tool()
    async def get_resource_notes(
        resource_id: str,
        ctx: Context,
        fields: str | None = None,
        order_by: str | None = None,
        order_dir: OrderDir | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """List the notes that reference an attachment."""
        return await _app(ctx).joplin.resources.get_resource_notes(
            resource_id, _parse_fields(fields), order_by, order_dir, limit
        )

    @mcp.tool()
    async def download_attachment(
        resource_id: str, output_path: str, ctx: Context
    ) -> dict[str, Any]:
        """Save an attachment's file to ``output_path`` on this machine."""
        size = await _app(ctx).joplin.resources.download_resource_to_file(
            resource_id, output_path
        )
        return {"id": resource_id, "output_path": output_path, "size": size}

    @mcp.tool()
    async def get_attachment_content(resource_id: str, ctx: Context) -> ResourceBlob:
        """Get attachment file bytes encoded as base64."""
        resources = _app(ctx).joplin.resources
        meta_raw = await resources.get_resource_metadata(resource_id, "id,mime,filename,size")
        data = await resources.download_resource(resource_id)
        return ResourceBlob(
            id=resource_id,
            mime=meta_raw.get("mime"),
            filename=meta_raw.get("filename"),
            size=len(data),
            data_base64=base64.b64encode(data).decode("ascii"),
        )

    @mcp.tool()
    async def upload_attachment(
        file_path: str,
        ctx: Context,
        title: str | None = None,
        mime_type: str | None = None,
    ) -> Resource:
        """Upload a local file as a new attachment."""
        raw = await _app(ctx).joplin.resources.upload_resource(file_path, title, mime_type)
        return Resource.model_validate(raw)

    @mcp.tool()
    async def create_attachment_from_base64(
        filename: str,
        data_base64: str,
        ctx: Context,
        mime: str = "application/octet-stream",
        title: str | None = None,
    ) -> Resource:
        """Create a new attachment (resource) from base64-encoded file bytes."""
        try:
            raw_bytes = base64.b64decode(data_base64, validate=True)
        except binascii.Error as exc:
            raise ValueError("Invalid base64 data in 'data_base64'") from exc

        raw = await _app(ctx).joplin.resources.create_resource_from_bytes(
            filename=filename,
            data=raw_bytes,
            mime=mime,
            title=title,
        )
        return Resource.model_validate(raw)

    @mcp.tool()
    async def update_resource(
        resource_id: str,
        ctx: Context,
        file_path: str | None = None,
        title: str | None = None,
        mime_type: str | None = None,
    ) -> Resource:
        """Replace an attachment's file and/or title while keeping its id."""
        resources = _app(ctx).joplin.resources
        if file_path:
            raw = await resources.update_resource_with_file(
                resource_id, file_path, title=title, mime=mime_type
            )
        elif title:
            raw = await resources.update_resource_metadata(resource_id, title=title)
        else:
            raise ValueError("Must provide either file_path or title to update")
        return Resource.model_validate(raw)

    @mcp.tool()
    async def delete_resource(resource_id: str, ctx: Context) -> DeleteResult:
        """Delete an attachment unless notes still reference it."""
        result = await _app(ctx).joplin.delete_resource_safely(resource_id)
        return DeleteResult.model_validate(result)

    # Revisions

    @mcp.tool()
    async def list_all_revisions(
        ctx: Context,
        fields: str | None = None,
        order_by: str | None = None,
        order_dir: OrderDir | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """List note revisions across all notes."""
        return await _app(ctx).joplin.revisions.list_all_revisions(
            _parse_fields(fields), order_by, order_dir, limit
        )

    @mcp.tool()
    async def get_revision(
        revision_id: str, ctx: Context, fields: str | None = None
    ) -> Revision:
        """Get a single revision, including its diffs."""
        raw = await _app(ctx).joplin.revisions.get_revision(revision_id, _parse_fields(fields))
        return Revision.model_validate(raw)

    return mcp
