"""Structured models returned by MCP tools."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class JoplinItem(BaseModel):
    """An item as Joplin returned it.

    Only the requested ``fields`` come back, so every attribute is optional and
    fields not declared here are passed through unchanged.
    """

    model_config = ConfigDict(extra="allow")

    id: str | None = None


class Tag(JoplinItem):
    title: str | None = None
    created_time: int | None = None
    updated_time: int | None = None


class Note(JoplinItem):
    title: str | None = None
    body: str | None = None
    parent_id: str | None = None
    created_time: int | None = None
    updated_time: int | None = None
    is_todo: int | None = None
    todo_due: int | None = None
    todo_completed: int | None = None
    tags: list[Tag] | None = None


class Folder(JoplinItem):
    title: str | None = None
    parent_id: str | None = None
    created_time: int | None = None
    updated_time: int | None = None


class Resource(JoplinItem):
    title: str | None = None
    mime: str | None = None
    filename: str | None = None
    file_extension: str | None = None
    size: int | None = None
    ocr_text: str | None = None
    ocr_status: int | None = None
    created_time: int | None = None
    updated_time: int | None = None


class ResourceBlob(BaseModel):
    id: str
    mime: str | None = None
    filename: str | None = None
    size: int
    data_base64: str


class Revision(JoplinItem):
    parent_id: str | None = None
    item_id: str | None = None
    item_type: int | None = None
    item_updated_time: int | None = None
    title_diff: str | None = None
    body_diff: str | None = None
    metadata_diff: str | None = None
    created_time: int | None = None
    updated_time: int | None = None


class FolderNode(BaseModel):
    id: str
    title: str | None = None
    children: list[FolderNode] = Field(default_factory=list)


class DeleteResult(BaseModel):
    deleted: bool
    id: str
    warning: str | None = None
    notes: list[dict[str, Any]] = Field(default_factory=list)
