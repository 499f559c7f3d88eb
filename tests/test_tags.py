from __future__ import annotations

import json

import httpx
import pytest

from mcp_joplin.errors import JoplinApiError, JoplinConnectionError, TagNotFoundError
from mcp_joplin.tags import find_exact_tag, parse_tag_names

pytestmark = pytest.mark.anyio


def _search_results(*tags: dict) -> dict:
    return {"items": list(tags), "has_more": False}


def test_parse_tag_names_trims_and_drops_blanks() -> None:
    assert parse_tag_names(" work, ,urgent ,, ") == ["work", "urgent"]
    assert parse_tag_names("") == []


def test_find_exact_tag_ignores_case_and_partial_matches() -> None:
    candidates = [
        {"id": "t1", "title": "workshop"},
        {"id": "t2", "title": "Work"},
        {"id": "t3"},
    ]

    assert find_exact_tag(candidates, "work")["id"] == "t2"
    assert find_exact_tag(candidates, "wor") is None


async def test_add_tags_reuses_existing_tag(api, fake) -> None:
    fake.on("GET", "/search", _search_results({"id": "t1", "title": "Work"}))
    fake.on("POST", "/tags/t1/notes", {})

    await api.tags.add_tags_to_note("n1", "work")

    assert not fake.calls_to("POST", "/tags")
    assert fake.calls == [("GET", "/search"), ("POST", "/tags/t1/notes")]


async def test_add_tags_creates_when_search_only_finds_prefix(api, fake) -> None:
    fake.on("GET", "/search", _search_results({"id": "t1", "title": "workshop"}))
    fake.on("POST", "/tags", {"id": "t9", "title": "work"})
    fake.on("POST", "/tags/t9/notes", {})

    await api.tags.add_tags_to_note("n1", "work")

    create = fake.calls_to("POST", "/tags")[0]
    assert json.loads(create.content) == {"title": "work"}
    assert fake.calls_to("POST", "/tags/t9/notes")


async def test_add_tags_stops_at_first_failure(api, fake) -> None:
    def search(request: httpx.Request) -> httpx.Response:
        name = request.url.params["query"]
        return httpx.Response(200, json=_search_results({"id": f"id-{name}", "title": name}))

    fake.on("GET", "/search", search)
    fake.on("POST", "/tags/id-a/notes", {})
    fake.on("POST", "/tags/id-b/notes", lambda _: httpx.Response(500, text="db locked"))
    fake.on("POST", "/tags/id-c/notes", {})

    with pytest.raises(JoplinApiError):
        await api.tags.add_tags_to_note("n1", "a,b,c")

    assert fake.calls_to("POST", "/tags/id-a/notes")
    assert not fake.calls_to("POST", "/tags/id-c/notes")
    assert not any(r.method == "DELETE" for r in fake.requests)


async def test_remove_unknown_tag_is_a_no_op(api, fake) -> None:
    fake.on("GET", "/search", _search_results({"id": "t1", "title": "workshop"}))

    await api.tags.remove_tags_from_note("n1", "work")

    assert fake.calls == [("GET", "/search")]


async def test_remove_tag_not_on_note_is_ignored(api, fake) -> None:
    def search(request: httpx.Request) -> httpx.Response:
        name = request.url.params["query"]
        return httpx.Response(200, json=_search_results({"id": f"id-{name}", "title": name}))

    fake.on("GET", "/search", search)
    fake.on("DELETE", "/tags/id-a/notes/n1", lambda _: httpx.Response(404, text="Not Found"))
    fake.on("DELETE", "/tags/id-b/notes/n1", lambda _: httpx.Response(200, text=""))

    await api.tags.remove_tags_from_note("n1", "a, b")

    assert fake.calls_to("DELETE", "/tags/id-b/notes/n1")
    assert all(
        r.url.path in {"/search", "/tags/id-a/notes/n1", "/tags/id-b/notes/n1"}
        for r in fake.requests
    )


async def test_remove_tags_still_reports_connectivity_failures(api, fake) -> None:
    fake.on("GET", "/search", _search_results({"id": "t1", "title": "work"}))

    def refuse(_: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused")

    fake.on("DELETE", "/tags/t1/notes/n1", refuse)

    with pytest.raises(JoplinConnectionError):
        await api.tags.remove_tags_from_note("n1", "work")


async def test_rename_by_name_resolves_id(api, fake) -> None:
    fake.on("GET", "/search", _search_results({"id": "t1", "title": "Todo"}))
    fake.on("PUT", "/tags/t1", {"id": "t1", "title": "tasks"})

    result = await api.tags.rename_tag_by_name("todo", "tasks")

    assert result["title"] == "tasks"
    assert json.loads(fake.calls_to("PUT", "/tags/t1")[0].content) == {"title": "tasks"}


async def test_rename_by_name_raises_tag_not_found(api, fake) -> None:
    fake.on("GET", "/search", _search_results({"id": "t1", "title": "todos"}))

    with pytest.raises(TagNotFoundError) as excinfo:
        await api.tags.rename_tag_by_name("todo", "tasks")

    assert excinfo.value.name == "todo"
    assert str(excinfo.value) == "Tag not found: todo"
    assert not any(r.method == "PUT" for r in fake.requests)


async def test_notes_by_tag_name_lists_tag_notes(api, fake) -> None:
    fake.on("GET", "/search", _search_results({"id": "t1", "title": "work"}))
    fake.on_page("/tags/t1/notes", [[{"id": "n1"}], [{"id": "n2"}]])

    notes = await api.tags.get_notes_by_tag_name("WORK", order_by="title")

    assert [n["id"] for n in notes] == ["n1", "n2"]
    listing = fake.calls_to("GET", "/tags/t1/notes")[0]
    assert listing.url.params["order_by"] == "title"


async def test_notes_by_tag_name_raises_when_missing(api, fake) -> None:
    fake.on("GET", "/search", _search_results())

    with pytest.raises(TagNotFoundError):
        await api.tags.get_notes_by_tag_name("ghost")


async def test_list_tags_uses_default_fields(api, fake) -> None:
    fake.on("GET", "/tags", {"items": [{"id": "t1"}], "has_more": False})

    await api.tags.list_tags(limit=25)

    params = fake.requests[0].url.params
    assert params["fields"] == "id,title,created_time,updated_time"
    assert params["limit"] == "25"
