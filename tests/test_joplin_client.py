from __future__ import annotations

import json

import httpx
import pytest

from mcp_joplin.errors import JoplinApiError, JoplinConnectionError, JoplinProtocolError
from mcp_joplin.joplin_client import JoplinClient, build_endpoint

pytestmark = pytest.mark.anyio


@pytest.fixture
def client(fake) -> JoplinClient:
    return JoplinClient(
        base_url="http://joplin.test:41184/",
        token="secret-token",
        transport=httpx.MockTransport(fake),
    )


def test_build_endpoint_skips_empty_values() -> None:
    assert build_endpoint("/notes") == "/notes"
    assert build_endpoint("/notes", {"fields": None, "order_by": ""}) == "/notes"
    assert (
        build_endpoint("/notes", {"fields": "id,title", "order_dir": "ASC"})
        == "/notes?fields=id,title&order_dir=ASC"
    )


async def test_request_sends_token_as_query_param(client, fake) -> None:
    fake.on("GET", "/folders/f1", {"id": "f1"})

    result = await client.request("GET", "/folders/f1?fields=id,title")

    assert result == {"id": "f1"}
    sent = fake.requests[0]
    assert sent.url.params["token"] == "secret-token"
    assert sent.url.params["fields"] == "id,title"
    assert "authorization" not in sent.headers


async def test_endpoint_query_is_kept_next_to_token(client, fake) -> None:
    fake.on("GET", "/search", {"items": [], "has_more": False})
    endpoint = build_endpoint(
        "/search", {"query": "weekly review", "type": "tag", "fields": "id,title"}
    )

    await client.request("GET", endpoint)
    await client.request_bytes(endpoint)

    for sent in fake.requests:
        assert dict(sent.url.params) == {
            "query": "weekly review",
            "type": "tag",
            "fields": "id,title",
            "token": "secret-token",
        }


async def test_request_sends_json_body(client, fake) -> None:
    fake.on("POST", "/notes", {"id": "n1", "title": "Hello"})

    await client.request("POST", "/notes", {"title": "Hello", "body": "World"})

    sent = fake.requests[0]
    assert sent.headers["content-type"] == "application/json"
    assert json.loads(sent.content) == {"title": "Hello", "body": "World"}


async def test_empty_body_means_success_without_data(client, fake) -> None:
    fake.on("DELETE", "/notes/n1", lambda _: httpx.Response(200, text=""))

    assert await client.request("DELETE", "/notes/n1") is None


async def test_error_status_carries_status_and_text(client, fake) -> None:
    fake.on("DELETE", "/folders/f1", lambda _: httpx.Response(500, text="Folder is not empty\n"))

    with pytest.raises(JoplinApiError) as excinfo:
        await client.request("DELETE", "/folders/f1")

    err = excinfo.value
    assert err.status_code == 500
    assert err.method == "DELETE"
    assert err.response_text == "Folder is not empty"
    assert "secret-token" not in str(err)
    assert "500" in str(err)


@pytest.mark.parametrize(
    "exc",
    [
        httpx.ConnectError("connect ECONNREFUSED 127.0.0.1:41184"),
        httpx.ConnectTimeout("timed out"),
        httpx.ReadError("connection reset"),
    ],
)
async def test_network_failures_become_connection_errors(exc) -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        raise exc

    client = JoplinClient(
        base_url="http://joplin.test:41184",
        token="t",
        transport=httpx.MockTransport(handler),
    )

    with pytest.raises(JoplinConnectionError) as excinfo:
        await client.request("GET", "/notes")

    assert str(excinfo.value).startswith("Failed to connect to Joplin:")
    assert excinfo.value.__cause__ is exc


async def test_non_json_body_is_a_protocol_error(client, fake) -> None:
    fake.on("GET", "/notes/n1", lambda _: httpx.Response(200, text="<html>"))

    with pytest.raises(JoplinProtocolError):
        await client.request("GET", "/notes/n1")


async def test_ping_returns_plain_text(client, fake) -> None:
    fake.on("GET", "/ping", lambda _: httpx.Response(200, text="JoplinClipperServer"))

    assert await client.ping() == "JoplinClipperServer"


async def test_paginate_concatenates_pages_in_order(client, fake) -> None:
    pages = [[{"id": "a"}, {"id": "b"}], [{"id": "c"}, {"id": "d"}], [{"id": "e"}]]
    fake.on_page("/notes", pages)

    items = await client.paginate("/notes?fields=id", limit=2)

    assert [i["id"] for i in items] == ["a", "b", "c", "d", "e"]
    assert len(fake.requests) == 3
    assert [r.url.params["page"] for r in fake.requests] == ["1", "2", "3"]
    assert all(r.url.params["limit"] == "2" for r in fake.requests)
    assert all(r.url.params["fields"] == "id" for r in fake.requests)


async def test_paginate_uses_question_mark_without_query(client, fake) -> None:
    fake.on_page("/tags", [[{"id": "t1"}]])

    await client.paginate("/tags")

    sent = fake.requests[0]
    assert sent.url.params["limit"] == "100"
    assert sent.url.params["page"] == "1"


async def test_paginate_empty_collection_issues_one_request(client, fake) -> None:
    fake.on("GET", "/tags", {"items": [], "has_more": False})

    assert await client.paginate("/tags") == []
    assert len(fake.requests) == 1


async def test_paginate_rejects_null_page(client, fake) -> None:
    fake.on("GET", "/tags", lambda _: httpx.Response(200, text=""))

    with pytest.raises(JoplinProtocolError) as excinfo:
        await client.paginate("/tags")

    assert "page=1" in excinfo.value.endpoint


async def test_paginate_rejects_empty_page_claiming_more(client, fake) -> None:
    fake.on("GET", "/tags", {"items": [], "has_more": True})

    with pytest.raises(JoplinProtocolError):
        await client.paginate("/tags")
    assert len(fake.requests) == 1


async def test_paginate_only_continues_on_literal_true(client, fake) -> None:
    fake.on("GET", "/tags", {"items": [{"id": "t1"}], "has_more": "true"})

    assert await client.paginate("/tags") == [{"id": "t1"}]
    assert len(fake.requests) == 1


async def test_download_to_file_streams_body(client, fake, tmp_path) -> None:
    payload = b"\x89PNG" + bytes(range(256)) * 64
    fake.on("GET", "/resources/r1/file", lambda _: httpx.Response(200, content=payload))
    target = tmp_path / "out.png"

    written = await client.download_to_file("/resources/r1/file", target)

    assert written == len(payload)
    assert target.read_bytes() == payload


async def test_download_to_file_keeps_endpoint_query(client, fake, tmp_path) -> None:
    fake.on("GET", "/resources/r1/file", lambda _: httpx.Response(200, content=b"x"))

    await client.download_to_file("/resources/r1/file?fields=id", tmp_path / "out.bin")

    assert fake.requests[0].url.params["fields"] == "id"
    assert fake.requests[0].url.params["token"] == "secret-token"


async def test_download_to_file_raises_on_error_status(client, fake, tmp_path) -> None:
    fake.on("GET", "/resources/r1/file", lambda _: httpx.Response(404, text="Not Found"))
    target = tmp_path / "out.bin"

    with pytest.raises(JoplinApiError) as excinfo:
        await client.download_to_file("/resources/r1/file", target)

    assert excinfo.value.status_code == 404
    assert not target.exists()


async def test_send_multipart_has_props_and_data_parts(client, fake) -> None:
    fake.on("POST", "/resources", {"id": "r1", "title": "Scan"})

    result = await client.send_multipart(
        "POST",
        "/resources",
        filename="scan.pdf",
        data=b"%PDF-1.7",
        mime="application/pdf",
        props={"title": "Scan"},
    )

    assert result == {"id": "r1", "title": "Scan"}
    sent = fake.requests[0]
    assert sent.headers["content-type"].startswith("multipart/form-data")
    assert b'name="props"' in sent.content
    assert b'{"title": "Scan"}' in sent.content
    assert b'name="data"; filename="scan.pdf"' in sent.content
    assert b"%PDF-1.7" in sent.content
    assert sent.url.params["token"] == "secret-token"
