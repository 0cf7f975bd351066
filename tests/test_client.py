import pytest
import requests

from notion_render.client import NotionClient, is_full_block, iterate_children
from notion_render.config import RenderConfig
from notion_render.errors import TransientAPIError

from helpers import FakeResponse, FakeSession, FakeSource, block, partial

BASE = "https://api.notion.com/v1"


def make_client(tmp_path, routes):
    session = FakeSession(routes)
    return NotionClient("secret", RenderConfig(output_root=tmp_path), session=session), session


def test_is_full_block():
    assert is_full_block(block("a"))
    assert not is_full_block(partial("a"))
    assert not is_full_block({"object": "page", "id": "p", "type": "x"})


async def test_iterate_children_follows_cursors():
    source = FakeSource({"root": [[block("a")], [block("b"), block("c")], [block("d")]]})
    ids = [record["id"] async for record in iterate_children(source, "root")]
    assert ids == ["a", "b", "c", "d"]
    assert source.calls == [("root", None), ("root", "1"), ("root", "2")]


async def test_list_block_children_sends_auth_and_cursor(tmp_path):
    url = f"{BASE}/blocks/abc/children"
    payload = {"results": [], "has_more": False, "next_cursor": None}
    client, session = make_client(tmp_path, {url: FakeResponse(json_data=payload)})

    assert await client.list_block_children("abc", start_cursor="cur") == payload

    assert session.headers["Authorization"] == "Bearer secret"
    assert session.headers["Notion-Version"] == "2022-06-28"
    assert session.calls[0]["params"] == {"page_size": 100, "start_cursor": "cur"}


async def test_retrieve_page(tmp_path):
    url = f"{BASE}/pages/p1"
    client, _ = make_client(tmp_path, {url: FakeResponse(json_data={"id": "p1"})})
    assert await client.retrieve_page("p1") == {"id": "p1"}


async def test_http_error_maps_to_transient_error(tmp_path):
    url = f"{BASE}/blocks/abc/children"
    client, _ = make_client(tmp_path, {url: FakeResponse(status_code=429)})

    with pytest.raises(TransientAPIError) as excinfo:
        await client.list_block_children("abc")
    assert excinfo.value.status == 429


async def test_network_error_maps_to_transient_error(tmp_path):
    url = f"{BASE}/pages/p1"
    client, _ = make_client(tmp_path, {url: requests.ConnectionError("refused")})
    with pytest.raises(TransientAPIError, match="refused"):
        await client.retrieve_page("p1")


async def test_invalid_json_maps_to_transient_error(tmp_path):
    url = f"{BASE}/pages/p1"
    client, _ = make_client(tmp_path, {url: FakeResponse(json_data=None)})
    with pytest.raises(TransientAPIError, match="invalid JSON"):
        await client.retrieve_page("p1")
