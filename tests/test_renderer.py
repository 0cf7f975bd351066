import copy
import logging

from bs4 import BeautifulSoup

from notion_render.assets import AssetCache, asset_filename
from notion_render.config import RenderConfig
from notion_render.errors import TransientAPIError
from notion_render.pipeline import HtmlPipeline, PipelineOutput
from notion_render.renderer import NotionPageRenderer, page_title

from helpers import FakeResponse, FakeSession, FakeSource, block, external, heading, hosted, text

COVER_URL = "https://s3.example.com/cover.jpg?sig=1"
IMAGE_URL = "https://s3.example.com/photo.png?sig=1"
OTHER_URL = "https://s3.example.com/chart.webp?sig=1"


def make_page(**overrides):
    page = {
        "object": "page",
        "id": "page",
        "icon": {"type": "emoji", "emoji": "🧭"},
        "cover": hosted(COVER_URL),
        "archived": False,
        "in_trash": False,
        "url": "https://www.notion.so/page",
        "public_url": None,
        "properties": {
            "Name": {"id": "title", "type": "title", "title": [text("Travel notes")]},
            "Gallery": {
                "id": "g",
                "type": "files",
                "files": [
                    dict(hosted(OTHER_URL), name="chart.webp"),
                    dict(hosted("https://s3.example.com/itinerary.pdf?sig=1"), name="it.pdf"),
                    dict(external("https://cdn.example.com/remote.png"), name="remote.png"),
                ],
            },
        },
    }
    page.update(overrides)
    return page


def make_renderer(source, session=None, tmp_path=None, **config_overrides):
    config = RenderConfig(output_root=tmp_path, **config_overrides)
    cache = AssetCache(config, session=session or FakeSession())
    return NotionPageRenderer(source, make_page(), cache)


def test_page_title_reads_title_property():
    assert page_title(make_page()["properties"]) == "Travel notes"
    assert page_title({}) is None


async def test_render_returns_html_headings_and_distinct_image_paths(tmp_path):
    source = FakeSource(
        {
            "page": [
                [heading("h1", 1, "Day one"), block("img1", "image", hosted(IMAGE_URL))],
                [
                    heading("h2", 2, "Morning"),
                    block("img2", "image", hosted(OTHER_URL)),
                    block("img3", "image", hosted(IMAGE_URL)),
                ],
            ]
        }
    )
    session = FakeSession()
    renderer = make_renderer(source, session, tmp_path)

    result = await renderer.render(HtmlPipeline())

    assert result.ok and result.error is None
    page = result.page
    first = f"/notion-images/{asset_filename(IMAGE_URL)}"
    second = f"/notion-images/{asset_filename(OTHER_URL)}"
    assert page.image_paths == [first, second]
    assert [(h.depth, h.text, h.slug) for h in page.headings] == [
        (0, "Day one", "day-one"),
        (1, "Morning", "morning"),
    ]
    srcs = [img["src"] for img in BeautifulSoup(page.html, "html.parser").find_all("img")]
    assert srcs == [first, second, first]
    assert session.urls() == [IMAGE_URL, OTHER_URL]


async def test_image_failure_fails_the_whole_page(tmp_path):
    source = FakeSource({"page": [[block("p"), block("img", "image", hosted(IMAGE_URL))]]})
    session = FakeSession({IMAGE_URL: FakeResponse(status_code=404)})
    renderer = make_renderer(source, session, tmp_path)

    result = await renderer.render(HtmlPipeline())

    assert result.page is None
    assert "404" in result.error


async def test_image_failure_with_remote_fallback_still_renders(tmp_path):
    source = FakeSource({"page": [[block("img", "image", hosted(IMAGE_URL))]]})
    session = FakeSession({IMAGE_URL: FakeResponse(status_code=404)})
    renderer = make_renderer(
        source, session, tmp_path, fallback_images_to_remote=True
    )

    result = await renderer.render(HtmlPipeline())

    assert result.ok
    assert result.page.image_paths == []
    assert IMAGE_URL.replace("&", "&amp;") in result.page.html


async def test_file_failure_keeps_the_original_block(tmp_path):
    source = FakeSource({"page": [[block("f", "file", hosted(IMAGE_URL))]]})
    session = FakeSession({IMAGE_URL: FakeResponse(status_code=500)})
    renderer = make_renderer(source, session, tmp_path)

    result = await renderer.render(HtmlPipeline())

    assert result.ok
    assert result.page.image_paths == []


async def test_pipeline_failure_returns_no_partial_output(tmp_path):
    source = FakeSource({"page": [[heading("h", 1, "Title")]]})
    renderer = make_renderer(source, tmp_path=tmp_path)

    def failing(blocks):
        raise RuntimeError("template exploded")

    result = await renderer.render(failing)

    assert result.page is None
    assert result.error == "Transformation pipeline failed: template exploded"


async def test_pipeline_without_outline_is_rejected(tmp_path):
    renderer = make_renderer(FakeSource({}), tmp_path=tmp_path)
    result = await renderer.render(lambda blocks: "<p>just a string</p>")
    assert result.page is None
    assert "without html and outline" in result.error


async def test_async_pipeline_receives_materialized_blocks(tmp_path):
    source = FakeSource({"page": [[block("a"), block("b")]]})
    renderer = make_renderer(source, tmp_path=tmp_path)
    seen = []

    async def pipeline(blocks):
        seen.extend(b.id for b in blocks)
        nav = BeautifulSoup("<nav></nav>", "html.parser").nav
        return PipelineOutput(html="<p>ok</p>", outline=nav)

    result = await renderer.render(pipeline)

    assert seen == ["a", "b"]
    assert result.page.html == "<p>ok</p>"
    assert result.page.headings == []


async def test_api_failure_is_reported_as_a_message(tmp_path):
    class BrokenSource:
        async def list_block_children(self, block_id, start_cursor=None):
            raise TransientAPIError("Request to blocks failed: HTTP 502", status=502)

    renderer = make_renderer(BrokenSource(), tmp_path=tmp_path)
    result = await renderer.render(HtmlPipeline())

    assert result.page is None
    assert result.error == "Request to blocks failed: HTTP 502"


async def test_get_attributes_does_not_touch_assets(tmp_path):
    session = FakeSession()
    renderer = make_renderer(FakeSource({}), session, tmp_path)

    attributes = renderer.get_attributes()

    assert attributes.id == "page"
    assert attributes.cover["file"]["url"] == COVER_URL
    assert attributes.icon == {"type": "emoji", "emoji": "🧭"}
    assert session.calls == []


async def test_resolve_asset_attributes_rewrites_a_copy(tmp_path):
    session = FakeSession()
    renderer = make_renderer(FakeSource({}), session, tmp_path)
    original = renderer.get_attributes()
    snapshot = copy.deepcopy(original)

    resolved = await renderer.resolve_asset_attributes(original)

    assert original == snapshot
    assert resolved.cover["file"]["url"] == f"/notion-images/{asset_filename(COVER_URL)}"
    files = resolved.properties["Gallery"]["files"]
    assert files[0]["file"]["url"] == f"/notion-images/{asset_filename(OTHER_URL)}"
    assert files[1]["file"]["url"].endswith("itinerary.pdf?sig=1")
    remote = "https://cdn.example.com/remote.png"
    assert files[2]["external"]["url"] == f"/notion-images/{asset_filename(remote)}"
    assert session.urls() == [COVER_URL, OTHER_URL, remote]
    assert renderer.image_paths == []


async def test_resolve_asset_attributes_logs_failures(tmp_path, caplog):
    session = FakeSession({COVER_URL: FakeResponse(status_code=403)})
    renderer = make_renderer(FakeSource({}), session, tmp_path)

    with caplog.at_level(logging.ERROR, logger="notion_render.page"):
        resolved = await renderer.resolve_asset_attributes(renderer.get_attributes())

    assert resolved.cover["file"]["url"] == COVER_URL
    assert "Failed to process cover image" in caplog.text
    assert "Travel notes" in caplog.text


async def test_external_cover_and_non_image_files_are_left_alone(tmp_path):
    session = FakeSession()
    config = RenderConfig(output_root=tmp_path)
    page = make_page(
        cover=external("https://cdn.example.com/banner.jpg"),
        properties={
            "Docs": {
                "id": "d",
                "type": "files",
                "files": [dict(external("https://cdn.example.com/guide.pdf"), name="guide.pdf")],
            }
        },
    )
    renderer = NotionPageRenderer(FakeSource({}), page, AssetCache(config, session=session))

    resolved = await renderer.resolve_asset_attributes(renderer.get_attributes())

    assert resolved.cover["external"]["url"] == "https://cdn.example.com/banner.jpg"
    docs = resolved.properties["Docs"]["files"]
    assert docs[0]["external"]["url"] == "https://cdn.example.com/guide.pdf"
    assert session.calls == []
