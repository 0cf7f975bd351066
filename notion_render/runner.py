"""Batch orchestration: fetch pages, render them and write the results."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from .assets import AssetCache
from .client import NotionClient
from .config import RenderConfig
from .errors import TransientAPIError
from .models import PageAttributes, RenderResult
from .renderer import NotionPageRenderer, TransformPipeline

logger = logging.getLogger("notion_render")


@dataclass
class PageOutput:
    """Files written for a rendered page and how long it took."""

    page_id: str
    html_path: Path
    metadata_path: Path
    html: str
    total_seconds: float


@dataclass
class PreparedPage:
    """Attributes and render outcome for one page."""

    page_id: str
    attributes: Optional[PageAttributes]
    result: RenderResult


async def fetch_attributes(
    client: NotionClient, cache: AssetCache, page_id: str
) -> PageAttributes:
    """Retrieve a page and return its attributes with page-level assets cached."""
    page = await client.retrieve_page(page_id)
    renderer = NotionPageRenderer(client, page, cache)
    return await renderer.resolve_asset_attributes(renderer.get_attributes())


async def prepare_page(
    client: NotionClient,
    cache: AssetCache,
    page_id: str,
    pipeline: TransformPipeline,
) -> PreparedPage:
    """Retrieve, resolve and render a single page."""
    try:
        page = await client.retrieve_page(page_id)
    except TransientAPIError as exc:
        logger.error("Failed to retrieve page %s: %s", page_id, exc)
        return PreparedPage(page_id, None, RenderResult(error=str(exc)))

    renderer = NotionPageRenderer(client, page, cache)
    attributes = await renderer.resolve_asset_attributes(renderer.get_attributes())
    result = await renderer.render(pipeline)
    return PreparedPage(page_id, attributes, result)


def write_page(prepared: PreparedPage, output_root: Path) -> Optional[PageOutput]:
    """Persist HTML and metadata JSON for a successfully rendered page."""
    rendered = prepared.result.page
    if rendered is None:
        return None

    output_root.mkdir(parents=True, exist_ok=True)
    html_path = output_root / f"{prepared.page_id}.html"
    html_path.write_text(rendered.html, encoding="utf-8")

    metadata: Dict[str, Any] = {
        "attributes": prepared.attributes.to_dict() if prepared.attributes else None,
        "headings": [asdict(heading) for heading in rendered.headings],
        "image_paths": rendered.image_paths,
    }
    metadata_path = output_root / f"{prepared.page_id}.json"
    metadata_path.write_text(
        json.dumps(metadata, indent=2, ensure_ascii=False, default=str),
        encoding="utf-8",
    )
    logger.info("Saved HTML to %s", html_path)
    return PageOutput(
        page_id=prepared.page_id,
        html_path=html_path,
        metadata_path=metadata_path,
        html=rendered.html,
        total_seconds=0.0,
    )


async def run_renderer(
    page_ids: List[str],
    config: RenderConfig,
    client: NotionClient,
    pipeline: TransformPipeline,
) -> List[PageOutput]:
    """Render each page sequentially, sharing one asset cache."""
    cache = AssetCache(config)
    outputs: List[PageOutput] = []
    for page_id in page_ids:
        start = time.perf_counter()
        prepared = await prepare_page(client, cache, page_id, pipeline)
        if not prepared.result.ok:
            logger.error("Page %s failed: %s", page_id, prepared.result.error)
            continue
        output = write_page(prepared, config.output_root)
        if output is not None:
            output.total_seconds = time.perf_counter() - start
            outputs.append(output)
    return outputs
