"""MCP server exposing the Notion page renderer as a tool."""

from __future__ import annotations

import logging

from mcp.server.fastmcp import FastMCP

from .assets import AssetCache
from .client import NotionClient
from .config import TOKEN_ENV_VAR, RenderConfig, resolve_output_root, resolve_token
from .pipeline import HtmlPipeline
from .runner import prepare_page

logger = logging.getLogger("notion_render.mcp")
logger.setLevel(logging.ERROR)

mcp = FastMCP(name="notion-render")


@mcp.tool()
async def render_page(page_id: str) -> str:
    """Render a Notion page to HTML with its images cached locally.

    Images are written under the output root (``NOTION_RENDER_OUTPUT``,
    default ``./output``) so the returned ``/notion-images/...`` sources can be
    served from its ``public`` directory.
    """
    token = resolve_token()
    if not token:
        raise RuntimeError(f"{TOKEN_ENV_VAR} is not set")

    config = RenderConfig(output_root=resolve_output_root())
    client = NotionClient(token, config)
    prepared = await prepare_page(client, AssetCache(config), page_id, HtmlPipeline())
    if prepared.result.page is None:
        raise RuntimeError(f"Failed to render {page_id}: {prepared.result.error}")
    return prepared.result.page.html


def main() -> None:
    """Entry point for running the MCP server."""
    logging.basicConfig(level=logging.ERROR)
    mcp.run()


if __name__ == "__main__":
    main()
