"""High-level orchestration for rendering a single Notion page."""

from __future__ import annotations

import copy
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, MutableMapping, Optional, Sequence, Tuple, Union

from .assets import AssetCache
from .client import BlockSource
from .config import RenderConfig
from .errors import AssetFetchError, NotionRenderError, PipelineError, error_message
from .models import AssetReference, Block, PageAttributes, RenderedPage, RenderResult
from .pipeline import PipelineOutput
from .toc import extract_headings
from .tree import TreeFetcher
from .utils import looks_like_image, rich_text_to_plain_text

logger = logging.getLogger("notion_render.page")

TransformPipeline = Callable[
    [Sequence[Block]], Union[PipelineOutput, Awaitable[PipelineOutput]]
]


class PageLoggerAdapter(logging.LoggerAdapter):
    """Prefixes every message with the page it concerns."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> Tuple[Any, MutableMapping[str, Any]]:
        return f"[{self.extra['label']}] {msg}", kwargs


def page_title(properties: Dict[str, Any]) -> Optional[str]:
    """Return the plain text of the page's title property, if any."""
    for prop in properties.values():
        if isinstance(prop, dict) and prop.get("type") == "title":
            return rich_text_to_plain_text(prop.get("title") or [])
    return None


async def run_pipeline(
    pipeline: TransformPipeline, blocks: Sequence[Block]
) -> PipelineOutput:
    """Call a sync or async pipeline and check what it handed back."""
    try:
        output = pipeline(blocks)
        if inspect.isawaitable(output):
            output = await output
    except NotionRenderError:
        raise
    except Exception as exc:  # noqa: BLE001 - pipelines are injected code
        raise PipelineError(f"Transformation pipeline failed: {exc}") from exc

    if getattr(output, "html", None) is None or getattr(output, "outline", None) is None:
        raise PipelineError(
            f"Pipeline returned {type(output).__name__} without html and outline"
        )
    return output


class NotionPageRenderer:
    """Renders one page: attributes, asset rewriting and the HTML body."""

    def __init__(
        self,
        source: BlockSource,
        page: Dict[str, Any],
        cache: AssetCache,
        config: Optional[RenderConfig] = None,
    ) -> None:
        self.source = source
        self.page = page
        self.cache = cache
        self.config = config or cache.config
        self.image_paths: List[str] = []

        title = page_title(page.get("properties") or {})
        self.logger = PageLoggerAdapter(
            logger, {"label": f"page {page.get('id')} (Name {title or 'unknown'})"}
        )
        if title is None:
            self.logger.warning("Failed to read the title property")

    def get_attributes(self) -> PageAttributes:
        """Project page-level fields; remote asset references are left as-is."""
        page = self.page
        return PageAttributes(
            id=page["id"],
            icon=page.get("icon"),
            cover=page.get("cover"),
            archived=bool(page.get("archived")),
            in_trash=bool(page.get("in_trash")),
            url=page.get("url"),
            public_url=page.get("public_url"),
            properties=page.get("properties") or {},
        )

    async def resolve_asset_attributes(
        self, attributes: PageAttributes
    ) -> PageAttributes:
        """Return a copy of ``attributes`` with the hosted cover and image files cached.

        Entries of ``files`` properties are cached whether hosted or external,
        provided their URL path looks like an image; the cover only when hosted.

        Failures are logged per asset and leave that reference untouched.
        """
        resolved = copy.deepcopy(attributes)

        cover = resolved.cover
        if cover and cover.get("type") == "file":
            try:
                cover["file"]["url"] = await self.cache.resolve(
                    AssetReference.from_payload(cover)
                )
            except AssetFetchError as exc:
                self.logger.error("Failed to process cover image: %s", exc)

        for key, prop in resolved.properties.items():
            if not isinstance(prop, dict) or prop.get("type") != "files":
                continue
            for entry in prop.get("files") or []:
                ref = AssetReference.from_payload(entry)
                if not ref.url or not looks_like_image(ref.url):
                    continue
                try:
                    entry[ref.kind]["url"] = await self.cache.resolve(ref)
                except AssetFetchError as exc:
                    self.logger.error(
                        "Failed to process file in property %s: %s", key, exc
                    )
        return resolved

    async def _fetch_asset(self, ref: AssetReference) -> str:
        try:
            local_path = await self.cache.resolve(ref)
        except AssetFetchError as exc:
            self.logger.error("Failed to fetch asset when rendering page: %s", exc)
            raise
        if local_path not in self.image_paths:
            self.image_paths.append(local_path)
        return local_path

    async def render(self, pipeline: TransformPipeline) -> RenderResult:
        """Render the page body; any failure yields an error and no output."""
        self.logger.debug("Rendering")
        self.image_paths = []
        fetcher = TreeFetcher(
            self.source,
            self._fetch_asset,
            max_depth=self.config.max_depth,
            fallback_to_remote=self.config.fallback_images_to_remote,
        )
        try:
            blocks = await fetcher.collect(self.page["id"])
            output = await run_pipeline(pipeline, blocks)
            headings = extract_headings(output.outline)
        except NotionRenderError as exc:
            self.logger.error("Failed to render: %s", error_message(exc))
            return RenderResult(error=error_message(exc))
        except Exception as exc:  # noqa: BLE001 - nothing raw crosses this boundary
            self.logger.exception("Unexpected error while rendering")
            return RenderResult(error=error_message(exc))

        self.logger.debug("Rendered")
        return RenderResult(
            page=RenderedPage(
                html=output.html,
                headings=headings,
                image_paths=list(self.image_paths),
            )
        )
