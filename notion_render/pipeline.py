"""Default transformation pipeline: blocks to HTML plus a heading outline."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from bs4 import BeautifulSoup, NavigableString, Tag

from .errors import NotionRenderError, PipelineError
from .models import AssetReference, Block
from .utils import looks_like_image, rich_text_to_plain_text, slugify

logger = logging.getLogger("notion_render")

Extension = Callable[[BeautifulSoup], Optional[BeautifulSoup]]
Record = Dict[str, Any]

_LIST_ITEMS = {"bulleted_list_item": "ul", "numbered_list_item": "ol"}
_ANNOTATION_TAGS = (
    ("code", "code"),
    ("bold", "strong"),
    ("italic", "em"),
    ("strikethrough", "del"),
    ("underline", "u"),
)
_HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]


@dataclass
class PipelineOutput:
    """HTML produced by a pipeline and the outline it derived on the side."""

    html: str
    outline: Tag


class _BlockRenderer:
    """Builds HTML nodes for API-shaped block records."""

    def __init__(self, soup: BeautifulSoup) -> None:
        self.soup = soup

    def tag(self, name: str, *, classes: Optional[str] = None, **attrs: Any) -> Tag:
        node = self.soup.new_tag(name, attrs=attrs)
        if classes:
            node["class"] = classes.split()
        return node

    def render_blocks(self, parent: Tag, records: Iterable[Record]) -> None:
        list_tag: Optional[Tag] = None
        for record in records:
            block_type = record.get("type", "")
            list_name = _LIST_ITEMS.get(block_type)
            if list_name:
                if list_tag is None or list_tag.name != list_name:
                    list_tag = self.tag(list_name)
                    parent.append(list_tag)
                list_tag.append(self._list_item(record.get(block_type) or {}))
                continue
            list_tag = None
            node = self.render_block(record)
            if node is not None:
                parent.append(node)

    def render_block(self, record: Record) -> Optional[Tag]:
        block_type = record.get("type", "")
        handler = getattr(self, f"_render_{block_type}", None)
        if handler is None:
            logger.debug("No HTML rule for block type %s", block_type)
            return None
        return handler(record.get(block_type) or {})

    # Rich text

    def rich_text(self, parent: Tag, items: Optional[List[Record]]) -> Tag:
        for item in items or []:
            parent.append(self._rich_text_node(item))
        return parent

    def _rich_text_node(self, item: Record) -> Union[Tag, NavigableString]:
        if item.get("type") == "equation":
            node: Union[Tag, NavigableString] = self.tag(
                "span", classes="math math-inline"
            )
            node.string = (item.get("equation") or {}).get("expression", "")
        else:
            text = item.get("plain_text")
            if text is None:
                text = (item.get("text") or {}).get("content", "")
            node = NavigableString(text)

        annotations = item.get("annotations") or {}
        for flag, name in _ANNOTATION_TAGS:
            if annotations.get(flag):
                wrapper = self.tag(name)
                wrapper.append(node)
                node = wrapper
        color = annotations.get("color")
        if color and color != "default":
            wrapper = self.tag("span", classes=f"color-{color}")
            wrapper.append(node)
            node = wrapper
        if item.get("href"):
            wrapper = self.tag("a", href=item["href"])
            wrapper.append(node)
            node = wrapper
        return node

    def _with_children(self, node: Tag, payload: Record) -> Tag:
        self.render_blocks(node, payload.get("children") or [])
        return node

    def _figure(self, media: Tag, payload: Record) -> Tag:
        figure = self.tag("figure")
        figure.append(media)
        if payload.get("caption"):
            figure.append(self.rich_text(self.tag("figcaption"), payload["caption"]))
        return figure

    # Text blocks

    def _render_paragraph(self, payload: Record) -> Tag:
        paragraph = self.rich_text(self.tag("p"), payload.get("rich_text"))
        if not payload.get("children"):
            return paragraph
        wrapper = self.tag("div", classes="paragraph")
        wrapper.append(paragraph)
        return self._with_children(wrapper, payload)

    def _heading(self, level: int, payload: Record) -> Tag:
        heading = self.rich_text(self.tag(f"h{level}"), payload.get("rich_text"))
        if not payload.get("is_toggleable"):
            return heading
        details = self.tag("details")
        summary = self.tag("summary")
        summary.append(heading)
        details.append(summary)
        return self._with_children(details, payload)

    def _render_heading_1(self, payload: Record) -> Tag:
        return self._heading(1, payload)

    def _render_heading_2(self, payload: Record) -> Tag:
        return self._heading(2, payload)

    def _render_heading_3(self, payload: Record) -> Tag:
        return self._heading(3, payload)

    def _list_item(self, payload: Record) -> Tag:
        item = self.rich_text(self.tag("li"), payload.get("rich_text"))
        return self._with_children(item, payload)

    def _render_to_do(self, payload: Record) -> Tag:
        wrapper = self.tag("div", classes="to-do")
        checkbox = self.tag("input", type="checkbox", disabled="")
        if payload.get("checked"):
            checkbox["checked"] = ""
        wrapper.append(checkbox)
        wrapper.append(self.rich_text(self.tag("span"), payload.get("rich_text")))
        return self._with_children(wrapper, payload)

    def _render_toggle(self, payload: Record) -> Tag:
        details = self.tag("details")
        details.append(self.rich_text(self.tag("summary"), payload.get("rich_text")))
        return self._with_children(details, payload)

    def _render_quote(self, payload: Record) -> Tag:
        quote = self.rich_text(self.tag("blockquote"), payload.get("rich_text"))
        return self._with_children(quote, payload)

    def _render_callout(self, payload: Record) -> Tag:
        callout = self.tag("div", classes="callout")
        icon = payload.get("icon") or {}
        if icon.get("type") == "emoji":
            emoji = self.tag("span", classes="callout-icon")
            emoji.string = icon.get("emoji", "")
            callout.append(emoji)
        elif icon:
            ref = AssetReference.from_payload(icon)
            if ref.url:
                callout.append(self.tag("img", classes="callout-icon", src=ref.url, alt=""))
        content = self.rich_text(
            self.tag("div", classes="callout-content"), payload.get("rich_text")
        )
        callout.append(self._with_children(content, payload))
        return callout

    def _render_code(self, payload: Record) -> Tag:
        pre = self.tag("pre")
        language = payload.get("language") or "plain text"
        code = self.tag("code", classes=f"language-{slugify(language, fallback='text')}")
        code.string = rich_text_to_plain_text(payload.get("rich_text") or [])
        pre.append(code)
        return pre

    def _render_equation(self, payload: Record) -> Tag:
        math = self.tag("div", classes="math math-display")
        math.string = payload.get("expression", "")
        return math

    def _render_divider(self, payload: Record) -> Tag:
        return self.tag("hr")

    # Media blocks

    def _render_image(self, payload: Record) -> Optional[Tag]:
        ref = AssetReference.from_payload(payload)
        if not ref.url:
            return None
        alt = rich_text_to_plain_text(payload.get("caption") or [])
        return self._figure(self.tag("img", src=ref.url, alt=alt), payload)

    def _render_video(self, payload: Record) -> Optional[Tag]:
        ref = AssetReference.from_payload(payload)
        if not ref.url:
            return None
        return self._figure(self.tag("video", src=ref.url, controls=""), payload)

    def _render_pdf(self, payload: Record) -> Optional[Tag]:
        ref = AssetReference.from_payload(payload)
        if not ref.url:
            return None
        pdf = self.tag("object", data=ref.url, type="application/pdf")
        link = self.tag("a", href=ref.url)
        link.string = ref.url
        pdf.append(link)
        return self._figure(pdf, payload)

    def _render_file(self, payload: Record) -> Optional[Tag]:
        ref = AssetReference.from_payload(payload)
        if not ref.url:
            return None
        if looks_like_image(ref.url):
            return self._render_image(payload)
        link = self.tag("a", classes="file", href=ref.url)
        link.string = payload.get("name") or ref.url.rsplit("/", 1)[-1].split("?")[0]
        return self._figure(link, payload)

    def _render_bookmark(self, payload: Record) -> Optional[Tag]:
        url = payload.get("url")
        if not url:
            return None
        link = self.tag("a", classes="bookmark", href=url)
        link.string = url
        return self._figure(link, payload)

    def _render_link_preview(self, payload: Record) -> Optional[Tag]:
        return self._render_bookmark(payload)

    def _render_embed(self, payload: Record) -> Optional[Tag]:
        url = payload.get("url")
        if not url:
            return None
        return self._figure(self.tag("iframe", src=url), payload)

    # Layout blocks

    def _render_table(self, payload: Record) -> Tag:
        table = self.tag("table")
        body = self.tag("tbody")
        table.append(body)
        rows = payload.get("children") or []
        for index, row in enumerate(rows):
            header_row = index == 0 and payload.get("has_column_header")
            tr = self.tag("tr")
            cells = (row.get("table_row") or {}).get("cells") or []
            for column, cell in enumerate(cells):
                header = header_row or (column == 0 and payload.get("has_row_header"))
                tr.append(self.rich_text(self.tag("th" if header else "td"), cell))
            body.append(tr)
        return table

    def _render_column_list(self, payload: Record) -> Tag:
        return self._with_children(self.tag("div", classes="column-list"), payload)

    def _render_column(self, payload: Record) -> Tag:
        return self._with_children(self.tag("div", classes="column"), payload)

    def _render_synced_block(self, payload: Record) -> Tag:
        return self._with_children(self.tag("div", classes="synced-block"), payload)

    def _render_child_page(self, payload: Record) -> Tag:
        paragraph = self.tag("p", classes="child-page")
        paragraph.string = payload.get("title", "")
        return paragraph


def assign_heading_slugs(soup: BeautifulSoup) -> None:
    """Give every heading a unique ``id`` derived from its text."""
    seen: Dict[str, int] = {}
    for heading in soup.find_all(_HEADING_TAGS):
        if heading.get("id"):
            seen.setdefault(heading["id"], 0)
            continue
        base = slugify(heading.get_text())
        slug = base
        while slug in seen:
            seen[base] += 1
            slug = f"{base}-{seen[base]}"
        heading["id"] = slug
        seen.setdefault(slug, 0)


def build_outline(soup: BeautifulSoup, levels: Sequence[int] = (1, 2, 3)) -> Tag:
    """Nest the document's headings into ``<nav><ol><li><a>`` form."""
    outline_soup = BeautifulSoup("", "html.parser")
    nav = outline_soup.new_tag("nav", attrs={"class": "toc"})
    root = outline_soup.new_tag("ol", attrs={"class": "toc-level toc-level-1"})
    nav.append(root)

    wanted = [f"h{level}" for level in levels]
    stack: List[Tuple[int, Tag]] = []
    for heading in soup.find_all(wanted):
        text = heading.get_text().strip()
        if not text:
            continue
        level = int(heading.name[1])
        while stack and stack[-1][0] >= level:
            stack.pop()
        if stack:
            parent_item = stack[-1][1]
            container = parent_item.find("ol", recursive=False)
            if container is None:
                container = outline_soup.new_tag(
                    "ol",
                    attrs={"class": f"toc-level toc-level-{len(stack) + 1}"},
                )
                parent_item.append(container)
        else:
            container = root

        item = outline_soup.new_tag("li", attrs={"class": "toc-item"})
        link = outline_soup.new_tag("a", attrs={"href": f"#{heading.get('id', '')}"})
        link.string = text
        item.append(link)
        container.append(item)
        stack.append((level, item))
    return nav


class HtmlPipeline:
    """Turns materialized blocks into HTML and a table-of-contents outline.

    ``extensions`` run in order after the outline is built; each receives the
    document soup and may return a replacement.
    """

    def __init__(
        self,
        extensions: Sequence[Extension] = (),
        *,
        toc_levels: Sequence[int] = (1, 2, 3),
        include_toc: bool = False,
    ) -> None:
        self.extensions = list(extensions)
        self.toc_levels = tuple(toc_levels)
        self.include_toc = include_toc

    def __call__(self, blocks: Sequence[Union[Block, Record]]) -> PipelineOutput:
        return self.process(blocks)

    def process(self, blocks: Sequence[Union[Block, Record]]) -> PipelineOutput:
        records = [
            block.to_record() if isinstance(block, Block) else block
            for block in blocks
        ]
        try:
            soup = BeautifulSoup("", "html.parser")
            _BlockRenderer(soup).render_blocks(soup, records)
            assign_heading_slugs(soup)
            outline = build_outline(soup, self.toc_levels)
            if self.include_toc:
                soup.insert(0, copy.copy(outline))
            for extension in self.extensions:
                result = extension(soup)
                if result is not None:
                    soup = result
            html = soup.decode()
        except NotionRenderError:
            raise
        except Exception as exc:  # noqa: BLE001 - extensions are arbitrary code
            raise PipelineError(f"Failed to transform blocks: {exc}") from exc
        return PipelineOutput(html=html, outline=outline)
