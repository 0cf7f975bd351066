"""Flatten a rendered table-of-contents outline into headings."""

from __future__ import annotations

from typing import List, Optional

from bs4 import NavigableString, Tag

from .errors import StructureError
from .models import Heading

_LIST_TAGS = ["ol", "ul"]


def _first_text(link: Tag) -> Optional[str]:
    for child in link.children:
        if isinstance(child, NavigableString) and child.strip():
            return str(child)
    return None


def _flatten(list_tag: Tag, depth: int) -> List[Heading]:
    headings: List[Heading] = []
    for item in list_tag.find_all("li", recursive=False):
        elements = item.find_all(True, recursive=False)
        if not elements or elements[0].name != "a":
            raise StructureError(f"Outline item at depth {depth} has no link")
        link = elements[0]
        text = _first_text(link)
        if text is None:
            raise StructureError(f"Outline link at depth {depth} has no text")
        href = link.get("href") or ""
        headings.append(
            Heading(
                depth=depth,
                text=text,
                slug=href[1:] if href.startswith("#") else href,
            )
        )
        if len(elements) > 1 and elements[1].name in _LIST_TAGS:
            headings.extend(_flatten(elements[1], depth + 1))
    return headings


def extract_headings(outline: Tag) -> List[Heading]:
    """Return the outline's headings in document (pre-order) order."""
    if not isinstance(outline, Tag) or outline.name != "nav":
        name = getattr(outline, "name", type(outline).__name__)
        raise StructureError(f"Expected nav, got {name}")
    root = outline.find(_LIST_TAGS, recursive=False)
    if root is None:
        return []
    return _flatten(root, 0)
