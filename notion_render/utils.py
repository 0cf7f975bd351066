"""Utility helpers for string normalization and URL inspection."""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping
from urllib.parse import urlparse

SLUG_PATTERN = re.compile(r"[\W_]+")
IMAGE_PATH_PATTERN = re.compile(r"\.(jpe?g|png|gif|webp|svg|avif)$", re.IGNORECASE)


def slugify(value: str, fallback: str = "section") -> str:
    """Generate an anchor-friendly slug.

    Unicode letters and digits are kept (casefolded); every other run of
    characters collapses to a single hyphen.
    """
    normalized = SLUG_PATTERN.sub("-", value.casefold()).strip("-")
    return normalized or fallback


def rich_text_to_plain_text(items: Iterable[Mapping[str, Any]]) -> str:
    """Join the ``plain_text`` of a list of rich text items."""
    return "".join(item.get("plain_text", "") for item in items or ())


def looks_like_image(url: str) -> bool:
    """Return True when the URL path ends in a known image extension.

    Query strings (signed hosted URLs carry one) are ignored.
    """
    if not url:
        return False
    return bool(IMAGE_PATH_PATTERN.search(urlparse(url).path))
