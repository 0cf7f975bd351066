"""Data models used throughout the rendering pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

HOSTED = "file"
EXTERNAL = "external"


class BlockType(Enum):
    """Block variants with dedicated handling somewhere in the pipeline."""

    PARAGRAPH = "paragraph"
    HEADING_1 = "heading_1"
    HEADING_2 = "heading_2"
    HEADING_3 = "heading_3"
    BULLETED_LIST_ITEM = "bulleted_list_item"
    NUMBERED_LIST_ITEM = "numbered_list_item"
    TO_DO = "to_do"
    TOGGLE = "toggle"
    CODE = "code"
    QUOTE = "quote"
    CALLOUT = "callout"
    EQUATION = "equation"
    DIVIDER = "divider"
    IMAGE = "image"
    VIDEO = "video"
    FILE = "file"
    PDF = "pdf"
    BOOKMARK = "bookmark"
    EMBED = "embed"
    LINK_PREVIEW = "link_preview"
    TABLE = "table"
    TABLE_ROW = "table_row"
    COLUMN_LIST = "column_list"
    COLUMN = "column"
    CHILD_PAGE = "child_page"
    SYNCED_BLOCK = "synced_block"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> "BlockType":
        """Map a remote type tag onto a known variant, or UNKNOWN."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class AssetReference:
    """Pointer to binary content, either hosted by the API or external."""

    kind: str
    url: Optional[str]
    expiry_time: Optional[str] = None

    @property
    def hosted(self) -> bool:
        return self.kind == HOSTED

    @classmethod
    def from_payload(cls, payload: Optional[Dict[str, Any]]) -> "AssetReference":
        """Build a reference from a file object such as ``{"type": "file", "file": {...}}``.

        Accepts the normalized form where the URL is stored directly as a string.
        """
        if not payload:
            return cls(kind="", url=None)
        kind = payload.get("type") or ""
        inner = payload.get(kind)
        if isinstance(inner, str):
            return cls(kind=kind, url=inner or None)
        if isinstance(inner, dict):
            return cls(
                kind=kind,
                url=inner.get("url") or None,
                expiry_time=inner.get("expiry_time"),
            )
        return cls(kind=kind, url=None)


@dataclass(frozen=True)
class Block:
    """One materialized content block with its ordered children."""

    id: str
    type: str
    has_children: bool
    payload: Dict[str, Any]
    record: Dict[str, Any] = field(default_factory=dict, repr=False)
    children: Tuple["Block", ...] = ()

    @property
    def kind(self) -> BlockType:
        return BlockType.parse(self.type)

    @classmethod
    def from_record(
        cls, record: Dict[str, Any], children: Tuple["Block", ...] = ()
    ) -> "Block":
        block_type = record["type"]
        payload = record.get(block_type)
        return cls(
            id=record["id"],
            type=block_type,
            has_children=bool(record.get("has_children")),
            payload=dict(payload) if isinstance(payload, dict) else {},
            record=record,
            children=tuple(children),
        )

    def with_payload(self, payload: Dict[str, Any]) -> "Block":
        return replace(self, payload=payload)

    def to_record(self) -> Dict[str, Any]:
        """Return the API-shaped record with children nested in the payload."""
        payload = dict(self.payload)
        if self.has_children:
            payload["children"] = [child.to_record() for child in self.children]
        record = dict(self.record)
        record.update(
            {
                "id": self.id,
                "type": self.type,
                "has_children": self.has_children,
                self.type: payload,
            }
        )
        return record


@dataclass(frozen=True)
class CachedAsset:
    """Downloaded asset stored under its content key."""

    key: str
    source_url: str
    filename: str
    path: Path
    public_path: str
    mime: Optional[str] = None


@dataclass(frozen=True)
class Heading:
    """Flattened table-of-contents entry."""

    depth: int
    text: str
    slug: str


@dataclass
class PageAttributes:
    """Page-level fields exposed alongside the rendered body."""

    id: str
    icon: Optional[Dict[str, Any]]
    cover: Optional[Dict[str, Any]]
    archived: bool
    in_trash: bool
    url: Optional[str]
    public_url: Optional[str]
    properties: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RenderedPage:
    """Rendered HTML plus the metadata collected while rendering."""

    html: str
    headings: List[Heading]
    image_paths: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RenderResult:
    """Outcome of a render: either a page or an error message, never both."""

    page: Optional[RenderedPage] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.page is not None
