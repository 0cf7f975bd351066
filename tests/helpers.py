"""Fakes shared by the test modules."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Union

import requests

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\rIHDR" + b"\x00" * 64


class FakeResponse:
    def __init__(
        self,
        status_code: int = 200,
        chunks: Iterable[Union[bytes, Exception]] = (PNG_BYTES,),
        json_data: Any = None,
    ) -> None:
        self.status_code = status_code
        self._chunks = list(chunks)
        self._json = json_data

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def raise_for_status(self) -> None:
        if not self.ok:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)

    def iter_content(self, chunk_size: int = 1):
        for chunk in self._chunks:
            if isinstance(chunk, Exception):
                raise chunk
            yield chunk

    def json(self) -> Any:
        if self._json is None:
            raise ValueError("No JSON object could be decoded")
        return self._json

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        return None


class FakeSession:
    """Stands in for ``requests.Session``; maps URLs to responses or errors."""

    def __init__(self, routes: Optional[Dict[str, Any]] = None) -> None:
        self.routes = dict(routes or {})
        self.calls: List[Dict[str, Any]] = []
        self.headers: Dict[str, str] = {}
        self.max_redirects = 30

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"url": url, **kwargs})
        outcome = self.routes.get(url, FakeResponse())
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def urls(self) -> List[str]:
        return [call["url"] for call in self.calls]


class FakeSource:
    """Block source returning pre-split pages of child records per parent."""

    def __init__(self, pages: Dict[str, List[List[Dict[str, Any]]]]) -> None:
        self.pages = pages
        self.calls: List[tuple] = []

    async def list_block_children(
        self, block_id: str, start_cursor: Optional[str] = None
    ) -> Dict[str, Any]:
        self.calls.append((block_id, start_cursor))
        pages = self.pages.get(block_id, [[]])
        index = int(start_cursor) if start_cursor else 0
        has_more = index + 1 < len(pages)
        return {
            "object": "list",
            "results": pages[index],
            "has_more": has_more,
            "next_cursor": str(index + 1) if has_more else None,
        }


def block(
    block_id: str,
    block_type: str = "paragraph",
    payload: Optional[Dict[str, Any]] = None,
    has_children: bool = False,
) -> Dict[str, Any]:
    if payload is None:
        payload = {"rich_text": [text(block_id)]}
    return {
        "object": "block",
        "id": block_id,
        "type": block_type,
        "has_children": has_children,
        block_type: payload,
    }


def partial(block_id: str) -> Dict[str, Any]:
    return {"object": "block", "id": block_id}


def text(content: str, **annotations: Any) -> Dict[str, Any]:
    return {
        "type": "text",
        "text": {"content": content, "link": None},
        "plain_text": content,
        "annotations": annotations,
        "href": None,
    }


def hosted(url: str, caption: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    return {
        "type": "file",
        "file": {"url": url, "expiry_time": "2026-10-19T12:00:00.000Z"},
        "caption": caption or [],
    }


def external(url: str, caption: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    return {"type": "external", "external": {"url": url}, "caption": caption or []}


def heading(block_id: str, level: int, content: str) -> Dict[str, Any]:
    return block(block_id, f"heading_{level}", {"rich_text": [text(content)]})
