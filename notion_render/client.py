"""Thin client for the Notion REST API and pagination helpers."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Dict, Optional, Protocol

import requests

from .config import RenderConfig
from .errors import TransientAPIError

logger = logging.getLogger("notion_render")


class BlockSource(Protocol):
    """Anything able to list one page of a block's children."""

    async def list_block_children(
        self, block_id: str, start_cursor: Optional[str] = None
    ) -> Dict[str, Any]:
        ...


def is_full_block(record: Dict[str, Any]) -> bool:
    """Partial records only carry ``object`` and ``id``."""
    return record.get("object") == "block" and "type" in record


async def iterate_children(
    source: BlockSource, block_id: str
) -> AsyncIterator[Dict[str, Any]]:
    """Yield every child record of ``block_id`` across all result pages."""
    cursor: Optional[str] = None
    while True:
        response = await source.list_block_children(block_id, start_cursor=cursor)
        for record in response.get("results", []):
            yield record
        cursor = response.get("next_cursor")
        if not response.get("has_more") or not cursor:
            break


class NotionClient:
    """Blocking ``requests`` transport exposed through coroutine methods."""

    def __init__(
        self,
        token: str,
        config: RenderConfig,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Notion-Version": config.notion_version,
                "Content-Type": "application/json",
                "User-Agent": config.user_agent,
            }
        )

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.config.api_base_url.rstrip('/')}/{path.lstrip('/')}"
        try:
            resp = self._session.get(
                url, params=params, timeout=self.config.download_timeout
            )
        except requests.RequestException as exc:
            raise TransientAPIError(f"Request to {path} failed: {exc}") from exc

        if not resp.ok:
            raise TransientAPIError(
                f"Request to {path} failed: HTTP {resp.status_code}",
                status=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as exc:
            raise TransientAPIError(
                f"Request to {path} returned invalid JSON", status=resp.status_code
            ) from exc

    async def list_block_children(
        self, block_id: str, start_cursor: Optional[str] = None
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"page_size": self.config.page_size}
        if start_cursor:
            params["start_cursor"] = start_cursor
        logger.debug("Listing children of %s (cursor=%s)", block_id, start_cursor)
        return await asyncio.to_thread(
            self._get, f"blocks/{block_id}/children", params
        )

    async def retrieve_page(self, page_id: str) -> Dict[str, Any]:
        logger.debug("Retrieving page %s", page_id)
        return await asyncio.to_thread(self._get, f"pages/{page_id}")
