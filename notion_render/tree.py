"""Recursive materialization of a page's block tree."""

from __future__ import annotations

import logging
from typing import AsyncIterator, List

from .blocks import AssetResolver, transform_block
from .client import BlockSource, is_full_block, iterate_children
from .errors import StructureError
from .models import Block

logger = logging.getLogger("notion_render")

DEFAULT_MAX_DEPTH = 32


class TreeFetcher:
    """Walks the remote block hierarchy depth-first, children before parents.

    Sibling subtrees are fetched one after another so output order always
    matches the order the API returned them in.
    """

    def __init__(
        self,
        source: BlockSource,
        resolve_asset: AssetResolver,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        fallback_to_remote: bool = False,
    ) -> None:
        self.source = source
        self.resolve_asset = resolve_asset
        self.max_depth = max_depth
        self.fallback_to_remote = fallback_to_remote

    def materialize(self, root_id: str) -> AsyncIterator[Block]:
        """Start a fresh traversal under ``root_id``."""
        return self._walk(root_id, 0)

    async def collect(self, root_id: str) -> List[Block]:
        return [block async for block in self.materialize(root_id)]

    async def _walk(self, parent_id: str, depth: int) -> AsyncIterator[Block]:
        if depth > self.max_depth:
            raise StructureError(
                f"Block {parent_id} is nested deeper than {self.max_depth} levels"
            )
        async for record in iterate_children(self.source, parent_id):
            if not is_full_block(record):
                logger.debug("Skipping partial block %s", record.get("id"))
                continue

            children: List[Block] = []
            if record.get("has_children"):
                children = [
                    child async for child in self._walk(record["id"], depth + 1)
                ]

            block = Block.from_record(record, children=tuple(children))
            yield await transform_block(
                block,
                self.resolve_asset,
                fallback_to_remote=self.fallback_to_remote,
            )
