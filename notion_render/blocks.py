"""Per-block rewrite rules that swap remote asset references for local ones."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict

from .errors import AssetFetchError
from .models import HOSTED, AssetReference, Block, BlockType
from .utils import looks_like_image

logger = logging.getLogger("notion_render")

AssetResolver = Callable[[AssetReference], Awaitable[str]]
_Transform = Callable[..., Awaitable[Block]]


def _normalized(kind: str, url: str, caption: Any) -> Dict[str, Any]:
    """Asset payload with the URL stored directly under its kind."""
    return {"type": kind, kind: url, "caption": caption or []}


async def _transform_image(
    block: Block, resolve_asset: AssetResolver, fallback_to_remote: bool
) -> Block:
    ref = AssetReference.from_payload(block.payload)
    try:
        local_path = await resolve_asset(ref)
    except AssetFetchError:
        if not fallback_to_remote or not ref.url:
            raise
        logger.warning("Using remote URL for image block %s", block.id)
        local_path = ref.url
    return block.with_payload(
        _normalized(ref.kind, local_path, block.payload.get("caption"))
    )


async def _transform_file(
    block: Block, resolve_asset: AssetResolver, fallback_to_remote: bool
) -> Block:
    ref = AssetReference.from_payload(block.payload)
    if not ref.url or not looks_like_image(ref.url):
        return block
    try:
        local_path = await resolve_asset(ref)
    except AssetFetchError as exc:
        logger.warning("Keeping original file block %s: %s", block.id, exc)
        return block
    payload = _normalized(ref.kind, local_path, block.payload.get("caption"))
    if block.payload.get("name"):
        payload["name"] = block.payload["name"]
    return block.with_payload(payload)


async def _transform_embedded_media(
    block: Block, resolve_asset: AssetResolver, fallback_to_remote: bool
) -> Block:
    ref = AssetReference.from_payload(block.payload)
    if not ref.url:
        return block
    return block.with_payload(
        _normalized(ref.kind, ref.url, block.payload.get("caption"))
    )


async def _transform_callout(
    block: Block, resolve_asset: AssetResolver, fallback_to_remote: bool
) -> Block:
    icon = block.payload.get("icon") or {}
    if icon.get("type") != HOSTED:
        return block
    try:
        local_path = await resolve_asset(AssetReference.from_payload(icon))
    except AssetFetchError as exc:
        logger.warning("Keeping original callout icon on %s: %s", block.id, exc)
        return block
    payload = dict(block.payload)
    payload["icon"] = {"type": HOSTED, HOSTED: {"url": local_path}}
    return block.with_payload(payload)


_TRANSFORMS: Dict[BlockType, _Transform] = {
    BlockType.IMAGE: _transform_image,
    BlockType.FILE: _transform_file,
    BlockType.VIDEO: _transform_embedded_media,
    BlockType.PDF: _transform_embedded_media,
    BlockType.CALLOUT: _transform_callout,
}


async def transform_block(
    block: Block,
    resolve_asset: AssetResolver,
    *,
    fallback_to_remote: bool = False,
) -> Block:
    """Return ``block`` with its asset references rewritten.

    Image blocks propagate ``AssetFetchError`` unless ``fallback_to_remote``
    is set. File blocks and callout icons keep the original block on failure.
    Types without a rule, including unrecognized ones, pass through.
    """
    transform = _TRANSFORMS.get(block.kind)
    if transform is None:
        return block
    return await transform(block, resolve_asset, fallback_to_remote)
