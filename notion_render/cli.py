"""Command-line entry point for the Notion page renderer."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import time
from pathlib import Path
from typing import Iterable, List, Sequence

from .assets import AssetCache
from .client import NotionClient
from .config import (
    OUTPUT_ENV_VAR,
    TOKEN_ENV_VAR,
    RenderConfig,
    resolve_output_root,
    resolve_token,
)
from .errors import TransientAPIError
from .pipeline import HtmlPipeline
from .runner import fetch_attributes, run_renderer

logger = logging.getLogger("notion_render.cli")


def _ensure_command_prefix(argv: Sequence[str], commands: Iterable[str]) -> Sequence[str]:
    if not argv:
        return argv
    first = argv[0]
    if first in commands or first.startswith("-"):
        return argv
    return ("render", *argv)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("page_ids", nargs="+", help="One or more Notion page IDs")
    parser.add_argument(
        "--output",
        type=Path,
        help=(
            "Directory where HTML, metadata and cached assets should be written "
            f"(default: ${OUTPUT_ENV_VAR} or ./output)"
        ),
    )
    parser.add_argument(
        "--token",
        default=None,
        help=f"Notion integration token (defaults to ${TOKEN_ENV_VAR})",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="Per-request timeout in seconds for API calls and downloads",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def _add_render_arguments(parser: argparse.ArgumentParser) -> None:
    _add_common_arguments(parser)
    parser.add_argument(
        "--max-depth",
        type=int,
        default=32,
        help="Maximum block nesting depth to materialize",
    )
    parser.add_argument(
        "--fallback-remote-images",
        action="store_true",
        help="Keep the remote URL for images that fail to download instead of failing the page",
    )
    parser.add_argument(
        "--include-toc",
        action="store_true",
        help="Insert the table of contents at the top of the rendered HTML",
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Render Notion pages to HTML with locally cached images.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    render_parser = subparsers.add_parser(
        "render", help="Render pages to HTML and metadata JSON"
    )
    _add_render_arguments(render_parser)

    attributes_parser = subparsers.add_parser(
        "attributes", help="Print page attributes with cover and file images cached"
    )
    _add_common_arguments(attributes_parser)

    argv = list(sys.argv[1:] if argv is None else argv)
    argv = list(_ensure_command_prefix(argv, subparsers.choices.keys()))
    return parser.parse_args(argv)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def _build_config(args: argparse.Namespace) -> RenderConfig:
    return RenderConfig(
        output_root=resolve_output_root(args.output),
        download_timeout=args.timeout,
        max_depth=getattr(args, "max_depth", 32),
        fallback_images_to_remote=getattr(args, "fallback_remote_images", False),
        include_toc=getattr(args, "include_toc", False),
    )


def _run_render(args: argparse.Namespace, token: str) -> int:
    config = _build_config(args)
    client = NotionClient(token, config)
    pipeline = HtmlPipeline(include_toc=config.include_toc)

    overall_start = time.perf_counter()
    outputs = asyncio.run(run_renderer(args.page_ids, config, client, pipeline))
    total_elapsed = time.perf_counter() - overall_start

    successes = len(outputs)
    total_pages = len(args.page_ids)
    failures = total_pages - successes
    logger.info(
        "Finished in %.2fs (%d/%d succeeded, %d failed)",
        total_elapsed,
        successes,
        total_pages,
        failures,
    )
    for output in outputs:
        logger.debug(
            "Timing for %s -> total: %.2fs", output.page_id, output.total_seconds
        )
    return 1 if failures else 0


async def _collect_attributes(
    page_ids: List[str], client: NotionClient, cache: AssetCache
) -> List[dict]:
    results = []
    for page_id in page_ids:
        try:
            attributes = await fetch_attributes(client, cache, page_id)
        except TransientAPIError as exc:
            logger.error("Failed to retrieve page %s: %s", page_id, exc)
            continue
        results.append(attributes.to_dict())
    return results


def _run_attributes(args: argparse.Namespace, token: str) -> int:
    config = _build_config(args)
    client = NotionClient(token, config)
    cache = AssetCache(config)
    results = asyncio.run(_collect_attributes(args.page_ids, client, cache))
    json.dump(results, sys.stdout, indent=2, ensure_ascii=False, default=str)
    sys.stdout.write("\n")
    return 0 if len(results) == len(args.page_ids) else 1


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    _configure_logging(args.verbose)

    token = resolve_token(args.token)
    if not token:
        logger.error("No Notion token given; pass --token or set %s", TOKEN_ENV_VAR)
        raise SystemExit(2)

    if args.command == "render":
        status = _run_render(args, token)
    else:
        status = _run_attributes(args, token)
    raise SystemExit(status)


if __name__ == "__main__":
    main()
