"""Configuration objects and constants for the page renderer."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

DEFAULT_API_BASE_URL = "https://api.notion.com/v1"
DEFAULT_NOTION_VERSION = "2022-06-28"
DEFAULT_CACHE_DIR_NAME = "notion-images"
DEFAULT_USER_AGENT = "notion-render/0.1"
TOKEN_ENV_VAR = "NOTION_TOKEN"
OUTPUT_ENV_VAR = "NOTION_RENDER_OUTPUT"
DEFAULT_OUTPUT_DIR = "output"


@dataclass
class RenderConfig:
    """Top-level settings that control fetching, caching and rendering."""

    output_root: Path
    cache_dir_name: str = DEFAULT_CACHE_DIR_NAME
    download_timeout: float = 30.0
    max_redirects: int = 5
    max_depth: int = 32
    page_size: int = 100
    api_base_url: str = DEFAULT_API_BASE_URL
    notion_version: str = DEFAULT_NOTION_VERSION
    user_agent: str = DEFAULT_USER_AGENT
    fallback_images_to_remote: bool = False
    include_toc: bool = False

    @property
    def cache_dir(self) -> Path:
        """Directory holding downloaded assets."""
        return self.output_root / "public" / self.cache_dir_name


def resolve_token(explicit: Optional[str] = None) -> Optional[str]:
    """Return the API token from an explicit value or the environment."""
    if explicit:
        return explicit
    return os.getenv(TOKEN_ENV_VAR) or None


def resolve_output_root(explicit: Optional[Union[str, Path]] = None) -> Path:
    """Return the output root from an explicit value, the environment or the default."""
    value = explicit or os.getenv(OUTPUT_ENV_VAR) or DEFAULT_OUTPUT_DIR
    return Path(value).expanduser().resolve()
