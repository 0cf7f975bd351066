"""Exception types raised while rendering Notion pages."""

from __future__ import annotations

from typing import Optional


class NotionRenderError(Exception):
    """Base class for all rendering failures."""


class AssetFetchError(NotionRenderError):
    """Raised when a single asset cannot be downloaded or stored."""

    def __init__(self, message: str, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url


class StructureError(NotionRenderError):
    """Raised when an outline or block tree has an unexpected shape."""


class PipelineError(NotionRenderError):
    """Raised when the HTML transformation pipeline fails."""


class TransientAPIError(NotionRenderError):
    """Raised when a call to the remote content API fails."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


def error_message(error: BaseException) -> str:
    """Downgrade any exception to a human readable message."""
    message = str(error)
    if message:
        return message
    return type(error).__name__
