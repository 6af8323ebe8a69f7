"""Utility exports."""

from .html import extract_title, looks_like_html
from .logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
    "extract_title",
    "looks_like_html",
]
