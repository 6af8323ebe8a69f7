"""Helpers for parsing HTML content."""

from __future__ import annotations

from bs4 import BeautifulSoup


def extract_title(body: bytes | str, *, parser: str = "html.parser") -> str:
    """Return the stripped ``<title>`` text of a document, or ``""``."""
    soup = BeautifulSoup(body, parser)
    if soup.title and soup.title.string:
        return soup.title.string.strip()
    return ""


def looks_like_html(content_type: str | None) -> bool:
    if not content_type:
        return False
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type in {"text/html", "application/xhtml+xml"}
