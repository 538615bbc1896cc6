# File: web_freezer/parser/filters.py
"""Extension lists and URL admission rules shared by the HTML and CSS extractors."""

from __future__ import annotations

from typing import Optional
from urllib.parse import urlsplit

from web_freezer.crawler.fetcher import is_private_host
from web_freezer.utils import get_extension, resolve_url

# Large media, archives and installers are never downloaded.
SKIP_EXTENSIONS = frozenset({
    ".mp4", ".webm", ".avi", ".mov", ".mkv",
    ".mp3", ".wav", ".ogg", ".flac",
    ".zip", ".tar", ".gz", ".rar", ".7z",
    ".exe", ".dmg", ".deb", ".rpm",
    ".iso", ".bin",
})

ASSET_EXTENSIONS = frozenset({
    ".css", ".js", ".mjs",
    ".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp", ".avif", ".ico", ".bmp",
    ".woff", ".woff2", ".ttf", ".eot", ".otf",
    ".json", ".xml", ".txt", ".webmanifest",
    ".map",
})


def is_skipped_url(url: str) -> bool:
    return get_extension(url) in SKIP_EXTENSIONS


def is_asset_url(url: str) -> bool:
    return get_extension(url) in ASSET_EXTENSIONS


def accept_asset_url(raw: str, base_url: str) -> Optional[str]:
    """Resolve *raw* and return it if it may be downloaded, else None."""
    if raw.strip().lower().startswith("data:"):
        return None
    absolute = resolve_url(raw, base_url)
    if absolute is None:
        return None
    if is_private_host(urlsplit(absolute).hostname) or is_skipped_url(absolute):
        return None
    return absolute
