# web_freezer/archive/paths.py
"""
Deterministic URL -> archive path mapping.

Pure functions, no network access. Same-origin URLs map onto their URL path,
cross-origin ones live under ``_external/{hostname}/``. :class:`PathMapper`
keeps the URL -> path table for one job; an entry, once assigned, never
changes.
"""
from __future__ import annotations

import mimetypes
import posixpath
import re
from typing import Dict, List, Optional
from urllib.parse import urlsplit

from web_freezer.utils import is_same_origin

EXTERNAL_ROOT = "_external"
INDEX_FILE = "index.html"

_UNSAFE_QUERY_RE = re.compile(r"[^A-Za-z0-9]")

# Preferred suffixes; mimetypes.guess_extension is ambiguous for some of these.
_EXTENSION_BY_TYPE: Dict[str, str] = {
    "text/html": ".html",
    "text/css": ".css",
    "text/javascript": ".js",
    "application/javascript": ".js",
    "application/json": ".json",
    "image/jpeg": ".jpg",
    "image/svg+xml": ".svg",
    "font/woff2": ".woff2",
    "font/woff": ".woff",
}


def _clean_segments(path: str) -> List[str]:
    return [seg for seg in path.split("/") if seg not in ("", ".", "..")]


def _has_extension(segment: str) -> bool:
    return "." in segment


def url_to_file_path(url: str) -> str:
    """Archive path for a same-origin URL.

    ``/`` -> ``index.html``, ``/docs/`` -> ``docs/index.html``,
    ``/about`` -> ``about/index.html``, ``/css/site.css`` -> ``css/site.css``.
    """
    path = urlsplit(url).path
    segments = _clean_segments(path)
    if not segments or path.endswith("/"):
        segments.append(INDEX_FILE)
    elif not _has_extension(segments[-1]):
        segments.append(INDEX_FILE)
    return "/".join(segments)


def _extension_for(content_type: Optional[str]) -> str:
    if not content_type:
        return ""
    mime = content_type.split(";", 1)[0].strip().lower()
    return _EXTENSION_BY_TYPE.get(mime) or mimetypes.guess_extension(mime) or ""


def external_url_to_file_path(url: str, content_type: Optional[str] = None) -> str:
    """Archive path for a cross-origin URL.

    The query string is folded into the filename so that variants such as
    ``css2?family=Roboto`` and ``css2?family=Inter`` do not collide.
    """
    parts = urlsplit(url)
    path = parts.path
    segments = _clean_segments(path)
    if not segments or path.endswith("/"):
        segments.append(INDEX_FILE)

    name = segments[-1]
    if parts.query:
        safe_query = _UNSAFE_QUERY_RE.sub("_", parts.query)
        stem, ext = posixpath.splitext(name)
        name = f"{stem}_{safe_query}{ext}" if ext else f"{name}_{safe_query}"
    if not _has_extension(name):
        name += _extension_for(content_type)
    segments[-1] = name

    host = (parts.hostname or "unknown").lower()
    return "/".join([EXTERNAL_ROOT, host, *segments])


def relative_prefix(current_file_path: str) -> str:
    """``./`` at the archive root, otherwise one ``../`` per directory level."""
    depth = current_file_path.lstrip("/").count("/")
    return "../" * depth if depth > 0 else "./"


class PathMapper:
    """Owns the URL -> archive path table of one crawl job."""

    def __init__(self, origin: str) -> None:
        self.origin = origin
        self.asset_map: Dict[str, str] = {}

    def path_for(self, url: str, content_type: Optional[str] = None) -> str:
        """Mapped path of *url*, computed without recording it."""
        if url in self.asset_map:
            return self.asset_map[url]
        if is_same_origin(url, self.origin):
            return url_to_file_path(url)
        return external_url_to_file_path(url, content_type)

    def assign(self, url: str, content_type: Optional[str] = None) -> str:
        """Record and return the path of *url*; the first assignment wins."""
        path = self.path_for(url, content_type)
        self.asset_map.setdefault(url, path)
        return self.asset_map[url]

    def __contains__(self, url: str) -> bool:
        return url in self.asset_map

    def __len__(self) -> int:
        return len(self.asset_map)
