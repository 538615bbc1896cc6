# web_freezer/crawler/models.py
"""
Data models shared by the crawler, parsers and archive builder.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from web_freezer.utils import get_extension

Stage = Literal["discovering", "downloading_pages", "downloading_assets", "packaging"]
DiscoveryMethod = Literal["sitemap", "link_discovery"]
JobState = Literal["pending", "crawling", "completed", "failed"]


class AssetKind(str, Enum):
    """Coarse resource category derived from the file extension."""

    CSS = "css"
    JS = "js"
    IMAGE = "image"
    FONT = "font"
    OTHER = "other"

    @classmethod
    def from_url(cls, url: str) -> "AssetKind":
        return _KIND_BY_EXTENSION.get(get_extension(url), cls.OTHER)


_KIND_BY_EXTENSION: Dict[str, AssetKind] = {
    ".css": AssetKind.CSS,
    ".js": AssetKind.JS,
    ".mjs": AssetKind.JS,
    **{
        ext: AssetKind.IMAGE
        for ext in (".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp", ".avif", ".ico", ".bmp")
    },
    **{ext: AssetKind.FONT for ext in (".woff", ".woff2", ".ttf", ".otf", ".eot")},
}


@dataclass(slots=True, frozen=True)
class Reference:
    """A URL extracted from HTML or CSS, resolved to absolute form."""

    url: str
    kind: AssetKind
    navigational: bool = False


@dataclass(slots=True)
class FetchResult:
    """Fully read HTTP response returned by the safe fetcher."""

    url: str
    status: int
    content_type: str
    body: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def is_html(self) -> bool:
        return "text/html" in self.content_type.lower()


@dataclass(slots=True)
class CrawledFile:
    """One archive entry; only the rewrite phase replaces ``content``."""

    path: str
    content: bytes
    content_type: str
    url: str = ""

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def is_html(self) -> bool:
        return "text/html" in self.content_type.lower()

    @property
    def is_css(self) -> bool:
        return "text/css" in self.content_type.lower() or self.path.lower().endswith(".css")


@dataclass(slots=True, frozen=True)
class FrontierEntry:
    url: str
    depth: int = 0


@dataclass(slots=True)
class ResourceBudget:
    """Per-job byte and file accounting.

    Counters only grow. Once a body would cross ``max_total_bytes`` the budget
    is exhausted and nothing else may be retained.
    """

    max_file_bytes: int
    max_total_bytes: int
    total_bytes: int = 0
    file_count: int = 0
    discarded_bytes: int = 0
    exhausted: bool = False

    def admit(self, size: int) -> bool:
        """Account for a downloaded body of *size* bytes; True if it may be kept."""
        if self.exhausted:
            self.discarded_bytes += size
            return False
        if size > self.max_file_bytes:
            self.discarded_bytes += size
            return False
        if self.total_bytes + size > self.max_total_bytes:
            self.discarded_bytes += size
            self.exhausted = True
            return False
        self.total_bytes += size
        self.file_count += 1
        return True

    @property
    def total_reached(self) -> bool:
        return self.exhausted or self.total_bytes >= self.max_total_bytes


class CrawlProgress(BaseModel):
    """Progress snapshot pushed to the status side-channel."""

    stage: Stage
    pages_discovered: int = 0
    pages_downloaded: int = 0
    assets_downloaded: int = 0
    total_assets: int = 0
    percentage: int = Field(0, ge=0, le=100)


class JobStatus(BaseModel):
    """Job status record in the shape expected by the status store."""

    status: JobState
    url: str
    progress: int = Field(0, ge=0, le=100)
    pages_crawled: int = 0
    total_pages: int = 0
    created_at: float
    error: Optional[str] = None


@dataclass(slots=True)
class CrawlResult:
    """Everything the orchestrator produced for one job."""

    files: List[CrawledFile] = field(default_factory=list)
    asset_map: Dict[str, str] = field(default_factory=dict)
    method: DiscoveryMethod = "link_discovery"
    pages_discovered: int = 0

    @property
    def page_count(self) -> int:
        return sum(1 for f in self.files if f.is_html)

    @property
    def asset_count(self) -> int:
        return len(self.files) - self.page_count

    @property
    def total_bytes(self) -> int:
        return sum(f.size for f in self.files)
