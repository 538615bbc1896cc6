# web_freezer/archive/manifest.py

"""
Манифест архива WebFreezer (manifest.json в корне ZIP).

Описывает происхождение снимка сайта и его известные ограничения.
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field

from web_freezer.crawler.models import CrawledFile, DiscoveryMethod

LIMITATIONS: Sequence[str] = (
    "JavaScript-rendered content not captured",
    "Dynamic API calls will fail offline",
    "Authentication-protected pages not included",
    "Infinite scroll content may be incomplete",
)

MANIFEST_NAME = "manifest.json"


class Manifest(BaseModel):
    """Содержимое manifest.json."""

    domain: str
    crawled_at: str
    pages: int = Field(0, ge=0)
    assets: int = Field(0, ge=0)
    total_size_mb: float = Field(0.0, ge=0)
    crawl_method: DiscoveryMethod
    limitations: List[str] = Field(default_factory=lambda: list(LIMITATIONS))

    def to_json(self) -> str:
        return json.dumps(self.model_dump(), ensure_ascii=False, indent=2)


def build_manifest(
    domain: str,
    files: Sequence[CrawledFile],
    crawl_method: DiscoveryMethod,
    crawled_at: Optional[datetime] = None,
) -> Manifest:
    """
    Собирает манифест по итоговому списку файлов.

    :param domain: хост стартового URL
    :param files: файлы архива после перезаписи ссылок
    :param crawl_method: фактически использованный способ поиска страниц
    :param crawled_at: момент обхода (по умолчанию текущее время UTC)
    :return: Manifest
    """
    moment = crawled_at or datetime.now(timezone.utc)
    pages = sum(1 for f in files if f.is_html)
    total_bytes = sum(f.size for f in files)
    return Manifest(
        domain=domain,
        crawled_at=moment.isoformat().replace("+00:00", "Z"),
        pages=pages,
        assets=len(files) - pages,
        total_size_mb=round(total_bytes / (1024 * 1024), 2),
        crawl_method=crawl_method,
    )
