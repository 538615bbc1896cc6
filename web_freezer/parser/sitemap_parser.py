# File: web_freezer/parser/sitemap_parser.py
"""web_freezer.parser.sitemap_parser: Модуль для парсинга sitemap.xml и извлечения URL."""

from __future__ import annotations

import gzip
import zlib
from dataclasses import dataclass, field
from typing import List, Literal, Optional, Union

from lxml import etree

from web_freezer.logger import get_logger

logger = get_logger("sitemap")

_GZIP_MAGIC = b"\x1f\x8b"


@dataclass(slots=True)
class SitemapDocument:
    """Разобранный sitemap: тип корня и список <loc>."""

    kind: Literal["urlset", "sitemapindex"]
    locations: List[str] = field(default_factory=list)


def _local_name(tag: object) -> str:
    if not isinstance(tag, str):
        return ""
    return etree.QName(tag).localname.lower()


def _decompress(content: bytes) -> Optional[bytes]:
    if not content.startswith(_GZIP_MAGIC):
        return content
    try:
        return gzip.decompress(content)
    except (OSError, EOFError, zlib.error) as exc:
        logger.debug("Не удалось распаковать sitemap.xml.gz: %s", exc)
        return None


def parse_sitemap(content: Union[str, bytes]) -> Optional[SitemapDocument]:
    """Разбирает sitemap (urlset или sitemapindex), в том числе gzip.

    Args:
        content: тело ответа sitemap.xml / sitemap_index.xml / sitemap.xml.gz.

    Returns:
        SitemapDocument или None, если документ не является sitemap.

    Пример:
    ```python
    from web_freezer.parser.sitemap_parser import parse_sitemap

    with open('sitemap.xml', 'rb') as f:
        doc = parse_sitemap(f.read())
    print(doc.kind, doc.locations)
    ```
    """
    raw = content.encode("utf-8") if isinstance(content, str) else _decompress(content)
    if not raw or not raw.strip():
        return None

    parser = etree.XMLParser(ns_clean=True, recover=True, resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(raw, parser=parser)
    except etree.XMLSyntaxError as exc:
        logger.debug("Sitemap не разобран: %s", exc)
        return None
    if root is None:
        return None

    kind = _local_name(root.tag)
    if kind == "urlset":
        entries = root.findall("{*}url/{*}loc")
    elif kind == "sitemapindex":
        entries = root.findall("{*}sitemap/{*}loc")
    else:
        return None
    locations = [loc.text.strip() for loc in entries if loc.text and loc.text.strip()]
    return SitemapDocument(kind=kind, locations=locations)  # type: ignore[arg-type]
