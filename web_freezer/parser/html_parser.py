# === FILE: web_freezer/parser/html_parser.py ===
"""HTML reference extraction for WebFreezer.

:func:`parse_html` turns page markup into a :class:`ParsedPage` holding two
ordered, deduplicated URL lists:

* pages  - same-origin navigational links worth crawling as HTML;
* assets - everything else the page needs offline (stylesheets, scripts,
  images, fonts, media posters, ``og:image`` style meta URLs, ...), same- or
  cross-origin.

Recognized reference forms are the ``href``/``src``/``action``/``poster``
attributes (only ``href`` of anchors and non-resource ``<link>`` counts as
navigation; a form ``action`` is a plain reference), ``srcset`` entries,
``url(...)`` inside ``style`` attributes and ``<style>`` blocks, and absolute
``<meta content="http...">`` values. The rewriter in
:mod:`web_freezer.archive.rewriter` handles the same set.
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

from bs4 import BeautifulSoup
from bs4.element import Tag

from web_freezer.crawler.models import AssetKind, Reference
from web_freezer.parser.css_parser import css_url_values
from web_freezer.parser.filters import accept_asset_url, is_asset_url
from web_freezer.utils import is_same_origin

__all__: Sequence[str] = (
    "URL_ATTRIBUTES",
    "ParsedPage",
    "extract_references",
    "parse_html",
    "split_srcset",
    "srcset_urls",
)

URL_ATTRIBUTES: Tuple[str, ...] = ("href", "src", "action", "poster")

# <link rel=...> values that point at a resource the page loads.
ASSET_LINK_RELS = frozenset({
    "stylesheet", "icon", "shortcut", "apple-touch-icon", "apple-touch-icon-precomposed",
    "mask-icon", "manifest", "preload", "prefetch", "modulepreload", "image_src",
})

_NAVIGATION_TAGS = frozenset({"a", "area"})


@dataclass(slots=True)
class ParsedPage:
    """References found on one HTML page."""

    url: str
    title: str = ""
    pages: List[str] = field(default_factory=list)
    assets: List[str] = field(default_factory=list)


def split_srcset(value: str) -> List[str]:
    """Split a ``srcset`` value into raw entries, keeping surrounding whitespace.

    A comma directly inside a ``data:`` URL (``data:image/png;base64,...``)
    does not start a new entry. ``",".join(split_srcset(v)) == v``.
    """
    entries: List[str] = []
    for piece in value.split(","):
        if entries:
            prev_tokens = entries[-1].split()
            continues_data_uri = (
                len(prev_tokens) == 1
                and prev_tokens[0].lower().startswith("data:")
                and piece[:1] not in ("", " ", "\t", "\n", "\r", "\f")
            )
            if continues_data_uri:
                entries[-1] = f"{entries[-1]},{piece}"
                continue
        entries.append(piece)
    return entries


def srcset_urls(value: str) -> List[str]:
    """First token of every ``srcset`` entry."""
    urls = []
    for entry in split_srcset(value):
        tokens = entry.split()
        if tokens:
            urls.append(tokens[0])
    return urls


def _attr_text(tag: Tag, name: str) -> str:
    value = tag.get(name)
    if isinstance(value, list):
        return " ".join(value)
    return value or ""


def _is_navigational(tag: Tag, attr: str) -> bool:
    if attr == "href" and tag.name in _NAVIGATION_TAGS:
        return True
    if attr == "href" and tag.name == "link":
        rels = {r.lower() for r in _attr_text(tag, "rel").split()}
        return not (rels & ASSET_LINK_RELS)
    return False


def _raw_references(soup: BeautifulSoup) -> Iterator[Tuple[str, bool]]:
    """Yield ``(raw_url, navigational)`` pairs in document order."""
    for tag in soup.find_all(True):
        if tag.name == "base":
            continue
        for attr in URL_ATTRIBUTES:
            raw = _attr_text(tag, attr)
            if raw:
                yield raw, _is_navigational(tag, attr)
        srcset = _attr_text(tag, "srcset")
        if srcset:
            for raw in srcset_urls(srcset):
                yield raw, False
        style = _attr_text(tag, "style")
        if style:
            for raw in css_url_values(style):
                yield raw, False
        if tag.name == "style" and tag.string:
            for raw in css_url_values(str(tag.string)):
                yield raw, False
        if tag.name == "meta":
            content = _attr_text(tag, "content").strip()
            if content.lower().startswith(("http://", "https://")):
                yield content, False


def _collect(soup: BeautifulSoup, base_url: str) -> List[Reference]:
    seen: dict[str, Reference] = {}
    for raw, navigational in _raw_references(soup):
        absolute = accept_asset_url(raw, base_url)
        if absolute is None or absolute in seen:
            continue
        seen[absolute] = Reference(absolute, AssetKind.from_url(absolute), navigational)
    return list(seen.values())


def extract_references(html: str, base_url: str) -> List[Reference]:
    """All downloadable references in *html*, resolved against *base_url*.

    A URL seen both as a link and as an embedded resource keeps the first
    classification encountered.
    """
    return _collect(BeautifulSoup(html, "html.parser"), base_url)


def parse_html(html: str, base_url: str, origin: Optional[str]) -> ParsedPage:
    """Split the references of a page into crawlable pages and assets.

    Parameters
    ----------
    html
        Page markup.
    base_url
        URL the page was fetched from; relative references resolve against it.
    origin
        Crawl origin (``scheme://host[:port]``); only same-origin links are
        pages. ``None`` accepts navigational links from any origin.
    """
    soup = BeautifulSoup(html, "html.parser")
    title_tag = soup.find("title")
    title = title_tag.get_text(strip=True) if title_tag else ""

    page = ParsedPage(url=base_url, title=title)
    for ref in _collect(soup, base_url):
        if not ref.navigational:
            page.assets.append(ref.url)
        elif is_asset_url(ref.url):
            page.assets.append(ref.url)
        elif origin is None or is_same_origin(ref.url, origin):
            page.pages.append(ref.url)
    return page
