# File: web_freezer/parser/css_parser.py
"""web_freezer.parser.css_parser: url(...) and @import references in stylesheets."""

from __future__ import annotations

import re
from typing import List

from web_freezer.crawler.models import AssetKind, Reference
from web_freezer.parser.filters import accept_asset_url

# Group "url" is the reference without quotes or surrounding whitespace.
CSS_URL_RE = re.compile(r"""url\(\s*(?P<quote>['"]?)(?P<url>[^'")]+?)(?P=quote)\s*\)""", re.IGNORECASE)
CSS_IMPORT_RE = re.compile(r"""@import\s+(?P<quote>['"])(?P<url>[^'"]+)(?P=quote)""", re.IGNORECASE)


def is_data_uri(value: str) -> bool:
    return value.strip().lower().startswith("data:")


def css_url_values(css: str) -> List[str]:
    """Raw ``url(...)`` values in order of appearance, ``data:`` URIs excluded."""
    return [m.group("url") for m in CSS_URL_RE.finditer(css) if not is_data_uri(m.group("url"))]


def extract_css_references(css: str, css_url: str) -> List[Reference]:
    """Return deduplicated asset references found in *css*, resolved against *css_url*."""
    seen: dict[str, Reference] = {}
    raw_values = css_url_values(css) + [m.group("url") for m in CSS_IMPORT_RE.finditer(css)]
    for raw in raw_values:
        absolute = accept_asset_url(raw, css_url)
        if absolute and absolute not in seen:
            seen[absolute] = Reference(absolute, AssetKind.from_url(absolute))
    return list(seen.values())
