# web_freezer/archive/rewriter.py
"""
Rewrites references in stored HTML and CSS so the archive works offline.

Each recognized reference is replaced by:

1. ``{prefix}{asset_map[url]}`` when the absolute URL has a mapped path;
2. ``{prefix}{url_to_file_path(url)}`` for unmapped same-origin URLs
   (plain navigation links);
3. the original text otherwise.

Attribute values may be double-quoted, single-quoted or unquoted
(``<img src=logo.png>``). Only the URL token itself is replaced. Attribute
names, quotes, whitespace, ``srcset`` descriptors and everything outside a
match stay byte-for-byte the same.
"""
from __future__ import annotations

import html
import re
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

from web_freezer.archive.paths import relative_prefix, url_to_file_path
from web_freezer.parser.css_parser import CSS_IMPORT_RE, CSS_URL_RE, is_data_uri
from web_freezer.parser.html_parser import URL_ATTRIBUTES, split_srcset
from web_freezer.utils import is_same_origin, resolve_url

_QUOTED_VALUE = r"""(?P<eq>\s*=\s*)(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)')"""

ATTRIBUTE_RE = re.compile(
    r"(?<![\w-])(?P<attr>" + "|".join(URL_ATTRIBUTES) + r")" + _QUOTED_VALUE,
    re.IGNORECASE,
)
SRCSET_RE = re.compile(r"(?<![\w-])(?P<attr>srcset)" + _QUOTED_VALUE, re.IGNORECASE)
META_CONTENT_RE = re.compile(r"(?<![\w-])(?P<attr>content)" + _QUOTED_VALUE, re.IGNORECASE)

# start tags; script and style bodies are consumed whole and left as is
TAG_RE = re.compile(
    r"""<(?P<raw>script|style)\b(?P<rawattrs>(?:"[^"]*"|'[^']*'|[^'">])*)>.*?</(?P=raw)\s*>"""
    r"""|<[A-Za-z][^\s/>]*(?P<attrs>(?:"[^"]*"|'[^']*'|[^'">])*)>""",
    re.IGNORECASE | re.DOTALL,
)
TAG_ATTRIBUTE_RE = re.compile(
    r"""(?P<attr>[^\s"'<>/=]+)(?:(?P<eq>\s*=\s*)(?:"[^"]*"|'[^']*'|(?P<uq>[^\s"'=<>`]+)))?"""
)

_SRCSET_ENTRY_RE = re.compile(r"^(?P<lead>\s*)(?P<url>\S*)(?P<rest>.*)$", re.DOTALL)
# url(&quot;...&quot;) inside a style attribute
_ENTITY_QUOTED_RE = re.compile(r"^(?P<quote>&(?:quot|#34|#x22|apos|#39|#x27);)(?P<inner>.*)(?P=quote)$", re.IGNORECASE)


@dataclass(slots=True, frozen=True)
class RewriteContext:
    """Everything needed to turn a reference found in one file into a local path."""

    origin: str
    base_url: str
    current_file_path: str
    asset_map: Mapping[str, str]

    @property
    def prefix(self) -> str:
        return relative_prefix(self.current_file_path)

    def to_local(self, raw: str) -> Optional[str]:
        """Local replacement for *raw*, or None to leave it untouched."""
        value = raw.strip()
        if not value or value.startswith("#") or is_data_uri(value):
            return None
        _, hash_sign, fragment = value.partition("#")
        absolute = resolve_url(value, self.base_url)
        if absolute is None:
            return None
        mapped = self.asset_map.get(absolute)
        if mapped is None:
            if not is_same_origin(absolute, self.origin):
                return None
            mapped = url_to_file_path(absolute)
        return f"{self.prefix}{mapped}{hash_sign}{fragment}"


def _replace_group(match: re.Match, group: str, replacement: str) -> str:
    """Return the whole match with only *group* swapped for *replacement*."""
    start = match.start(group) - match.start(0)
    end = match.end(group) - match.start(0)
    text = match.group(0)
    return text[:start] + replacement + text[end:]


def _value_group(match: re.Match) -> str:
    return "dq" if match.group("dq") is not None else "sq"


def _sub_attribute(
    pattern: re.Pattern, text: str, convert: Callable[[str], Optional[str]]
) -> str:
    def _swap(match: re.Match) -> str:
        group = _value_group(match)
        replacement = convert(match.group(group))
        if replacement is None:
            return match.group(0)
        return _replace_group(match, group, replacement)

    return pattern.sub(_swap, text)


def _rewrite_srcset_value(value: str, ctx: RewriteContext) -> Optional[str]:
    entries = []
    changed = False
    for entry in split_srcset(value):
        m = _SRCSET_ENTRY_RE.match(entry)
        local = ctx.to_local(html.unescape(m.group("url"))) if m and m.group("url") else None
        if local is None:
            entries.append(entry)
            continue
        entries.append(f"{m.group('lead')}{local}{m.group('rest')}")
        changed = True
    return ",".join(entries) if changed else None


def _rewrite_meta_value(value: str, ctx: RewriteContext) -> Optional[str]:
    value = html.unescape(value)
    if not value.strip().lower().startswith(("http://", "https://")):
        return None
    return ctx.to_local(value)


def _rewrite_unquoted(text: str, ctx: RewriteContext) -> str:
    """Rewrite unquoted values (``<img src=logo.png>``) inside start tags."""

    def _convert(name: str, value: str) -> Optional[str]:
        if name == "srcset":
            return _rewrite_srcset_value(value, ctx)
        if name == "content":
            return _rewrite_meta_value(value, ctx)
        if name in URL_ATTRIBUTES:
            return ctx.to_local(html.unescape(value))
        return None

    def _attribute(match: re.Match) -> str:
        if match.group("uq") is None:
            return match.group(0)
        replacement = _convert(match.group("attr").lower(), match.group("uq"))
        if replacement is None:
            return match.group(0)
        return _replace_group(match, "uq", replacement)

    def _tag(match: re.Match) -> str:
        group = "rawattrs" if match.group("raw") else "attrs"
        attrs = match.group(group)
        rewritten = TAG_ATTRIBUTE_RE.sub(_attribute, attrs)
        if rewritten == attrs:
            return match.group(0)
        return _replace_group(match, group, rewritten)

    return TAG_RE.sub(_tag, text)


def _rewrite_css_urls(text: str, ctx: RewriteContext, unescape: bool) -> str:
    def _swap(match: re.Match) -> str:
        raw = match.group("url")
        quote = ""
        if unescape:
            quoted = _ENTITY_QUOTED_RE.match(raw)
            if quoted:
                quote, raw = quoted.group("quote"), quoted.group("inner")
            raw = html.unescape(raw)
        local = ctx.to_local(raw)
        if local is None:
            return match.group(0)
        return _replace_group(match, "url", f"{quote}{local}{quote}")

    return CSS_URL_RE.sub(_swap, text)


def rewrite_html(
    text: str,
    origin: str,
    base_url: str,
    current_file_path: str,
    asset_map: Mapping[str, str],
) -> str:
    """Rewrite every recognized reference in an HTML document."""
    ctx = RewriteContext(origin, base_url, current_file_path, asset_map)

    result = _sub_attribute(ATTRIBUTE_RE, text, lambda v: ctx.to_local(html.unescape(v)))
    result = _sub_attribute(SRCSET_RE, result, lambda v: _rewrite_srcset_value(v, ctx))
    result = _rewrite_css_urls(result, ctx, unescape=True)
    result = _sub_attribute(META_CONTENT_RE, result, lambda v: _rewrite_meta_value(v, ctx))
    return _rewrite_unquoted(result, ctx)


def rewrite_css(
    text: str,
    origin: str,
    base_url: str,
    current_file_path: str,
    asset_map: Mapping[str, str],
) -> str:
    """Rewrite ``url(...)`` and ``@import`` references in a stylesheet."""
    ctx = RewriteContext(origin, base_url, current_file_path, asset_map)
    result = _rewrite_css_urls(text, ctx, unescape=False)

    def _import(match: re.Match) -> str:
        local = ctx.to_local(match.group("url"))
        return match.group(0) if local is None else _replace_group(match, "url", local)

    return CSS_IMPORT_RE.sub(_import, result)
