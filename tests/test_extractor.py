# File: tests/test_extractor.py
"""Тесты извлечения ссылок из HTML, CSS и sitemap."""
import gzip

from web_freezer.crawler.models import AssetKind
from web_freezer.parser.css_parser import extract_css_references
from web_freezer.parser.html_parser import extract_references, parse_html, split_srcset, srcset_urls
from web_freezer.parser.sitemap_parser import parse_sitemap

ORIGIN = "https://example.com"
BASE = "https://example.com/blog/post"

PAGE = """<!doctype html>
<html><head>
  <title> Post </title>
  <link rel="stylesheet" href="/css/site.css">
  <link rel="canonical" href="/blog/post">
  <link rel="icon" href="favicon.ico">
  <meta property="og:image" content="https://cdn.example.net/og.png">
  <meta name="description" content="not a url">
  <style>body { background: url('/img/bg.jpg'); }</style>
  <script src="https://cdn.example.net/app.js"></script>
</head><body>
  <a href="/about">About</a>
  <a href="next">Next</a>
  <a href="https://other.org/page">Elsewhere</a>
  <a href="/files/report.json">Data</a>
  <a href="mailto:me@example.com">Mail</a>
  <a href="javascript:void(0)">JS</a>
  <a href="#top">Top</a>
  <a href="/video.mp4">Video</a>
  <img src="data:image/png;base64,AAAA" srcset="/img/a.png 1x, /img/b.png 2x">
  <div style="background-image:url(&quot;/img/div.png&quot;)"></div>
  <video poster="/img/poster.webp"></video>
  <form action="/search"></form>
  <img src="http://127.0.0.1/internal.png">
</body></html>
"""


def test_parse_html_splits_pages_and_assets():
    page = parse_html(PAGE, BASE, ORIGIN)

    assert page.title == "Post"
    assert page.pages == [
        "https://example.com/blog/post",
        "https://example.com/about",
        "https://example.com/blog/next",
    ]
    assert page.assets == [
        "https://example.com/css/site.css",
        "https://example.com/blog/favicon.ico",
        "https://cdn.example.net/og.png",
        "https://example.com/img/bg.jpg",
        "https://cdn.example.net/app.js",
        "https://example.com/files/report.json",
        "https://example.com/img/a.png",
        "https://example.com/img/b.png",
        "https://example.com/img/div.png",
        "https://example.com/img/poster.webp",
        "https://example.com/search",
    ]


def test_parse_html_without_origin_accepts_foreign_links():
    page = parse_html(PAGE, BASE, None)
    assert "https://other.org/page" in page.pages


def test_extract_references_kinds():
    refs = {r.url: r for r in extract_references(PAGE, BASE)}

    assert refs["https://example.com/css/site.css"].kind is AssetKind.CSS
    assert refs["https://cdn.example.net/app.js"].kind is AssetKind.JS
    assert refs["https://example.com/img/a.png"].kind is AssetKind.IMAGE
    assert refs["https://example.com/about"].navigational is True
    assert refs["https://example.com/css/site.css"].navigational is False
    assert refs["https://example.com/search"].navigational is False
    assert not any(u.startswith("data:") for u in refs)
    assert "https://example.com/video.mp4" not in refs
    assert "http://127.0.0.1/internal.png" not in refs


def test_base_tag_is_ignored():
    html = '<base href="https://evil.example/"><a href="/x">x</a>'
    page = parse_html(html, "https://example.com/", ORIGIN)
    assert page.pages == ["https://example.com/x"]
    assert page.assets == []


def test_split_srcset_keeps_data_uri_commas():
    value = "data:image/png;base64,AAAA 1x, /img/b.png 2x"
    entries = split_srcset(value)

    assert ",".join(entries) == value
    assert srcset_urls(value) == ["data:image/png;base64,AAAA", "/img/b.png"]


def test_css_references():
    css = """
    @import "print.css";
    @import url('theme.css');
    .a { background: url(../img/bg.png) }
    .b { background: url("data:image/svg+xml;utf8,<svg></svg>") }
    @font-face { src: url('https://fonts.example.net/f.woff2') format('woff2'); }
    .c { background: url( '../img/bg.png' ) }
    """
    refs = extract_css_references(css, "https://example.com/css/site.css")
    urls = [r.url for r in refs]

    assert urls == [
        "https://example.com/css/theme.css",
        "https://example.com/img/bg.png",
        "https://fonts.example.net/f.woff2",
        "https://example.com/css/print.css",
    ]
    assert refs[2].kind is AssetKind.FONT


URLSET = b"""<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <url><loc>https://example.com/</loc></url>
  <url><loc> https://example.com/about </loc></url>
  <url><loc></loc></url>
</urlset>"""

INDEX = """<?xml version="1.0" encoding="UTF-8"?>
<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <sitemap><loc>https://example.com/sitemap-1.xml</loc></sitemap>
</sitemapindex>"""


def test_parse_urlset():
    doc = parse_sitemap(URLSET)
    assert doc is not None
    assert doc.kind == "urlset"
    assert doc.locations == ["https://example.com/", "https://example.com/about"]


def test_parse_sitemap_index_from_text():
    doc = parse_sitemap(INDEX)
    assert doc is not None
    assert doc.kind == "sitemapindex"
    assert doc.locations == ["https://example.com/sitemap-1.xml"]


def test_parse_gzipped_sitemap():
    doc = parse_sitemap(gzip.compress(URLSET))
    assert doc is not None
    assert len(doc.locations) == 2


def test_parse_sitemap_rejects_other_documents():
    assert parse_sitemap(b"") is None
    assert parse_sitemap(b"<html><body>404</body></html>") is None
    assert parse_sitemap(b"\x1f\x8bbroken") is None
