# File: tests/test_rewriter.py
from web_freezer.archive.rewriter import rewrite_css, rewrite_html

ORIGIN = "https://example.com"

ASSET_MAP = {
    "https://example.com/": "index.html",
    "https://example.com/about": "about/index.html",
    "https://example.com/css/site.css": "css/site.css",
    "https://cdn.example.net/logo.png": "_external/cdn.example.net/logo.png",
    "https://cdn.example.net/logo@2x.png": "_external/cdn.example.net/logo_2x.png",
    "https://example.com/img/bg.jpg": "img/bg.jpg",
}


def _html(text, path="index.html", base="https://example.com/"):
    return rewrite_html(text, ORIGIN, base, path, ASSET_MAP)


def test_mapped_references_are_replaced_and_unmapped_kept():
    src = (
        '<img src="https://cdn.example.net/logo.png">'
        '<link rel="stylesheet" href="/css/site.css">'
        '<script src="https://cdn.other.net/missing.js"></script>'
    )
    out = _html(src)

    assert 'src="./_external/cdn.example.net/logo.png"' in out
    assert 'href="./css/site.css"' in out
    assert 'src="https://cdn.other.net/missing.js"' in out


def test_prefix_follows_file_depth():
    out = _html('<a href="/">Home</a> <a href="/about#team">About</a>', path="about/index.html",
                base="https://example.com/about")
    assert '<a href="../index.html">' in out
    assert '<a href="../about/index.html#team">' in out


def test_unmapped_same_origin_link_gets_local_path():
    out = _html('<a href="/contact">Contact</a>')
    assert 'href="./contact/index.html"' in out


def test_srcset_descriptors_preserved():
    src = '<img srcset="https://cdn.example.net/logo.png 1x,  https://cdn.example.net/logo@2x.png 2x">'
    out = _html(src)
    assert out == (
        '<img srcset="./_external/cdn.example.net/logo.png 1x,  '
        './_external/cdn.example.net/logo_2x.png 2x">'
    )


def test_data_uris_and_fragments_untouched():
    src = '<img src="data:image/png;base64,AAAA"><a href="#top">top</a><a href="mailto:x@y.z">m</a>'
    assert _html(src) == src


def test_bytes_outside_references_are_preserved():
    src = (
        "<!DOCTYPE html>\n<HTML>\n  <body   class='x'  data-src=\"/about\">\n"
        "    <IMG  SRC = 'https://cdn.example.net/logo.png'  alt=\"é\" >\n  </body>\n</HTML>\n"
    )
    out = _html(src)
    assert out == src.replace(
        "'https://cdn.example.net/logo.png'", "'./_external/cdn.example.net/logo.png'"
    )


def test_inline_styles_and_meta_content():
    src = (
        '<div style="background:url(&quot;/img/bg.jpg&quot;)"></div>'
        '<style>.x{background:url(/img/bg.jpg)}</style>'
        '<meta property="og:image" content="https://cdn.example.net/logo.png">'
        '<meta name="viewport" content="width=device-width">'
    )
    out = _html(src)
    assert "url(&quot;./img/bg.jpg&quot;)" in out
    assert ".x{background:url(./img/bg.jpg)}" in out
    assert 'content="./_external/cdn.example.net/logo.png"' in out
    assert 'content="width=device-width"' in out


def test_unquoted_attributes_are_rewritten():
    src = (
        "<img src=https://cdn.example.net/logo.png alt=logo><a href=/about>About</a>"
        "<img srcset=https://cdn.example.net/logo@2x.png>"
        "<meta property=og:image content=https://cdn.example.net/logo.png>"
    )
    out = _html(src)

    assert "<img src=./_external/cdn.example.net/logo.png alt=logo>" in out
    assert "<a href=./about/index.html>" in out
    assert "srcset=./_external/cdn.example.net/logo_2x.png>" in out
    assert "content=./_external/cdn.example.net/logo.png>" in out


def test_unquoted_lookalikes_outside_tags_untouched():
    src = (
        "<p title='src=/about'>href=/about</p>"
        "<script>if (a <b && src=/about) go()</script>"
    )
    assert _html(src) == src


def test_entity_encoded_urls_match_map():
    amap = {"https://example.com/page?a=1&b=2": "page/index.html"}
    out = rewrite_html('<a href="/page?a=1&amp;b=2">p</a>', ORIGIN, "https://example.com/", "index.html", amap)
    assert 'href="./page/index.html"' in out


def test_rewrite_css_uses_stylesheet_location():
    css = (
        '@import "print.css";\n'
        "body { background: url('../img/bg.jpg'); }\n"
        ".logo { background: url(https://cdn.example.net/logo.png) }\n"
        ".gone { background: url(https://cdn.other.net/x.png) }\n"
    )
    amap = dict(ASSET_MAP, **{"https://example.com/css/print.css": "css/print.css"})
    out = rewrite_css(css, ORIGIN, "https://example.com/css/site.css", "css/site.css", amap)

    assert '@import "../css/print.css";' in out
    assert "url('../img/bg.jpg')" in out
    assert "url(../_external/cdn.example.net/logo.png)" in out
    assert "url(https://cdn.other.net/x.png)" in out
