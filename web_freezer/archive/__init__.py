# File: web_freezer/archive/__init__.py
"""web_freezer.archive: раскладка путей, перезапись ссылок, манифест и ZIP-упаковка."""

from __future__ import annotations

from web_freezer.archive.manifest import LIMITATIONS, Manifest, build_manifest
from web_freezer.archive.packager import build_archive, write_archive
from web_freezer.archive.paths import PathMapper, external_url_to_file_path, url_to_file_path
from web_freezer.archive.rewriter import rewrite_css, rewrite_html

__all__ = [
    "LIMITATIONS",
    "Manifest",
    "PathMapper",
    "build_archive",
    "build_manifest",
    "external_url_to_file_path",
    "rewrite_css",
    "rewrite_html",
    "url_to_file_path",
    "write_archive",
]
