# web_freezer/archive/packager.py
"""
Assembles crawled files plus ``manifest.json`` into a ZIP archive.

Entries carry a fixed timestamp and permissions and are written in input
order, so identical inputs give byte-identical archives.
"""
from __future__ import annotations

import io
import zipfile
from pathlib import Path
from typing import Iterable, Union

from web_freezer.archive.manifest import MANIFEST_NAME, Manifest
from web_freezer.crawler.models import CrawledFile
from web_freezer.logger import get_logger

logger = get_logger("packager")

COMPRESSION_LEVEL = 6
_FIXED_DATE = (1980, 1, 1, 0, 0, 0)
_FILE_MODE = 0o644 << 16


def _entry(name: str) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(filename=name, date_time=_FIXED_DATE)
    info.compress_type = zipfile.ZIP_DEFLATED
    info.external_attr = _FILE_MODE
    info.create_system = 3
    return info


def build_archive(files: Iterable[CrawledFile], manifest: Manifest) -> bytes:
    """Return the ZIP bytes for *files* and *manifest*.

    Leading slashes are stripped, empty paths are skipped and a path that was
    already written keeps its first content.
    """
    buffer = io.BytesIO()
    written: set[str] = set()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=COMPRESSION_LEVEL) as zf:
        for file in files:
            name = file.path.lstrip("/")
            if not name or name == MANIFEST_NAME:
                continue
            if name in written:
                logger.debug("Duplicate archive path skipped: %s", name)
                continue
            written.add(name)
            zf.writestr(_entry(name), file.content, compresslevel=COMPRESSION_LEVEL)
        zf.writestr(_entry(MANIFEST_NAME), manifest.to_json().encode("utf-8"), compresslevel=COMPRESSION_LEVEL)
    logger.info("Archive built: %d files + manifest, %d bytes", len(written), buffer.tell())
    return buffer.getvalue()


def write_archive(path: Union[str, Path], files: Iterable[CrawledFile], manifest: Manifest) -> Path:
    """Build the archive and save it to *path*; returns the Path written."""
    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(build_archive(files, manifest))
    return output
