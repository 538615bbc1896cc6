# File: web_freezer/utils.py
"""web_freezer.utils: Утилиты для работы с URL: разрешение ссылок, origin, расширения файлов."""

from __future__ import annotations

import codecs
import posixpath
from typing import Collection, List, Optional, Sequence
from urllib.parse import urldefrag, urljoin, urlsplit, urlunsplit

from web_freezer.logger import get_logger

logger = get_logger("utils")

__all__: Sequence[str] = (
    "ALLOWED_SCHEMES",
    "resolve_url",
    "strip_fragment",
    "origin_of",
    "is_http_url",
    "is_same_origin",
    "get_extension",
    "remove_duplicates",
    "charset_of",
    "decode_text",
    "encode_text",
)

ALLOWED_SCHEMES = ("http", "https")

_DEFAULT_PORTS = {"http": 80, "https": 443}


def strip_fragment(url: str) -> str:
    """Убирает фрагмент (#...) и подставляет "/" вместо пустого пути."""
    url, _ = urldefrag(url)
    parts = urlsplit(url)
    if parts.scheme in ALLOWED_SCHEMES and not parts.path:
        url = urlunsplit((parts.scheme, parts.netloc, "/", parts.query, ""))
    return url


def resolve_url(raw: str, base: str) -> Optional[str]:
    """Разрешает ссылку *raw* относительно *base* (RFC 3986).

    Возвращает абсолютный URL без фрагмента либо None, если ссылка
    пустая, некорректная или использует схему, отличную от http/https.
    """
    raw = raw.strip()
    if not raw or raw.startswith("#"):
        return None
    try:
        absolute = urljoin(base, raw)
        parts = urlsplit(absolute)
        # .port raises ValueError on garbage such as "host:abc"
        parts.port
    except ValueError:
        logger.debug("Unparsable reference %r (base %s)", raw, base)
        return None
    if parts.scheme.lower() not in ALLOWED_SCHEMES or not parts.hostname:
        return None
    return strip_fragment(absolute)


def origin_of(url: str) -> str:
    """Возвращает origin в виде scheme://host[:port] (порт по умолчанию опускается)."""
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    if ":" in host:
        host = f"[{host}]"
    try:
        port = parts.port
    except ValueError:
        port = None
    if port is None or port == _DEFAULT_PORTS.get(scheme):
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


def is_http_url(url: str) -> bool:
    """True для абсолютных http(s) URL с непустым хостом."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return parts.scheme.lower() in ALLOWED_SCHEMES and bool(parts.hostname)


def is_same_origin(url: str, origin: str) -> bool:
    """Сравнивает scheme+host+port ссылки с заданным origin."""
    return origin_of(url) == origin


def get_extension(url: str) -> str:
    """Расширение последнего сегмента пути в нижнем регистре (".css") или ""."""
    path = urlsplit(url).path
    name = posixpath.basename(path)
    dot = name.rfind(".")
    if dot == -1:
        return ""
    return name[dot:].lower()


def remove_duplicates(urls: Collection[str]) -> List[str]:
    """Удаляет дубликаты из списка URL, сохраняя порядок."""
    unique = list(dict.fromkeys(urls))
    removed = len(urls) - len(unique)
    if removed:
        logger.debug("Removed %d duplicate URLs", removed)
    return unique


def charset_of(content_type: str) -> str:
    """Кодировка из параметра charset заголовка Content-Type (по умолчанию UTF-8)."""
    for part in content_type.split(";")[1:]:
        key, _, value = part.strip().partition("=")
        if key.strip().lower() == "charset" and value.strip("\"' "):
            charset = value.strip("\"' ")
            try:
                return codecs.lookup(charset).name
            except LookupError:
                break
    return "utf-8"


def decode_text(content: bytes, content_type: str = "") -> str:
    """Декодирует тело ответа по charset из Content-Type, битые байты заменяются."""
    return content.decode(charset_of(content_type), errors="replace")


def encode_text(text: str, content_type: str = "", errors: str = "strict") -> bytes:
    """Кодирует текст обратно в charset из Content-Type (пара к decode_text)."""
    return text.encode(charset_of(content_type), errors=errors)
