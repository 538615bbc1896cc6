# web_freezer/crawler/fetcher.py
"""
Fetcher module: SSRF-safe HTTP GET with manual, re-validated redirects.

Every hop (the original URL and each ``Location`` target) is checked against
the private-host rules before a connection is made. Ordinary failures never
raise; they are reported as ``None`` so the crawler can skip and continue.
"""
from __future__ import annotations

import asyncio
import ipaddress
import re
from typing import Optional
from urllib.parse import urljoin, urlsplit

from aiohttp import ClientError, ClientSession

from web_freezer.crawler.models import FetchResult
from web_freezer.logger import get_logger

logger = get_logger("fetcher")

BLOCKED_HOSTNAMES = frozenset({"localhost", "metadata.google.internal", "instance-data"})
REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})
ACCEPT_HEADER = "text/html,application/xhtml+xml,text/css,*/*"
_CHUNK_SIZE = 64 * 1024

# Dotted forms that ipaddress rejects but resolvers still accept ("127.1", "0x7f.1").
_LEGACY_IPV4_RE = re.compile(r"^(0x[0-9a-f]+|\d+)(\.(0x[0-9a-f]+|\d+)){0,3}$", re.IGNORECASE)


def _is_blocked_ip(ip: ipaddress.IPv4Address | ipaddress.IPv6Address) -> bool:
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    return (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_unspecified
        or ip.is_reserved
        or ip.is_multicast
    )


def is_private_host(hostname: Optional[str]) -> bool:
    """True if *hostname* names a loopback, private, link-local or metadata target."""
    if not hostname:
        return True
    host = hostname.strip().lower().rstrip(".").strip("[]")
    if host in BLOCKED_HOSTNAMES or host.endswith(".localhost"):
        return True
    try:
        return _is_blocked_ip(ipaddress.ip_address(host))
    except ValueError:
        pass
    if _LEGACY_IPV4_RE.match(host):
        # Treat every numeric host we cannot classify exactly as internal.
        return True
    return False


class SafeFetcher:
    """GET with timeout, fixed headers, a body size cap and guarded redirects."""

    def __init__(
        self,
        session: ClientSession,
        *,
        max_redirects: int = 5,
        max_body_bytes: Optional[int] = None,
    ) -> None:
        self.session = session
        self.max_redirects = max_redirects
        self.max_body_bytes = max_body_bytes

    async def fetch(self, url: str) -> Optional[FetchResult]:
        """
        Fetch *url*, following at most ``max_redirects`` validated redirects.

        Returns FetchResult for any non-redirect status, or None on failure/denied.
        """
        current = url
        for _hop in range(self.max_redirects + 1):
            if not self._allowed(current):
                logger.warning("Blocked request to %s", current)
                return None
            try:
                async with self.session.get(
                    current,
                    allow_redirects=False,
                    headers={"Accept": ACCEPT_HEADER},
                ) as resp:
                    if resp.status in REDIRECT_STATUSES:
                        location = resp.headers.get("Location")
                        if not location:
                            logger.debug("Redirect without Location from %s", current)
                            return None
                        current = urljoin(current, location.strip())
                        continue
                    body = await self._read_body(resp)
                    return FetchResult(
                        url=current,
                        status=resp.status,
                        content_type=resp.headers.get("Content-Type", ""),
                        body=body,
                    )
            except asyncio.TimeoutError:
                logger.debug("Timeout fetching %s", current)
                return None
            except (ClientError, ValueError) as exc:
                logger.debug("Failed %s: %s", current, exc)
                return None
        logger.warning("Too many redirects starting at %s", url)
        return None

    async def _read_body(self, resp) -> bytes:
        # Stops one byte past the cap so the caller can still see the body is oversize.
        if self.max_body_bytes is None:
            return await resp.read()
        chunks = []
        received = 0
        async for chunk in resp.content.iter_chunked(_CHUNK_SIZE):
            chunks.append(chunk)
            received += len(chunk)
            if received > self.max_body_bytes:
                break
        return b"".join(chunks)[: self.max_body_bytes + 1]

    @staticmethod
    def _allowed(url: str) -> bool:
        try:
            parts = urlsplit(url)
            hostname = parts.hostname
        except ValueError:
            return False
        if parts.scheme.lower() not in ("http", "https"):
            return False
        return not is_private_host(hostname)
