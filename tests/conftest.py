# File: tests/conftest.py
from __future__ import annotations

import collections
import socket
from typing import Awaitable, Callable, Counter, Dict, List, Tuple, Union

import pytest
import pytest_asyncio
from aiohttp import ClientSession, ClientTimeout, TCPConnector, web
from aiohttp.abc import AbstractResolver

from web_freezer.config import CrawlConfig

Body = Union[str, bytes]
Route = Union[Tuple[Body, str], Tuple[Body, str, int], Callable[[web.Request], Awaitable[web.StreamResponse]]]


class LoopbackResolver(AbstractResolver):
    """Resolve every hostname to 127.0.0.1 so fake domains reach local test servers."""

    async def resolve(self, host: str, port: int = 0, family: int = socket.AF_INET) -> List[dict]:
        return [
            {
                "hostname": host,
                "host": "127.0.0.1",
                "port": port,
                "family": socket.AF_INET,
                "proto": 0,
                "flags": socket.AI_NUMERICHOST,
            }
        ]

    async def close(self) -> None:
        return None


def build_app(routes: Dict[str, Route]) -> Tuple[web.Application, Counter[str]]:
    """
    Build an aiohttp app from ``{path: (body, content_type[, status])}`` or
    ``{path: handler}``. Returns the app and a per-path hit counter.
    """
    hits: Counter[str] = collections.Counter()
    app = web.Application()

    def _static(path: str, body: Body, content_type: str, status: int = 200):
        async def handler(request: web.Request) -> web.Response:
            hits[path] += 1
            data = body.encode("utf-8") if isinstance(body, str) else body
            return web.Response(body=data, status=status, headers={"Content-Type": content_type})

        return handler

    def _counted(path: str, inner):
        async def handler(request: web.Request) -> web.StreamResponse:
            hits[path] += 1
            return await inner(request)

        return handler

    for path, route in routes.items():
        if callable(route):
            app.router.add_get(path, _counted(path, route))
        else:
            app.router.add_get(path, _static(path, *route))
    return app, hits


@pytest.fixture()
def make_app():
    """Factory fixture around :func:`build_app`."""
    return build_app


@pytest_asyncio.fixture()
async def serve():
    """Start aiohttp apps on 127.0.0.1; all of them are stopped after the test."""
    runners: List[web.AppRunner] = []

    async def _serve(app: web.Application, port: int) -> int:
        runner = web.AppRunner(app)
        await runner.setup()
        await web.TCPSite(runner, "127.0.0.1", port).start()
        runners.append(runner)
        return port

    yield _serve
    for runner in runners:
        await runner.cleanup()


@pytest_asyncio.fixture()
async def session():
    """Client session whose DNS answers 127.0.0.1 for every name."""
    connector = TCPConnector(resolver=LoopbackResolver(), force_close=True)
    async with ClientSession(
        connector=connector,
        timeout=ClientTimeout(total=5),
        headers={"User-Agent": "WebFreezerTest/1.0"},
    ) as s:
        yield s


@pytest.fixture()
def make_config():
    """Build a CrawlConfig with test-friendly defaults."""

    def _make(start_url: str, **overrides) -> CrawlConfig:
        params = dict(
            start_url=start_url,
            discovery_method="link_discovery",
            max_pages=20,
            max_depth=3,
            timeout=5.0,
            concurrency=4,
        )
        params.update(overrides)
        return CrawlConfig(**params)

    return _make
