from __future__ import annotations

import dataclasses
import sys
from pathlib import Path

import httpx

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from offline_gateway.core.config import settings
from offline_gateway.worker.state import WorkerState, build_worker_state

ORIGIN = "https://zewed.test"
OFFLINE_HTML = b"<html><body>You are offline</body></html>"


def worker_settings(**overrides):
    values = {
        "upstream_origin": ORIGIN,
        "cache_db_path": ":memory:",
        "sync_db_path": ":memory:",
        "static_cache_name": "zewed-ai-v2.0.0",
        "dynamic_cache_name": "zewed-dynamic-v1.0.0",
        "sync_max_attempts": 0,
        "precache_on_startup": False,
        "periodic_sync_interval_s": 0,
    }
    values.update(overrides)
    return dataclasses.replace(settings, **values)


class FakeUpstream:
    """In-process stand-in for the career-assistant origin and CDNs."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], httpx.Response | object] = {}
        self.down: set[str] = set()
        self.offline = False
        self.calls: list[httpx.Request] = []

    def add(self, path_or_url: str, *, status: int = 200, body: bytes | str = b"", method: str = "GET",
            content_type: str = "text/plain", handler=None) -> None:
        url = path_or_url if "://" in path_or_url else ORIGIN + path_or_url
        if handler is not None:
            self.routes[(method, url)] = handler
            return
        content = body.encode("utf-8") if isinstance(body, str) else body
        self.routes[(method, url)] = (status, content, content_type)

    def fail(self, path_or_url: str) -> None:
        self.down.add(path_or_url if "://" in path_or_url else ORIGIN + path_or_url)

    def requests_to(self, path: str, method: str = "GET") -> list[httpx.Request]:
        url = ORIGIN + path
        return [r for r in self.calls if r.method == method and str(r.url) == url]

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        url = str(request.url)
        if self.offline or url in self.down:
            raise httpx.ConnectError("network unreachable", request=request)
        route = self.routes.get((request.method, url))
        if route is None:
            return httpx.Response(404, content=b"not found", request=request)
        if callable(route):
            result = route(request)
            if hasattr(result, "__await__"):
                result = await result
            return result
        status, content, content_type = route
        return httpx.Response(status, content=content, headers={"content-type": content_type}, request=request)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def make_state(upstream: FakeUpstream | None = None, **overrides) -> WorkerState:
    upstream = upstream or FakeUpstream()
    return build_worker_state(worker_settings(**overrides), transport=upstream.transport())
