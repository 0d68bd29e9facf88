from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath
from urllib.parse import urlparse

from offline_gateway.worker.types import WorkerRequest


class RequestKind(str, Enum):
    IGNORED = "ignored"
    API = "api"
    STATIC = "static"
    HTML = "html"
    OTHER = "other"


class Strategy(str, Enum):
    PASSTHROUGH = "passthrough"
    NETWORK_FIRST = "network_first"
    CACHE_FIRST = "cache_first"


_STRATEGY_BY_KIND = {
    RequestKind.IGNORED: Strategy.PASSTHROUGH,
    RequestKind.API: Strategy.NETWORK_FIRST,
    RequestKind.STATIC: Strategy.CACHE_FIRST,
    RequestKind.HTML: Strategy.NETWORK_FIRST,
    RequestKind.OTHER: Strategy.NETWORK_FIRST,
}


@dataclass(frozen=True)
class RoutingRules:
    api_prefix: str = "/api/"
    api_path_marker: str = "api."
    static_extensions: frozenset[str] = frozenset({"css", "js", "png", "jpg", "svg", "woff", "woff2", "ttf"})
    read_methods: frozenset[str] = frozenset({"GET"})

    @classmethod
    def from_settings(cls, settings) -> "RoutingRules":
        return cls(
            api_prefix=settings.api_prefix,
            static_extensions=frozenset(ext.lower().lstrip(".") for ext in settings.static_extensions),
        )


@dataclass(frozen=True)
class Route:
    kind: RequestKind
    strategy: Strategy


def classify(request: WorkerRequest, rules: RoutingRules) -> RequestKind:
    parsed = urlparse(request.url)
    if request.method not in rules.read_methods:
        return RequestKind.IGNORED
    if parsed.scheme and parsed.scheme not in {"http", "https"}:
        return RequestKind.IGNORED

    path = parsed.path or "/"
    if path.startswith(rules.api_prefix) or rules.api_path_marker in path:
        return RequestKind.API

    suffix = PurePosixPath(path).suffix.lower().lstrip(".")
    if suffix and suffix in rules.static_extensions:
        return RequestKind.STATIC

    if request.accepts_html:
        return RequestKind.HTML
    return RequestKind.OTHER


def route(request: WorkerRequest, rules: RoutingRules) -> Route:
    kind = classify(request, rules)
    return Route(kind=kind, strategy=_STRATEGY_BY_KIND[kind])
