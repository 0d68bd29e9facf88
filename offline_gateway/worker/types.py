from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urldefrag, urljoin


def absolute_url(url: str, origin: str) -> str:
    """Resolve ``url`` against ``origin`` and drop any fragment."""
    resolved = urljoin(origin.rstrip("/") + "/", url)
    return urldefrag(resolved)[0]


def request_key(method: str, url: str) -> str:
    return f"{method.upper()} {urldefrag(url)[0]}"


@dataclass(frozen=True)
class WorkerRequest:
    url: str
    method: str = "GET"
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(
            self, "headers", {str(k).lower(): str(v) for k, v in (self.headers or {}).items()}
        )

    @property
    def key(self) -> str:
        return request_key(self.method, self.url)

    @property
    def accepts_html(self) -> bool:
        return "text/html" in self.headers.get("accept", "")

    def with_url(self, url: str) -> "WorkerRequest":
        return WorkerRequest(url=url, method=self.method, headers=dict(self.headers), body=self.body)


@dataclass
class WorkerResponse:
    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    url: str = ""

    def __post_init__(self) -> None:
        self.headers = {str(k).lower(): str(v) for k, v in (self.headers or {}).items()}

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def media_type(self) -> str:
        return self.headers.get("content-type", "")

    def clone(self) -> "WorkerResponse":
        return WorkerResponse(status=self.status, headers=dict(self.headers), body=bytes(self.body), url=self.url)

    def json(self) -> Any:
        return json.loads(self.body.decode("utf-8"))

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")
