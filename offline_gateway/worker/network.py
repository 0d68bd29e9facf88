from __future__ import annotations

import logging

import httpx

from offline_gateway.worker.types import WorkerRequest, WorkerResponse, absolute_url

logger = logging.getLogger(__name__)

# Headers that describe the transfer rather than the resource; httpx has
# already decoded the body by the time it is cached or replayed.
_HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailer",
    "transfer-encoding",
    "upgrade",
    "content-encoding",
    "content-length",
}


class NetworkError(Exception):
    """The request never produced an HTTP response (offline, DNS, timeout, reset)."""


class Network:
    def __init__(
        self,
        origin: str,
        *,
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.origin = origin.rstrip("/")
        self._client = httpx.AsyncClient(
            timeout=timeout_s,
            follow_redirects=True,
            transport=transport,
        )

    def resolve(self, url: str) -> str:
        return absolute_url(url, self.origin)

    async def fetch(self, request: WorkerRequest) -> WorkerResponse:
        url = self.resolve(request.url)
        headers = {k: v for k, v in request.headers.items() if k not in _HOP_BY_HOP_HEADERS and k != "host"}
        try:
            response = await self._client.request(
                request.method,
                url,
                headers=headers,
                content=request.body or None,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.debug("sw_network_error method=%s url=%s error=%s", request.method, url, exc)
            raise NetworkError(f"{request.method} {url} failed: {exc}") from exc

        return WorkerResponse(
            status=response.status_code,
            headers={k: v for k, v in response.headers.items() if k.lower() not in _HOP_BY_HOP_HEADERS},
            body=response.content,
            url=str(response.url),
        )

    async def aclose(self) -> None:
        await self._client.aclose()
