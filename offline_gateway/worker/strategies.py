from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone

from offline_gateway.worker.network import NetworkError
from offline_gateway.worker.state import WorkerState
from offline_gateway.worker.types import WorkerRequest, WorkerResponse, absolute_url

logger = logging.getLogger(__name__)


def network_error_response() -> WorkerResponse:
    return WorkerResponse(
        status=408,
        headers={"content-type": "text/plain"},
        body=b"Network error occurred",
    )


def offline_json_response() -> WorkerResponse:
    payload = {
        "error": "You are offline",
        "message": "Please check your internet connection",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    return WorkerResponse(
        status=503,
        headers={"content-type": "application/json"},
        body=json.dumps(payload).encode("utf-8"),
    )


def offline_page(state: WorkerState) -> WorkerResponse | None:
    url = absolute_url(state.settings.offline_page, state.network.origin)
    return state.registry.match(WorkerRequest(url=url))


_CREDENTIAL_HEADERS = ("authorization", "cookie", "proxy-authorization")
_PER_USER_DIRECTIVES = {"no-store", "private"}
_PER_USER_RESPONSE_HEADERS = {"set-cookie", "set-cookie2"}


def without_cookies(response: WorkerResponse) -> WorkerResponse:
    copy = response.clone()
    copy.headers = {k: v for k, v in copy.headers.items() if k not in _PER_USER_RESPONSE_HEADERS}
    return copy


def shareable_copy(request: WorkerRequest, response: WorkerResponse) -> WorkerResponse | None:
    """Return the copy of ``response`` every gateway caller may be served, or None if it is per-user.

    The caches are shared across callers, so credentialed requests and
    ``no-store``/``private`` responses are never written, and cookies are
    stripped from everything that is.
    """
    if any(request.headers.get(name) for name in _CREDENTIAL_HEADERS):
        return None
    directives = {
        part.split("=", 1)[0].strip().lower()
        for part in response.headers.get("cache-control", "").split(",")
    }
    if directives & _PER_USER_DIRECTIVES:
        return None
    return without_cookies(response)


def store_response(state: WorkerState, partition: str, request: WorkerRequest, response: WorkerResponse) -> bool:
    """Best-effort cache write. Returns True when the entry was stored."""
    shareable = shareable_copy(request, response)
    if shareable is None:
        logger.debug("sw_cache_put_skipped cache=%s key=%s reason=per-user", partition, request.key)
        return False
    try:
        state.registry.put(partition, request, shareable)
    except sqlite3.Error as exc:
        logger.warning("sw_cache_put_failed cache=%s key=%s error=%s", partition, request.key, exc)
        return False
    return True


async def revalidate(state: WorkerState, request: WorkerRequest) -> None:
    """Refresh a static entry in place; the stale copy stays if the refetch fails."""
    try:
        response = await state.network.fetch(request)
    except NetworkError as exc:
        logger.info("sw_revalidate_failed key=%s error=%s", request.key, exc)
        return
    if response.ok:
        store_response(state, state.settings.static_cache_name, request, response)


async def cache_first(state: WorkerState, request: WorkerRequest) -> WorkerResponse:
    static_cache = state.settings.static_cache_name
    cached = state.registry.match_in(static_cache, request)
    if cached is not None:
        state.spawn(revalidate(state, request), name=f"revalidate {request.key}")
        return cached

    try:
        response = await state.network.fetch(request)
    except NetworkError as exc:
        logger.info("sw_cache_first_offline key=%s error=%s", request.key, exc)
        if request.accepts_html:
            fallback = offline_page(state)
            if fallback is not None:
                return fallback
        return network_error_response()

    if response.ok:
        store_response(state, static_cache, request, response)
    return response


async def network_first(state: WorkerState, request: WorkerRequest) -> WorkerResponse:
    try:
        response = await state.network.fetch(request)
    except NetworkError as exc:
        logger.info("sw_network_first_offline key=%s error=%s", request.key, exc)
        cached = state.registry.match(request)
        if cached is not None:
            return cached
        if request.accepts_html:
            fallback = offline_page(state)
            if fallback is not None:
                return fallback
        return offline_json_response()

    if response.ok:
        store_response(state, state.settings.dynamic_cache_name, request, response)
    return response


def _queueable_write(state: WorkerState, request: WorkerRequest) -> bool:
    if request.method != "POST":
        return False
    endpoint = absolute_url(state.settings.chat_sync_endpoint, state.network.origin)
    return absolute_url(request.url, state.network.origin) == endpoint


async def passthrough(state: WorkerState, request: WorkerRequest) -> WorkerResponse:
    try:
        return await state.network.fetch(request)
    except NetworkError as exc:
        logger.info("sw_passthrough_offline method=%s url=%s error=%s", request.method, request.url, exc)
        if not _queueable_write(state, request):
            return offline_json_response()

    try:
        payload = json.loads(request.body.decode("utf-8")) if request.body else {}
    except (UnicodeDecodeError, json.JSONDecodeError):
        return offline_json_response()

    item = state.sync_store.enqueue(
        payload,
        tag=state.settings.sync_tag,
        endpoint=state.settings.chat_sync_endpoint,
    )
    return WorkerResponse(
        status=202,
        headers={"content-type": "application/json"},
        body=json.dumps({"queued": True, "id": item.id, "tag": item.tag}).encode("utf-8"),
    )
