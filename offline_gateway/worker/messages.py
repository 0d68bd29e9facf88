from __future__ import annotations

import logging
from typing import Any

from offline_gateway.worker.lifecycle import activate, request_skip_waiting
from offline_gateway.worker.network import NetworkError
from offline_gateway.worker.state import WorkerState
from offline_gateway.worker.strategies import store_response
from offline_gateway.worker.types import WorkerRequest

logger = logging.getLogger(__name__)


async def update_assets(state: WorkerState, urls: list[str]) -> list[str]:
    """Refetch each URL into the static cache. Each URL is best-effort; failures are logged and skipped."""
    updated = []
    for url in urls:
        request = WorkerRequest(url=state.network.resolve(url))
        try:
            response = await state.network.fetch(request)
        except NetworkError as exc:
            logger.error("sw_update_asset_failed url=%s error=%s", url, exc)
            continue
        if not response.ok:
            logger.error("sw_update_asset_failed url=%s error=HTTP %s", url, response.status)
            continue
        if store_response(state, state.settings.static_cache_name, request, response):
            updated.append(request.url)
    return updated


async def handle_message(state: WorkerState, data: dict[str, Any]) -> dict[str, Any] | None:
    message_type = data.get("type") if isinstance(data, dict) else None
    logger.info("sw_message_received type=%s", message_type)

    if message_type == "SKIP_WAITING":
        if request_skip_waiting(state):
            state.spawn(activate(state), name="activate")
        return None

    if message_type == "GET_CACHE_INFO":
        return {"type": "CACHE_INFO", "cacheNames": state.registry.keys()}

    if message_type == "CLEAR_CACHE":
        state.registry.delete(state.settings.static_cache_name)
        return {"type": "CACHE_CLEARED"}

    if message_type == "UPDATE_ASSETS":
        urls = data.get("urls") or []
        if isinstance(urls, list):
            state.spawn(update_assets(state, [str(u) for u in urls]), name="update-assets")
        return None

    logger.warning("sw_message_unknown type=%s", message_type)
    return None
