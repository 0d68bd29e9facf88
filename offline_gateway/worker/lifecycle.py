from __future__ import annotations

import asyncio
import logging
import sqlite3

from offline_gateway.core.precache import get_precache_manifest
from offline_gateway.worker.network import NetworkError
from offline_gateway.worker.state import WorkerPhase, WorkerState
from offline_gateway.worker.strategies import without_cookies
from offline_gateway.worker.types import WorkerRequest, WorkerResponse

logger = logging.getLogger(__name__)


class PrecacheError(Exception):
    def __init__(self, url: str, reason: str):
        super().__init__(f"precache of {url} failed: {reason}")
        self.url = url
        self.reason = reason


async def _fetch_for_precache(state: WorkerState, url: str) -> tuple[WorkerRequest, WorkerResponse]:
    request = WorkerRequest(url=state.network.resolve(url))
    try:
        response = await state.network.fetch(request)
    except NetworkError as exc:
        raise PrecacheError(url, str(exc)) from exc
    if not response.ok:
        raise PrecacheError(url, f"HTTP {response.status}")
    return request, without_cookies(response)


async def precache(state: WorkerState, urls) -> int:
    """Fetch every URL, then store all of them in one write. Raises PrecacheError on the first failure."""
    results = await asyncio.gather(*(_fetch_for_precache(state, url) for url in urls), return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return state.registry.put_many(state.settings.static_cache_name, results)


async def install(state: WorkerState, manifest=None) -> bool:
    state.phase = WorkerPhase.INSTALLING
    logger.info("sw_installing version=%s cache=%s", state.settings.sw_version, state.settings.static_cache_name)

    try:
        urls = list(manifest) if manifest is not None else list(get_precache_manifest())
        stored = await precache(state, urls)
    except (PrecacheError, RuntimeError, sqlite3.Error) as exc:
        logger.error("sw_install_failed version=%s error=%s", state.settings.sw_version, exc)
        state.phase = WorkerPhase.ACTIVATED if state.serving else WorkerPhase.REDUNDANT
        return False

    state.phase = WorkerPhase.INSTALLED
    state.skip_waiting = True
    logger.info("sw_install_complete cache=%s assets=%d", state.settings.static_cache_name, stored)
    return True


async def activate(state: WorkerState) -> list[str]:
    state.phase = WorkerPhase.ACTIVATING
    keep = {state.settings.static_cache_name, state.settings.dynamic_cache_name}
    deleted = state.registry.delete_all_except(keep)
    for name in deleted:
        logger.info("sw_cache_deleted cache=%s", name)
    claimed = state.clients.claim()
    state.phase = WorkerPhase.ACTIVATED
    state.serving = True
    state.skip_waiting = False
    logger.info("sw_activated version=%s claimed_clients=%d", state.settings.sw_version, claimed)
    return deleted


def request_skip_waiting(state: WorkerState) -> bool:
    """Mark the worker to activate without waiting. Returns True if an activation should follow."""
    state.skip_waiting = True
    return state.phase == WorkerPhase.INSTALLED
