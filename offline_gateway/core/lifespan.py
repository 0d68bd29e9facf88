import contextlib
from contextlib import asynccontextmanager
import asyncio
import logging

from offline_gateway.core.config import settings
from offline_gateway.worker.events import ActivateEvent, InstallEvent, PeriodicSyncEvent, dispatch
from offline_gateway.worker.state import build_worker_state

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app):
    state = build_worker_state(settings)
    app.state.worker = state

    if settings.precache_on_startup:
        installed = await dispatch(state, InstallEvent())
        if installed:
            await dispatch(state, ActivateEvent())
        else:
            logger.error("sw_startup_install_failed phase=%s", state.phase.value)

    stop_event = asyncio.Event()

    async def periodic_sync() -> None:
        interval = settings.periodic_sync_interval_s
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
            else:
                break
            await dispatch(state, PeriodicSyncEvent(tag=settings.periodic_sync_tag))

    sync_task = None
    if settings.periodic_sync_interval_s > 0:
        sync_task = asyncio.create_task(periodic_sync())
    yield
    stop_event.set()
    if sync_task is not None and not sync_task.done():
        sync_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sync_task
    await state.aclose()
