from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Coroutine

import httpx

from offline_gateway.cache.registry import CacheRegistry
from offline_gateway.worker.clients import ClientRegistry
from offline_gateway.worker.network import Network
from offline_gateway.worker.push import NotificationCenter, NotificationDefaults
from offline_gateway.worker.router import RoutingRules
from offline_gateway.worker.sync_queue import SyncStore

logger = logging.getLogger(__name__)


class WorkerPhase(str, Enum):
    PARSED = "parsed"
    INSTALLING = "installing"
    INSTALLED = "installed"
    ACTIVATING = "activating"
    ACTIVATED = "activated"
    REDUNDANT = "redundant"


@dataclass
class WorkerState:
    """Everything one worker instance owns for the lifetime of the process."""

    settings: Any
    registry: CacheRegistry
    network: Network
    sync_store: SyncStore
    rules: RoutingRules
    clients: ClientRegistry = field(default_factory=ClientRegistry)
    notifications: NotificationCenter = field(default_factory=NotificationCenter)
    notification_defaults: NotificationDefaults = field(default_factory=NotificationDefaults)
    phase: WorkerPhase = WorkerPhase.PARSED
    serving: bool = False
    skip_waiting: bool = False
    deferred_prompt: bool = False
    _tasks: set[asyncio.Task] = field(default_factory=set, repr=False)

    @property
    def intercepting(self) -> bool:
        # An activated version keeps answering fetches while a newer one installs.
        return self.serving

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str) -> asyncio.Task:
        """Run ``coro`` unawaited; its failure is logged and never reaches the caller."""

        async def guarded() -> None:
            try:
                await coro
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning("sw_background_task_failed name=%s error=%s", name, exc)

        task = asyncio.create_task(guarded(), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def background_tasks(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        await self.drain()
        await self.network.aclose()
        self.registry.close()
        self.sync_store.close()


def build_worker_state(
    settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> WorkerState:
    return WorkerState(
        settings=settings,
        registry=CacheRegistry(settings.cache_db_path),
        network=Network(settings.upstream_origin, timeout_s=settings.network_timeout_s, transport=transport),
        sync_store=SyncStore(settings.sync_db_path),
        rules=RoutingRules.from_settings(settings),
        notification_defaults=NotificationDefaults.from_settings(settings),
    )
