"""Worker events and their dispatch.

Every lifecycle, network, sync, push and page message reaches the worker as one
of the event records below. ``dispatch`` picks the handler by event type, and a
failure inside a handler is logged and turned into that event's fallback value
so no event can take the worker down.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Union

from offline_gateway.worker.lifecycle import activate, install
from offline_gateway.worker.messages import handle_message
from offline_gateway.worker.push import notification_click, show_push
from offline_gateway.worker.resources import update_career_resources
from offline_gateway.worker.router import Strategy, route
from offline_gateway.worker.state import WorkerState
from offline_gateway.worker.strategies import cache_first, network_first, offline_json_response, passthrough
from offline_gateway.worker.sync_queue import replay_pending
from offline_gateway.worker.types import WorkerRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstallEvent:
    manifest: tuple[str, ...] | None = None


@dataclass(frozen=True)
class ActivateEvent:
    pass


@dataclass(frozen=True)
class FetchEvent:
    request: WorkerRequest


@dataclass(frozen=True)
class SyncEvent:
    tag: str


@dataclass(frozen=True)
class PeriodicSyncEvent:
    tag: str


@dataclass(frozen=True)
class PushEvent:
    data: bytes | None = None


@dataclass(frozen=True)
class NotificationClickEvent:
    notification_id: str
    action: str | None = None


@dataclass(frozen=True)
class MessageEvent:
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BeforeInstallPromptEvent:
    pass


WorkerEvent = Union[
    InstallEvent,
    ActivateEvent,
    FetchEvent,
    SyncEvent,
    PeriodicSyncEvent,
    PushEvent,
    NotificationClickEvent,
    MessageEvent,
    BeforeInstallPromptEvent,
]

_STRATEGIES = {
    Strategy.PASSTHROUGH: passthrough,
    Strategy.NETWORK_FIRST: network_first,
    Strategy.CACHE_FIRST: cache_first,
}


async def _on_install(state: WorkerState, event: InstallEvent):
    return await install(state, event.manifest)


async def _on_activate(state: WorkerState, event: ActivateEvent):
    return await activate(state)


async def _on_fetch(state: WorkerState, event: FetchEvent):
    request = event.request.with_url(state.network.resolve(event.request.url))
    if not state.intercepting:
        return await passthrough(state, request)
    selected = route(request, state.rules)
    logger.debug("sw_fetch key=%s kind=%s strategy=%s", request.key, selected.kind.value, selected.strategy.value)
    return await _STRATEGIES[selected.strategy](state, request)


async def _on_sync(state: WorkerState, event: SyncEvent):
    if event.tag != state.settings.sync_tag:
        logger.info("sw_sync_ignored tag=%s", event.tag)
        return None
    return await replay_pending(state, event.tag)


async def _on_periodic_sync(state: WorkerState, event: PeriodicSyncEvent):
    if event.tag != state.settings.periodic_sync_tag:
        logger.info("sw_periodic_sync_ignored tag=%s", event.tag)
        return None
    return await update_career_resources(state)


async def _on_push(state: WorkerState, event: PushEvent):
    return show_push(state.notifications, event.data, state.notification_defaults)


async def _on_notification_click(state: WorkerState, event: NotificationClickEvent):
    notification = state.notifications.get(event.notification_id)
    if notification is None:
        logger.info("sw_notification_missing id=%s", event.notification_id)
        return None
    return notification_click(
        state.notifications,
        state.clients,
        notification,
        event.action,
        origin=state.network.origin,
    )


async def _on_message(state: WorkerState, event: MessageEvent):
    return await handle_message(state, event.data)


async def _on_before_install_prompt(state: WorkerState, event: BeforeInstallPromptEvent):
    state.deferred_prompt = True
    return state.clients.broadcast({"type": "CAN_INSTALL", "promptEvent": True})


Handler = Callable[[WorkerState, Any], Awaitable[Any]]

_HANDLERS: dict[type, tuple[Handler, Callable[[], Any]]] = {
    InstallEvent: (_on_install, lambda: False),
    ActivateEvent: (_on_activate, list),
    FetchEvent: (_on_fetch, offline_json_response),
    SyncEvent: (_on_sync, lambda: None),
    PeriodicSyncEvent: (_on_periodic_sync, lambda: None),
    PushEvent: (_on_push, lambda: None),
    NotificationClickEvent: (_on_notification_click, lambda: None),
    MessageEvent: (_on_message, lambda: None),
    BeforeInstallPromptEvent: (_on_before_install_prompt, lambda: 0),
}


async def dispatch(state: WorkerState, event: WorkerEvent) -> Any:
    try:
        handler, fallback = _HANDLERS[type(event)]
    except KeyError:
        raise TypeError(f"Unsupported worker event: {type(event).__name__}") from None

    try:
        return await handler(state, event)
    except Exception:
        logger.exception("sw_event_failed event=%s", type(event).__name__)
        return fallback()
