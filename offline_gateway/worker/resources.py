from __future__ import annotations

import json
import logging
import time

from offline_gateway.worker.network import NetworkError
from offline_gateway.worker.push import Notification, NotificationIntent, build_notification
from offline_gateway.worker.state import WorkerState
from offline_gateway.worker.types import WorkerRequest, WorkerResponse

logger = logging.getLogger(__name__)

RESOURCES_NOTIFICATION_TAG = "resources-update"


async def update_career_resources(state: WorkerState) -> Notification | None:
    """Refresh the latest career resources in the dynamic cache and announce new ones."""
    request = WorkerRequest(
        url=state.network.resolve(state.settings.resources_endpoint),
        headers={"accept": "application/json"},
    )
    try:
        response = await state.network.fetch(request)
        resources = response.json() if response.ok else None
    except (NetworkError, ValueError) as exc:
        logger.error("sw_resources_update_failed error=%s", exc)
        return None

    if resources is None:
        logger.error("sw_resources_update_failed error=HTTP %s", response.status)
        return None

    state.registry.put(
        state.settings.dynamic_cache_name,
        WorkerRequest(url=request.url),
        WorkerResponse(
            status=200,
            headers={"content-type": "application/json"},
            body=json.dumps(resources).encode("utf-8"),
            url=request.url,
        ),
    )

    count = len(resources) if isinstance(resources, list) else 0
    if count == 0:
        return None

    defaults = state.notification_defaults
    intent = NotificationIntent(
        title="New Career Resources",
        body=f"{count} new resources available",
        icon=defaults.icon,
        badge=defaults.badge,
        target_url=defaults.url,
        timestamp=int(time.time() * 1000),
        tag=RESOURCES_NOTIFICATION_TAG,
    )
    return state.notifications.show(build_notification(intent))
