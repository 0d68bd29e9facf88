from __future__ import annotations

import json
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

from offline_gateway.worker.clients import ClientRegistry, WindowClient
from offline_gateway.worker.types import absolute_url

logger = logging.getLogger(__name__)

NOTIFICATION_ACTIONS = (
    {"action": "open", "title": "Open App"},
    {"action": "dismiss", "title": "Dismiss"},
)
DEFAULT_VIBRATE = (200, 100, 200)


@dataclass(frozen=True)
class NotificationDefaults:
    title: str = "New Message"
    body: str = "You have a new message from Career Assistant"
    icon: str = "/assets/icons/icon-192x192.png"
    badge: str = "/assets/icons/badge-72x72.png"
    url: str = "/"

    @classmethod
    def from_settings(cls, settings) -> "NotificationDefaults":
        return cls(
            title=settings.default_notification_title,
            body=settings.default_notification_body,
            icon=settings.default_notification_icon,
            badge=settings.default_notification_badge,
        )


@dataclass(frozen=True)
class NotificationIntent:
    title: str
    body: str
    icon: str
    badge: str
    target_url: str
    timestamp: int
    tag: str | None = None


@dataclass
class Notification:
    id: str
    title: str
    body: str
    icon: str
    badge: str
    data: dict[str, Any]
    tag: str | None = None
    vibrate: list[int] = field(default_factory=lambda: list(DEFAULT_VIBRATE))
    actions: list[dict[str, str]] = field(default_factory=lambda: [dict(a) for a in NOTIFICATION_ACTIONS])

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "body": self.body,
            "icon": self.icon,
            "badge": self.badge,
            "tag": self.tag,
            "vibrate": list(self.vibrate),
            "data": dict(self.data),
            "actions": [dict(a) for a in self.actions],
        }


class NotificationCenter:
    """The surface notifications are rendered on. Showing a tag again replaces the previous one."""

    def __init__(self) -> None:
        self._shown: dict[str, Notification] = {}

    def show(self, notification: Notification) -> Notification:
        if notification.tag:
            for existing in list(self._shown.values()):
                if existing.tag == notification.tag:
                    self._shown.pop(existing.id, None)
        self._shown[notification.id] = notification
        logger.info("sw_notification_shown id=%s title=%s", notification.id, notification.title)
        return notification

    def get(self, notification_id: str) -> Notification | None:
        return self._shown.get(notification_id)

    def close(self, notification_id: str) -> bool:
        return self._shown.pop(notification_id, None) is not None

    def list(self) -> list[Notification]:
        return list(self._shown.values())


def _str_field(payload: dict[str, Any], key: str, default: str) -> str:
    value = payload.get(key)
    if value is None or value == "":
        return default
    return str(value)


def parse_push_payload(
    data: bytes | str | None,
    defaults: NotificationDefaults | None = None,
) -> NotificationIntent:
    defaults = defaults or NotificationDefaults()
    payload: dict[str, Any] = {}
    if data:
        try:
            text = data.decode("utf-8") if isinstance(data, bytes) else data
            parsed = json.loads(text)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.info("sw_push_payload_invalid error=%s", exc)
        else:
            if isinstance(parsed, dict):
                payload = parsed
            else:
                logger.info("sw_push_payload_invalid error=expected a JSON object")

    tag = payload.get("tag")
    return NotificationIntent(
        title=_str_field(payload, "title", defaults.title),
        body=_str_field(payload, "body", defaults.body),
        icon=_str_field(payload, "icon", defaults.icon),
        badge=_str_field(payload, "badge", defaults.badge),
        target_url=_str_field(payload, "url", defaults.url),
        timestamp=int(time.time() * 1000),
        tag=str(tag) if tag else None,
    )


def build_notification(intent: NotificationIntent) -> Notification:
    return Notification(
        id=uuid.uuid4().hex,
        title=intent.title,
        body=intent.body,
        icon=intent.icon,
        badge=intent.badge,
        tag=intent.tag,
        data={"url": intent.target_url, "timestamp": intent.timestamp},
    )


def show_push(
    center: NotificationCenter,
    data: bytes | str | None,
    defaults: NotificationDefaults | None = None,
) -> Notification:
    intent = parse_push_payload(data, defaults)
    return center.show(build_notification(intent))


def notification_click(
    center: NotificationCenter,
    clients: ClientRegistry,
    notification: Notification,
    action: str | None,
    *,
    origin: str,
) -> WindowClient | None:
    """Close the notification, then focus or open the window for its target URL.

    ``dismiss`` closes only. ``open`` and a plain body click (no action) behave the same.
    """
    center.close(notification.id)
    if action == "dismiss":
        return None

    target = absolute_url(str(notification.data.get("url") or "/"), origin)
    for client in clients.match_all():
        if absolute_url(client.url, origin) == target:
            return clients.focus(client.id)
    return clients.open_window(target)
