from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class WindowClient:
    id: str
    url: str
    focused: bool = False
    controlled: bool = False
    messages: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "url": self.url,
            "type": "window",
            "focused": self.focused,
            "controlled": self.controlled,
        }


class ClientRegistry:
    """Page windows known to the worker, with a per-window message outbox."""

    def __init__(self) -> None:
        self._clients: dict[str, WindowClient] = {}

    def register(self, url: str) -> WindowClient:
        client = WindowClient(id=uuid.uuid4().hex, url=url)
        self._clients[client.id] = client
        return client

    def get(self, client_id: str) -> WindowClient | None:
        return self._clients.get(client_id)

    def remove(self, client_id: str) -> bool:
        return self._clients.pop(client_id, None) is not None

    def match_all(self) -> list[WindowClient]:
        return list(self._clients.values())

    def claim(self) -> int:
        for client in self._clients.values():
            client.controlled = True
        return len(self._clients)

    def focus(self, client_id: str) -> WindowClient | None:
        target = self._clients.get(client_id)
        if target is None:
            return None
        for client in self._clients.values():
            client.focused = client.id == client_id
        return target

    def open_window(self, url: str) -> WindowClient:
        client = self.register(url)
        client.controlled = True
        self.focus(client.id)
        logger.info("sw_window_opened url=%s client_id=%s", url, client.id)
        return client

    def post_message(self, client_id: str, message: dict[str, Any]) -> bool:
        client = self._clients.get(client_id)
        if client is None:
            return False
        client.messages.append(dict(message))
        return True

    def broadcast(self, message: dict[str, Any]) -> int:
        for client in self._clients.values():
            client.messages.append(dict(message))
        return len(self._clients)

    def drain_messages(self, client_id: str) -> list[dict[str, Any]]:
        client = self._clients.get(client_id)
        if client is None:
            return []
        messages, client.messages = client.messages, []
        return messages
