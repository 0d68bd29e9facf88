from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class MessageRequest(BaseModel):
    type: str = Field(default="", max_length=64)
    urls: list[str] | None = Field(default=None, max_length=200)


class SyncTriggerRequest(BaseModel):
    tag: str = Field(min_length=1, max_length=128)


class QueueMessageRequest(BaseModel):
    payload: dict[str, Any] = Field(default_factory=dict)
    tag: str | None = Field(default=None, max_length=128)


class NotificationClickRequest(BaseModel):
    action: str | None = Field(default=None, max_length=32)


class ClientRegistrationRequest(BaseModel):
    url: str = Field(min_length=1, max_length=2048)
