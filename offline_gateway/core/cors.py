from __future__ import annotations

from offline_gateway.core.config import settings


def cors_allowed_origins() -> list[str]:
    # Pages served from the upstream origin post messages to the control API.
    origins = [settings.upstream_origin, *settings.cors_allowed_origins]
    return list(dict.fromkeys(origin.rstrip("/") for origin in origins))


def cors_allow_origin_regex() -> str | None:
    regex = (settings.cors_allow_origin_regex or "").strip()
    return regex or None
