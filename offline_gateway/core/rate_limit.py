from __future__ import annotations

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from offline_gateway.core.config import settings


def control_caller_key(request: Request) -> str:
    """Budget control calls per API key when one is sent, otherwise per address."""
    api_key = request.headers.get("x-api-key")
    if api_key:
        return f"key:{api_key}"
    return f"ip:{get_remote_address(request)}"


# Proxied page traffic is not limited; only the /v1/sw control routes opt in.
limiter = Limiter(key_func=control_caller_key)


def rate_limit(limit: str | None = None):
    if settings.rate_limit_enabled:
        return limiter.limit(limit or settings.rate_limit)

    def decorator(func):
        return func

    return decorator
