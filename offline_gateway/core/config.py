from __future__ import annotations

import os
from dataclasses import dataclass
from urllib.parse import urlparse

from dotenv import load_dotenv

load_dotenv()

def _get_env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def _get_env_bool(name: str, default: bool) -> bool:
    raw = _get_env(name, None)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _get_env_int(name: str, default: int) -> int:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_env_float(name: str, default: float) -> float:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_env_list(name: str, default: list[str]) -> tuple[str, ...]:
    raw = _get_env(name, None)
    if raw is None:
        return tuple(default)
    values = [item.strip() for item in raw.split(",")]
    clean = [item for item in values if item]
    return tuple(clean) if clean else tuple(default)


@dataclass(frozen=True)
class Settings:
    api_key: str | None
    rate_limit: str
    rate_limit_enabled: bool
    log_level: str
    sentry_dsn: str | None
    cors_allowed_origins: tuple[str, ...]
    cors_allow_origin_regex: str | None
    cors_allow_credentials: bool
    upstream_origin: str
    network_timeout_s: float
    sw_version: str
    static_cache_name: str
    dynamic_cache_name: str
    cache_db_path: str
    sync_db_path: str
    precache_manifest_path: str | None
    precache_on_startup: bool
    offline_page: str
    api_prefix: str
    static_extensions: tuple[str, ...]
    sync_tag: str
    chat_sync_endpoint: str
    sync_max_attempts: int
    periodic_sync_tag: str
    periodic_sync_interval_s: int
    resources_endpoint: str
    default_notification_title: str
    default_notification_body: str
    default_notification_icon: str
    default_notification_badge: str


settings = Settings(
    api_key=_get_env("API_KEY"),
    rate_limit=_get_env("RATE_LIMIT", "120/minute") or "120/minute",
    rate_limit_enabled=_get_env_bool("RATE_LIMIT_ENABLED", True),
    log_level=_get_env("LOG_LEVEL", "INFO") or "INFO",
    sentry_dsn=_get_env("SENTRY_DSN"),
    cors_allowed_origins=_get_env_list(
        "CORS_ALLOWED_ORIGINS",
        [
            "http://localhost:8000",
            "http://127.0.0.1:8000",
            "http://localhost:3000",
        ],
    ),
    cors_allow_origin_regex=_get_env("CORS_ALLOW_ORIGIN_REGEX"),
    cors_allow_credentials=_get_env_bool("CORS_ALLOW_CREDENTIALS", False),
    upstream_origin=(_get_env("UPSTREAM_ORIGIN", "http://localhost:8080") or "http://localhost:8080").rstrip("/"),
    network_timeout_s=_get_env_float("NETWORK_TIMEOUT_S", 10.0),
    sw_version=_get_env("SW_VERSION", "2.0.0") or "2.0.0",
    static_cache_name=_get_env("STATIC_CACHE_NAME", "zewed-ai-v2.0.0") or "zewed-ai-v2.0.0",
    dynamic_cache_name=_get_env("DYNAMIC_CACHE_NAME", "zewed-dynamic-v1.0.0") or "zewed-dynamic-v1.0.0",
    cache_db_path=_get_env("CACHE_DB_PATH", "data/sw_cache.db") or "data/sw_cache.db",
    sync_db_path=_get_env("SYNC_DB_PATH", "data/sw_sync.db") or "data/sw_sync.db",
    precache_manifest_path=_get_env("PRECACHE_MANIFEST_PATH"),
    precache_on_startup=_get_env_bool("PRECACHE_ON_STARTUP", True),
    offline_page=_get_env("OFFLINE_PAGE", "/offline.html") or "/offline.html",
    api_prefix=_get_env("API_PREFIX", "/api/") or "/api/",
    static_extensions=_get_env_list(
        "STATIC_EXTENSIONS",
        ["css", "js", "png", "jpg", "svg", "woff", "woff2", "ttf"],
    ),
    sync_tag=_get_env("SYNC_TAG", "sync-chat-messages") or "sync-chat-messages",
    chat_sync_endpoint=_get_env("CHAT_SYNC_ENDPOINT", "/api/chat/messages") or "/api/chat/messages",
    sync_max_attempts=max(0, _get_env_int("SYNC_MAX_ATTEMPTS", 0)),
    periodic_sync_tag=_get_env("PERIODIC_SYNC_TAG", "update-career-resources") or "update-career-resources",
    periodic_sync_interval_s=max(0, _get_env_int("PERIODIC_SYNC_INTERVAL_S", 86400)),
    resources_endpoint=_get_env("RESOURCES_ENDPOINT", "/api/resources/latest") or "/api/resources/latest",
    default_notification_title=_get_env("DEFAULT_NOTIFICATION_TITLE", "New Message") or "New Message",
    default_notification_body=(
        _get_env("DEFAULT_NOTIFICATION_BODY", "You have a new message from Career Assistant")
        or "You have a new message from Career Assistant"
    ),
    default_notification_icon=(
        _get_env("DEFAULT_NOTIFICATION_ICON", "/assets/icons/icon-192x192.png") or "/assets/icons/icon-192x192.png"
    ),
    default_notification_badge=(
        _get_env("DEFAULT_NOTIFICATION_BADGE", "/assets/icons/badge-72x72.png") or "/assets/icons/badge-72x72.png"
    ),
)

if settings.static_cache_name == settings.dynamic_cache_name:
    raise RuntimeError("STATIC_CACHE_NAME and DYNAMIC_CACHE_NAME must differ.")

if urlparse(settings.upstream_origin).scheme not in {"http", "https"}:
    raise RuntimeError("UPSTREAM_ORIGIN must be an http(s) URL.")

if not settings.api_prefix.startswith("/"):
    raise RuntimeError("API_PREFIX must start with '/'.")
