from __future__ import annotations

from pathlib import Path

from offline_gateway.core.config import settings

_MANIFEST_CACHE: dict[Path, tuple[str, ...]] = {}
_DEFAULT_MANIFEST_PATH = Path(__file__).resolve().parents[2] / "config" / "precache.yaml"


def _manifest_path(path: str | Path | None) -> Path:
    if path:
        return Path(path)
    if settings.precache_manifest_path:
        return Path(settings.precache_manifest_path)
    return _DEFAULT_MANIFEST_PATH


def get_precache_manifest(path: str | Path | None = None) -> tuple[str, ...]:
    """Load the ordered install-time asset list from config/precache.yaml and cache it."""
    manifest_path = _manifest_path(path)

    cached = _MANIFEST_CACHE.get(manifest_path)
    if cached is not None:
        return cached

    if not manifest_path.exists():
        raise RuntimeError(
            f"Precache manifest not found at '{manifest_path}'. "
            "Expected file: config/precache.yaml"
        )

    try:
        import yaml  # type: ignore[import-not-found]
    except Exception as exc:
        raise RuntimeError(
            "Unable to parse precache manifest because PyYAML is unavailable. "
            "Install dependency: PyYAML."
        ) from exc

    try:
        raw = manifest_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RuntimeError(
            f"Failed to read precache manifest '{manifest_path}': {exc}"
        ) from exc

    try:
        parsed = yaml.safe_load(raw)
    except yaml.YAMLError as exc:  # type: ignore[attr-defined]
        raise RuntimeError(
            f"Invalid YAML in precache manifest '{manifest_path}': {exc}"
        ) from exc

    if not isinstance(parsed, dict) or not isinstance(parsed.get("assets"), list):
        raise RuntimeError(
            f"Invalid precache manifest '{manifest_path}': expected a top-level 'assets' list."
        )

    assets = tuple(str(item).strip() for item in parsed["assets"] if str(item or "").strip())
    _MANIFEST_CACHE[manifest_path] = assets
    return assets


def clear_precache_manifest_cache() -> None:
    _MANIFEST_CACHE.clear()
