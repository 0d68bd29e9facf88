from offline_gateway.cache.registry import CacheHandle, CacheRegistry

__all__ = ["CacheHandle", "CacheRegistry"]
