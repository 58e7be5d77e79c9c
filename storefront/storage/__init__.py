"""
Key-Value Persistence Module
"""
from storefront.config.settings import Settings

from .base import KeyValueStore
from .memory import MemoryStore
from .redis_store import RedisStore


def create_store(settings: Settings) -> KeyValueStore:
    """Build the configured backend (Redis stores still need init())"""
    namespace = settings.storage.key_namespace
    if settings.storage.backend == "redis":
        return RedisStore(settings.redis, namespace=namespace)
    return MemoryStore(namespace=namespace)


__all__ = [
    "KeyValueStore",
    "MemoryStore",
    "RedisStore",
    "create_store",
]
