"""Store backends and the typed repository over them."""

from ..config.settings import Settings
from .base import Store
from .memory_store import MemoryStore
from .redis_store import RedisStore
from .repository import ArticleRepository


def open_store(config: Settings) -> Store:
    """Open the configured backend. The caller owns the handle and closes it."""
    if config.store_backend == "memory":
        return MemoryStore()
    return RedisStore.from_url(config.resolved_redis_url)


__all__ = [
    "ArticleRepository",
    "MemoryStore",
    "RedisStore",
    "Store",
    "open_store",
]
