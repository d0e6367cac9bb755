"""Key-value + sorted-index store contract.

Every backend stores string values under string keys (optionally with a
TTL) and keeps time-ordered indexes of member ids. The time index is the
only ordering mechanism: a value absent from its index is unreachable by
listing, so callers write the value first and index it second.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional


class Store(ABC):
    """Async key-value store with TTL support and time-ranked indexes."""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Return True if ``key`` holds an unexpired value."""

    @abstractmethod
    async def put(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        """Write ``value`` under ``key``; ``ttl`` is in seconds, None means no expiry."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the value under ``key`` or None if absent/expired."""

    @abstractmethod
    async def get_many(self, keys: list[str]) -> list[Optional[str]]:
        """Fetch several values in one round trip, preserving order."""

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        """Delete keys, returning how many existed."""

    @abstractmethod
    async def index_by_time(self, namespace: str, member: str, timestamp: float) -> None:
        """Add or update ``member`` in the time index ``namespace``."""

    @abstractmethod
    async def remove_from_index(self, namespace: str, *members: str) -> int:
        """Remove members from a time index."""

    @abstractmethod
    async def range_by_time_desc(self, namespace: str, offset: int, limit: int) -> list[str]:
        """Return up to ``limit`` members newest-first, skipping ``offset``."""

    @abstractmethod
    async def index_size(self, namespace: str) -> int:
        """Number of members in a time index."""

    @abstractmethod
    async def list_keys(self, prefix: str) -> set[str]:
        """All live keys starting with ``prefix``."""

    async def close(self) -> None:
        """Release connections. Backends without resources need not override."""

    async def delete_many(self, keys: Iterable[str]) -> int:
        keys = list(keys)
        if not keys:
            return 0
        return await self.delete(*keys)
