"""In-process store with an injectable clock.

Used for local runs without redis and by the test-suite, where the clock
is advanced manually to exercise expiry.
"""

import time
from typing import Callable, Optional

from .base import Store


class MemoryStore(Store):
    """Dictionary-backed store honouring TTLs against ``clock()``."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock
        self._values: dict[str, tuple[str, Optional[float]]] = {}
        self._indexes: dict[str, dict[str, float]] = {}

    def _live(self, key: str) -> Optional[str]:
        entry = self._values.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self.clock() >= expires_at:
            del self._values[key]
            return None
        return value

    async def exists(self, key: str) -> bool:
        return self._live(key) is not None

    async def put(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        expires_at = self.clock() + ttl if ttl else None
        self._values[key] = (value, expires_at)
        return True

    async def get(self, key: str) -> Optional[str]:
        return self._live(key)

    async def get_many(self, keys: list[str]) -> list[Optional[str]]:
        return [self._live(key) for key in keys]

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._live(key) is not None:
                removed += 1
            self._values.pop(key, None)
        return removed

    async def index_by_time(self, namespace: str, member: str, timestamp: float) -> None:
        self._indexes.setdefault(namespace, {})[member] = timestamp

    async def remove_from_index(self, namespace: str, *members: str) -> int:
        index = self._indexes.get(namespace, {})
        return sum(1 for m in members if index.pop(m, None) is not None)

    async def range_by_time_desc(self, namespace: str, offset: int, limit: int) -> list[str]:
        if limit <= 0:
            return []
        index = self._indexes.get(namespace, {})
        # Same tie-break as redis ZREVRANGE: higher score first, then reverse lexical
        ordered = sorted(index.items(), key=lambda item: (item[1], item[0]), reverse=True)
        return [member for member, _ in ordered[offset : offset + limit]]

    async def index_size(self, namespace: str) -> int:
        return len(self._indexes.get(namespace, {}))

    async def list_keys(self, prefix: str) -> set[str]:
        return {key for key in list(self._values) if key.startswith(prefix) and self._live(key) is not None}
