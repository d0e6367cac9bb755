"""Typed access to article, digest and status records over a Store."""

import logging
from datetime import datetime
from typing import Optional

from pydantic import ValidationError

from ..exceptions import StoreUnavailable
from ..news.models import ArticleId, Digest, RawArticle, RewrittenArticle
from . import keys
from .base import Store

logger = logging.getLogger(__name__)


class ArticleRepository:
    """
    Reads and writes pipeline records.

    Read helpers degrade to empty results when the store is unavailable.
    Existence checks propagate StoreUnavailable: callers treat that as
    "unknown state" and must not proceed to a write.
    """

    def __init__(self, store: Store, ttl_seconds: int = 30 * 24 * 60 * 60):
        """
        Initialize repository.

        Args:
            store: Backing store handle (opened and closed by the caller)
            ttl_seconds: Retention window for raw and rewritten articles
        """
        self.store = store
        self.ttl_seconds = ttl_seconds

    # --- Raw articles ---

    async def raw_exists(self, article_id: ArticleId) -> bool:
        return await self.store.exists(keys.raw_key(article_id))

    async def save_raw(self, article: RawArticle) -> None:
        """Write the value, then index it, so the index never points at nothing."""
        await self.store.put(keys.raw_key(article.id), article.to_json(), ttl=self.ttl_seconds)
        await self.store.index_by_time(
            keys.ARTICLES_BY_DATE,
            article.id,
            article.published_at.timestamp() * 1000,
        )

    async def get_raw(self, article_id: ArticleId) -> Optional[RawArticle]:
        try:
            data = await self.store.get(keys.raw_key(article_id))
        except StoreUnavailable as e:
            logger.error("[STORE] %s", e)
            return None
        return self._decode(RawArticle, data)

    async def recent_ids(self, limit: int, offset: int = 0) -> list[ArticleId]:
        try:
            return [ArticleId(i) for i in await self.store.range_by_time_desc(keys.ARTICLES_BY_DATE, offset, limit)]
        except StoreUnavailable as e:
            logger.error("[STORE] %s", e)
            return []

    async def recent_raw(self, limit: int) -> list[RawArticle]:
        """Most recent raw articles, newest first; expired values are skipped."""
        raw = await self.raw_for(await self.recent_ids(limit))
        return [a for a in raw if a is not None]

    async def delete_article(self, article_id: ArticleId) -> int:
        """Remove a raw article, its index entry and any rewrite of it."""
        removed = await self.store.delete(keys.raw_key(article_id), keys.rewritten_key(article_id))
        await self.store.remove_from_index(keys.ARTICLES_BY_DATE, article_id)
        return removed

    async def index_size(self) -> int:
        try:
            return await self.store.index_size(keys.ARTICLES_BY_DATE)
        except StoreUnavailable as e:
            logger.error("[STORE] %s", e)
            return 0

    # --- Rewritten articles ---

    async def rewritten_exists(self, article_id: ArticleId) -> bool:
        return await self.store.exists(keys.rewritten_key(article_id))

    async def save_rewritten(self, article: RewrittenArticle) -> None:
        await self.store.put(keys.rewritten_key(article.id), article.to_json(), ttl=self.ttl_seconds)

    async def get_rewritten(self, article_id: ArticleId) -> Optional[RewrittenArticle]:
        try:
            data = await self.store.get(keys.rewritten_key(article_id))
        except StoreUnavailable as e:
            logger.error("[STORE] %s", e)
            return None
        return self._decode(RewrittenArticle, data)

    async def rewritten_for(self, ids: list[ArticleId]) -> list[Optional[RewrittenArticle]]:
        """Rewritten records for ``ids`` in one round trip (None where missing)."""
        values = await self._get_many([keys.rewritten_key(i) for i in ids])
        if not values:
            return [None] * len(ids)
        return [self._decode(RewrittenArticle, v) for v in values]

    async def raw_for(self, ids: list[ArticleId]) -> list[Optional[RawArticle]]:
        values = await self._get_many([keys.raw_key(i) for i in ids])
        if not values:
            return [None] * len(ids)
        return [self._decode(RawArticle, v) for v in values]

    async def rewritten_keys(self) -> set[str]:
        return await self.store.list_keys(keys.REWRITTEN_PREFIX)

    async def clear_rewritten(self) -> int:
        """Delete every rewritten article; returns how many were found."""
        found = await self.rewritten_keys()
        if not found:
            return 0
        await self.store.delete_many(sorted(found))
        return len(found)

    # --- Status fields ---

    async def record_scrape(self, when: datetime, saved: int) -> int:
        """Stamp the run time and add ``saved`` to the cumulative article count."""
        previous = await self.store.get(keys.TOTAL_ARTICLES)
        total = (int(previous) if previous else 0) + saved
        await self.store.put(keys.LAST_RUN, when.isoformat())
        await self.store.put(keys.TOTAL_ARTICLES, str(total))
        return total

    async def last_scrape(self) -> tuple[Optional[datetime], int]:
        try:
            last_run, total = await self.store.get_many([keys.LAST_RUN, keys.TOTAL_ARTICLES])
        except StoreUnavailable as e:
            logger.error("[STORE] %s", e)
            return None, 0
        when = datetime.fromisoformat(last_run) if last_run else None
        return when, int(total) if total else 0

    # --- Digests ---

    async def save_digest(self, digest: Digest) -> None:
        """Persist a new snapshot, point "latest" at it and append to history."""
        stamp = digest.timestamp.isoformat()
        body = digest.to_json()
        await self.store.put(keys.digest_snapshot_key(stamp, digest.scope), body)
        await self.store.put(keys.digest_latest_key(digest.scope), body)
        await self.store.index_by_time(
            keys.digest_history_key(digest.scope),
            stamp,
            digest.timestamp.timestamp() * 1000,
        )

    async def latest_digest(self, scope: str = keys.CORPUS_SCOPE) -> Optional[Digest]:
        try:
            data = await self.store.get(keys.digest_latest_key(scope))
        except StoreUnavailable as e:
            logger.error("[STORE] %s", e)
            return None
        return self._decode(Digest, data)

    async def digest_history(self, scope: str = keys.CORPUS_SCOPE, limit: int = 10) -> list[str]:
        """Timestamps of past snapshots, newest first."""
        try:
            return await self.store.range_by_time_desc(keys.digest_history_key(scope), 0, limit)
        except StoreUnavailable as e:
            logger.error("[STORE] %s", e)
            return []

    async def get_digest_snapshot(self, timestamp: str, scope: str = keys.CORPUS_SCOPE) -> Optional[Digest]:
        try:
            data = await self.store.get(keys.digest_snapshot_key(timestamp, scope))
        except StoreUnavailable as e:
            logger.error("[STORE] %s", e)
            return None
        return self._decode(Digest, data)

    # --- Helpers ---

    async def _get_many(self, store_keys: list[str]) -> list[Optional[str]]:
        try:
            return await self.store.get_many(store_keys)
        except StoreUnavailable as e:
            logger.error("[STORE] %s", e)
            return []

    @staticmethod
    def _decode(model, data: Optional[str]):
        if data is None:
            return None
        try:
            return model.from_json(data)
        except ValidationError as e:
            logger.warning("[STORE] Discarding malformed %s record: %s", model.__name__, e)
            return None
