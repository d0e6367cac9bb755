"""Digest aggregator: ranks a scope of articles into a Digest snapshot.

One oracle call per scope. The response must be a JSON object with an
``overview`` and a ``topStories`` list whose ``articleIndex`` values
point into the enumerated article list; anything else fails the whole
scope and nothing is persisted.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Union

from ..agents.oracle import Oracle
from ..exceptions import NewsDigestError, OracleUnparsable
from ..news.models import ArticleId, Digest, QuoteHighlight, RawArticle, RewrittenArticle, TopStory
from ..prompts import render
from ..region.profile import RegionContext
from ..store import keys
from ..store.repository import ArticleRepository
from ..utils.json_extract import extract_json_object
from .categories import Category

logger = logging.getLogger(__name__)

DigestInput = Union[RawArticle, RewrittenArticle]


class DigestAggregator:
    """Builds and persists corpus and category digests."""

    def __init__(
        self,
        oracle: Oracle,
        repository: ArticleRepository,
        region: RegionContext,
        categories: list[Category],
        article_limit: int = 50,
        category_article_limit: int = 100,
        top_stories: int = 10,
        category_top_stories: int = 8,
    ):
        """
        Initialize digest aggregator.

        Args:
            oracle: Generative text backend
            repository: Store access
            region: Region profile used in the prompts
            categories: Category predicate table
            article_limit: Most recent records considered for the corpus digest
            category_article_limit: Most recent indexed records scanned for category digests
            top_stories: Stories requested for the corpus digest
            category_top_stories: Stories requested per category digest
        """
        self.oracle = oracle
        self.repository = repository
        self.region = region
        self.categories = categories
        self.article_limit = article_limit
        self.category_article_limit = category_article_limit
        self.top_stories = top_stories
        self.category_top_stories = category_top_stories

    # --- Building ---

    async def build_digest(
        self,
        records: list[DigestInput],
        scope: str = keys.CORPUS_SCOPE,
    ) -> Digest:
        """
        Rank ``records`` into a new Digest and persist it.

        Args:
            records: Articles in the scope, in the order they are enumerated
            scope: "all" or a category slug

        Returns:
            The persisted Digest

        Raises:
            ValueError: If ``records`` is empty or the scope is unknown
            OracleError: If the oracle call fails
            OracleUnparsable: If the response is not a usable digest
        """
        if not records:
            raise ValueError(f"No articles to digest for scope {scope!r}")

        prompt = self._build_prompt(records, scope)
        logger.info("[DIGEST] Building %s digest over %d articles", scope, len(records))
        response_text = await self.oracle.complete(prompt, step="digest")

        digest = self.parse_digest(response_text, records, scope)
        digest.model = self.oracle.model_id
        await self.repository.save_digest(digest)
        logger.info("[DIGEST] Saved %s digest with %d top stories", scope, len(digest.top_stories))
        return digest

    def parse_digest(self, response_text: str, records: list[DigestInput], scope: str) -> Digest:
        """Validate the oracle's JSON and map indices back to article ids."""
        data = extract_json_object(response_text)
        if data is None:
            raise OracleUnparsable("No JSON found in digest response")

        overview = data.get("overview")
        if not isinstance(overview, str) or not overview.strip():
            raise OracleUnparsable("Digest response missing overview")

        raw_stories = data.get("topStories")
        if not isinstance(raw_stories, list):
            raise OracleUnparsable("Digest response missing topStories")

        ids = [ArticleId(r.id) for r in records]
        top_stories = [self._parse_story(i, entry, ids) for i, entry in enumerate(raw_stories, start=1)]

        trends = data.get("trends") or []
        if not isinstance(trends, list):
            raise OracleUnparsable("Digest trends must be a list")

        looking_ahead = data.get("lookingAhead")
        return Digest(
            timestamp=datetime.now(timezone.utc),
            scope=scope,
            article_ids=ids,
            top_stories=top_stories,
            overview=overview.strip(),
            trends=[str(t) for t in trends],
            quote=_parse_quote(data.get("quote")),
            looking_ahead=looking_ahead.strip() if isinstance(looking_ahead, str) and looking_ahead.strip() else None,
            categories=self._parse_categories(data.get("categories"), ids),
        )

    @staticmethod
    def _parse_story(position: int, entry, ids: list[ArticleId]) -> TopStory:
        if not isinstance(entry, dict):
            raise OracleUnparsable(f"Top story {position} is not an object")

        index = entry.get("articleIndex")
        if isinstance(index, str) and index.strip().isdigit():
            index = int(index)
        if not isinstance(index, int) or not 1 <= index <= len(ids):
            raise OracleUnparsable(f"Top story {position} has invalid articleIndex {index!r}")

        headline = entry.get("headline")
        if not isinstance(headline, str) or not headline.strip():
            raise OracleUnparsable(f"Top story {position} has no headline")

        return TopStory(
            rank=entry.get("rank") if isinstance(entry.get("rank"), int) else position,
            article_index=index,
            article_id=ids[index - 1],
            headline=headline.strip(),
            summary=str(entry.get("summary") or ""),
            significance=str(entry.get("significance") or ""),
        )

    def _parse_categories(self, value, ids: list[ArticleId]) -> dict[str, list[ArticleId]]:
        """Oracle-proposed category membership; unknown slugs and bad indices are dropped."""
        if not isinstance(value, dict):
            return {}
        known = {c.slug for c in self.categories}
        result: dict[str, list[ArticleId]] = {}
        for slug, indices in value.items():
            if slug not in known or not isinstance(indices, list):
                continue
            result[slug] = [ids[i - 1] for i in indices if isinstance(i, int) and 1 <= i <= len(ids)]
        return result

    def _build_prompt(self, records: list[DigestInput], scope: str) -> str:
        articles_text = "\n\n".join(format_article(i, r) for i, r in enumerate(records, start=1))

        if scope == keys.CORPUS_SCOPE:
            category_lines = ",\n".join(
                f'    "{c.slug}": [<indices of {c.title.lower()} articles>]' for c in self.categories
            )
            return render(
                "digest",
                publication=self.region.publication,
                region_name=self.region.name,
                region_country=self.region.country,
                num_articles=str(len(records)),
                articles_text=articles_text,
                category_lines=category_lines,
                max_stories=str(self.top_stories),
            )

        category = self._category(scope)
        return render(
            "category_digest",
            publication=self.region.publication,
            region_name=self.region.name,
            category_title=category.title,
            category_lower=category.title.lower(),
            category_description=category.description,
            num_articles=str(len(records)),
            articles_text=articles_text,
            max_stories=str(self.category_top_stories),
        )

    def _category(self, slug: str) -> Category:
        for category in self.categories:
            if category.slug == slug:
                return category
        raise ValueError(f"Unknown category {slug!r}")

    # --- Scopes ---

    async def publishable_records(self, limit: int) -> list[RewrittenArticle]:
        """Rewrites carrying a local angle among the ``limit`` most recent indexed ids."""
        ids = await self.repository.recent_ids(limit)
        rewritten = await self.repository.rewritten_for(ids)
        return [r for r in rewritten if r is not None and r.is_publishable]

    async def corpus_records(self) -> list[RewrittenArticle]:
        return await self.publishable_records(self.article_limit)

    async def build_corpus_digest(self) -> Optional[Digest]:
        """Digest over the rewritten corpus; None when nothing is publishable."""
        records = await self.corpus_records()
        if not records:
            logger.warning("[DIGEST] No rewritten articles with a local angle, skipping corpus digest")
            return None
        return await self.build_digest(records, keys.CORPUS_SCOPE)

    async def build_category_digests(self) -> dict[str, Digest]:
        """
        One digest per category that has members.

        Members are publishable rewrites only; raw records that were never
        rewritten or failed relevance are not eligible. A failing category
        is logged and the others still run.
        """
        records = await self.publishable_records(self.category_article_limit)
        digests: dict[str, Digest] = {}

        for category in self.categories:
            members = category.filter(records)
            if not members:
                logger.info("[DIGEST] No %s articles, skipping", category.slug)
                continue
            try:
                digests[category.slug] = await self.build_digest(members, category.slug)
            except NewsDigestError as e:
                logger.error("[DIGEST] %s digest failed: %s", category.slug, e)

        logger.info("[DIGEST] Built %d of %d category digests", len(digests), len(self.categories))
        return digests

    async def build_all(self) -> dict[str, Digest]:
        """Corpus digest followed by every category digest."""
        digests: dict[str, Digest] = {}
        try:
            corpus = await self.build_corpus_digest()
            if corpus is not None:
                digests[keys.CORPUS_SCOPE] = corpus
        except NewsDigestError as e:
            logger.error("[DIGEST] Corpus digest failed: %s", e)

        digests.update(await self.build_category_digests())
        return digests


def format_article(index: int, record: DigestInput) -> str:
    """One enumerated entry of the prompt's article list."""
    if isinstance(record, RewrittenArticle):
        lines = [
            f"[{index}] {record.headline}",
            f"Source: {record.original_source}",
            f"Published: {record.published_at.isoformat()}",
            f"Story: {record.story[:500]}",
        ]
        if record.local_angle:
            lines.append(f"Local angle: {record.local_angle}")
        return "\n".join(lines)

    return "\n".join(
        [
            f"[{index}] {record.title}",
            f"Source: {record.source}",
            f"Published: {record.published_at.isoformat()}",
            f"Summary: {record.description[:300]}",
        ]
    )


def _parse_quote(value) -> Optional[QuoteHighlight]:
    if not isinstance(value, dict):
        return None
    quote = value.get("quote")
    if not isinstance(quote, str) or not quote.strip():
        return None
    return QuoteHighlight(
        quote=quote.strip(),
        speaker=str(value.get("speaker") or ""),
        context=str(value.get("context") or ""),
    )
