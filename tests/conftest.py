import json
from datetime import datetime, timedelta, timezone

import pytest

from newsdigest.agents.oracle import Oracle
from newsdigest.exceptions import OracleError
from newsdigest.news.fetcher import NewsFetcher
from newsdigest.news.models import ArticleId, RawArticle, RewrittenArticle
from newsdigest.news.sources.base import SourceAdapter
from newsdigest.region.profile import RegionContext
from newsdigest.store.memory_store import MemoryStore
from newsdigest.store.repository import ArticleRepository

BASE_TIME = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class ManualClock:
    """Clock for MemoryStore that only moves when told to."""

    def __init__(self, start: float = BASE_TIME.timestamp()):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedOracle(Oracle):
    """Oracle double: ``responder(kind, prompt)`` produces each answer."""

    def __init__(self, responder):
        super().__init__("fake-model")
        self.responder = responder
        self.calls: list[tuple[str, str]] = []

    async def _call(self, prompt: str):
        kind = prompt_kind(prompt)
        self.calls.append((kind, prompt))
        return self.responder(kind, prompt), 10, 5, 0.001

    def count(self, kind: str) -> int:
        return sum(1 for k, _ in self.calls if k == kind)


class FailingOracle(Oracle):
    """Every call fails like a transport error."""

    def __init__(self):
        super().__init__("broken-model")
        self.attempts = 0

    async def _call(self, prompt: str):
        self.attempts += 1
        raise OracleError("service down")


class StaticSource(SourceAdapter):
    """Source returning canned articles per target; None means the target fails."""

    name = "static"

    def __init__(self, batches: dict):
        super().__init__(list(batches))
        self.batches = batches

    async def fetch_target(self, target: str) -> list[RawArticle]:
        batch = self.batches[target]
        if isinstance(batch, Exception):
            raise batch
        return list(batch)


def prompt_kind(prompt: str) -> str:
    if prompt.startswith("Are these two articles"):
        return "similarity"
    if prompt.startswith("Does this article have ANY connection"):
        return "relevance"
    if "professional journalist" in prompt:
        return "rewrite"
    if "AI editor" in prompt:
        return "digest"
    return "unknown"


def make_article(article_id: str, title: str, minutes_ago: int = 0, **kwargs) -> RawArticle:
    defaults = {
        "link": f"https://news.example.ie/{article_id}",
        "description": f"{title}. " + "Full report on the story with enough detail to pass the length filter. " * 2,
        "source": "example",
        "published_at": BASE_TIME - timedelta(minutes=minutes_ago),
    }
    defaults.update(kwargs)
    return RawArticle(id=ArticleId(article_id), title=title, **defaults)


def rewrite_response(headline: str, local_angle: str = "Limerick council is involved.") -> str:
    return json.dumps(
        {
            "headline": headline,
            "subheadline": "A closer look",
            "story": "First paragraph.\n\nSecond paragraph.",
            "pullQuote": "We are delighted",
            "localAngle": local_angle,
        }
    )


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def store(clock):
    return MemoryStore(clock=clock)


@pytest.fixture
def repository(store):
    return ArticleRepository(store, ttl_seconds=30 * 24 * 60 * 60)


@pytest.fixture
def region():
    return RegionContext(
        name="Limerick",
        country="Ireland",
        publication="The Limerick Weekly",
        connections=["Limerick city or county", "Munster"],
    )


@pytest.fixture
def no_sleep():
    delays: list[float] = []

    async def sleep(seconds: float) -> None:
        delays.append(seconds)

    sleep.delays = delays
    return sleep


@pytest.fixture
def static_fetcher():
    def build(articles: list[RawArticle], min_article_length: int = 100) -> NewsFetcher:
        return NewsFetcher([StaticSource({"feed": articles})], min_article_length=min_article_length)

    return build


def make_rewritten(article_id: str, headline: str, local_angle="Limerick connection", **kwargs) -> RewrittenArticle:
    values = {
        "id": article_id,
        "headline": headline,
        "story": "Paragraph one.\n\nParagraph two.",
        "local_angle": local_angle,
        "original_title": headline,
        "original_source": "example",
        "original_link": f"https://news.example.ie/{article_id}",
        "published_at": BASE_TIME,
    }
    values.update(kwargs)
    return RewrittenArticle(**values)
