import pytest

from newsdigest.agents.relevance import RelevanceJudge
from newsdigest.agents.rewriter import Rewriter
from newsdigest.agents.similarity import SimilarityJudge
from newsdigest.exceptions import StoreUnavailable
from newsdigest.news.extractor import ArticleExtractor
from newsdigest.output.backup import BackupWriter
from newsdigest.pipeline.maintenance import clear_rewrites
from newsdigest.pipeline.orchestrator import PipelineOrchestrator, pair_key
from newsdigest.store import keys
from newsdigest.store.memory_store import MemoryStore
from newsdigest.store.repository import ArticleRepository
from tests.conftest import FailingOracle, ScriptedOracle, make_article, rewrite_response

SAME_STORY = {"Council votes on housing", "Housing vote passed by council"}


def newsroom_responder(relevant: bool = True):
    """Housing stories are the same event; everything else is distinct."""

    def respond(kind, prompt):
        if kind == "similarity":
            return "SAME" if all(title in prompt for title in SAME_STORY) else "DIFFERENT"
        if kind == "relevance":
            return "YES" if relevant else "NO"
        if kind == "rewrite":
            return rewrite_response("Local: " + prompt.split("Title: ", 1)[1].split("\n", 1)[0])
        raise AssertionError(f"unexpected prompt {kind}")

    return respond


def build_orchestrator(oracle, repository, fetcher, region, sleep, backup=None, **kwargs):
    return PipelineOrchestrator(
        repository,
        fetcher,
        similarity=SimilarityJudge(oracle),
        relevance=RelevanceJudge(oracle, region),
        rewriter=Rewriter(oracle, region, repository, backup=backup),
        oracle=oracle,
        sleep=sleep,
        **kwargs,
    )


@pytest.fixture
def feed():
    return [
        make_article("a", "Council votes on housing", minutes_ago=0),
        make_article("b", "Housing vote passed by council", minutes_ago=5),
        make_article("c", "Rugby match preview", minutes_ago=10),
    ]


class TestPairKey:
    def test_order_independent(self):
        assert pair_key("a", "b") == pair_key("b", "a") == "a|b"


class TestScrape:
    @pytest.mark.asyncio
    async def test_saves_new_and_skips_known(self, repository, static_fetcher, region, no_sleep, feed):
        orchestrator = build_orchestrator(None, repository, static_fetcher(feed), region, no_sleep)
        await repository.save_raw(feed[0])

        result = await orchestrator.scrape()

        assert (result.found, result.saved, result.skipped) == (3, 2, 1)
        assert (await repository.last_scrape())[1] == 2
        assert [a.id for a in await repository.recent_raw(10)] == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_unknown_store_state_skips_write(self, static_fetcher, feed, no_sleep):
        class FlakyStore(MemoryStore):
            async def exists(self, key):
                if key == keys.raw_key("b"):
                    raise StoreUnavailable("timeout")
                return await super().exists(key)

        repository = ArticleRepository(FlakyStore())
        orchestrator = PipelineOrchestrator(repository, static_fetcher(feed), sleep=no_sleep)

        result = await orchestrator.scrape()

        assert (result.saved, result.errors) == (2, 1)
        assert await repository.get_raw("b") is None


class TestDeduplicate:
    @pytest.mark.asyncio
    async def test_same_story_removed(self, repository, static_fetcher, region, no_sleep, feed):
        oracle = ScriptedOracle(newsroom_responder())
        orchestrator = build_orchestrator(oracle, repository, static_fetcher(feed), region, no_sleep)
        await orchestrator.scrape()

        result = await orchestrator.deduplicate()

        assert [a.id for a in result.kept] == ["a", "c"]
        assert [a.id for a in result.removed] == ["b"]
        assert result.comparisons == 2
        assert await repository.get_raw("b") is None
        assert "b" not in await repository.recent_ids(10)

    @pytest.mark.asyncio
    async def test_three_near_identical_leave_exactly_one(self, repository, static_fetcher, region, no_sleep):
        articles = [
            make_article("x", "Storm hits Limerick", minutes_ago=0),
            make_article("y", "Limerick hit by storm", minutes_ago=1),
            make_article("z", "Storm damage across Limerick", minutes_ago=2),
        ]
        oracle = ScriptedOracle(lambda kind, prompt: "SAME")
        orchestrator = build_orchestrator(oracle, repository, static_fetcher(articles), region, no_sleep)

        result = await orchestrator.deduplicate(articles)

        assert [a.id for a in result.kept] == ["x"]
        assert oracle.count("similarity") == 2

    @pytest.mark.asyncio
    async def test_oracle_failure_keeps_everything(self, repository, static_fetcher, region, no_sleep, feed):
        orchestrator = build_orchestrator(FailingOracle(), repository, static_fetcher(feed), region, no_sleep)

        result = await orchestrator.deduplicate(feed)

        assert [a.id for a in result.kept] == ["a", "b", "c"]
        assert result.removed == []

    @pytest.mark.asyncio
    async def test_delay_between_oracle_calls(self, repository, static_fetcher, region, no_sleep, feed):
        orchestrator = build_orchestrator(
            ScriptedOracle(lambda kind, prompt: "DIFFERENT"),
            repository,
            static_fetcher(feed),
            region,
            no_sleep,
            similarity_delay=0.5,
        )

        result = await orchestrator.deduplicate(feed)

        assert result.comparisons == 3
        assert no_sleep.delays == [0.5, 0.5]

    @pytest.mark.asyncio
    async def test_already_rewritten_articles_are_not_rejudged(
        self, repository, static_fetcher, region, no_sleep, feed
    ):
        oracle = ScriptedOracle(newsroom_responder())
        orchestrator = build_orchestrator(oracle, repository, static_fetcher(feed), region, no_sleep)
        await orchestrator.run()
        oracle.calls.clear()

        result = await orchestrator.deduplicate([feed[0], feed[2]])

        assert [a.id for a in result.kept] == ["a", "c"]
        assert oracle.calls == []

    @pytest.mark.asyncio
    async def test_without_oracle_keeps_all(self, repository, static_fetcher, feed, no_sleep):
        orchestrator = PipelineOrchestrator(repository, static_fetcher(feed), sleep=no_sleep)

        result = await orchestrator.deduplicate(feed)

        assert len(result.kept) == 3


class TestRewriteArticles:
    @pytest.mark.asyncio
    async def test_relevance_failure_still_attempts_every_rewrite(
        self, repository, static_fetcher, region, no_sleep, feed
    ):
        oracle = FailingOracle()
        orchestrator = build_orchestrator(oracle, repository, static_fetcher(feed), region, no_sleep)

        result = await orchestrator.rewrite_articles(feed)

        assert result.irrelevant == 0
        assert result.failed == 3
        # One relevance call and one rewrite call per candidate
        assert oracle.attempts == 6

    @pytest.mark.asyncio
    async def test_irrelevant_articles_are_skipped(self, repository, static_fetcher, region, no_sleep, feed):
        oracle = ScriptedOracle(newsroom_responder(relevant=False))
        orchestrator = build_orchestrator(oracle, repository, static_fetcher(feed), region, no_sleep)

        result = await orchestrator.rewrite_articles(feed)

        assert (result.rewritten, result.irrelevant) == (0, 3)
        assert oracle.count("rewrite") == 0

    @pytest.mark.asyncio
    async def test_per_run_cap_and_item_delay(self, repository, static_fetcher, region, no_sleep, feed):
        oracle = ScriptedOracle(newsroom_responder())
        orchestrator = build_orchestrator(
            oracle, repository, static_fetcher(feed), region, no_sleep, max_rewrites=2, rewrite_delay=1.0
        )

        result = await orchestrator.rewrite_articles(feed)

        assert result.considered == 2
        assert result.rewritten_ids == ["a", "b"]
        assert no_sleep.delays == [1.0]

    @pytest.mark.asyncio
    async def test_existing_rewrite_is_never_overwritten(
        self, repository, static_fetcher, region, no_sleep, feed
    ):
        oracle = ScriptedOracle(newsroom_responder())
        orchestrator = build_orchestrator(oracle, repository, static_fetcher(feed), region, no_sleep)
        await orchestrator.rewrite_articles(feed[:1])
        original = await repository.get_rewritten("a")
        oracle.calls.clear()

        result = await orchestrator.rewrite_articles(feed[:1])

        assert result.already_rewritten == 1
        assert oracle.calls == []
        assert await repository.get_rewritten("a") == original

    @pytest.mark.asyncio
    async def test_unreachable_link_falls_back_to_description(self, repository, region, no_sleep, static_fetcher):
        article = make_article("x", "Limerick bridge reopens", link="http://[::1")
        oracle = ScriptedOracle(newsroom_responder())
        orchestrator = PipelineOrchestrator(
            repository,
            static_fetcher([article]),
            relevance=RelevanceJudge(oracle, region),
            rewriter=Rewriter(oracle, region, repository, extractor=ArticleExtractor()),
            oracle=oracle,
            sleep=no_sleep,
        )

        result = await orchestrator.rewrite_articles([article])

        assert (result.rewritten, result.failed) == (1, 0)
        assert oracle.count("rewrite") == 1
        assert (await repository.get_rewritten("x")).headline == "Local: Limerick bridge reopens"


class TestRun:
    @pytest.mark.asyncio
    async def test_end_to_end(self, repository, static_fetcher, region, no_sleep, feed, tmp_path):
        oracle = ScriptedOracle(newsroom_responder())
        backup = BackupWriter(tmp_path / "articles")
        orchestrator = build_orchestrator(oracle, repository, static_fetcher(feed), region, no_sleep, backup=backup)

        summary = await orchestrator.run()

        assert (summary.found, summary.saved, summary.duplicates_removed, summary.rewritten) == (3, 3, 1, 2)
        assert summary.errors == []
        assert await repository.rewritten_keys() == {keys.rewritten_key("a"), keys.rewritten_key("c")}
        assert (await repository.get_rewritten("a")).headline == "Local: Council votes on housing"
        assert sorted(p.name for p in backup.backup_dir.iterdir()) == ["a.json", "c.json"]
        assert summary.costs["steps"]["rewrite"]["call_count"] == 2

    @pytest.mark.asyncio
    async def test_second_run_does_no_repeat_work(self, repository, static_fetcher, region, no_sleep, feed):
        oracle = ScriptedOracle(newsroom_responder())
        orchestrator = build_orchestrator(oracle, repository, static_fetcher(feed), region, no_sleep)
        await orchestrator.run()
        before = {k: (await repository.store.get(k)) for k in await repository.rewritten_keys()}
        oracle.calls.clear()

        summary = await orchestrator.run()

        after = {k: (await repository.store.get(k)) for k in await repository.rewritten_keys()}
        assert after == before
        assert summary.rewritten == 0
        assert oracle.count("relevance") == 0
        assert oracle.count("rewrite") == 0

    @pytest.mark.asyncio
    async def test_failed_stage_does_not_stop_the_next(self, repository, static_fetcher, region, no_sleep, feed):
        oracle = ScriptedOracle(newsroom_responder())
        orchestrator = build_orchestrator(oracle, repository, static_fetcher(feed), region, no_sleep)
        await orchestrator.scrape()

        async def broken_fetch():
            raise RuntimeError("fetch crashed")

        orchestrator.fetcher.fetch = broken_fetch

        summary = await orchestrator.run()

        assert summary.errors == ["scrape: fetch crashed"]
        assert summary.rewritten == 2

    @pytest.mark.asyncio
    async def test_degraded_mode_only_scrapes(self, repository, static_fetcher, feed, no_sleep):
        orchestrator = PipelineOrchestrator(repository, static_fetcher(feed), sleep=no_sleep)

        summary = await orchestrator.run()

        assert (summary.saved, summary.rewritten, summary.duplicates_removed) == (3, 0, 0)
        assert summary.costs == {}


class TestClearRewrites:
    @pytest.mark.asyncio
    async def test_clears_store_and_optionally_files(self, repository, static_fetcher, region, no_sleep, feed, tmp_path):
        backup = BackupWriter(tmp_path / "articles")
        oracle = ScriptedOracle(newsroom_responder())
        orchestrator = build_orchestrator(oracle, repository, static_fetcher(feed), region, no_sleep, backup=backup)
        await orchestrator.run()

        assert await clear_rewrites(repository, backup) == 2
        assert await repository.rewritten_keys() == set()
        assert len(list(backup.backup_dir.glob("*.json"))) == 2

        await repository.save_rewritten((await orchestrator.rewriter.generate(feed[0])))
        assert await clear_rewrites(repository, backup, include_backup_files=True) == 1
        assert list(backup.backup_dir.glob("*.json")) == []

    @pytest.mark.asyncio
    async def test_missing_backup_directory_is_not_an_error(self, repository, tmp_path):
        backup = BackupWriter(tmp_path / "missing")

        assert await clear_rewrites(repository, backup, include_backup_files=True) == 0
