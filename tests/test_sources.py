from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from newsdigest.exceptions import SourceUnavailable
from newsdigest.news.extractor import ArticleExtractor
from newsdigest.news.feed_loader import get_feed_urls, load_feeds
from newsdigest.news.fetcher import NewsFetcher
from newsdigest.news.sources import NewsAPISource, RSSSource
from newsdigest.news.sources.base import clean_html, source_name_from_url
from tests.conftest import StaticSource, make_article

SAMPLE_RSS = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Limerick Leader</title>
    <item>
      <title>Council approves new housing scheme</title>
      <link>https://www.limerickleader.ie/news/housing-1</link>
      <guid>housing-1</guid>
      <description>&lt;p&gt;Limerick City and County Council approved 200 homes.&lt;/p&gt;</description>
      <pubDate>Sat, 01 Mar 2025 10:00:00 GMT</pubDate>
      <enclosure url="https://img.example/housing.jpg" type="image/jpeg" length="0" />
    </item>
    <item>
      <title>Entry without identifiers</title>
      <description>No guid and no link</description>
    </item>
  </channel>
</rss>
"""


def mock_response(**attrs) -> MagicMock:
    response = MagicMock()
    response.raise_for_status = MagicMock()
    for name, value in attrs.items():
        setattr(response, name, value)
    return response


class TestHelpers:
    def test_clean_html(self):
        assert clean_html("<p>Hello   <b>world</b></p>\n") == "Hello world"
        assert clean_html(None) == ""

    def test_source_name_from_url(self):
        assert source_name_from_url("https://www.rte.ie/feeds/rss/") == "rte"
        assert source_name_from_url("https://limerickleader.ie/rss") == "limerickleader"
        assert source_name_from_url("not a url") == "unknown"


class TestFeedLoader:
    def test_missing_file_yields_no_feeds(self, tmp_path):
        assert load_feeds(tmp_path / "feeds.json") == []

    def test_disabled_feeds_skipped_and_extras_merged(self, tmp_path):
        path = tmp_path / "feeds.json"
        path.write_text(
            '{"feeds": ['
            '{"name": "A", "xml_url": "https://a.ie/rss", "enabled": true},'
            '{"name": "B", "xml_url": "https://b.ie/rss", "enabled": false}'
            "]}"
        )

        urls = get_feed_urls(path, ["https://c.ie/rss", "https://a.ie/rss"])

        assert urls == ["https://a.ie/rss", "https://c.ie/rss"]

    def test_entries_without_url_skipped(self, tmp_path):
        path = tmp_path / "feeds.json"
        path.write_text('{"feeds": [{"name": "Broken"}, {"xml_url": "https://d.ie/rss"}]}')

        feeds = load_feeds(path)

        assert [f.xml_url for f in feeds] == ["https://d.ie/rss"]
        assert feeds[0].name == "https://d.ie/rss"
        assert feeds[0].category == "local"


class TestRSSSource:
    @patch("httpx.AsyncClient")
    @pytest.mark.asyncio
    async def test_parses_feed_entries(self, mock_client):
        mock_client.return_value.__aenter__.return_value.get = AsyncMock(
            return_value=mock_response(content=SAMPLE_RSS)
        )
        source = RSSSource(["https://www.limerickleader.ie/rss"])

        articles = await source.fetch_target("https://www.limerickleader.ie/rss")

        assert len(articles) == 1
        article = articles[0]
        assert article.id == "housing-1"
        assert article.title == "Council approves new housing scheme"
        assert article.description == "Limerick City and County Council approved 200 homes."
        assert article.source == "limerickleader"
        assert article.image_url == "https://img.example/housing.jpg"
        assert article.published_at.year == 2025

    @patch("httpx.AsyncClient")
    @pytest.mark.asyncio
    async def test_timeout_raises_source_unavailable(self, mock_client):
        mock_client.return_value.__aenter__.return_value.get = AsyncMock(
            side_effect=httpx.ConnectTimeout("timed out")
        )
        source = RSSSource(["https://feeds.example/rss"])

        with pytest.raises(SourceUnavailable) as exc:
            await source.fetch_target("https://feeds.example/rss")

        assert exc.value.source == "https://feeds.example/rss"

    @patch("httpx.AsyncClient")
    @pytest.mark.asyncio
    async def test_malformed_payload_raises_source_unavailable(self, mock_client):
        mock_client.return_value.__aenter__.return_value.get = AsyncMock(
            return_value=mock_response(content=b"<html><body>not a feed")
        )
        source = RSSSource(["https://feeds.example/rss"])

        with pytest.raises(SourceUnavailable):
            await source.fetch_target("https://feeds.example/rss")


class TestNewsAPISource:
    @patch("httpx.AsyncClient")
    @pytest.mark.asyncio
    async def test_maps_articles_and_skips_missing_urls(self, mock_client):
        payload = {
            "status": "ok",
            "articles": [
                {
                    "source": {"name": "Irish Times"},
                    "author": None,
                    "title": "Limerick hurlers win again",
                    "description": "Limerick beat Cork in the Munster final.",
                    "url": "https://irishtimes.com/sport/1",
                    "urlToImage": "https://img.example/1.jpg",
                    "publishedAt": "2025-03-01T09:30:00Z",
                },
                {"title": "No url", "description": "Dropped"},
            ],
        }
        get = AsyncMock(return_value=mock_response(json=MagicMock(return_value=payload)))
        mock_client.return_value.__aenter__.return_value.get = get
        source = NewsAPISource(api_key="key", keywords=["Limerick"])

        articles = await source.fetch_target("Limerick")

        assert [a.id for a in articles] == ["https://irishtimes.com/sport/1"]
        assert articles[0].source == "Irish Times"
        assert articles[0].author == "Irish Times"
        assert articles[0].published_at.hour == 9
        assert get.call_args.kwargs["headers"] == {"X-Api-Key": "key"}
        assert get.call_args.kwargs["params"]["q"] == "Limerick"

    @patch("httpx.AsyncClient")
    @pytest.mark.asyncio
    async def test_error_status_raises_source_unavailable(self, mock_client):
        payload = {"status": "error", "message": "apiKeyInvalid"}
        mock_client.return_value.__aenter__.return_value.get = AsyncMock(
            return_value=mock_response(json=MagicMock(return_value=payload))
        )
        source = NewsAPISource(api_key="bad", keywords=["Limerick"])

        with pytest.raises(SourceUnavailable) as exc:
            await source.fetch_target("Limerick")

        assert "apiKeyInvalid" in exc.value.reason


class TestNewsFetcher:
    @pytest.mark.asyncio
    async def test_failing_source_does_not_abort_batch(self):
        good = make_article("a", "Council votes on housing")
        source = StaticSource({"ok": [good], "broken": SourceUnavailable("broken", "timeout")})
        fetcher = NewsFetcher([source])

        result = await fetcher.fetch()

        assert [a.id for a in result.articles] == ["a"]
        assert result.failed_sources == ["static:broken"]

    @pytest.mark.asyncio
    async def test_unexpected_error_is_isolated(self):
        source = StaticSource({"ok": [make_article("a", "Story")], "bug": RuntimeError("boom")})

        result = await NewsFetcher([source]).fetch()

        assert len(result.articles) == 1
        assert result.failed_sources == ["static:bug"]

    @pytest.mark.asyncio
    async def test_dedupes_by_id_and_drops_short_articles(self):
        first = make_article("a", "First copy", minutes_ago=10)
        second = make_article("a", "Second copy", minutes_ago=1)
        short = make_article("s", "Short", description="Too short")
        newer = make_article("n", "Newer story", minutes_ago=0)
        source = StaticSource({"one": [first, short], "two": [second, newer]})

        result = await NewsFetcher([source], min_article_length=100).fetch()

        assert [a.id for a in result.articles] == ["n", "a"]
        assert result.articles[1].title == "First copy"
        assert result.too_short == 1
        assert result.total_found == 4

    @pytest.mark.asyncio
    async def test_no_sources(self):
        result = await NewsFetcher([]).fetch()

        assert result.articles == []


class TestArticleExtractor:
    @pytest.fixture(autouse=True)
    def setup_extractor(self):
        self.extractor = ArticleExtractor(min_length=100, max_chars=4000)

    def test_prefers_article_element_and_strips_noise(self):
        body = "Limerick council met on Monday to discuss the new plan. " * 5
        html = f"<html><nav>Menu</nav><article><script>x()</script><p>{body}</p></article></html>"

        text = self.extractor.extract_text(html)

        assert text.startswith("Limerick council met")
        assert "Menu" not in text
        assert "x()" not in text

    def test_falls_back_to_long_paragraphs(self):
        long_paragraph = "A detailed paragraph about the Munster final and the crowd at Thomond Park."
        html = f"<html><div><p>Short</p><p>{long_paragraph}</p></div></html>"

        assert self.extractor.extract_text(html) == long_paragraph

    @patch("httpx.AsyncClient")
    @pytest.mark.asyncio
    async def test_short_text_counts_as_absent(self, mock_client):
        mock_client.return_value.__aenter__.return_value.get = AsyncMock(
            return_value=mock_response(text="<html><article>Tiny</article></html>")
        )

        assert await self.extractor.fetch_full_text("https://news.example/a") is None

    @patch("httpx.AsyncClient")
    @pytest.mark.asyncio
    async def test_network_error_counts_as_absent(self, mock_client):
        mock_client.return_value.__aenter__.return_value.get = AsyncMock(
            side_effect=httpx.ReadTimeout("slow")
        )

        assert await self.extractor.fetch_full_text("https://news.example/a") is None

    @patch("httpx.AsyncClient")
    @pytest.mark.asyncio
    async def test_malformed_url_counts_as_absent(self, mock_client):
        mock_client.return_value.__aenter__.return_value.get = AsyncMock(
            side_effect=httpx.InvalidURL("Invalid port: ':1'")
        )

        assert await self.extractor.fetch_full_text("http://[::1") is None

    @patch("httpx.AsyncClient")
    @pytest.mark.asyncio
    async def test_truncates_to_max_chars(self, mock_client):
        body = "word " * 2000
        mock_client.return_value.__aenter__.return_value.get = AsyncMock(
            return_value=mock_response(text=f"<article>{body}</article>")
        )

        text = await self.extractor.fetch_full_text("https://news.example/a")

        assert len(text) == 4000
