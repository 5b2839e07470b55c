"""
Unit tests for the NewsFlow aggregation core.
Run with: pytest tests/test_main.py -v
"""
import pytest
import json
from datetime import datetime, timezone, timedelta
from unittest.mock import Mock, patch
import threading
import sys
import os

import requests

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from main import (
    DEFAULT_FEED_SOURCES,
    AggregationCache,
    FetchError,
    Metrics,
    fetch_all_feeds,
    fetch_and_categorize_news,
    fetch_feed,
    fetch_text,
    get_health,
    load_feed_sources,
    parse_date,
    parse_feed,
    should_update_featured_news,
    transport_candidates,
    validate_url,
)
from models import FeedSource, ScoredItem

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


def make_rss(*items):
    body = ''.join(items)
    return ('<?xml version="1.0" encoding="UTF-8"?>'
            '<rss version="2.0"><channel><title>Test Feed</title>%s</channel></rss>' % body).encode('utf-8')


def rss_item(title, link, pub_date=None, source=None):
    parts = ['<item>']
    if title is not None:
        parts.append('<title>%s</title>' % title)
    if link is not None:
        parts.append('<link>%s</link>' % link)
    if pub_date:
        parts.append('<pubDate>%s</pubDate>' % pub_date)
    if source:
        parts.append('<source url="https://example.org/rss">%s</source>' % source)
    parts.append('</item>')
    return ''.join(parts)


class TestValidateUrl:
    """Tests for URL validation."""

    def test_valid_urls(self):
        assert validate_url("https://example.com")[0] is True
        assert validate_url("http://example.com/path")[0] is True
        assert validate_url("https://sub.example.com/path?query=1")[0] is True

    def test_invalid_urls(self):
        assert validate_url("")[0] is False
        assert validate_url("file:///etc/passwd")[0] is False
        assert validate_url("javascript:alert(1)")[0] is False
        assert validate_url("http://localhost/")[0] is False
        assert validate_url("http://127.0.0.1/")[0] is False
        assert validate_url("http://192.168.1.1/")[0] is False
        assert validate_url("http://169.254.169.254/latest")[0] is False
        assert validate_url("ftp://example.com")[0] is False


class TestParseDate:
    """Tests for date parsing."""

    def test_rfc2822(self):
        assert parse_date("Thu, 05 Dec 2024 10:00:00 GMT") == datetime(2024, 12, 5, 10, 0, tzinfo=timezone.utc)

    def test_offset_is_normalized_to_utc(self):
        assert parse_date("Thu, 05 Dec 2024 10:00:00 +0200") == datetime(2024, 12, 5, 8, 0, tzinfo=timezone.utc)

    def test_iso_format(self):
        assert parse_date("2024-12-05T10:00:00Z") == datetime(2024, 12, 5, 10, 0, tzinfo=timezone.utc)
        assert parse_date("2024-12-05") == datetime(2024, 12, 5, tzinfo=timezone.utc)

    def test_invalid_dates(self):
        assert parse_date("") is None
        assert parse_date("not a date") is None


class TestLoadFeedSources:
    """Tests for the feeds file override."""

    def test_no_path_uses_builtin_list(self):
        assert load_feed_sources(None) == DEFAULT_FEED_SOURCES

    def test_invalid_entries_are_skipped(self, tmp_path):
        path = tmp_path / "feeds.json"
        path.write_text(json.dumps([
            {"url": "https://a.example/feed", "source": "A", "weight": 1.5},
            {"source": "Missing URL"},
            {"url": "https://b.example/feed", "source": "B", "weight": -1},
            {"url": "https://c.example/feed", "source": "C"},
        ]), encoding='utf-8')

        sources = load_feed_sources(str(path))

        assert [s.source for s in sources] == ["A", "C"]
        assert sources[0].weight == 1.5
        assert sources[1].weight == 1.0

    def test_unreadable_file_falls_back(self, tmp_path):
        assert load_feed_sources(str(tmp_path / "missing.json")) == DEFAULT_FEED_SOURCES

        bad = tmp_path / "bad.json"
        bad.write_text("{not json", encoding='utf-8')
        assert load_feed_sources(str(bad)) == DEFAULT_FEED_SOURCES

        not_a_list = tmp_path / "object.json"
        not_a_list.write_text('{"url": "x"}', encoding='utf-8')
        assert load_feed_sources(str(not_a_list)) == DEFAULT_FEED_SOURCES


class TestTransportChain:
    """Tests for the direct/proxy fetch chain."""

    def test_direct_mode_has_one_candidate(self):
        assert transport_candidates("https://a.example/feed", use_proxies=False) == ["https://a.example/feed"]

    def test_proxy_mode_encodes_target(self):
        candidates = transport_candidates("https://a.example/feed?x=1", use_proxies=True)
        assert len(candidates) == 3
        assert candidates[0] == "https://api.allorigins.win/raw?url=https%3A%2F%2Fa.example%2Ffeed%3Fx%3D1"
        assert candidates[1].startswith("https://corsproxy.io/?")
        assert candidates[2].startswith("https://api.codetabs.com/v1/proxy?quest=")

    @patch('main.get_session')
    def test_direct_success(self, mock_get_session):
        response = Mock(text="<rss/>")
        mock_get_session.return_value.get.return_value = response

        assert fetch_text("https://a.example/feed", use_proxies=False) == "<rss/>"
        assert mock_get_session.return_value.get.call_count == 1

    @patch('main.get_session')
    def test_falls_through_to_next_proxy(self, mock_get_session):
        bad_status = Mock()
        bad_status.raise_for_status.side_effect = requests.HTTPError("503")
        good = Mock(text="<rss>ok</rss>")
        session = mock_get_session.return_value
        session.get.side_effect = [requests.Timeout(), bad_status, good]

        assert fetch_text("https://a.example/feed", use_proxies=True) == "<rss>ok</rss>"
        assert session.get.call_count == 3
        assert session.get.call_args_list[2][0][0].startswith("https://api.codetabs.com/")

    @patch('main.get_session')
    def test_all_candidates_fail(self, mock_get_session):
        mock_get_session.return_value.get.side_effect = requests.ConnectionError("refused")

        with pytest.raises(FetchError) as excinfo:
            fetch_text("https://a.example/feed", use_proxies=True)
        assert excinfo.value.url == "https://a.example/feed"
        assert "connection_error" in excinfo.value.reason

    @patch('main.get_session')
    def test_blocked_url_is_never_requested(self, mock_get_session):
        with pytest.raises(FetchError):
            fetch_text("http://127.0.0.1/feed", use_proxies=False)
        mock_get_session.return_value.get.assert_not_called()


class TestParseFeed:
    """Tests for RSS feed parsing."""

    def test_parse_valid_rss(self):
        raw = make_rss(rss_item("Test Article", "https://example.com/article1",
                                "Thu, 05 Dec 2024 10:00:00 GMT"))

        items = parse_feed(raw, "Example")

        assert len(items) == 1
        assert items[0].title == "Test Article"
        assert items[0].url == "https://example.com/article1"
        assert items[0].source == "Example"
        assert items[0].published_at == datetime(2024, 12, 5, 10, 0, tzinfo=timezone.utc)

    def test_source_element_overrides_default(self):
        raw = make_rss(rss_item("Syndicated", "https://example.com/s", source="Reuters"))
        assert parse_feed(raw, "Example")[0].source == "Reuters"

    def test_skips_incomplete_and_aggregator_items(self):
        raw = make_rss(
            rss_item(None, "https://example.com/no-title"),
            rss_item("No link", None),
            rss_item("Redirect", "https://news.google.com/rss/articles/abc"),
            rss_item("Kept", "https://example.com/kept"),
        )

        items = parse_feed(raw, "Example")

        assert [i.title for i in items] == ["Kept"]

    def test_missing_date_is_none(self):
        raw = make_rss(rss_item("Undated", "https://example.com/u"))
        assert parse_feed(raw, "Example")[0].published_at is None

    def test_parse_empty_rss(self):
        assert parse_feed(b"""<?xml version="1.0"?><rss><channel></channel></rss>""", "Example") == []


class TestFetchFeeds:
    """Fan-out tests with a mocked transport."""

    @patch('main.fetch_text')
    def test_fetch_feed_never_raises(self, mock_fetch):
        mock_fetch.side_effect = FetchError("https://a.example/feed", "timeout")
        assert fetch_feed(FeedSource("https://a.example/feed", "A")) == []

    @patch('main.fetch_text')
    def test_failures_are_isolated_and_duplicates_resolved_in_source_order(self, mock_fetch):
        shared = "OpenAI and Anthropic announce a shared safety benchmark for agents"
        payloads = {
            "https://a.example/feed": make_rss(
                rss_item(shared, "https://a.example/1", "Mon, 10 Mar 2025 10:00:00 GMT")),
            "https://c.example/feed": make_rss(
                rss_item(shared.upper(), "https://c.example/1", "Mon, 10 Mar 2025 11:00:00 GMT"),
                rss_item("Only on C", "https://c.example/2")),
        }

        def fake_fetch(url, **kwargs):
            if url not in payloads:
                raise FetchError(url, "timeout")
            return payloads[url]

        mock_fetch.side_effect = fake_fetch
        sources = [
            FeedSource("https://a.example/feed", "A", 1.4),
            FeedSource("https://b.example/feed", "B", 1.2),
            FeedSource("https://c.example/feed", "C", 1.0),
        ]

        items = fetch_all_feeds(sources, now=NOW)

        assert [i.url for i in items] == ["https://a.example/1", "https://c.example/2"]
        assert all(isinstance(i, ScoredItem) for i in items)
        # weight 1.4 * 2 + openai 1.2 + anthropic 1.3 + agent 1.5 + recency 3.0 + base 1.0
        assert items[0].score == pytest.approx(10.8)

    @patch('main.fetch_text')
    def test_sources_are_fetched_concurrently(self, mock_fetch):
        # Each fetch blocks until the other is in flight
        barrier = threading.Barrier(2, timeout=5)

        def fake_fetch(url, **kwargs):
            barrier.wait()
            return make_rss(rss_item(f"Story from {url}", url + "/1"))

        mock_fetch.side_effect = fake_fetch
        sources = [
            FeedSource("https://a.example/feed", "A"),
            FeedSource("https://b.example/feed", "B"),
        ]

        items = fetch_all_feeds(sources, now=NOW, max_workers=2)

        assert [i.url for i in items] == ["https://a.example/feed/1", "https://b.example/feed/1"]
        assert not barrier.broken

    def test_no_sources(self):
        assert fetch_all_feeds([], now=NOW) == []


class TestAggregationCache:
    """Tests for the single-slot cache."""

    def test_fresh_within_ttl(self):
        clock = [1000.0]
        cache = AggregationCache(ttl_seconds=300, clock=lambda: clock[0])
        assert cache.is_stale()

        cache.set([])
        clock[0] += 299
        assert not cache.is_stale()
        clock[0] += 2
        assert cache.is_stale()
        assert cache.get() is not None

    def test_set_replaces_entry(self):
        cache = AggregationCache(clock=lambda: 5.0)
        first = cache.set([])
        second = cache.set([])
        assert cache.get() is second
        assert first is not second
        assert isinstance(cache.get().items, tuple)

    def test_clear_and_stats(self):
        cache = AggregationCache(ttl_seconds=60, clock=lambda: 10.0)
        cache.set([])
        assert cache.stats()['populated'] is True
        cache.clear()
        assert cache.stats() == {'populated': False, 'items': 0, 'age_seconds': None, 'ttl_seconds': 60}


class TestFetchAndCategorizeNews:
    """Aggregation entry point with the fan-out mocked."""

    @pytest.fixture
    def items(self):
        return [
            ScoredItem("OpenAI ships a new reasoning product", "https://a.example/1", "A", 9.0,
                       NOW - timedelta(hours=2)),
            ScoredItem("School districts debate phones", "https://a.example/2", "A", 5.0,
                       NOW - timedelta(hours=5)),
            ScoredItem("Weather is nice today", "https://a.example/3", "A", 4.0, None),
        ]

    @pytest.fixture
    def cache(self):
        clock = [1000.0]
        cache = AggregationCache(ttl_seconds=300, clock=lambda: clock[0])
        cache.clock = clock
        return cache

    @patch('main.fetch_all_feeds')
    def test_single_fan_out_within_ttl(self, mock_fetch_all, items, cache):
        mock_fetch_all.return_value = items

        first = fetch_and_categorize_news(cache=cache, sources=[], now=NOW)
        second = fetch_and_categorize_news(cache=cache, sources=[], now=NOW)

        assert mock_fetch_all.call_count == 1
        assert [c.id for c in first['clusters']] == [c.id for c in second['clusters']]
        assert [a.url for a in second['featured']] == ["https://a.example/1", "https://a.example/2",
                                                       "https://a.example/3"]

    @patch('main.fetch_all_feeds')
    def test_bypass_always_fetches(self, mock_fetch_all, items, cache):
        mock_fetch_all.return_value = items

        fetch_and_categorize_news(cache=cache, sources=[], now=NOW)
        fetch_and_categorize_news(True, cache=cache, sources=[], now=NOW)

        assert mock_fetch_all.call_count == 2

    @patch('main.fetch_all_feeds')
    def test_expired_cache_refetches(self, mock_fetch_all, items, cache):
        mock_fetch_all.return_value = items

        fetch_and_categorize_news(cache=cache, sources=[], now=NOW)
        cache.clock[0] += 301
        fetch_and_categorize_news(cache=cache, sources=[], now=NOW)

        assert mock_fetch_all.call_count == 2

    @patch('main.fetch_all_feeds')
    def test_failed_fetch_serves_stale_cache(self, mock_fetch_all, items, cache):
        mock_fetch_all.return_value = items
        fetch_and_categorize_news(cache=cache, sources=[], now=NOW)

        mock_fetch_all.return_value = []
        result = fetch_and_categorize_news(True, cache=cache, sources=[], now=NOW)

        assert len(result['featured']) == 3
        assert len(cache.get().items) == 3

    @patch('main.fetch_all_feeds')
    def test_exception_in_fan_out_serves_stale_cache(self, mock_fetch_all, items, cache):
        mock_fetch_all.return_value = items
        fetch_and_categorize_news(cache=cache, sources=[], now=NOW)

        mock_fetch_all.side_effect = RuntimeError("boom")
        result = fetch_and_categorize_news(True, cache=cache, sources=[], now=NOW)

        assert result['clusters']

    @patch('main.fetch_all_feeds')
    def test_no_data_ever_returns_empty(self, mock_fetch_all, cache):
        mock_fetch_all.return_value = []

        assert fetch_and_categorize_news(cache=cache, sources=[], now=NOW) == {'clusters': [], 'featured': []}

    @patch('main.fetch_all_feeds')
    def test_clusters_follow_keywords(self, mock_fetch_all, items, cache):
        mock_fetch_all.return_value = items

        result = fetch_and_categorize_news(cache=cache, sources=[], now=NOW)

        by_id = {c.id: [a.url for a in c.articles] for c in result['clusters']}
        assert by_id == {
            'cluster-1': ["https://a.example/1"],
            'cluster-4': ["https://a.example/2"],
            'cluster-5': ["https://a.example/3"],
        }


class TestFeaturedRefreshPolicy:
    """Tests for the one-day featured refresh policy."""

    def test_never_updated(self):
        assert should_update_featured_news(None) is True

    def test_older_than_a_day(self):
        now_ms = 10 * 86400 * 1000
        assert should_update_featured_news(now_ms - 2 * 86400 * 1000, now_ms) is True

    def test_recent_update(self):
        now_ms = 10 * 86400 * 1000
        assert should_update_featured_news(now_ms - 3600 * 1000, now_ms) is False


class TestMetrics:
    """Tests for metrics collection."""

    def test_increment(self):
        m = Metrics()
        m.increment("test_counter")
        m.increment("test_counter")
        stats = m.get_stats()
        assert stats['counters']['test_counter'] == 2

    def test_duration_recording(self):
        m = Metrics()
        m.record_duration("test_duration", 100.5)
        m.record_duration("test_duration", 200.5)
        stats = m.get_stats()
        assert 'test_duration' in stats['histograms']
        assert stats['histograms']['test_duration']['count'] == 2


class TestGetHealth:
    """Tests for health check."""

    def test_health_structure(self):
        health = get_health()

        assert health['status'] == 'healthy'
        assert 'version' in health
        assert health['feedCount'] == len(health['feeds'])
        assert 'cache' in health
        assert 'timestamp' in health


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
