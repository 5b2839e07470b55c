"""
NewsFlow Aggregation Service
Fetches a fixed set of RSS feeds, ranks and clusters the stories.

Features:
- Concurrent fan-out across feeds with per-source failure isolation
- Transport fallback chain (direct fetch or CORS relay proxies)
- Title-prefix deduplication and heuristic scoring
- Keyword clustering with randomized top-K sampling
- Process-wide TTL cache with explicit bypass and stale fallback
- Structured logging with metrics
"""
import sys
import os
import json
import logging
import argparse
import ipaddress
import random
import time
import threading
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
from urllib.parse import quote, urlparse

import feedparser
import requests
from requests.exceptions import Timeout, RequestException, SSLError, ConnectionError as ReqConnectionError

from models import CandidateItem, FeedSource, ScoredItem
from ranking import TitleDeduplicator, score_items, select_featured
from clustering import DEFAULT_PER_CLUSTER, categorize_articles

# =============================================================================
# CONFIGURATION
# =============================================================================

VERSION = '1.0.0'

# Environment variables with defaults
LOG_LEVEL = os.environ.get('NEWSFLOW_LOG_LEVEL', 'INFO')
CACHE_TTL_SECONDS = int(os.environ.get('NEWSFLOW_CACHE_TTL', '300'))
FETCH_TIMEOUT_MS = int(os.environ.get('NEWSFLOW_FETCH_TIMEOUT_MS', '5000'))
FETCH_WORKERS = int(os.environ.get('NEWSFLOW_FETCH_WORKERS', '8'))
USE_PROXIES = os.environ.get('NEWSFLOW_USE_PROXIES', 'false').lower() == 'true'
FEEDS_PATH = os.environ.get('NEWSFLOW_FEEDS_PATH')
EXTRACT_TIMEOUT_MS = int(os.environ.get('NEWSFLOW_EXTRACT_TIMEOUT_MS', '10000'))
MAX_REDIRECTS = int(os.environ.get('NEWSFLOW_MAX_REDIRECTS', '5'))
MAX_HTML_BYTES = int(os.environ.get('NEWSFLOW_MAX_HTML_BYTES', '2000000'))
DB_PATH = os.environ.get('NEWSFLOW_DB_PATH', 'newsflow.db')

DEFAULT_FEATURED_COUNT = 3
FEATURED_REFRESH_MS = 24 * 60 * 60 * 1000

USER_AGENT = 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
FEED_ACCEPT = 'application/rss+xml, application/xml, application/atom+xml, text/xml'

# CORS relays, tried in order when proxy mode is on
CORS_PROXIES = [
    'https://api.allorigins.win/raw?url=',
    'https://corsproxy.io/?',
    'https://api.codetabs.com/v1/proxy?quest=',
]

# Links pointing back at these hosts are syndication redirects, not articles
AGGREGATOR_DOMAINS = ('news.google.com',)

# =============================================================================
# LOGGING SETUP
# =============================================================================

class StructuredFormatter(logging.Formatter):
    """JSON-structured logging formatter for observability."""

    EXTRA_FIELDS = ('source', 'url', 'duration_ms', 'article_count', 'error_type')

    def format(self, record):
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        for name in self.EXTRA_FIELDS:
            if hasattr(record, name):
                log_data[name] = getattr(record, name)

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False)


# Configure logging to STDERR with structured format
handler = logging.StreamHandler(sys.stderr)
handler.setFormatter(StructuredFormatter())
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    handlers=[handler]
)
logger = logging.getLogger('newsflow')

# =============================================================================
# METRICS COLLECTION
# =============================================================================

class Metrics:
    """Thread-safe metrics collector for observability."""

    def __init__(self):
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = defaultdict(int)
        self._histograms: Dict[str, List[float]] = defaultdict(list)
        self._start_time = datetime.now(timezone.utc)

    def increment(self, name: str, value: int = 1) -> None:
        with self._lock:
            self._counters[name] += value

    def record_duration(self, name: str, duration_ms: float) -> None:
        with self._lock:
            self._histograms[name].append(duration_ms)
            # Keep only last 1000 samples
            if len(self._histograms[name]) > 1000:
                self._histograms[name] = self._histograms[name][-1000:]

    def get_stats(self) -> Dict:
        with self._lock:
            stats = {
                'uptime_seconds': (datetime.now(timezone.utc) - self._start_time).total_seconds(),
                'counters': dict(self._counters),
                'histograms': {}
            }
            for name, values in self._histograms.items():
                if values:
                    sorted_vals = sorted(values)
                    stats['histograms'][name] = {
                        'count': len(values),
                        'min': min(values),
                        'max': max(values),
                        'avg': sum(values) / len(values),
                        'p50': sorted_vals[len(sorted_vals) // 2],
                        'p95': sorted_vals[int(len(sorted_vals) * 0.95)] if len(sorted_vals) > 20 else sorted_vals[-1],
                        'p99': sorted_vals[int(len(sorted_vals) * 0.99)] if len(sorted_vals) > 100 else sorted_vals[-1],
                    }
            return stats


metrics = Metrics()

# =============================================================================
# FEED CONFIGURATION
# =============================================================================

DEFAULT_FEED_SOURCES = (
    FeedSource('https://www.wired.com/feed/tag/ai/latest/rss', 'Wired', 1.4),
    FeedSource('https://www.wired.com/feed/rss', 'Wired (All)', 1.3),
    FeedSource('https://www.technologyreview.com/feed/', 'MIT Tech Review', 1.4),
    FeedSource('https://blogs.nvidia.com/feed/', 'NVIDIA Blog', 1.1),
    FeedSource('https://fortune.com/feed/', 'Fortune', 1.3),
    FeedSource('https://www.cnet.com/rss/news/', 'CNET', 1.3),
    FeedSource('https://www.engadget.com/rss.xml', 'Engadget', 1.2),
    FeedSource('https://www.technologyreview.com/topnews.rss', 'MIT Tech Review (Top)', 1.3),
    FeedSource('https://www.theverge.com/rss/index.xml', 'The Verge', 1.4),
    FeedSource('https://venturebeat.com/feed/', 'VentureBeat', 1.2),
    FeedSource('https://www.zdnet.com/news/rss.xml', 'ZDNet', 1.2),
)


def load_feed_sources(path: Optional[str] = FEEDS_PATH) -> Tuple[FeedSource, ...]:
    """
    Load feed sources from a JSON file, or the built-in list when no path is set.

    The file must hold a list of {"url", "source", "weight"} objects.
    """
    if not path:
        return DEFAULT_FEED_SOURCES

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.error("Feeds file not found: %s, using built-in feeds", path)
        return DEFAULT_FEED_SOURCES
    except json.JSONDecodeError as e:
        logger.error("Invalid JSON in feeds file: %s, using built-in feeds", str(e))
        return DEFAULT_FEED_SOURCES
    except PermissionError:
        logger.error("Permission denied reading feeds file: %s, using built-in feeds", path)
        return DEFAULT_FEED_SOURCES

    if not isinstance(data, list):
        logger.error("Feeds file must be a JSON array, using built-in feeds")
        return DEFAULT_FEED_SOURCES

    validated = []
    for entry in data:
        if not isinstance(entry, dict) or not entry.get('url') or not entry.get('source'):
            logger.warning("Skipping invalid feed config: missing url or source")
            continue
        try:
            validated.append(FeedSource(
                url=str(entry['url']),
                source=str(entry['source']),
                weight=float(entry.get('weight', 1.0)),
            ))
        except (TypeError, ValueError) as e:
            logger.warning("Skipping invalid feed config %s: %s", entry.get('source'), str(e))

    logger.info("Loaded %d feed sources from %s", len(validated), path)
    return tuple(validated)


feed_sources = load_feed_sources()

# =============================================================================
# INPUT VALIDATION
# =============================================================================

_BLOCKED_HOSTS = ('localhost', 'localhost.localdomain')


def validate_url(url: str) -> Tuple[bool, str]:
    """Validate an outbound URL: http(s) only, no loopback/private hosts."""
    if not url:
        return False, "URL is required"

    try:
        parsed = urlparse(url)
    except ValueError:
        return False, "URL parsing failed"

    if parsed.scheme not in ('http', 'https'):
        return False, "Only HTTP(S) URLs allowed"

    host = (parsed.hostname or '').strip().lower()
    if not host:
        return False, "Invalid URL structure"
    if host in _BLOCKED_HOSTS:
        return False, "URL contains blocked host"

    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        return True, ""

    if ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_unspecified or ip.is_reserved:
        return False, "URL points to a private address"

    return True, ""


def is_aggregator_link(url: str) -> bool:
    host = (urlparse(url).hostname or '').lower()
    return any(host == d or host.endswith('.' + d) for d in AGGREGATOR_DOMAINS)

# =============================================================================
# DATE PARSING
# =============================================================================

DATE_FORMATS = [
    '%a, %d %b %Y %H:%M:%S %z',  # RFC 2822
    '%a, %d %b %Y %H:%M:%S %Z',
    '%a, %d %b %Y %H:%M %z',
    '%d %b %Y %H:%M:%S %z',
    '%Y-%m-%dT%H:%M:%S%z',
    '%Y-%m-%dT%H:%M:%SZ',
    '%Y-%m-%dT%H:%M:%S.%f%z',
    '%Y-%m-%dT%H:%M:%S.%fZ',
    '%Y-%m-%dT%H:%M:%S',
    '%Y-%m-%d %H:%M:%S',
    '%Y-%m-%d',
]


@lru_cache(maxsize=1000)
def parse_date(date_str: str) -> Optional[datetime]:
    """Parse a feed date string into an aware UTC datetime, or None."""
    if not date_str:
        return None

    date_str = date_str.strip()

    # Handle common timezone abbreviations
    date_str = date_str.replace('GMT', '+0000').replace('UTC', '+0000')

    for fmt in DATE_FORMATS:
        try:
            dt = datetime.strptime(date_str, fmt)
        except ValueError:
            continue
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)

    try:
        dt = datetime.fromisoformat(date_str.replace('Z', '+00:00'))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)

# =============================================================================
# HTTP FETCHING
# =============================================================================

class FetchError(Exception):
    """Raised when every transport candidate for a URL failed."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason


# Session with connection pooling
_session = None
_session_lock = threading.Lock()


def get_session() -> requests.Session:
    """Get or create a requests session with connection pooling."""
    global _session

    with _session_lock:
        if _session is None:
            _session = requests.Session()
            _session.headers.update({
                'User-Agent': USER_AGENT,
                'Accept-Language': 'en-US,en;q=0.9',
                'Accept-Encoding': 'gzip, deflate',
            })
            adapter = requests.adapters.HTTPAdapter(
                pool_connections=10,
                pool_maxsize=20,
                max_retries=0  # Fallback is handled by the transport chain
            )
            _session.mount('http://', adapter)
            _session.mount('https://', adapter)
        return _session


def transport_candidates(url: str, use_proxies: bool = USE_PROXIES) -> List[str]:
    """Ordered list of URLs to try for one logical fetch."""
    if not use_proxies:
        return [url]
    encoded = quote(url, safe='')
    return [proxy + encoded for proxy in CORS_PROXIES]


def fetch_text(url: str, timeout: Optional[float] = None,
               use_proxies: bool = USE_PROXIES) -> str:
    """
    Fetch a feed body, trying each transport candidate in order.

    Any non-2xx status, timeout or network error moves on to the next
    candidate. Raises FetchError when all of them failed.
    """
    if timeout is None:
        timeout = FETCH_TIMEOUT_MS / 1000

    session = get_session()
    last_error = 'no candidates'

    for candidate in transport_candidates(url, use_proxies):
        valid, error = validate_url(candidate)
        if not valid:
            last_error = f"rejected: {error}"
            logger.warning("Invalid URL rejected: %s - %s", candidate, error)
            metrics.increment('feed_attempt_failed')
            continue

        start_time = time.time()
        try:
            response = session.get(candidate, timeout=timeout, allow_redirects=True,
                                   headers={'Accept': FEED_ACCEPT})
            response.raise_for_status()
        except Timeout:
            last_error = "timeout"
        except SSLError as e:
            last_error = f"ssl_error: {e}"
        except ReqConnectionError as e:
            last_error = f"connection_error: {e}"
        except RequestException as e:
            last_error = f"request_error: {e}"
        else:
            duration_ms = (time.time() - start_time) * 1000
            metrics.record_duration('fetch_duration_ms', duration_ms)
            logger.debug("Fetched %s in %.1fms", candidate, duration_ms,
                         extra={'duration_ms': duration_ms, 'url': candidate})
            return response.text

        metrics.increment('feed_attempt_failed')
        logger.info("Attempt failed for %s (%s), trying next transport", candidate, last_error,
                    extra={'url': candidate, 'error_type': last_error.split(':')[0]})

    raise FetchError(url, last_error)

# =============================================================================
# RSS PARSING
# =============================================================================

def _entry_published_at(entry) -> Optional[datetime]:
    for attr in ('published_parsed', 'updated_parsed'):
        value = entry.get(attr)
        if value:
            try:
                return datetime(*value[:6], tzinfo=timezone.utc)
            except (ValueError, TypeError, IndexError):
                pass

    for attr in ('published', 'updated', 'created'):
        value = entry.get(attr)
        if value:
            parsed = parse_date(str(value))
            if parsed:
                return parsed
    return None


def _entry_source(entry, default_source: str) -> str:
    source = entry.get('source')
    if isinstance(source, dict):
        title = ' '.join(str(source.get('title') or '').split())
        if title:
            return title
    return default_source


def parse_feed(raw: Any, default_source: str) -> List[CandidateItem]:
    """
    Parse an RSS/Atom payload into candidate items.

    Items missing a title or link, and links back to a news aggregator,
    are skipped. Unparseable dates leave ``published_at`` empty.
    """
    try:
        feed = feedparser.parse(raw)
    except Exception as e:
        logger.error("Failed to parse feed for %s: %s", default_source, str(e))
        return []

    if feed.bozo and not feed.entries:
        logger.warning("Malformed feed for %s: %s", default_source,
                       getattr(feed, 'bozo_exception', 'unknown error'))
        return []

    items = []
    for entry in feed.entries:
        title = ' '.join(str(entry.get('title') or '').split())
        link = str(entry.get('link') or '').strip()

        if not title or not link:
            logger.debug("Skipping entry without title or link in %s", default_source)
            continue
        if is_aggregator_link(link):
            continue

        items.append(CandidateItem(
            title=title,
            url=link,
            source=_entry_source(entry, default_source),
            published_at=_entry_published_at(entry),
        ))

    return items

# =============================================================================
# FEED FETCHING
# =============================================================================

def fetch_feed(source: FeedSource, use_proxies: bool = USE_PROXIES) -> List[CandidateItem]:
    """Fetch and parse one feed. Never raises: failures yield an empty list."""
    start_time = time.time()
    try:
        raw = fetch_text(source.url, use_proxies=use_proxies)
    except FetchError as e:
        metrics.increment('feed_fetch_failed')
        logger.error("All transports failed for %s: %s", source.source, e.reason,
                     extra={'source': source.source, 'error_type': 'fetch_failed'})
        return []

    items = parse_feed(raw, source.source)
    duration_ms = (time.time() - start_time) * 1000
    metrics.increment('feed_fetch_success')
    metrics.record_duration('feed_duration_ms', duration_ms)
    logger.info("Fetched %d items from %s", len(items), source.source,
                extra={'source': source.source, 'article_count': len(items),
                       'duration_ms': round(duration_ms, 1)})
    return items


def fetch_all_feeds(sources: Sequence[FeedSource], now: Optional[datetime] = None,
                    max_workers: int = FETCH_WORKERS) -> List[ScoredItem]:
    """
    Fetch every source concurrently, then dedup and score the union.

    One source failing never cancels its siblings. Results are concatenated
    in configured source order so duplicate resolution is deterministic.
    """
    if not sources:
        return []

    results: Dict[int, List[CandidateItem]] = {}
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(sources)))) as executor:
        future_to_index = {
            executor.submit(fetch_feed, source): index
            for index, source in enumerate(sources)
        }
        for future in as_completed(future_to_index):
            index = future_to_index[future]
            try:
                results[index] = future.result()
            except Exception:
                logger.exception("Unexpected error fetching %s", sources[index].source)
                results[index] = []

    combined = [item for index in range(len(sources)) for item in results.get(index, [])]

    unique, stats = TitleDeduplicator().deduplicate(combined)
    weights = {source.source: source.weight for source in sources}
    scored = score_items(unique, weights, now=now)

    logger.info("Total unique items: %d (%d duplicates dropped)", len(scored), stats['duplicates'],
                extra={'article_count': len(scored)})
    return scored

# =============================================================================
# AGGREGATION CACHE
# =============================================================================

@dataclass(frozen=True)
class CacheEntry:
    items: Tuple[ScoredItem, ...]
    fetched_at: float


class AggregationCache:
    """
    Single-slot cache of the last successful aggregation.

    The (items, fetched_at) pair is replaced as one immutable entry under a
    lock, so readers never observe a partial update. Last writer wins.
    """

    def __init__(self, ttl_seconds: int = CACHE_TTL_SECONDS,
                 clock: Callable[[], float] = time.time):
        self._lock = threading.Lock()
        self._entry: Optional[CacheEntry] = None
        self._ttl = ttl_seconds
        self._clock = clock

    def get(self) -> Optional[CacheEntry]:
        """Return the current entry, fresh or stale."""
        with self._lock:
            return self._entry

    def get_fresh(self) -> Optional[CacheEntry]:
        with self._lock:
            entry = self._entry
        if entry is not None and self._clock() - entry.fetched_at < self._ttl:
            return entry
        return None

    def set(self, items: Sequence[ScoredItem]) -> CacheEntry:
        entry = CacheEntry(items=tuple(items), fetched_at=self._clock())
        with self._lock:
            self._entry = entry
        return entry

    def is_stale(self) -> bool:
        return self.get_fresh() is None

    def clear(self) -> None:
        with self._lock:
            self._entry = None

    def stats(self) -> Dict:
        entry = self.get()
        return {
            'populated': entry is not None,
            'items': len(entry.items) if entry else 0,
            'age_seconds': round(self._clock() - entry.fetched_at, 1) if entry else None,
            'ttl_seconds': self._ttl,
        }


aggregation_cache = AggregationCache()

# =============================================================================
# AGGREGATION
# =============================================================================

def _derive(items: Sequence[ScoredItem], per_cluster: int, featured_count: int,
            now: Optional[datetime], rng: Optional[random.Random]) -> Dict[str, List]:
    return {
        'clusters': categorize_articles(items, per_cluster=per_cluster, now=now, rng=rng),
        'featured': select_featured(items, featured_count),
    }


def fetch_and_categorize_news(ignore_cache: bool = False, *,
                              cache: Optional[AggregationCache] = None,
                              sources: Optional[Sequence[FeedSource]] = None,
                              now: Optional[datetime] = None,
                              per_cluster: int = DEFAULT_PER_CLUSTER,
                              featured_count: int = DEFAULT_FEATURED_COUNT,
                              rng: Optional[random.Random] = None) -> Dict[str, List]:
    """
    Main aggregation entry point.

    Returns {"clusters": [Cluster], "featured": [ScoredItem]}. Within the
    cache TTL (and unless ``ignore_cache``) the cached items are re-clustered
    without touching the network. A failed or empty fetch falls back to the
    stale cache; with no prior data the result is empty.
    """
    cache = cache if cache is not None else aggregation_cache
    sources = sources if sources is not None else feed_sources
    metrics.increment('aggregation_runs')

    if not ignore_cache:
        entry = cache.get_fresh()
        if entry is not None:
            metrics.increment('cache_hits')
            logger.info("Using cached articles", extra={'article_count': len(entry.items)})
            return _derive(entry.items, per_cluster, featured_count, now, rng)
        metrics.increment('cache_misses')

    start_time = time.time()
    logger.info("Fetching fresh articles from %d feeds", len(sources))
    try:
        items = fetch_all_feeds(sources, now=now)
    except Exception:
        logger.exception("Error fetching news")
        items = []
    metrics.record_duration('aggregation_duration_ms', (time.time() - start_time) * 1000)

    if items:
        cache.set(items)
        return _derive(items, per_cluster, featured_count, now, rng)

    stale = cache.get()
    if stale is not None:
        metrics.increment('cache_stale_served')
        logger.warning("Fetch produced no articles, serving stale cache",
                       extra={'article_count': len(stale.items)})
        return _derive(stale.items, per_cluster, featured_count, now, rng)

    logger.warning("Fetch produced no articles and no cache exists")
    return {'clusters': [], 'featured': []}


def should_update_featured_news(last_updated_ms: Optional[float],
                                now_ms: Optional[float] = None) -> bool:
    """Featured news refreshes when never fetched or older than one day."""
    if last_updated_ms is None:
        return True
    if now_ms is None:
        now_ms = time.time() * 1000
    return (now_ms - last_updated_ms) > FEATURED_REFRESH_MS


def update_featured_news(count: int = DEFAULT_FEATURED_COUNT, **kwargs) -> Dict[str, Any]:
    """Run a bypass-cache aggregation and return the featured set with its timestamp."""
    logger.info("Updating featured news")
    result = fetch_and_categorize_news(True, featured_count=count, **kwargs)
    return {
        'articles': result['featured'],
        'timestamp': int(time.time() * 1000),
    }

# =============================================================================
# HEALTH & METRICS
# =============================================================================

def get_health() -> Dict:
    """Health check - returns server status and diagnostics."""
    return {
        "status": "healthy",
        "version": VERSION,
        "feeds": [s.source for s in feed_sources],
        "feedCount": len(feed_sources),
        "useProxies": USE_PROXIES,
        "cache": aggregation_cache.stats(),
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


def get_metrics() -> Dict:
    """Get detailed metrics for observability."""
    return {
        "metrics": metrics.get_stats(),
        "cache": aggregation_cache.stats(),
        "config": {
            "cacheTtl": CACHE_TTL_SECONDS,
            "fetchTimeoutMs": FETCH_TIMEOUT_MS,
            "fetchWorkers": FETCH_WORKERS,
            "useProxies": USE_PROXIES,
        },
        "timestamp": datetime.now(timezone.utc).isoformat()
    }

# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def main():
    """Run one aggregation pass and print clusters and featured articles."""
    parser = argparse.ArgumentParser(description="NewsFlow feed aggregator")
    parser.add_argument("--refresh", action="store_true", help="Bypass the cache")
    parser.add_argument("--per-cluster", type=int, default=DEFAULT_PER_CLUSTER,
                        help="Articles shown per cluster")
    parser.add_argument("--featured", type=int, default=DEFAULT_FEATURED_COUNT,
                        help="Number of featured articles")
    parser.add_argument("--json", action="store_true", help="Print the JSON payload")
    args = parser.parse_args()

    logger.info("NewsFlow aggregation v%s started with %d feeds", VERSION, len(feed_sources))

    result = fetch_and_categorize_news(
        args.refresh,
        per_cluster=args.per_cluster,
        featured_count=args.featured,
    )

    if args.json:
        from formatter import build_news_payload
        print(json.dumps(build_news_payload(result), ensure_ascii=False, indent=2))
        return

    print("Featured:")
    for article in result['featured']:
        print(f"  [{article.score:5.2f}] {article.title} ({article.source})")
        print(f"          {article.url}")

    for cluster in result['clusters']:
        print(f"\n{cluster.topic_english} / {cluster.topic_chinese}")
        for article in cluster.articles:
            print(f"  - {article.title} ({article.source})")
            print(f"    {article.url}")


if __name__ == '__main__':
    main()
