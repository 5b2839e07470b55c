"""
Keyword clustering of scored articles.

Items newer than the recency window are assigned to the first topical
cluster whose keywords appear in the title (priority order, first match
wins); everything else lands in the catch-all cluster. Each populated
cluster then shows a random sample drawn from its top-ranked candidates.
"""
import logging
import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Sequence, Tuple

from models import Cluster, ScoredItem
from ranking import as_utc, rank_items

logger = logging.getLogger('newsflow.clustering')

RECENT_WINDOW_DAYS = 3
CANDIDATE_POOL_SIZE = 10
DEFAULT_PER_CLUSTER = 3


@dataclass(frozen=True)
class ClusterSpec:
    id: str
    topic_english: str
    topic_chinese: str
    keywords: Tuple[str, ...] = ()


# Checked in this order; the catch-all comes last and has no keywords.
CLUSTER_SPECS = (
    ClusterSpec('cluster-1', 'Tech Company Dynamics', '科技公司动态', (
        'microsoft', 'google', 'apple', 'nvidia', 'meta', 'amazon', 'openai',
        'anthropic', 'samsung', 'deepmind')),
    ClusterSpec('cluster-2', 'Innovation & Frontiers', '创新与前沿', (
        'breakthrough', 'research', 'sora', 'agi', 'model', 'future of',
        'frontier', 'scientific', 'gpt-5', 'gemini')),
    ClusterSpec('cluster-3', 'Tools & Applications', '工具与应用', (
        'chatgpt', 'copilot', 'tool', 'app', 'software', 'image generator',
        'application', 'product', 'launch')),
    ClusterSpec('cluster-4', 'Society & Education', '社会与教育', (
        'school', 'university', 'jobs', 'election', 'ethics', 'society',
        'education', 'government', 'risk', 'regulation')),
    ClusterSpec('cluster-5', 'General AI News', '综合新闻'),
)

GENERAL_CLUSTER_ID = 'cluster-5'


def filter_recent(items: Iterable[ScoredItem], now: Optional[datetime] = None,
                  window_days: int = RECENT_WINDOW_DAYS) -> List[ScoredItem]:
    """Drop items published before ``now - window_days``; undated items are kept."""
    if now is None:
        now = datetime.now(timezone.utc)
    cutoff = as_utc(now) - timedelta(days=window_days)
    return [
        item for item in items
        if item.published_at is None or as_utc(item.published_at) > cutoff
    ]


def assign_cluster(title: str, specs: Sequence[ClusterSpec] = CLUSTER_SPECS,
                   general_id: str = GENERAL_CLUSTER_ID) -> str:
    lowered = (title or '').lower()
    for spec in specs:
        if spec.id == general_id:
            continue
        if any(keyword in lowered for keyword in spec.keywords):
            return spec.id
    return general_id


def sample_candidates(items: Sequence[ScoredItem], count: int,
                      pool_size: int = CANDIDATE_POOL_SIZE,
                      rng: Optional[random.Random] = None) -> List[ScoredItem]:
    """
    Draw ``min(count, pool)`` distinct items from the top ``pool_size`` ranked items.

    Partial Fisher-Yates: only the first ``k`` positions of the pool are
    shuffled, and they are the sample.
    """
    rng = rng or random.Random()
    pool = rank_items(items)[:pool_size]
    k = min(max(count, 0), len(pool))
    for i in range(k):
        j = rng.randrange(i, len(pool))
        pool[i], pool[j] = pool[j], pool[i]
    return pool[:k]


def categorize_articles(items: Iterable[ScoredItem], per_cluster: int = DEFAULT_PER_CLUSTER,
                        now: Optional[datetime] = None,
                        rng: Optional[random.Random] = None,
                        specs: Sequence[ClusterSpec] = CLUSTER_SPECS) -> List[Cluster]:
    """
    Build the cluster view for one aggregation pass.

    Clusters that end up empty after the time filter are omitted.
    """
    recent = filter_recent(items, now=now)
    logger.info("After time filter (%d days): %d articles", RECENT_WINDOW_DAYS, len(recent))

    buckets = {spec.id: [] for spec in specs}
    for item in recent:
        buckets[assign_cluster(item.title, specs)].append(item)

    clusters = []
    for spec in specs:
        members = buckets[spec.id]
        if not members:
            continue
        clusters.append(Cluster(
            id=spec.id,
            topic_english=spec.topic_english,
            topic_chinese=spec.topic_chinese,
            articles=tuple(sample_candidates(members, per_cluster, rng=rng)),
        ))

    logger.info("Final clusters: %d with articles", len(clusters))
    return clusters
