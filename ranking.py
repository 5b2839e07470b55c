"""
Article Ranking & Deduplication
Removes repeated stories across feeds and scores what is left.

Scoring is additive:
1. Source weight (x2)
2. Keyword bonuses found in the title
3. Recency bonus (step function on age in days)
4. Flat base of 1.0

Scores depend on the current time, so they are recomputed on every pass.
"""
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from models import CandidateItem, ScoredItem

# Prefix length used to detect the same story syndicated by several feeds
TITLE_PREFIX_LENGTH = 50

# Keyword bonuses, matched case-insensitively against the title
KEYWORD_SCORES = {
    'gpt-5': 2.0, 'sora': 1.8, 'agent': 1.5, 'agi': 1.5, 'breakthrough': 1.4,
    'anthropic': 1.3, 'openai': 1.2, 'gemini': 1.2, 'claude': 1.3,
    'chip': 1.0, 'gpu': 1.0, 'hardware': 1.1,
    'launch': 1.1, 'release': 1.0, 'update': 0.9,
}

# (max age in days, bonus) - first bracket the age falls under wins
RECENCY_BONUSES = (
    (1, 3.0),
    (2, 2.5),
    (3, 2.0),
    (5, 1.0),
)

BASE_SCORE = 1.0
DEFAULT_SOURCE_WEIGHT = 1.0

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class TitleDeduplicator:
    """
    Detects syndicated duplicates by normalized title prefix.

    The first item seen for a prefix is kept, so the order in which sources
    are iterated decides which copy survives. Two different stories sharing
    their first 50 characters are treated as one; this is a known
    approximation.
    """

    def __init__(self, prefix_length: int = TITLE_PREFIX_LENGTH):
        self.prefix_length = prefix_length
        self.seen_titles = set()

    def normalize_title(self, title: str) -> str:
        return (title or '').lower()[:self.prefix_length]

    def is_duplicate(self, item: CandidateItem) -> bool:
        return self.normalize_title(item.title) in self.seen_titles

    def add_item(self, item: CandidateItem) -> None:
        self.seen_titles.add(self.normalize_title(item.title))

    def deduplicate(self, items: Iterable[CandidateItem]) -> Tuple[List[CandidateItem], Dict[str, int]]:
        """
        Remove duplicates from an item list.
        Returns: (unique_items, stats)
        """
        unique_items = []
        stats = {'total': 0, 'unique': 0, 'duplicates': 0}

        for item in items:
            stats['total'] += 1
            if self.is_duplicate(item):
                stats['duplicates'] += 1
                continue
            self.add_item(item)
            unique_items.append(item)
            stats['unique'] += 1

        return unique_items, stats


def deduplicate_items(items: Iterable[CandidateItem]) -> List[CandidateItem]:
    """Deduplicate with a fresh deduplicator (no state carried between runs)."""
    unique_items, _ = TitleDeduplicator().deduplicate(items)
    return unique_items


def recency_bonus(published_at: Optional[datetime], now: datetime) -> float:
    if published_at is None:
        return 0.0
    age_days = (as_utc(now) - as_utc(published_at)).total_seconds() / 86400
    for max_days, bonus in RECENCY_BONUSES:
        if age_days < max_days:
            return bonus
    return 0.0


def keyword_bonus(title: str) -> float:
    lowered = (title or '').lower()
    return sum(bonus for keyword, bonus in KEYWORD_SCORES.items() if keyword in lowered)


def calculate_score(item: CandidateItem, source_weight: float,
                    now: Optional[datetime] = None) -> float:
    """
    Score a candidate item.

    Deterministic for a fixed (title, weight, publish date, now); rounded to
    two decimals.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    score = source_weight * 2
    score += keyword_bonus(item.title)
    score += recency_bonus(item.published_at, now)
    score += BASE_SCORE
    return round(score, 2)


def score_items(items: Iterable[CandidateItem], weights: Mapping[str, float],
                now: Optional[datetime] = None) -> List[ScoredItem]:
    """
    Score every item, looking its weight up by source name.

    Sources missing from ``weights`` (e.g. a feed's <source> override naming
    another outlet) get the default weight.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    return [
        ScoredItem.from_candidate(item, calculate_score(
            item, weights.get(item.source, DEFAULT_SOURCE_WEIGHT), now))
        for item in items
    ]


def rank_key(item: ScoredItem) -> Tuple[float, float]:
    """Sort key for (score desc, date desc); undated items count as epoch 0."""
    published = as_utc(item.published_at) if item.published_at else _EPOCH
    return item.score, published.timestamp()


def rank_items(items: Iterable[ScoredItem]) -> List[ScoredItem]:
    return sorted(items, key=rank_key, reverse=True)


def select_featured(items: Iterable[ScoredItem], count: int = 3) -> List[ScoredItem]:
    """Top ``count`` items by rank. Deterministic: no sampling involved."""
    if count <= 0:
        return []
    return rank_items(items)[:count]
