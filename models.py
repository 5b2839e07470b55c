"""
NewsFlow data model.

Value objects passed between the pipeline stages. All records are frozen;
enrichment (scoring, selection) produces new records instead of mutating.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any, Tuple


@dataclass(frozen=True)
class FeedSource:
    """Static feed configuration: endpoint, display name and relevance weight."""
    url: str
    source: str
    weight: float = 1.0

    def __post_init__(self):
        if self.weight < 0:
            raise ValueError(f"Feed weight must be >= 0, got {self.weight}")


@dataclass(frozen=True)
class CandidateItem:
    """One article reference parsed from a feed, before scoring."""
    title: str
    url: str
    source: str
    published_at: Optional[datetime] = None


@dataclass(frozen=True)
class ScoredItem:
    """A candidate item annotated with its relevance/freshness score."""
    title: str
    url: str
    source: str
    score: float
    published_at: Optional[datetime] = None

    @classmethod
    def from_candidate(cls, item: CandidateItem, score: float) -> 'ScoredItem':
        return cls(
            title=item.title,
            url=item.url,
            source=item.source,
            score=score,
            published_at=item.published_at,
        )

    def to_link(self) -> Dict[str, Any]:
        """Public article shape (title/url/source) used by the reading UI."""
        return {'title': self.title, 'url': self.url, 'source': self.source}

    def to_dict(self) -> Dict[str, Any]:
        data = self.to_link()
        data['score'] = self.score
        data['publishedAt'] = self.published_at.isoformat() if self.published_at else None
        return data


@dataclass(frozen=True)
class Cluster:
    """A topical bucket; article order is selection order, not rank."""
    id: str
    topic_english: str
    topic_chinese: str
    articles: Tuple[ScoredItem, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'topicEnglish': self.topic_english,
            'topicChinese': self.topic_chinese,
            'articles': [a.to_link() for a in self.articles],
        }


@dataclass(frozen=True)
class ExtractedArticle:
    """
    Readable representation of a fetched web page.

    Built per request and never persisted. ``error`` is set only on the
    placeholder returned when extraction fails.
    """
    title: str
    content: str
    text_content: str = ''
    excerpt: str = ''
    byline: str = ''
    site_name: str = 'unknown'
    url: str = ''
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
