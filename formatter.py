"""
Result formatting: turns pipeline objects into the JSON shapes served to
the reading UI.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence

from models import ExtractedArticle, ScoredItem

COPYRIGHT_NOTICE = '本文由阅读模式实时转码生成，内容版权归原作者所有。'


def build_news_payload(result: Dict[str, Sequence]) -> Dict[str, Any]:
    """Aggregation result -> {clusters, featured}."""
    return {
        'clusters': [cluster.to_dict() for cluster in result.get('clusters', [])],
        'featured': [article.to_link() for article in result.get('featured', [])],
    }


def build_featured_payload(articles: Sequence[ScoredItem], timestamp: Optional[int],
                           updated: bool) -> Dict[str, Any]:
    return {
        'articles': [article.to_dict() for article in articles],
        'timestamp': timestamp,
        'updated': updated,
    }


def build_extract_payload(article: ExtractedArticle) -> Dict[str, Any]:
    payload = {
        'title': article.title,
        'content': article.content,
        'textContent': article.text_content,
        'excerpt': article.excerpt,
        'byline': article.byline,
        'siteName': article.site_name,
        'url': article.url,
    }
    if article.error is not None:
        payload['error'] = article.error
    return payload


def build_proxy_read_payload(article: ExtractedArticle,
                             fetched_at: Optional[datetime] = None) -> Dict[str, Any]:
    """Reader-proxy envelope; failures keep the placeholder data with success false."""
    fetched_at = fetched_at or datetime.now(timezone.utc)
    payload = {
        'success': article.ok,
        'data': {
            'title': article.title,
            'content': article.content,
            'byline': article.byline,
            'excerpt': article.excerpt,
            'original_url': article.url,
            'copyright_notice': COPYRIGHT_NOTICE,
        },
        'meta': {
            'fetched_at': fetched_at.isoformat(),
            'content_length': len(article.content),
        },
    }
    if not article.ok:
        payload['error'] = article.error
    return payload
