"""
Article Content Extractor
Turns an arbitrary article page into a readable HTML fragment.

Two pipelines share the same metadata pass and failure handling:
- Regex chain: site strategies, generic container patterns, body fallback,
  cleanup, entity decoding and UI-chrome removal. Works on any markup.
- Strict: readability-lxml main-content scoring behind a paragraph-density
  check, falling back to the regex chain, with bleach allow-list sanitizing.

Neither pipeline raises to its caller; failures come back as a placeholder
article with ``error`` set.
"""
import html as html_lib
import logging
import math
import re
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple
from urllib.parse import urljoin, urlparse

import bleach
from bs4 import BeautifulSoup
from readability import Document
from requests.exceptions import RequestException

from entities import decode_entities
from models import ExtractedArticle
from main import (
    EXTRACT_TIMEOUT_MS, MAX_HTML_BYTES, MAX_REDIRECTS, USER_AGENT,
    get_session, metrics, validate_url,
)

logger = logging.getLogger('newsflow.extractor')

MIN_CONTENT_LENGTH = 500
AGGRESSIVE_MIN_LENGTH = 300
MIN_FINAL_LENGTH = 100
TEXT_CONTENT_LIMIT = 500

DEFAULT_TITLE = 'Article'
ERROR_TITLE = 'Error Loading Article'
PLACEHOLDER_CONTENT = ('<p>Unable to extract article content. '
                       'Please click "Original" to view the full article.</p>')

ARTICLE_HEADERS = {
    'User-Agent': USER_AGENT,
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
    'Accept-Language': 'en-US,en;q=0.5',
}

_FLAGS = re.IGNORECASE | re.DOTALL


class ExtractionError(Exception):
    """Raised inside the pipeline when a page cannot be fetched or resolved."""


# =============================================================================
# HELPERS
# =============================================================================

def _container(tag: str, attr: str, value: str) -> 're.Pattern':
    """Pattern for <tag ... attr="...value..."> capturing up to the first closing tag."""
    return re.compile(
        r'<%s\b[^>]*%s=["\'][^"\']*(?:%s)[^"\']*["\'][^>]*>(.*?)</%s>' % (tag, attr, value, tag),
        _FLAGS)


def _bare(tag: str) -> 're.Pattern':
    return re.compile(r'<%s\b[^>]*>(.*?)</%s>' % (tag, tag), _FLAGS)


def _first_match(html: str, patterns: Sequence['re.Pattern'], min_length: int) -> str:
    for pattern in patterns:
        match = pattern.search(html)
        if match and len(match.group(1)) > min_length:
            return match.group(1)
    return ''


def _remove_all(html: str, patterns: Sequence['re.Pattern']) -> str:
    for pattern in patterns:
        html = pattern.sub('', html)
    return html


def _strip_tags(fragment: str) -> str:
    return re.sub(r'<[^>]+>', '', fragment or '')


def _meta_content(html: str, names: Sequence[str]) -> str:
    """Content of the first <meta name|property=...> found, in either attribute order."""
    for name in names:
        quoted = re.escape(name)
        for pattern in (
            r'<meta[^>]+(?:name|property)=["\']%s["\'][^>]*content=["\']([^"\']*)["\']' % quoted,
            r'<meta[^>]+content=["\']([^"\']*)["\'][^>]*(?:name|property)=["\']%s["\']' % quoted,
        ):
            match = re.search(pattern, html, re.IGNORECASE)
            if match and match.group(1).strip():
                return match.group(1).strip()
    return ''


def site_name(url: str) -> str:
    """Host of ``url`` without a leading www., or 'unknown'."""
    try:
        host = urlparse(url or '').hostname or ''
    except ValueError:
        host = ''
    if not host:
        match = re.match(r'^(?:[a-z][a-z0-9+.-]*://)?([^/?#:\s]+)', url or '', re.IGNORECASE)
        host = match.group(1) if match and '.' in match.group(1) else ''
    if not host:
        return 'unknown'
    host = host.lower()
    return host[4:] if host.startswith('www.') else host


def text_excerpt(content: str, limit: int = TEXT_CONTENT_LIMIT) -> str:
    """Plain text of an HTML fragment, whitespace collapsed, truncated."""
    text = re.sub(r'<[^>]+>', ' ', content or '')
    return re.sub(r'\s+', ' ', text).strip()[:limit]


# =============================================================================
# METADATA
# =============================================================================

def extract_metadata(html: str) -> Tuple[str, str, str]:
    """Return (title, excerpt, byline) before entity decoding."""
    title = DEFAULT_TITLE
    match = re.search(r'<title[^>]*>(.*?)</title>', html, _FLAGS)
    if match:
        title = _strip_tags(match.group(1)).strip() or DEFAULT_TITLE

    if not title or title == DEFAULT_TITLE or len(title) < 3:
        og_title = _meta_content(html, ('og:title',))
        if og_title:
            title = og_title

    excerpt = _meta_content(html, ('description', 'og:description'))
    byline = _meta_content(html, ('author', 'article:author'))
    return title, excerpt, byline


# =============================================================================
# SITE STRATEGIES
# =============================================================================

@dataclass(frozen=True)
class SiteStrategy:
    """
    Extraction rules for one publisher.

    ``aggregate`` strategies assemble content from many elements and do their
    own light cleanup, so the generic cleanup pass is skipped for them.
    """
    name: str
    hosts: Tuple[str, ...]
    extract: Callable[[str], str]
    aggregate: bool = False

    def matches(self, host: str) -> bool:
        host = (host or '').lower()
        return any(h in host for h in self.hosts)


ARS_PATTERNS = (
    re.compile(r'<article[^>]*id=["\']thrice["\'][^>]*>(.*?)</article>', _FLAGS),
    _container('div', 'class', 'article-body'),
    _container('div', 'class', 'article-content'),
)

ARS_WIDGETS = (
    _container('div', 'class', 'text-settings-dropdown|text-settings-menu|font-settings|typeface-selector'),
    _container('button', 'class', 'text-settings'),
    re.compile(r'<div[^>]*id=["\']text-settings["\'][^>]*>.*?</div>', _FLAGS),
)

ARS_ORPHAN_LABELS = re.compile(
    r'<(p|div)\b[^>]*>\s*(?:Size|Standard|Width \*|Width|Links|\* Subscribers only|'
    r'Subscribers only|Learn more)\s*</\1>',
    re.IGNORECASE)


def extract_arstechnica(html: str) -> str:
    content = _first_match(html, ARS_PATTERNS, MIN_CONTENT_LENGTH)
    if not content:
        return ''
    content = _remove_all(content, ARS_WIDGETS)
    return ARS_ORPHAN_LABELS.sub('', content)


FASTCOMPANY_PATTERNS = (
    _container('article', 'class', 'article'),
    _bare('article'),
    _container('div', 'class', 'article-body'),
    _container('div', 'class', 'post-content'),
    _container('div', 'class', 'entry-content'),
    _container('div', 'class', 'article-content'),
    _container('main', 'class', 'article'),
    _bare('main'),
)

_PARAGRAPH = re.compile(r'<p\b[^>]*>.*?</p>', _FLAGS)


def extract_fastcompany(html: str) -> str:
    content = _first_match(html, FASTCOMPANY_PATTERNS, AGGRESSIVE_MIN_LENGTH)
    if content:
        return content
    paragraphs = _PARAGRAPH.findall(html)
    if len(paragraphs) > 3:
        return '\n\n'.join(paragraphs)
    return ''


TECHCRUNCH_REGIONS = (
    re.compile(r'<article[^>]*id=["\']thrice["\'][^>]*>(.*?)</article>', _FLAGS),
    _bare('article'),
    re.compile(r'<div[^>]*class=["\'][^"\']*article-content[^"\']*["\'][^>]*>'
               r'(.*?)(?=<div[^>]*class=["\'][^"\']*(?:share|footer)|<aside|<footer|$)', _FLAGS),
)

TECHCRUNCH_BLOCKS = re.compile(r'<(p|h[1-6]|blockquote|ul)\b[^>]*>.*?</\1>', _FLAGS)
_UNORDERED_LIST = re.compile(r'<ul\b', re.IGNORECASE)

LIGHT_CLEANUP = (
    re.compile(r'<script\b[^>]*>.*?</script>', _FLAGS),
    re.compile(r'<style\b[^>]*>.*?</style>', _FLAGS),
    re.compile(r'<iframe\b[^>]*>.*?</iframe>', _FLAGS),
    re.compile(r'<svg\b[^>]*>.*?</svg>', _FLAGS),
    re.compile(r'<!--.*?-->', re.DOTALL),
    _container('div', 'class', 'tc-ad-|advertisement'),
)


def extract_techcrunch(html: str) -> str:
    region = ''
    for pattern in TECHCRUNCH_REGIONS:
        match = pattern.search(html)
        if match and match.group(1).strip():
            region = match.group(1)
            break
    if not region:
        return ''

    include_lists = len(_UNORDERED_LIST.findall(region)) < 10
    blocks = [
        match.group(0) for match in TECHCRUNCH_BLOCKS.finditer(region)
        if include_lists or match.group(1).lower() != 'ul'
    ]
    content = '\n\n'.join(blocks) if blocks else region
    return _remove_all(content, LIGHT_CLEANUP).strip()


SITE_STRATEGIES = (
    SiteStrategy('arstechnica', ('arstechnica.com',), extract_arstechnica),
    SiteStrategy('fastcompany', ('fastcompany.com',), extract_fastcompany),
    SiteStrategy('techcrunch', ('techcrunch.com',), extract_techcrunch, aggregate=True),
)


def find_strategy(url: str, strategies: Sequence[SiteStrategy] = SITE_STRATEGIES) -> Optional[SiteStrategy]:
    try:
        host = urlparse(url or '').hostname or ''
    except ValueError:
        return None
    for strategy in strategies:
        if strategy.matches(host):
            return strategy
    return None


# =============================================================================
# GENERIC CHAIN & CLEANUP
# =============================================================================

GENERIC_PATTERNS = (
    _container('article', 'class', 'article|content|post|entry|story'),
    _bare('article'),
    _container('div', 'class',
               'article-body|article-content|story-body|story-content|post-content|'
               'entry-content|content-body|article__body|c-entry-content'),
    _container('main', 'class', 'article|content|post'),
    _bare('main'),
)

_BODY = re.compile(r'<body[^>]*>(.*?)</body>', _FLAGS)

GENERIC_CLEANUP = tuple(
    re.compile(r'<%s\b[^>]*>.*?</%s>' % (tag, tag), _FLAGS)
    for tag in ('script', 'style', 'nav', 'header', 'footer', 'aside',
                'iframe', 'noscript', 'svg', 'form', 'button')
) + (
    re.compile(r'<!--.*?-->', re.DOTALL),
    _container('div', 'class', 'advertisement|ad-unit'),
    _container('ins', 'class', 'adsby'),
)

UI_LABELS = (r'STORY TEXT|SIZE|WIDTH|HEIGHT|LINKS|AUTHOR|PUBLISHED|UPDATED|SOURCE|TOPICS|'
             r'SUBSCRIBERS? ONLY|LEARN MORE|READ MORE|SHARE|COMMENT|SIGN UP|SUBSCRIBE|'
             r'ADVERTISEMENT|SPONSORED|PAID POST|PROMOTED CONTENT|BY THE AUTHOR|AUTHOR INFO')

_UI_LABEL_ELEMENT = re.compile(
    r'<(p|div|span|h[1-6])\b[^>]*>\s*(?:%s)\s*(?:</\1>|<br\s*/?>)' % UI_LABELS,
    re.IGNORECASE)
_UI_LABEL_TEXT = re.compile(r'(?:%s)' % UI_LABELS, re.IGNORECASE)


def clean_content(content: str) -> str:
    return _remove_all(content, GENERIC_CLEANUP).strip()


def clean_ui_text(content: str) -> str:
    """Drop boilerplate label elements and lines left empty afterwards."""
    content = _UI_LABEL_ELEMENT.sub('', content)
    lines = []
    for line in content.split('\n'):
        stripped = line.strip()
        if not stripped:
            continue
        if _UI_LABEL_TEXT.fullmatch(_strip_tags(stripped).strip()):
            continue
        lines.append(line)
    return '\n'.join(lines)


def extract_body(html: str, url: str) -> Tuple[str, bool]:
    """
    Pick the main content for ``html``.

    Returns (content, cleaned) where ``cleaned`` says the strategy already
    applied its own cleanup.
    """
    strategy = find_strategy(url)
    content = ''
    cleaned = False
    if strategy:
        content = strategy.extract(html)
        cleaned = strategy.aggregate and bool(content)
        logger.debug("Site strategy %s produced %d chars", strategy.name, len(content),
                     extra={'url': url})

    if len(content) < MIN_CONTENT_LENGTH:
        generic = _first_match(html, GENERIC_PATTERNS, MIN_CONTENT_LENGTH)
        if generic:
            content, cleaned = generic, False

    if not content:
        match = _BODY.search(html)
        content = match.group(1) if match else html
        cleaned = False

    return content, cleaned


# =============================================================================
# EXTRACTION PIPELINES
# =============================================================================

def error_article(url: str, message: str) -> ExtractedArticle:
    """Placeholder returned for any failed extraction."""
    return ExtractedArticle(
        title=ERROR_TITLE,
        content=('<p>Failed to load article: %s</p>'
                 '<p>Please click "Original" to view the article directly.</p>'
                 % html_lib.escape(message)),
        site_name=site_name(url),
        url=url,
        error=message,
    )


def _finish(content: str, title: str, excerpt: str, byline: str, url: str) -> ExtractedArticle:
    if len(content) <= MIN_FINAL_LENGTH:
        content = PLACEHOLDER_CONTENT
    return ExtractedArticle(
        title=title,
        content=content,
        text_content=text_excerpt(content),
        excerpt=excerpt,
        byline=byline,
        site_name=site_name(url),
        url=url,
    )


def extract_article(html: str, request_url: str, final_url: Optional[str] = None) -> ExtractedArticle:
    """
    Extract readable content with the regex chain.

    ``final_url`` (after redirects) drives site detection and the reported
    URL; it defaults to ``request_url``.
    """
    url = final_url or request_url
    try:
        title, excerpt, byline = extract_metadata(html or '')
        content, cleaned = extract_body(html or '', url)
        if not cleaned:
            content = clean_content(content)

        content = clean_ui_text(decode_entities(content))
        article = _finish(content, decode_entities(title), decode_entities(excerpt),
                          decode_entities(byline), url)
    except Exception as e:
        logger.exception("Extraction failed for %s", url, extra={'url': url})
        return error_article(url, str(e) or type(e).__name__)

    logger.info("Extracted %d chars from %s", len(article.content), article.site_name,
                extra={'url': url})
    return article


# =============================================================================
# STRICT VARIANT
# =============================================================================

ALLOWED_TAGS = [
    'p', 'h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'ul', 'ol', 'li', 'blockquote',
    'strong', 'em', 'code', 'pre', 'a', 'img', 'br', 'hr', 'figure', 'figcaption',
]
ALLOWED_ATTRIBUTES = ('href', 'src', 'alt', 'title', 'class', 'id', 'target', 'rel')
ALLOWED_PROTOCOLS = ['http', 'https', 'mailto']

READERABLE_MIN_LENGTH = 140
READERABLE_MIN_SCORE = 20

_UNLIKELY_CANDIDATES = re.compile(
    r'-ad-|ai2html|banner|breadcrumbs|combx|comment|community|cover-wrap|disqus|extra|'
    r'footer|gdpr|header|legends|menu|related|remark|replies|rss|shoutbox|sidebar|'
    r'skyscraper|social|sponsor|supplemental|ad-break|agegate|pagination|pager|popup|'
    r'yom-remote', re.IGNORECASE)
_MAYBE_CANDIDATE = re.compile(r'and|article|body|column|content|main|shadow', re.IGNORECASE)


def _allow_attribute(tag: str, name: str, value: str) -> bool:
    return name in ALLOWED_ATTRIBUTES or name.startswith('data-')


def sanitize_html(content: str) -> str:
    """Allow-list sanitize: unsafe tags stripped, handlers and bad URIs dropped."""
    if not content:
        return ''
    return bleach.clean(
        _remove_all(content, GENERIC_CLEANUP),
        tags=ALLOWED_TAGS,
        attributes=_allow_attribute,
        protocols=ALLOWED_PROTOCOLS,
        strip=True,
        strip_comments=True,
    ).strip()


def _is_visible(node) -> bool:
    style = (node.get('style') or '').replace(' ', '').lower()
    return 'display:none' not in style and not node.has_attr('hidden')


def is_probably_readerable(html: str, min_content_length: int = READERABLE_MIN_LENGTH,
                           min_score: float = READERABLE_MIN_SCORE) -> bool:
    """
    Cheap check whether a page has an article-like body.

    Sums sqrt(len - min_content_length) over visible paragraphs long enough
    to count and stops as soon as the total passes ``min_score``.
    """
    soup = BeautifulSoup(html or '', 'lxml')
    score = 0.0
    for node in soup.find_all(['p', 'pre', 'article']):
        if not _is_visible(node):
            continue
        match_string = ' '.join(node.get('class') or []) + ' ' + (node.get('id') or '')
        if _UNLIKELY_CANDIDATES.search(match_string) and not _MAYBE_CANDIDATE.search(match_string):
            continue
        if node.name == 'p' and node.find_parent('li'):
            continue

        length = len(node.get_text().strip())
        if length < min_content_length:
            continue
        score += math.sqrt(length - min_content_length)
        if score > min_score:
            return True
    return False


def _readability_content(html: str, url: str) -> Tuple[str, str]:
    """Main content and short title from readability-lxml, or ('', '')."""
    try:
        doc = Document(html, url=url)
        content = doc.summary(html_partial=True)
        title = doc.short_title()
    except Exception as e:
        logger.warning("readability failed for %s: %s", url, e, extra={'url': url})
        return '', ''
    if len(text_excerpt(content, limit=MIN_CONTENT_LENGTH)) < READERABLE_MIN_LENGTH:
        return '', ''
    return content, title or ''


def extract_article_strict(html: str, request_url: str,
                           final_url: Optional[str] = None) -> ExtractedArticle:
    """
    Extract with readability scoring when the page looks readerable,
    otherwise the regex chain; the result is sanitized either way.
    """
    url = final_url or request_url
    content = ''
    title = ''
    if is_probably_readerable(html or ''):
        content, title = _readability_content(html, url)

    if not content:
        logger.info("Falling back to regex chain for %s", url, extra={'url': url})
        article = extract_article(html, request_url, final_url)
        if not article.ok:
            return article
        content = article.content
        title = article.title
        excerpt, byline = article.excerpt, article.byline
    else:
        meta_title, excerpt, byline = extract_metadata(html)
        title = decode_entities(meta_title if meta_title != DEFAULT_TITLE else title)
        content = decode_entities(content)
        excerpt, byline = decode_entities(excerpt), decode_entities(byline)

    try:
        content = sanitize_html(content)
    except Exception as e:
        logger.exception("Sanitizing failed for %s", url, extra={'url': url})
        return error_article(url, str(e) or type(e).__name__)

    return _finish(content, title or DEFAULT_TITLE, excerpt, byline, url)


# =============================================================================
# FETCHING
# =============================================================================

def _check_url(url: str) -> None:
    valid, error = validate_url(url)
    if not valid:
        raise ExtractionError(f"Blocked URL: {error}")


def resolve_final_url(url: str, max_redirects: int = MAX_REDIRECTS) -> str:
    """
    Follow Location headers with HEAD requests, at most ``max_redirects`` hops.

    Hitting the cap or a HEAD failure stops resolution at the last known URL.
    """
    _check_url(url)
    session = get_session()
    current = url
    for _ in range(max_redirects):
        try:
            response = session.head(current, allow_redirects=False, headers=ARTICLE_HEADERS,
                                    timeout=EXTRACT_TIMEOUT_MS / 1000)
        except RequestException as e:
            logger.debug("HEAD failed for %s: %s", current, e, extra={'url': current})
            return current

        location = response.headers.get('Location')
        if not (300 <= response.status_code < 400) or not location:
            return current

        current = urljoin(current, location)
        _check_url(current)

    logger.warning("Redirect limit (%d) reached, using last known URL %s", max_redirects, current,
                   extra={'url': current, 'error_type': 'too_many_redirects'})
    return current


def _decode_body(content: bytes, response) -> str:
    content_type = response.headers.get('Content-Type', '').lower()
    encoding = response.encoding if 'charset' in content_type and response.encoding else 'utf-8'
    try:
        return content.decode(encoding, errors='replace')
    except LookupError:
        return content.decode('utf-8', errors='replace')


def fetch_article_html(url: str, max_bytes: int = MAX_HTML_BYTES,
                       max_redirects: int = MAX_REDIRECTS) -> Tuple[str, str]:
    """
    Download an article page. Returns (html, final_url); raises ExtractionError.

    Every redirect hop is validated before it is requested, and at most
    ``max_redirects`` hops are followed.
    """
    _check_url(url)
    session = get_session()
    start_time = time.time()
    current = url
    try:
        for _ in range(max_redirects + 1):
            with session.get(current, headers=ARTICLE_HEADERS, timeout=EXTRACT_TIMEOUT_MS / 1000,
                             allow_redirects=False, stream=True) as response:
                location = response.headers.get('Location')
                if 300 <= response.status_code < 400 and location:
                    current = urljoin(current, location)
                    _check_url(current)
                    continue
                if response.status_code >= 400:
                    raise ExtractionError(f"HTTP {response.status_code}")

                content = b''
                for chunk in response.iter_content(chunk_size=64 * 1024):
                    if not chunk:
                        continue
                    content += chunk
                    if len(content) > max_bytes:
                        raise ExtractionError(f"Page larger than {max_bytes} bytes")
                html = _decode_body(content, response)
                break
        else:
            logger.warning("Redirect limit (%d) reached fetching %s", max_redirects, url,
                           extra={'url': url, 'error_type': 'too_many_redirects'})
            raise ExtractionError(f"Too many redirects (limit {max_redirects})")
    except RequestException as e:
        raise ExtractionError(str(e) or type(e).__name__) from e

    if not html.strip():
        raise ExtractionError("Empty page")

    duration_ms = (time.time() - start_time) * 1000
    metrics.record_duration('extract_fetch_duration_ms', duration_ms)
    return html, current


def fetch_and_extract(url: str, strict: bool = False) -> ExtractedArticle:
    """Resolve, download and extract ``url``. Never raises."""
    metrics.increment('extract_requests')
    try:
        resolved = resolve_final_url(url)
        html, final_url = fetch_article_html(resolved)
    except ExtractionError as e:
        metrics.increment('extract_failures')
        logger.warning("Could not fetch article %s: %s", url, e,
                       extra={'url': url, 'error_type': 'extract_fetch'})
        return error_article(url, str(e))

    if strict:
        article = extract_article_strict(html, url, final_url)
    else:
        article = extract_article(html, url, final_url)
    if not article.ok:
        metrics.increment('extract_failures')
    return article

