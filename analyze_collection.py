"""
Analyze a markdown collection of saved links and suggest feeds to add.

Usage:
    python analyze_collection.py [path/to/collection.md]
"""
import re
import sys
from collections import Counter
from typing import Dict, List, Tuple
from urllib.parse import urlparse

from main import feed_sources

LINK_PATTERN = re.compile(r'\[([^\]]+)\]\((https?://[^)]+)\)')

RECOMMENDED_FEEDS = [
    ('technologyreview.com', 'MIT Technology Review', 'https://www.technologyreview.com/feed/'),
    ('wired.com', 'Wired', 'https://www.wired.com/feed/rss'),
    ('theverge.com', 'The Verge', 'https://www.theverge.com/rss/index.xml'),
    ('arstechnica.com', 'Ars Technica', 'https://feeds.arstechnica.com/arstechnica/index'),
    ('techcrunch.com', 'TechCrunch', 'https://techcrunch.com/feed/'),
    ('venturebeat.com', 'VentureBeat', 'https://venturebeat.com/feed/'),
    ('zdnet.com', 'ZDNet', 'https://www.zdnet.com/news/rss.xml'),
    ('ieee.org', 'IEEE Spectrum', 'https://spectrum.ieee.org/rss/full'),
    ('a16z.com', 'a16z (Andreessen Horowitz)', 'https://a16z.com/feed/'),
    ('openai.com', 'OpenAI Blog', 'https://openai.com/blog/rss.xml'),
    ('anthropic.com', 'Anthropic Blog', 'https://www.anthropic.com/news/rss'),
    ('deepmind.com', 'Google DeepMind', 'https://deepmind.google/discover/feed/'),
]


def parse_links(text: str) -> List[Tuple[str, str]]:
    return LINK_PATTERN.findall(text)


def normalize_domain(url: str) -> str:
    host = (urlparse(url).hostname or '').lower()
    return host[4:] if host.startswith('www.') else host


def count_domains(links: List[Tuple[str, str]]) -> Tuple[Counter, Dict[str, List[Tuple[str, str]]]]:
    """Articles per domain, plus up to three (title, url) examples each."""
    counts = Counter()
    examples: Dict[str, List[Tuple[str, str]]] = {}
    for title, url in links:
        try:
            domain = normalize_domain(url)
        except ValueError:
            print(f"Failed to parse URL: {url}", file=sys.stderr)
            continue
        if not domain:
            continue
        counts[domain] += 1
        examples.setdefault(domain, [])
        if len(examples[domain]) < 3:
            examples[domain].append((title, url))
    return counts, examples


def distribution(counts: Counter) -> Dict[str, int]:
    values = counts.values()
    return {
        'high': sum(1 for c in values if c >= 50),
        'medium': sum(1 for c in values if 20 <= c < 50),
        'low': sum(1 for c in values if 5 <= c < 20),
        'rare': sum(1 for c in values if c < 5),
    }


def configured_domains() -> List[str]:
    """Registered domains (last two labels) of the configured feeds."""
    domains = []
    for source in feed_sources:
        host = normalize_domain(source.url)
        domain = '.'.join(host.split('.')[-2:])
        if domain and domain not in domains:
            domains.append(domain)
    return domains


def recommend_feeds(counts: Counter, current: List[str]) -> List[Tuple[str, str, int]]:
    """(name, rss, count) for collected domains that no configured feed covers."""
    recommended = []
    for domain, name, rss in RECOMMENDED_FEEDS:
        found = next(((d, c) for d, c in counts.most_common() if domain in d), None)
        if found and not any(cd in found[0] for cd in current):
            recommended.append((name, rss, found[1]))
    return recommended


def _shorten(title: str, width: int = 40) -> str:
    return title if len(title) <= width else title[:width - 3] + '...'


def main():
    path = sys.argv[1] if len(sys.argv) > 1 else 'public/collection.md'
    with open(path, encoding='utf-8') as f:
        links = parse_links(f.read())

    print(f"\n📊 Total articles found: {len(links)}\n")
    counts, examples = count_domains(links)
    print(f"📰 Unique sources: {len(counts)}\n")

    print(f"{'Source':31s} | {'Count':6s} | Example")
    print('-' * 84)
    for domain, count in counts.most_common():
        print(f"{domain:31s} | {count:<6d} | {_shorten(examples[domain][0][0])}")
        if count > 5:
            for title, _ in examples[domain][1:3]:
                print(f"{'':31s} | {'':6s} | {_shorten(title)}")

    buckets = distribution(counts)
    print('\n📈 Distribution:')
    print(f"   High volume (≥50 articles): {buckets['high']} sources")
    print(f"   Medium volume (20-49): {buckets['medium']} sources")
    print(f"   Low volume (5-19): {buckets['low']} sources")
    print(f"   Rare (<5): {buckets['rare']} sources")

    print('\n🔥 Top 20 sources by volume:')
    for domain, count in [(d, c) for d, c in counts.most_common() if c >= 50][:20]:
        print(f"   {domain}: {count} articles")

    current = configured_domains()
    print('\n✅ Configured RSS sources found in collection:')
    for source in current:
        found = next(((d, c) for d, c in counts.most_common() if source in d), None)
        if found:
            print(f"   ✓ {source}: {found[1]} articles")
        else:
            print(f"   ✗ {source}: Not found in collection")

    print('\n💡 Recommended new RSS sources (high volume in collection):')
    for name, rss, count in recommend_feeds(counts, current):
        print(f"   • {name}: {count} articles in collection")
        print(f"     RSS: {rss}")


if __name__ == '__main__':
    main()
