"""
NewsFlow Client - Read the news from the terminal
A simple client over the aggregation and extraction functions.

Usage:
    python news_client.py news [--refresh]
    python news_client.py featured
    python news_client.py extract <url> [--strict] [--save]
"""

import argparse
import json
import logging
from datetime import datetime

# Suppress excessive logging for clean output
logging.getLogger('newsflow').setLevel(logging.WARNING)

from main import fetch_and_categorize_news, update_featured_news
from extractor import fetch_and_extract, text_excerpt
from formatter import build_extract_payload


def print_article(article, index):
    """Pretty print a single scored article."""
    print(f"\n{index}. {article.title}")
    print(f"   Source:     {article.source}")
    print(f"   Score:      {article.score:.2f}")
    if article.published_at:
        print(f"   Published:  {article.published_at.strftime('%Y-%m-%d %H:%M')}")
    print(f"   URL:        {article.url}")


def show_news(refresh: bool):
    print("\n" + "="*80)
    print(" NewsFlow - Clustered News ".center(80, "="))
    print("="*80)

    result = fetch_and_categorize_news(refresh)
    if not result['clusters']:
        print("\n❌ No articles available. Check the feed logs.")
        return

    for cluster in result['clusters']:
        print(f"\n📂 {cluster.topic_english} / {cluster.topic_chinese}")
        for i, article in enumerate(cluster.articles, 1):
            print_article(article, i)

    print("\n" + "-"*80)
    print("⭐ Featured")
    for i, article in enumerate(result['featured'], 1):
        print_article(article, i)


def show_featured():
    update = update_featured_news()
    updated = datetime.fromtimestamp(update['timestamp'] / 1000)
    print(f"\n⭐ Featured articles (updated {updated:%Y-%m-%d %H:%M})")
    for i, article in enumerate(update['articles'], 1):
        print_article(article, i)


def show_extract(url: str, strict: bool, save: bool):
    article = fetch_and_extract(url, strict=strict)

    print(f"\n{'='*80}")
    print(f"Title:        {article.title}")
    print(f"Site:         {article.site_name}")
    if article.byline:
        print(f"Author:       {article.byline}")
    print(f"URL:          {article.url}")
    if article.error:
        print(f"❌ Error:     {article.error}")
    print(f"{'='*80}\n")

    # Show a plain-text preview for readability
    preview = text_excerpt(article.content, limit=1000)
    print(preview + ("..." if len(preview) == 1000 else ""))

    if save:
        output_file = f"article_{datetime.now().strftime('%Y%m%d_%H%M%S')}.json"
        with open(output_file, 'w', encoding='utf-8') as f:
            json.dump(build_extract_payload(article), f, indent=2, ensure_ascii=False)
        print(f"\n💾 Article saved to: {output_file}")


def main():
    """Main entry point for the news client."""
    parser = argparse.ArgumentParser(description="NewsFlow terminal client")
    subparsers = parser.add_subparsers(dest="command", required=True)

    news_parser = subparsers.add_parser("news", help="Show clustered news")
    news_parser.add_argument("--refresh", action="store_true", help="Bypass the cache")

    subparsers.add_parser("featured", help="Refresh and show featured articles")

    extract_parser = subparsers.add_parser("extract", help="Show a readable article")
    extract_parser.add_argument("url")
    extract_parser.add_argument("--strict", action="store_true",
                                help="Use readability scoring and sanitizing")
    extract_parser.add_argument("--save", action="store_true", help="Save the payload as JSON")

    args = parser.parse_args()

    if args.command == "news":
        show_news(args.refresh)
    elif args.command == "featured":
        show_featured()
    else:
        show_extract(args.url, args.strict, args.save)


if __name__ == '__main__':
    main()
