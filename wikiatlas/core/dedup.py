"""
Article deduplication and sanitization before display.

This module removes records that would make the UI show clones:
1. Records without an identifier
2. Repeated identifiers (first occurrence wins)
3. Repeated titles, compared lowercased and trimmed (first occurrence wins)

An optional fuzzy pass also drops titles that are nearly identical to an
already kept title, which catches articles re-submitted with small edits.
"""

from __future__ import annotations

from typing import Iterable

from rapidfuzz import fuzz

from .types import Article


def dedup_articles(articles: Iterable[Article], threshold: int | None = None) -> list[Article]:
    """Remove malformed and duplicate articles from a list.

    Args:
        articles: Articles in the order the gateway returned them
        threshold: Optional similarity threshold (0-100) for fuzzy title
                   matching. None keeps exact normalized matching only.

    Returns:
        Filtered list of articles, preserving order of first occurrence
    """
    seen_ids: set[str] = set()
    seen_titles: set[str] = set()
    kept_titles: list[str] = []
    kept: list[Article] = []

    for article in articles:
        if not article.id or article.id in seen_ids:
            continue
        # Only a zero-length title is exempt; whitespace-only titles share the "" key.
        has_title = bool(article.title)
        title = normalize_title(article.title)
        if has_title:
            if title in seen_titles:
                continue
            if threshold is not None and title and _is_similar_title(title, kept_titles, threshold):
                continue
        seen_ids.add(article.id)
        if has_title:
            seen_titles.add(title)
            if title:
                kept_titles.append(title)
        kept.append(article)

    return kept


def normalize_title(title: str | None) -> str:
    return (title or "").strip().lower()


def _is_similar_title(title: str, titles: list[str], threshold: int) -> bool:
    """Check if a title is similar to any title in the given list.

    Uses rapidfuzz's ratio function which calculates the Levenshtein
    distance as a similarity percentage.
    """
    for existing in titles:
        if fuzz.ratio(title, existing) >= threshold:
            return True
    return False
