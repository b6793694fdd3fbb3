"""Heuristic detection of garbage articles.

Keyboard-mash submissions show up as a single long run of Latin letters
in the title, or as a body of a few characters. The same rule drives the
server's administrative sweep; this module lets the client preview which
articles a sweep would remove.
"""

from __future__ import annotations

import re
from typing import Iterable

from .types import Article


def _random_title_re(min_chars: int) -> re.Pattern[str]:
    return re.compile(r"^[a-z]{%d,}$" % min_chars, re.IGNORECASE)


def is_garbage(article: Article, min_title_chars: int = 10, min_content_chars: int = 10) -> bool:
    title = article.title or ""
    if _random_title_re(min_title_chars).match(title):
        return True
    content = article.content or ""
    return 0 < len(content) < min_content_chars


def find_garbage(
    articles: Iterable[Article],
    min_title_chars: int = 10,
    min_content_chars: int = 10,
) -> list[str]:
    """Return identifiers of articles the cleanup sweep would delete."""
    return [
        article.id
        for article in articles
        if article.id and is_garbage(article, min_title_chars, min_content_chars)
    ]
