"""
Local article search with a semantic fallback.

The lexical pass is plain substring matching: every query token must
appear in the title, the content or the category. Only when nothing
matches is the LLM provider asked to pick articles by meaning; its answer
is a set of identifiers that is mapped back onto the collection. A
missing or failing provider yields an empty result, never an error.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import TYPE_CHECKING, Sequence

from ..utils.logging import log_event
from .types import Article

if TYPE_CHECKING:
    from ..llm.providers.base import AtlasProvider

logger = logging.getLogger(__name__)

STRATEGY_LEXICAL = "lexical"
STRATEGY_SEMANTIC = "semantic"
STRATEGY_NONE = "none"


@dataclass
class SearchResult:
    """Articles matched for one query string.

    Attributes:
        query: The query as typed
        articles: Matches in original collection order
        strategy: "lexical", "semantic" or "none"
    """

    query: str
    articles: list[Article] = field(default_factory=list)
    strategy: str = STRATEGY_NONE

    def __len__(self) -> int:
        return len(self.articles)

    @property
    def ids(self) -> list[str | None]:
        return [article.id for article in self.articles]


def tokenize(query: str, min_length: int = 2) -> list[str]:
    """Lowercase, trim and split a query, dropping tokens shorter than min_length."""
    return [token for token in query.lower().strip().split() if len(token) >= min_length]


def lexical_matches(tokens: Sequence[str], articles: Sequence[Article]) -> list[Article]:
    """Return articles where every token occurs in title, content or category."""
    matches: list[Article] = []
    for article in articles:
        title = (article.title or "").lower()
        content = (article.content or "").lower()
        category = (article.category or "").lower()
        if all(token in title or token in content or token in category for token in tokens):
            matches.append(article)
    return matches


class SearchEngine:
    """Two-stage search over an in-memory article collection.

    The collection is owned by the caller and never mutated here.
    """

    def __init__(
        self,
        matcher: AtlasProvider | None = None,
        min_token_length: int = 2,
        semantic_fallback: bool = True,
    ):
        self.matcher = matcher
        self.min_token_length = min_token_length
        self.semantic_fallback = semantic_fallback

    async def search(self, query: str, articles: Sequence[Article]) -> SearchResult:
        if not query or not query.strip():
            raise ValueError("Search query must not be empty")

        tokens = tokenize(query, self.min_token_length)
        local = lexical_matches(tokens, articles)
        if local:
            log_event(logger, "Lexical search hit", event="search_lexical", query=query, count=len(local))
            return SearchResult(query=query, articles=local, strategy=STRATEGY_LEXICAL)

        if not self.semantic_fallback or self.matcher is None or not articles:
            log_event(logger, "No search matches", event="search_empty", query=query)
            return SearchResult(query=query)

        try:
            matched_ids = await self.matcher.suggest_matches(query, list(articles))
        except Exception as exc:  # noqa: BLE001
            logger.warning("Semantic search failed for %r: %s", query, exc)
            return SearchResult(query=query)

        wanted = {str(item) for item in matched_ids if item}
        semantic = [article for article in articles if article.id in wanted]
        if not semantic:
            log_event(logger, "No search matches", event="search_empty", query=query)
            return SearchResult(query=query)

        log_event(logger, "Semantic search hit", event="search_semantic", query=query, count=len(semantic))
        return SearchResult(query=query, articles=semantic, strategy=STRATEGY_SEMANTIC)
