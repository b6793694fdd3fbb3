"""
Application facade wiring the gateway, dedup, search and auto-save.

UI code talks to :class:`Atlas`; it owns one gateway connection and an
optional LLM provider. The article list it returns is a fresh list on
every fetch, so the caller is the only writer of whatever it keeps.
"""

from __future__ import annotations

import logging
from typing import Callable

from .config import AppConfig
from .core.autosave import AutosaveCoordinator
from .core.cleanup import find_garbage
from .core.dedup import dedup_articles
from .core.search import SearchEngine, SearchResult
from .core.types import Article
from .gateway.client import AtlasGateway
from .llm.providers.base import AtlasProvider
from .llm.providers.factory import create_provider
from .utils.logging import log_event

logger = logging.getLogger(__name__)


def build_provider(cfg: AppConfig, llm_logger: logging.Logger | None = None) -> AtlasProvider | None:
    """Create the configured provider, or None when AI features are unavailable."""
    try:
        return create_provider(cfg.provider, cfg.logging, llm_logger, cfg.search.excerpt_chars)
    except ValueError as exc:
        logger.warning("AI features disabled: %s", exc)
        return None


class Atlas:
    """High-level operations the UI layer calls."""

    def __init__(
        self,
        cfg: AppConfig,
        gateway: AtlasGateway | None = None,
        provider: AtlasProvider | None = None,
    ):
        self.cfg = cfg
        self.gateway = gateway or AtlasGateway(cfg.gateway)
        self.provider = provider
        self.search_engine = SearchEngine(
            matcher=provider,
            min_token_length=cfg.search.min_token_length,
            semantic_fallback=cfg.search.semantic_fallback,
        )

    async def __aenter__(self) -> Atlas:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.gateway.aclose()

    async def fetch_articles(self) -> list[Article]:
        """Fetch the article list and strip duplicates and malformed records."""
        articles = await self.gateway.list_articles()
        unique = dedup_articles(articles, self.cfg.dedup.title_similarity_threshold)
        if len(unique) != len(articles):
            log_event(
                logger,
                "Dropped duplicate articles",
                event="dedup",
                fetched=len(articles),
                kept=len(unique),
            )
        return unique

    async def search(self, query: str) -> SearchResult:
        if not query or not query.strip():
            return SearchResult(query=query or "")
        articles = await self.fetch_articles()
        return await self.search_engine.search(query, articles)

    async def articles_page(self, page: int, limit: int = 6) -> list[Article]:
        articles = await self.fetch_articles()
        start = max(page, 0) * limit
        return articles[start : start + limit]

    async def related_articles(self, category: str, exclude_id: str, limit: int = 3) -> list[Article]:
        articles = await self.fetch_articles()
        related = [a for a in articles if a.category == category and a.id != exclude_id]
        return related[:limit]

    async def article_count(self) -> int:
        return len(await self.fetch_articles())

    async def find_garbage(self) -> list[Article]:
        """Preview the articles an administrative cleanup sweep would delete."""
        articles = await self.fetch_articles()
        garbage_ids = set(
            find_garbage(articles, self.cfg.cleanup.min_title_chars, self.cfg.cleanup.min_content_chars)
        )
        return [article for article in articles if article.id in garbage_ids]

    def new_autosave(self, on_saved: Callable[[Article], None] | None = None) -> AutosaveCoordinator | None:
        """Create an auto-save coordinator for one editor session."""
        if not self.cfg.autosave.enabled:
            return None
        return AutosaveCoordinator(
            persist=self.gateway.save_article,
            delay_seconds=self.cfg.autosave.delay_seconds,
            on_saved=on_saved,
        )
