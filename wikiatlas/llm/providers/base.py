"""Abstract interface for LLM-backed search and writing assistance."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from ...core.types import Article


class AtlasProvider(ABC):
    """Provider interface for semantic search and the editor's AI assistant.

    Implementations never raise for provider or parse failures except in
    :meth:`generate_article`; they return the documented fallback instead.
    """

    @abstractmethod
    async def suggest_matches(self, query: str, articles: Sequence[Article]) -> list[str]:
        """Return identifiers of articles relevant to the query, in any order."""
        raise NotImplementedError

    @abstractmethod
    async def summarize(self, text: str, lang: str = "uz") -> str:
        raise NotImplementedError

    @abstractmethod
    async def improve(self, text: str) -> str:
        raise NotImplementedError

    @abstractmethod
    async def fact_check(self, text: str) -> str:
        raise NotImplementedError

    @abstractmethod
    async def categorize(self, title: str, content: str) -> str:
        raise NotImplementedError

    @abstractmethod
    async def translate(self, title: str, content: str, target_lang: str) -> dict[str, str]:
        """Return ``{"title": ..., "content": ...}`` in the target language."""
        raise NotImplementedError

    @abstractmethod
    async def suggest_topics(self, context: str) -> list[str]:
        raise NotImplementedError

    @abstractmethod
    async def generate_article(self, topic: str) -> dict[str, str]:
        """Return ``{"title": ..., "content": ...}``; raises AssistError on failure."""
        raise NotImplementedError
