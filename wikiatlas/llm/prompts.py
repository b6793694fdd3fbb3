"""Prompt loading and rendering helpers for LLM providers."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Sequence

from ..core.types import Article


_PROMPT_DIR = Path(__file__).resolve().parent.parent / "prompts"

CATEGORY_NAMES = (
    "Science, History, Technology, Culture, Art, Geography, Biography, "
    "Literature, Philosophy, Economy, Health, Society, Nature"
)

LANGUAGE_NAMES = {"uz": "Uzbek", "en": "English", "ru": "Russian"}


@lru_cache(maxsize=None)
def _load_template(name: str) -> str:
    path = _PROMPT_DIR / f"{name}.md"
    return path.read_text(encoding="utf-8").strip()


def _render_template(name: str, **values: str) -> str:
    template = _load_template(name)
    return template.format(**values)


def article_metadata(articles: Sequence[Article], excerpt_chars: int = 100) -> str:
    """One compact line per article: id, title and a short excerpt."""
    return "\n".join(
        f"ID:{article.id} | Title:{article.title} | Excerpt:{(article.excerpt or '')[:excerpt_chars]}"
        for article in articles
        if article.id
    )


def build_semantic_match_prompt(query: str, articles: Sequence[Article], excerpt_chars: int = 100) -> str:
    return _render_template(
        "semantic_match",
        query=query,
        articles=article_metadata(articles, excerpt_chars),
    )


def build_summarize_prompt(text: str, lang: str) -> str:
    return _render_template("summarize", text=text, language=LANGUAGE_NAMES.get(lang, lang))


def build_improve_prompt(text: str) -> str:
    return _render_template("improve", text=text)


def build_fact_check_prompt(text: str) -> str:
    return _render_template("fact_check", text=text)


def build_categorize_prompt(title: str, content: str, max_chars: int = 1000) -> str:
    return _render_template(
        "categorize",
        categories=CATEGORY_NAMES,
        title=title,
        content=content[:max_chars],
    )


def build_translate_prompt(title: str, content: str, target_lang: str) -> str:
    return _render_template(
        "translate",
        language=LANGUAGE_NAMES.get(target_lang, target_lang),
        title=title,
        content=content,
    )


def build_suggest_topics_prompt(context: str) -> str:
    return _render_template("suggest_topics", context=context or "Umumiy bilimlar")


def build_generate_article_prompt(topic: str) -> str:
    return _render_template("generate_article", topic=topic)
