"""
Core domain models and client-side logic.

This package contains the data types and the logic that runs between
the UI and the gateway: reconciliation, deduplication, search,
auto-save and the cleanup heuristic.
"""

from .types import Article, ArticleCategory, ArticleSource, Comment, Community, DraftSnapshot, Identity, Profile
from .dedup import dedup_articles
from .search import SearchEngine, SearchResult, lexical_matches, tokenize
from .autosave import AutosaveCoordinator, AutosaveState, can_autosave
from .cleanup import find_garbage, is_garbage

__all__ = [
    "Article",
    "ArticleCategory",
    "ArticleSource",
    "Comment",
    "Community",
    "DraftSnapshot",
    "Identity",
    "Profile",
    "dedup_articles",
    "SearchEngine",
    "SearchResult",
    "lexical_matches",
    "tokenize",
    "AutosaveCoordinator",
    "AutosaveState",
    "can_autosave",
    "find_garbage",
    "is_garbage",
]
