"""
WikiAtlas client - async core for the WikiAtlas publishing service.

This package talks to the WikiAtlas HTTP API and to Gemini, and holds
the client-side logic in between: deduplication of fetched articles,
lexical search with a semantic fallback, and debounced draft auto-save.

Main entry point is the CLI via the `wikiatlas` command.

Example:
    $ wikiatlas search "bobur"
"""

__all__ = [
    "__version__",
    "Atlas",
    "AtlasGateway",
    "AutosaveCoordinator",
    "SearchEngine",
    "dedup_articles",
    "load_config",
]
__version__ = "0.1.0"

from .atlas import Atlas
from .config import load_config
from .core.autosave import AutosaveCoordinator
from .core.dedup import dedup_articles
from .core.search import SearchEngine
from .gateway.client import AtlasGateway
