"""
Remote data gateway.

Thin async wrapper over the WikiAtlas HTTP API with typed failures
for writes and graceful fallbacks for reads.
"""

from .client import AtlasGateway, error_from_response, server_message
from .fallback import archive_articles

__all__ = [
    "AtlasGateway",
    "archive_articles",
    "error_from_response",
    "server_message",
]
