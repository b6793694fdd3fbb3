from .base import AtlasProvider
from .factory import available_providers, create_provider
from .gemini import GeminiProvider

__all__ = ["AtlasProvider", "GeminiProvider", "available_providers", "create_provider"]
