"""
Configuration management using YAML files and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- GatewayConfig: WikiAtlas HTTP API settings
- SearchConfig: Local search and semantic fallback settings
- AutosaveConfig: Draft auto-save debounce settings
- DedupConfig: Deduplication settings
- CleanupConfig: Garbage article heuristic settings
- ProviderConfig: LLM provider settings
- LoggingConfig: Logging behavior
- LangfuseConfig: Langfuse tracing settings
- AppConfig: Root configuration container
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import os
from typing import Any

import yaml


@dataclass
class GatewayConfig:
    """Configuration for the WikiAtlas HTTP API.

    Attributes:
        base_url: Base URL of the API, including the /api prefix
        timeout_seconds: HTTP request timeout
        trust_env: Whether to respect system proxy settings
        fallback_archive: Serve the bundled archive when listing articles fails
    """

    base_url: str = "http://localhost:3000/api"
    timeout_seconds: float = 15.0
    trust_env: bool = True
    fallback_archive: bool = True


@dataclass
class SearchConfig:
    """Configuration for article search.

    Attributes:
        min_token_length: Query tokens shorter than this are discarded
        semantic_fallback: Ask the LLM provider when nothing matches lexically
        excerpt_chars: Excerpt characters sent per article to the provider
    """

    min_token_length: int = 2
    semantic_fallback: bool = True
    excerpt_chars: int = 100


@dataclass
class AutosaveConfig:
    """Configuration for draft auto-save.

    Attributes:
        enabled: Whether editors get an auto-save coordinator
        delay_seconds: Inactivity window before a draft is persisted
    """

    enabled: bool = True
    delay_seconds: float = 10.0


@dataclass
class DedupConfig:
    """Configuration for article deduplication.

    Id and exact title deduplication always runs; only the fuzzy pass is optional.

    Attributes:
        title_similarity_threshold: Optional fuzzy match threshold (0-100) for
            titles. None keeps exact normalized title matching only.
    """

    title_similarity_threshold: int | None = None


@dataclass
class CleanupConfig:
    """Configuration for the garbage article heuristic.

    Attributes:
        min_title_chars: Shortest space-free letter run treated as a random title
        min_content_chars: Non-empty content shorter than this is garbage
    """

    min_title_chars: int = 10
    min_content_chars: int = 10


@dataclass
class ProviderConfig:
    """Configuration for pluggable LLM providers.

    Attributes:
        name: Provider name ("gemini" currently supported)
        model: Model used for search and light writing tasks
        writing_model: Model used for rewriting, fact-checking and generation
        api_key_env: Environment variable name containing the API key
        base_url: Base URL for the provider API
        api_key: Optional inline API key (overrides env var)
        timeout_seconds: Request timeout for provider calls
        trust_env: Whether to respect system proxy settings for API requests
    """

    name: str = "gemini"
    model: str = "gemini-3-flash-preview"
    writing_model: str = "gemini-3-pro-preview"
    api_key_env: str | None = None
    base_url: str = "https://generativelanguage.googleapis.com"
    api_key: str | None = None
    timeout_seconds: float = 30.0
    trust_env: bool = True


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        filename: Name of the main log file
        redaction: Redaction mode for log records ("none", "redact_identities", "redact_content")
        llm_log_enabled: Whether to enable separate LLM interaction logging
        llm_log_detail: LLM log detail level ("response_only", "prompt_response")
        llm_log_redaction: Redaction mode for LLM logs, same modes as ``redaction``
        llm_log_file: Name of the LLM log file
    """

    level: str = "INFO"
    console: bool = True
    file: bool = False
    format: str = "jsonl"
    filename: str = "wikiatlas.jsonl"
    redaction: str = "redact_identities"
    llm_log_enabled: bool = False
    llm_log_detail: str = "response_only"
    llm_log_redaction: str = "redact_identities"
    llm_log_file: str = "llm.jsonl"


@dataclass
class LangfuseConfig:
    """Configuration for Langfuse tracing.

    Attributes:
        enabled: Whether to enable Langfuse tracing
        public_key: Langfuse public key (optional)
        secret_key: Langfuse secret key (optional)
        host: Langfuse host URL (optional)
        environment: Langfuse environment label (optional)
        release: Langfuse release identifier (optional)
        timeout_seconds: Timeout for Langfuse ingestion requests
        redaction: Redaction mode for prompt/response payloads ("none", "redact_identities", "redact_content")
        max_text_chars: Maximum characters for prompt/response payloads
    """

    enabled: bool = False
    public_key: str | None = None
    secret_key: str | None = None
    host: str | None = None
    environment: str | None = None
    release: str | None = None
    timeout_seconds: int = 30
    redaction: str = "redact_identities"
    max_text_chars: int = 20000


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    gateway: GatewayConfig = field(default_factory=GatewayConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    autosave: AutosaveConfig = field(default_factory=AutosaveConfig)
    dedup: DedupConfig = field(default_factory=DedupConfig)
    cleanup: CleanupConfig = field(default_factory=CleanupConfig)
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    langfuse: LangfuseConfig = field(default_factory=LangfuseConfig)


DEFAULT_CONFIG = AppConfig()

_SECTIONS: dict[str, type] = {
    "gateway": GatewayConfig,
    "search": SearchConfig,
    "autosave": AutosaveConfig,
    "dedup": DedupConfig,
    "cleanup": CleanupConfig,
    "provider": ProviderConfig,
    "logging": LoggingConfig,
    "langfuse": LangfuseConfig,
}


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults."""
    if not path:
        cfg = _fromdict(asdict(DEFAULT_CONFIG))
    else:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        cfg = _merge_config(DEFAULT_CONFIG, raw)

    env_url = os.getenv("WIKIATLAS_API_URL")
    if env_url:
        cfg.gateway.base_url = env_url
    return cfg


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig."""
    data = asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if isinstance(value, dict) and isinstance(data[key], dict):
            data[key].update(value)
        else:
            data[key] = value
    return _fromdict(data)


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary, ignoring unknown keys."""
    sections: dict[str, Any] = {}
    for name, cls in _SECTIONS.items():
        section = data.get(name) or {}
        known = {key: value for key, value in section.items() if key in cls.__dataclass_fields__}
        sections[name] = cls(**known)
    return AppConfig(**sections)


def get_api_key(cfg: ProviderConfig) -> str | None:
    """Get API key from inline config or environment variables."""
    if cfg.api_key:
        return cfg.api_key
    if cfg.api_key_env:
        return os.getenv(cfg.api_key_env)
    return os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")


def get_langfuse_host(cfg: LangfuseConfig) -> str | None:
    """Get Langfuse host from inline config or environment variable."""
    if cfg.host:
        return cfg.host
    return os.getenv("LANGFUSE_HOST")
