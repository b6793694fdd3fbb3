"""
Shared utility functions.

This package contains utility code used across the gateway,
the search engine and the LLM providers.
"""

from .logging import (
    JsonlFormatter,
    RedactionFilter,
    log_event,
    redact_fields,
    redact_text,
    setup_llm_logger,
    setup_logging,
    truncate_text,
)

__all__ = [
    "setup_logging",
    "setup_llm_logger",
    "log_event",
    "redact_text",
    "redact_fields",
    "RedactionFilter",
    "truncate_text",
    "JsonlFormatter",
]
