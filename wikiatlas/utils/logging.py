"""
Logging setup for the WikiAtlas client.

The "wikiatlas" logger writes to a Rich console and optionally to a JSONL
file; the "wikiatlas.llm" logger records provider exchanges to its own
file. Every handler carries a RedactionFilter so that emails, session
cookies and user ids never reach disk. In "redact_content" mode search
queries and prompt/response text are dropped as well.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
import re
from typing import Any, Mapping

from rich.logging import RichHandler

from ..config import LoggingConfig


REDACTED = "[REDACTED]"

_EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+\.[\w.-]+")
_SESSION_RE = re.compile(r"\b((?:wikiatlas_)?session=)[^;\s]+")
_UUID_RE = re.compile(r"\b[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}\b")

IDENTITY_FIELDS = frozenset({"user_id", "author_id", "email", "author_email"})
CONTENT_FIELDS = frozenset({"query", "raw_prompt", "raw_response"})


def setup_logging(cfg: LoggingConfig, log_dir: Path | None = None) -> logging.Logger:
    logger = logging.getLogger("wikiatlas")
    logger.setLevel(_level_from_string(cfg.level))
    logger.handlers = []
    logger.propagate = False

    if cfg.console:
        console_handler = RichHandler(rich_tracebacks=True, show_time=False, show_level=True)
        console_handler.setLevel(_level_from_string(cfg.level))
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        console_handler.addFilter(RedactionFilter(cfg.redaction))
        logger.addHandler(console_handler)

    if cfg.file and log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / cfg.filename, encoding="utf-8")
        file_handler.setLevel(_level_from_string(cfg.level))
        file_handler.setFormatter(_build_file_formatter(cfg.format))
        file_handler.addFilter(RedactionFilter(cfg.redaction))
        logger.addHandler(file_handler)

    return logger


def setup_llm_logger(cfg: LoggingConfig, log_dir: Path | None = None) -> logging.Logger | None:
    if not cfg.llm_log_enabled or log_dir is None:
        return None

    logger = logging.getLogger("wikiatlas.llm")
    logger.setLevel(_level_from_string(cfg.level))
    logger.handlers = []
    logger.propagate = False

    log_dir.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_dir / cfg.llm_log_file, encoding="utf-8")
    file_handler.setLevel(_level_from_string(cfg.level))
    file_handler.setFormatter(JsonlFormatter())
    file_handler.addFilter(RedactionFilter(cfg.llm_log_redaction))
    logger.addHandler(file_handler)
    return logger


def log_event(logger: logging.Logger | None, message: str, level: int = logging.INFO, **fields: Any) -> None:
    if logger is None:
        return
    logger.log(level, message, extra=fields)


def redact_text(text: str, mode: str) -> str:
    """Scrub free text according to a redaction mode.

    "none" leaves the text alone and "redact_content" drops it entirely.
    Any other mode replaces emails, session cookie values and UUID-shaped
    ids with placeholders.
    """
    if mode == "none":
        return text
    if mode == "redact_content":
        return ""
    text = _EMAIL_RE.sub("[REDACTED_EMAIL]", text)
    text = _SESSION_RE.sub(r"\1[REDACTED_SESSION]", text)
    return _UUID_RE.sub("[REDACTED_ID]", text)


def redact_fields(fields: Mapping[str, Any], mode: str) -> dict[str, Any]:
    """Return a copy of structured log fields with identities (and, in content mode, queries) masked."""
    if mode == "none":
        return dict(fields)
    redacted: dict[str, Any] = {}
    for key, value in fields.items():
        if value is None:
            redacted[key] = None
        elif key in IDENTITY_FIELDS or (mode == "redact_content" and key in CONTENT_FIELDS):
            redacted[key] = REDACTED
        elif isinstance(value, str):
            redacted[key] = redact_text(value, "redact_identities")
        else:
            redacted[key] = value
    return redacted


class RedactionFilter(logging.Filter):
    """Rewrite a record's message and extra fields in place before it is emitted."""

    def __init__(self, mode: str = "redact_identities"):
        super().__init__()
        self.mode = mode

    def filter(self, record: logging.LogRecord) -> bool:
        if self.mode == "none":
            return True
        record.msg = redact_text(record.getMessage(), "redact_identities")
        record.args = ()
        for key, value in redact_fields(_extract_extras(record), self.mode).items():
            setattr(record, key, value)
        return True


def truncate_text(text: str, max_chars: int = 20000) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + "...(truncated)"


class JsonlFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_extract_extras(record))
        return json.dumps(payload, ensure_ascii=False, default=str)


_RESERVED = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "message",
    "taskName",
}


def _extract_extras(record: logging.LogRecord) -> dict[str, Any]:
    return {key: value for key, value in record.__dict__.items() if key not in _RESERVED}


def _build_file_formatter(fmt: str) -> logging.Formatter:
    if fmt == "jsonl":
        return JsonlFormatter()
    return logging.Formatter("%(asctime)s %(levelname)s %(message)s")


def _level_from_string(level: str) -> int:
    return getattr(logging, level.upper(), logging.INFO)
