"""
Logging setup for news_desk.

Records emitted through log_event carry an event name plus structured fields
(reconciliation counts, chunk statistics, LLM call status). The JSONL file
keeps each field as a key; the console and the plain file append them as
key=value pairs after the message.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
import re
from typing import Any

from rich.logging import RichHandler

from ..config import LoggingConfig
from .timeutil import to_iso

ROOT_LOGGER = "news_desk"
LLM_LOGGER = "news_desk.llm"

_URL_RE = re.compile(r"https?://\S+")
_RECORD_ATTRS = set(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "asctime"}


def setup_logging(cfg: LoggingConfig, log_dir: Path | None = None) -> logging.Logger:
    """Configure the package logger from cfg, replacing earlier handlers.

    Args:
        cfg: Logging section of the app config
        log_dir: Directory for the log file (defaults to cfg.directory)
    """
    level = _level_from_string(cfg.level)
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.handlers = []
    logger.propagate = False

    if cfg.console:
        console_handler = RichHandler(rich_tracebacks=True, show_time=False, show_level=True)
        console_handler.setLevel(level)
        console_handler.setFormatter(EventFieldsFormatter("%(message)s"))
        logger.addHandler(console_handler)

    if cfg.file:
        directory = log_dir or Path(cfg.directory)
        directory.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(directory / cfg.filename, encoding="utf-8")
        file_handler.setLevel(level)
        if cfg.format == "jsonl":
            file_handler.setFormatter(JsonlFormatter())
        else:
            file_handler.setFormatter(EventFieldsFormatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        logger.addHandler(file_handler)

    return logger


def setup_llm_logger(cfg: LoggingConfig, log_dir: Path | None = None) -> logging.Logger | None:
    """Return a JSONL logger for raw LLM responses, or None when disabled."""
    if not cfg.llm_log_enabled:
        return None

    logger = logging.getLogger(LLM_LOGGER)
    logger.setLevel(_level_from_string(cfg.level))
    logger.handlers = []
    logger.propagate = False

    directory = log_dir or Path(cfg.directory)
    directory.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(directory / cfg.llm_log_file, encoding="utf-8")
    file_handler.setFormatter(JsonlFormatter())
    logger.addHandler(file_handler)
    return logger


def log_event(
    logger: logging.Logger | None,
    message: str,
    *,
    event: str,
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    """Log message with an event name and structured fields attached."""
    if logger is None:
        return
    logger.log(level, message, extra={"event": event, **fields})


def event_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Return the structured fields attached to record by log_event."""
    return {key: value for key, value in record.__dict__.items() if key not in _RECORD_ATTRS}


def redact_text(text: str, mode: str) -> str:
    if mode == "none":
        return text
    if mode == "redact_content":
        return ""
    if mode == "redact_urls_authors":
        return _URL_RE.sub("[REDACTED_URL]", text)
    return text


def truncate_text(text: str, max_chars: int = 20000) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + "...(truncated)"


class EventFieldsFormatter(logging.Formatter):
    """Text formatter appending event fields, e.g. `Articles reconciled (new=3 total=40)`."""

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        fields = event_fields(record)
        fields.pop("event", None)
        if not fields:
            return text
        rendered = " ".join(f"{key}={value}" for key, value in fields.items())
        return f"{text} ({rendered})"


class JsonlFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": to_iso(datetime.fromtimestamp(record.created, timezone.utc)),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(event_fields(record))
        return json.dumps(payload, ensure_ascii=True, default=str)


def _level_from_string(level: str) -> int:
    return getattr(logging, level.upper(), logging.INFO)
