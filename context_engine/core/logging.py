"""Structured key=value logging for the context engine.

Budget, assembly and compaction code reports numbers (token counts, ratios,
categories) as structured fields so log lines stay greppable:

    level=WARNING component=context.token_budget function=allocate_token_budget
    message=Category floors exceed requested context size total_tokens=1000 unabsorbed=2000
"""

import logging
import sys
from enum import Enum
from typing import Any

ROOT_LOGGER_NAME = "context_engine"


def _component(name: str) -> str:
    """Logger name relative to the package root."""
    prefix = f"{ROOT_LOGGER_NAME}."
    return name[len(prefix):] if name.startswith(prefix) else name


def _render_value(value: Any) -> str:
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, float):
        return f"{value:.3f}"
    text = str(value)
    if not text or " " in text:
        return f'"{text}"'
    return text


class StructuredFormatter(logging.Formatter):
    """key=value formatter; extra fields follow the fixed ones in call order."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "component": _component(record.name),
            "function": record.funcName,
            "message": record.getMessage(),
        }

        extra_data = getattr(record, "extra_data", None) or {}
        parts = [f"{k}={v}" for k, v in log_data.items()]
        parts.extend(f"{k}={_render_value(v)}" for k, v in extra_data.items())
        line = " ".join(parts)

        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _level_for_env() -> int:
    try:
        from context_engine.core.config import get_settings

        settings = get_settings()
        if settings.LOG_LEVEL:
            level = logging.getLevelName(settings.LOG_LEVEL.upper())
            # Unknown names come back as "Level <name>"
            return level if isinstance(level, int) else logging.INFO
        return logging.DEBUG if settings.CONTEXT_ENGINE_ENV == "dev" else logging.INFO
    except Exception:
        # Default to INFO if settings not available
        return logging.INFO


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Only configure if not already configured
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)
        logger.setLevel(_level_for_env())

    return logger


def log_with_context(logger: logging.Logger, level: int, msg: str, **fields: Any) -> None:
    """
    Log with structured fields, attributed to the calling function.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, etc.)
        msg: Log message
        **fields: Structured fields (e.g., category, tokens, utilization)
    """
    logger.log(level, msg, extra={"extra_data": fields}, stacklevel=2)
