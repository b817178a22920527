# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

"""Logging utilities for verse-mcp.

All output goes to ``stderr``: in stdio mode ``stdout`` carries the protocol
stream and must never receive log lines. Plain, colored and structured JSON
output are supported; JSON serialization can be swapped for a faster encoder
without adding dependencies.
"""

from __future__ import annotations

from collections.abc import Callable
import json
import logging
import os
import sys
from typing import Any, ClassVar, Final


DEFAULT_LOGGER_NAME: Final[str] = "versemcp"
ENV_LOG_LEVEL: Final[str] = "VERSEMCP_LOG_LEVEL"
ENV_LOG_JSON: Final[str] = "VERSEMCP_LOG_JSON"
ENV_NO_COLOR: Final[str] = "NO_COLOR"
DEFAULT_FORMAT: Final[str] = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
DEFAULT_DATEFMT: Final[str] = "%Y-%m-%d %H:%M:%S"

JsonSerializer = Callable[[dict[str, Any]], str]
PayloadTransformer = Callable[[dict[str, Any]], dict[str, Any]]

# Attributes every LogRecord carries; anything else arrived through ``extra=``.
_RESERVED_RECORD_KEYS: Final[frozenset[str]] = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "context", "taskName"}


def _duration_suffix(record: logging.LogRecord) -> str:
    duration = getattr(record, "duration_ms", None)
    if isinstance(duration, (int, float)):
        return f" [{duration:.2f} ms]"
    return ""


class PlainFormatter(logging.Formatter):
    """Standard formatter that appends ``duration_ms`` when a record carries it."""

    def format(self, record: logging.LogRecord) -> str:
        return super().format(record) + _duration_suffix(record)


class ColoredFormatter(PlainFormatter):
    """ANSI-colored level and logger names; the record is left untouched afterwards."""

    RESET: ClassVar[str] = "\033[0m"
    NAME_COLOR: ClassVar[str] = "\033[94m"
    LEVEL_COLORS: ClassVar[dict[str, str]] = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[1;31m",
        "CRITICAL": "\033[1;35m",
    }

    def format(self, record: logging.LogRecord) -> str:
        levelname, name = record.levelname, record.name
        record.levelname = f"{self.LEVEL_COLORS.get(levelname, '')}{levelname}{self.RESET}"
        record.name = f"{self.NAME_COLOR}{name}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname, record.name = levelname, name


class StructuredJSONFormatter(logging.Formatter):
    """One JSON object per record.

    ``extra=`` fields and the keys of an ``extra={"context": {...}}`` dict are
    gathered under ``"context"``.
    """

    def __init__(
        self,
        serializer: JsonSerializer,
        *,
        datefmt: str | None = None,
        payload_transformer: PayloadTransformer | None = None,
    ) -> None:
        super().__init__(datefmt=datefmt)
        self._serializer = serializer
        self._transformer = payload_transformer

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
            "process": record.process,
            "thread": record.thread,
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        raw_context = getattr(record, "context", None)
        context = dict(raw_context) if isinstance(raw_context, dict) else {}
        for key, value in vars(record).items():
            if key not in _RESERVED_RECORD_KEYS:
                context.setdefault(key, value)
        if context:
            payload["context"] = context

        if self._transformer is not None:
            payload = self._transformer(payload)
        return self._serializer(payload)


class VerseMCPHandler(logging.StreamHandler):  # type: ignore[type-arg]
    """StreamHandler attached by :func:`setup_logger`; always writes to stderr."""

    def __init__(self) -> None:
        super().__init__(sys.stderr)


def _json_dumps(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, default=str)


def _env_flag(key: str) -> bool:
    return os.getenv(key, "").strip().lower() in {"1", "true", "yes", "on"}


def _resolve_level(level: int | str | None) -> int:
    if level is None:
        level = os.getenv(ENV_LOG_LEVEL) or logging.INFO
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def _build_formatter(
    *,
    use_json: bool,
    use_color: bool,
    json_serializer: JsonSerializer | None,
    payload_transformer: PayloadTransformer | None,
    fmt: str | None,
    datefmt: str | None,
) -> logging.Formatter:
    if use_json:
        return StructuredJSONFormatter(
            json_serializer or _json_dumps, datefmt=datefmt, payload_transformer=payload_transformer
        )
    formatter_cls = ColoredFormatter if use_color else PlainFormatter
    return formatter_cls(fmt or DEFAULT_FORMAT, datefmt=datefmt)


def setup_logger(
    *,
    level: int | str | None = None,
    use_json: bool | None = None,
    use_color: bool | None = None,
    json_serializer: JsonSerializer | None = None,
    payload_transformer: PayloadTransformer | None = None,
    fmt: str | None = None,
    datefmt: str | None = DEFAULT_DATEFMT,
    force: bool = False,
) -> None:
    """Attach the package handler to the root logger.

    Args:
        level: Log level; falls back to ``VERSEMCP_LOG_LEVEL``, then INFO.
        use_json: JSON output; defaults to ``VERSEMCP_LOG_JSON``.
        use_color: ANSI colors; off for JSON output, when ``NO_COLOR`` is set or
            when stderr is not a terminal.
        json_serializer: Replacement for :func:`json.dumps` in JSON mode.
        payload_transformer: Hook applied to each JSON payload before it is
            serialized.
        fmt: Plain-text format string.
        datefmt: Timestamp format.
        force: Replace a handler attached by an earlier call.
    """
    root = logging.getLogger()
    existing = [handler for handler in root.handlers if isinstance(handler, VerseMCPHandler)]
    if existing and not force:
        return
    for handler in existing:
        root.removeHandler(handler)
        handler.close()

    resolved_level = _resolve_level(level)
    json_output = _env_flag(ENV_LOG_JSON) if use_json is None else use_json
    if use_color is None:
        use_color = not json_output and not os.getenv(ENV_NO_COLOR) and sys.stderr.isatty()

    handler = VerseMCPHandler()
    handler.setLevel(resolved_level)
    handler.setFormatter(
        _build_formatter(
            use_json=json_output,
            use_color=use_color,
            json_serializer=json_serializer,
            payload_transformer=payload_transformer,
            fmt=fmt,
            datefmt=datefmt,
        )
    )
    root.setLevel(resolved_level)
    root.addHandler(handler)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a package logger, configuring the root logger on first use."""
    if not any(isinstance(handler, VerseMCPHandler) for handler in logging.getLogger().handlers):
        setup_logger()
    return logging.getLogger(name or DEFAULT_LOGGER_NAME)


__all__ = [
    "DEFAULT_LOGGER_NAME",
    "ColoredFormatter",
    "PlainFormatter",
    "StructuredJSONFormatter",
    "VerseMCPHandler",
    "get_logger",
    "setup_logger",
]
