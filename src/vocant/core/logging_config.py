"""Central logging configuration.

`configure_logging` is called once by the composition root (`vocant.main`).
It routes DEBUG/INFO to stdout and WARNING+ to stderr and stamps every
record with the correlation id of the inbound request (set by the web
adapter middleware, "-" outside a request). Core code never touches
handlers; it only emits through `LoggingPort`. uvicorn is started with
`log_config=None` so it keeps this setup.
"""

from __future__ import annotations

import contextvars
import logging
import sys
from typing import Optional

correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default="-"
)

DEFAULT_FORMAT = "[%(asctime)s] %(levelname)s %(name)s %(correlation_id)s: %(message)s"


def coerce_level(level: int | str | None) -> int:
    if level is None:
        return logging.INFO
    if isinstance(level, int):
        return level
    mapping = logging.getLevelNamesMapping()
    return mapping.get(str(level).upper().strip(), logging.INFO)


class _CorrelationIdFilter(logging.Filter):
    """Inject correlation id from contextvar into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - simple
        record.correlation_id = correlation_id_var.get()
        return True


class _LevelRangeFilter(logging.Filter):
    def __init__(self, min_level: int = logging.NOTSET, max_level: int = logging.CRITICAL):
        super().__init__()
        self.min_level = min_level
        self.max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover
        return self.min_level <= record.levelno <= self.max_level


def _stream_handler(stream, min_level: int, max_level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler(stream=stream)
    handler.setLevel(min_level)
    handler.addFilter(_LevelRangeFilter(min_level, max_level))
    handler.addFilter(_CorrelationIdFilter())
    handler.setFormatter(formatter)
    return handler


def configure_logging(
    level: int | str | None = None,
    fmt: Optional[str] = None,
    quiet_loggers: tuple[str, ...] = ("aiohttp.access", "uvicorn.access"),
    info_stream=None,
) -> None:
    """Configure the root logger with stdout/stderr sinks and correlation ids.

    Existing root handlers are removed so repeated calls (reloads, tests)
    do not duplicate output. `quiet_loggers` are raised to WARNING.
    `info_stream` replaces stdout for DEBUG/INFO, e.g. when stdout carries
    machine-readable output.
    """
    numeric_level = coerce_level(level)
    formatter = logging.Formatter(fmt or DEFAULT_FORMAT)

    root = logging.getLogger()
    root.setLevel(numeric_level)
    for h in list(root.handlers):
        root.removeHandler(h)

    root.addHandler(_stream_handler(info_stream or sys.stdout, logging.DEBUG, logging.INFO, formatter))
    root.addHandler(_stream_handler(sys.stderr, logging.WARNING, logging.CRITICAL, formatter))

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("vocant").debug("Logging configured level=%s", numeric_level)
