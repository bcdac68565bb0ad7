"""Structlog configuration.

The dashboard owns the terminal, so diagnostic events never go to the console.
With a debug log path they are written as JSON lines to that file; without
one they are discarded.
"""

import logging
from pathlib import Path

import structlog

# Handlers installed on the root logger by configure()
_handlers: list[logging.Handler] = []


def configure(debug_log: Path | None = None, level: int = logging.DEBUG) -> None:
    """Route structlog through stdlib logging to an optional JSON file."""
    root = logging.getLogger()
    while _handlers:
        handler = _handlers.pop()
        root.removeHandler(handler)
        handler.close()

    if debug_log is None:
        handler = logging.NullHandler()
    else:
        debug_log.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(debug_log, mode="a", encoding="utf-8")
        handler.setLevel(level)
        handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=structlog.processors.JSONRenderer(),
                foreign_pre_chain=[
                    structlog.processors.TimeStamper(fmt="iso", utc=False, key="ts"),
                    structlog.processors.add_log_level,
                    structlog.processors.format_exc_info,
                ],
            )
        )
    root.addHandler(handler)
    _handlers.append(handler)
    root.setLevel(level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso", utc=False, key="ts"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
