"""Logging setup for the API process.

Configures the root logger once from LoggingSettings. Records from stdlib
loggers and from structlog loggers both pass through a structlog
ProcessorFormatter, rendered either as one JSON object per line or as
plain console text.
"""
from __future__ import annotations

import logging

import structlog

from .config import LoggingSettings, get_settings

# Applied to records that did not originate from structlog
SHARED_PROCESSORS = [
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
]


def build_formatter(fmt: str) -> structlog.stdlib.ProcessorFormatter:
    if fmt.lower() == "json":
        processors = [
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.dev.ConsoleRenderer(colors=False),
        ]
    return structlog.stdlib.ProcessorFormatter(
        processors=processors,
        foreign_pre_chain=SHARED_PROCESSORS,
    )


def configure_structlog() -> None:
    """Route structlog loggers into the stdlib handlers installed below."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *SHARED_PROCESSORS,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def setup_logging(config: LoggingSettings | None = None) -> None:
    """Install handlers on the root logger, closing any previous ones."""
    config = config or get_settings().logging
    configure_structlog()
    formatter = build_formatter(config.format)

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.file:
        handlers.append(logging.FileHandler(config.file, encoding="utf-8"))

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(config.level.upper())

    # httpx logs full request URLs at INFO, which would include the API key
    logging.getLogger("httpx").setLevel(logging.WARNING)
