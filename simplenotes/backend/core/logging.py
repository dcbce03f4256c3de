"""
Structured Logging.

structlog sits in front of the standard library: every record, ours or a
library's, goes through one ProcessorFormatter on one stdout handler and
comes out as JSON (``format: json``) or coloured console lines
(``format: console``). Settings live in config/settings/logging.yaml.

Request context bound by RequestContextMiddleware (request_id, frontend,
method, path) is merged into every record emitted while the request runs.

Usage:
    logger = get_logger(__name__)
    logger.info("Note created", extra={"note_id": 7})
"""

import logging
import sys
from typing import Any

import structlog
from structlog.typing import Processor

from simplenotes.backend.core.config import get_app_config

# Libraries that log every request or statement at INFO.
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpx", "httpcore")


def _pre_chain() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.ExtraAdder(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]


def _renderer(format_type: str) -> list[Processor]:
    if format_type == "json":
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]


def setup_logging(level: str | None = None, format_type: str | None = None) -> None:
    """
    Route all logging through structlog.

    ``level`` and ``format_type`` override logging.yaml; the CLI uses them to
    pick verbosity from its flags. Safe to call more than once: the root
    handler is replaced, not added to.
    """
    config = get_app_config().logging
    level = (level or config.level).upper()
    format_type = format_type or config.format

    pre_chain = _pre_chain()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *pre_chain,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_renderer(format_type),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> Any:
    return structlog.get_logger(name)
