"""Structured logging for the invocation engine.

Every module logs through ``structlog.get_logger(__name__)`` with keyword
events (``model=``, ``attempt=``, ``failure_kind=``...). This module wires
those events into the standard library root logger so that host
applications embedding the engine get one consistent stream:

- production: one JSON object per line, tracebacks as structured dicts
- development: colored console output, tracebacks rendered by ConsoleRenderer

Defaults come from ``settings.LOG_LEVEL`` / ``settings.ENVIRONMENT``.
"""

import logging
import sys

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from invocation_engine.config import settings

# Loggers of the HTTP stack model calls usually travel through
NOISY_LOGGERS = ("httpx", "httpcore", "asyncio")


def _app_context(app_name: str, app_version: str) -> Processor:
    def add_app_context(
        logger: WrappedLogger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        event_dict.setdefault("app", app_name)
        event_dict.setdefault("app_version", app_version)
        return event_dict

    return add_app_context


def configure_logging(
    log_level: str | None = None,
    environment: str | None = None,
    app_name: str | None = None,
) -> None:
    """Configure structlog and the root logger.

    Args:
        log_level: Logging level name, defaults to ``settings.LOG_LEVEL``
        environment: ``production`` selects JSON output, anything else the
            console renderer; defaults to ``settings.ENVIRONMENT``
        app_name: Value of the ``app`` key, defaults to ``settings.APP_NAME``
    """
    log_level = log_level or settings.LOG_LEVEL
    environment = environment or settings.ENVIRONMENT
    level = getattr(logging, log_level.upper(), logging.INFO)
    is_production = environment.lower() == "production"

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _app_context(app_name or settings.APP_NAME, settings.APP_VERSION),
    ]

    renderer: Processor
    if is_production:
        shared_processors.append(structlog.processors.dict_tracebacks)
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
            foreign_pre_chain=shared_processors,
        )
    )
    handler.setLevel(level)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    structlog.get_logger(__name__).info(
        "Logging configured",
        log_level=logging.getLevelName(level),
        environment=environment,
        renderer="json" if is_production else "console",
    )
