"""
Logging Configuration for Storefront Core

Provides structured logging with JSON or console output.
"""

import logging
import sys
from typing import Optional

import structlog
from structlog.processors import JSONRenderer, TimeStamper
from structlog.stdlib import add_log_level, ProcessorFormatter

from storefront.config.settings import Settings, get_settings


def service_context(settings: Settings):
    """Processor stamping service, version and environment on every event"""
    context = {
        "service": settings.app_name,
        "version": settings.version,
        "environment": settings.app_env,
    }

    def add_service_context(logger, method_name, event_dict):
        for key, value in context.items():
            event_dict.setdefault(key, value)
        return event_dict

    return add_service_context


def configure_logging(settings: Optional[Settings] = None, log_level: Optional[str] = None) -> None:
    """
    Configure structured logging for the application.

    Args:
        settings: Settings to read the level and format from (defaults to the cached ones)
        log_level: Override log level (DEBUG, INFO, WARNING, ERROR)
    """
    settings = settings or get_settings()
    level = log_level or settings.monitoring.log_level

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        service_context(settings),
        structlog.stdlib.add_logger_name,
        add_log_level,
        TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if settings.monitoring.log_format == "json":
        renderer = JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    formatter = ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Client libraries log every request at INFO
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    log = structlog.get_logger(__name__)
    log.info(
        "Logging configured",
        level=level,
        format=settings.monitoring.log_format,
    )
