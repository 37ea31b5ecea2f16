"""Logging configuration shared by the API, the worker and the admin CLI.

Every process calls ``configure_logging(service=...)`` once at start-up.
Log lines carry the service name, and the JSON renderer used in
production gets plain strings for Decimal amounts and UUID identifiers.
"""

import logging
import os
import sys
from contextlib import contextmanager
from decimal import Decimal
from uuid import UUID

import structlog

NOISY_LOGGERS = ("protean", "asyncio", "urllib3", "uvicorn.access")


def get_log_level() -> str:
    """Get log level based on environment."""
    env = (os.getenv("ENV") or os.getenv("ENVIRONMENT") or os.getenv("PROTEAN_ENV") or "development").lower()

    level_map = {
        "production": "INFO",
        "staging": "INFO",
        "development": "DEBUG",
        "test": "WARNING",
    }

    return os.getenv("LOG_LEVEL", level_map.get(env, "INFO"))


def _is_production() -> bool:
    env = (os.getenv("ENVIRONMENT") or os.getenv("PROTEAN_ENV") or "development").lower()
    return env in ("production", "staging")


def stringify_values(logger, method_name, event_dict):  # noqa: ARG001
    """structlog processor: Decimal and UUID values become strings."""
    for key, value in event_dict.items():
        if isinstance(value, (Decimal, UUID)):
            event_dict[key] = str(value)
    return event_dict


def _service_adder(service: str):
    def add_service(logger, method_name, event_dict):  # noqa: ARG001
        event_dict.setdefault("service", service)
        return event_dict

    return add_service


def setup_stdlib_logging() -> None:
    log_level = get_log_level()

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    root_logger.addHandler(console_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def setup_structlog(service: str = "stockguard") -> None:
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        _service_adder(service),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        stringify_values,
    ]

    if _is_production():
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(service: str = "stockguard") -> None:
    """Configure stdlib and structlog logging for one process."""
    setup_stdlib_logging()
    setup_structlog(service)


@contextmanager
def log_context(**kwargs):
    """Bind ``kwargs`` onto every log line emitted inside the block.

    Only the keys bound here are removed on exit, so an outer request
    context survives.
    """
    with structlog.contextvars.bound_contextvars(**{k: v for k, v in kwargs.items() if v is not None}):
        yield
