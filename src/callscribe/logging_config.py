"""Structured logging configuration using structlog.

JSON lines in production, colored console output everywhere else. Provider
credentials never reach the output: any event key that names a secret is
masked before rendering.
"""

import logging
import sys
from typing import Iterable

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

APP_NAME = "callscribe"

# Event keys whose values are masked (compared case-insensitively)
SECRET_KEYS = frozenset(
    {
        "auth_token",
        "plivo_auth_token",
        "api_key",
        "deepgram_api_key",
        "authorization",
        "password",
    }
)

MASK = "***"

# Chatty at INFO; raised to WARNING
NOISY_LOGGERS = ("httpx", "httpcore", "asyncio", "redis", "multipart")


def add_app_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    event_dict["app"] = APP_NAME
    return event_dict


def mask_secrets(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Replace the value of every secret-looking key, including one level of nesting."""
    for key, value in event_dict.items():
        if key.lower() in SECRET_KEYS:
            event_dict[key] = MASK
        elif isinstance(value, dict):
            event_dict[key] = {
                k: MASK if str(k).lower() in SECRET_KEYS else v for k, v in value.items()
            }
    return event_dict


def _quiet(loggers: Iterable[str]) -> None:
    for name in loggers:
        logging.getLogger(name).setLevel(logging.WARNING)


def configure_logging(log_level: str = "INFO", environment: str = "development") -> None:
    """Configure structlog and route stdlib logging through it.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        environment: "production" selects the JSON renderer

    Calling it again replaces the previous configuration, so every
    ``create_app`` call can reconfigure logging from its own settings.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    is_production = environment.lower() == "production"

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_app_context,
        mask_secrets,
    ]

    renderer: Processor
    if is_production:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # uvicorn, redis and the error handlers log through stdlib
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

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    _quiet(NOISY_LOGGERS)

    structlog.get_logger(__name__).info(
        "Logging configured",
        log_level=log_level,
        environment=environment,
        renderer="json" if is_production else "console",
    )
