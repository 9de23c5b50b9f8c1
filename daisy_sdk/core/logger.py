"""Structured logging for the SDK's ``daisy_sdk.*`` logger tree.

Nothing is configured on import; the host application calls
``setup_logging()`` (or ``get_logger``) when it wants SDK output.  Values of
credential-like keys are masked before rendering.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, MutableMapping, TextIO

import structlog

from daisy_sdk.config.settings import settings

SDK_LOGGER = "daisy_sdk"

# Event keys whose values never reach a log sink.
REDACTED_KEYS = frozenset(
    {"secret_key", "secretKey", "private_key", "authorizer_private_key", "authorization", "auth"}
)
REDACTED = "***"

_configured = False


def redact_secrets(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """structlog processor: mask values of ``REDACTED_KEYS``."""
    for key in REDACTED_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


def setup_logging(
    level: str | None = None,
    json_output: bool | None = None,
    stream: TextIO | None = None,
) -> None:
    """Route ``daisy_sdk.*`` records through structlog.

    Parameters
    ----------
    level:
        Log level name; defaults to ``settings.LOG_LEVEL``.
    json_output:
        Render JSON lines instead of the console format.  Defaults to
        ``settings.APP_ENV == "prod"``.
    stream:
        Destination stream; defaults to stdout.
    """
    global _configured

    if json_output is None:
        json_output = settings.APP_ENV == "prod"

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        redact_secrets,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    renderer: structlog.types.Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer()
        # Tracebacks from logger.exception() become a string field.
        final_processors = [structlog.processors.format_exc_info, renderer]
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=stream is None and sys.stdout.isatty())
        final_processors = [renderer]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *final_processors],
        )
    )

    sdk_logger = logging.getLogger(SDK_LOGGER)
    sdk_logger.handlers.clear()
    sdk_logger.addHandler(handler)
    sdk_logger.setLevel((level or settings.LOG_LEVEL).upper())
    sdk_logger.propagate = False
    _configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound logger, configuring SDK logging on first use only."""
    if not _configured:
        setup_logging()
    return structlog.get_logger(name)
