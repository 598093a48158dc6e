"""Structlog configuration for profileresolver."""

import logging
import sys
from contextlib import contextmanager
from typing import Iterator

import structlog

from profileresolver.config import ResolverConfig, LogFormat

# Event keys that may carry provider credentials
REDACTED_KEYS = frozenset({"api_key", "auth_token", "token", "authorization"})


def redact_credentials(logger, method_name: str, event_dict: dict) -> dict:
    """Mask credential values before rendering."""
    for key in REDACTED_KEYS & event_dict.keys():
        if event_dict[key]:
            event_dict[key] = "***"
    return event_dict


def _stderr_logger(*args) -> structlog.PrintLogger:
    # Resolve sys.stderr per logger so redirected streams are honoured
    return structlog.PrintLogger(file=sys.stderr)


def _renderers(log_format: LogFormat) -> list:
    if log_format == LogFormat.JSON:
        return [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [
        structlog.dev.set_exc_info,
        structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
    ]


def configure_logging(config: ResolverConfig | None = None) -> None:
    """
    Configure structlog for the resolver.

    Logs go to stderr so CLI output on stdout stays machine-readable. Safe to
    call repeatedly; the latest config wins.

    Args:
        config: ResolverConfig instance, uses defaults if None
    """
    if config is None:
        config = ResolverConfig()

    log_level = getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=log_level)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(log_level, logging.WARNING))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            redact_credentials,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            *_renderers(config.log_format),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Logger bound to ``logger_name`` when a name is given."""
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(logger_name=name)
    return logger


@contextmanager
def lookup_context(username: str, platform: str) -> Iterator[None]:
    """Tag every event logged during one lookup with its username and platform."""
    with structlog.contextvars.bound_contextvars(lookup_username=username, lookup_platform=platform):
        yield
