"""Logging setup for profileresolver."""

from profileresolver.logging.setup import configure_logging, get_logger, lookup_context

__all__ = ["configure_logging", "get_logger", "lookup_context"]
