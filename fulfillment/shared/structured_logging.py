"""
Structured Logging Utilities

Provides context-carrying loggers for the orchestrators, so every line about a
conversion or a notification event names the ids it concerns.
"""

from __future__ import annotations

import logging
from typing import Any


def format_context(context: dict[str, Any]) -> str:
    """Render context fields as ``key=value | key=value``; None values are skipped."""
    parts = [f"{key}={value}" for key, value in context.items() if value is not None]
    return " | ".join(parts) if parts else "none"


class StructuredLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that adds structured context to log messages.

    Usage:
        logger = get_structured_logger(__name__, request_id="req-1", actor="admin-7")
        logger.info("Booking created")
    """

    def __init__(self, logger: logging.Logger, **context: Any):
        super().__init__(logger, context)

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        kwargs.setdefault("extra", {})["context"] = format_context(self.extra)
        return f"[{format_context(self.extra)}] {msg}", kwargs

    def bind(self, **context: Any) -> StructuredLoggerAdapter:
        """Return a new adapter with additional context fields."""
        return StructuredLoggerAdapter(self.logger, **{**self.extra, **context})


def get_structured_logger(name: str, **context: Any) -> StructuredLoggerAdapter:
    """
    Get a structured logger with context.

    Args:
        name: Logger name (typically __name__)
        **context: Context fields (e.g., request_id="req-1", event_type="booking_confirmation")

    Returns:
        StructuredLoggerAdapter instance
    """
    return StructuredLoggerAdapter(logging.getLogger(name), **context)
