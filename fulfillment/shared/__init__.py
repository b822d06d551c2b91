"""
Shared infrastructure for services.

This package contains shared building blocks used across multiple services,
such as the database abstraction, error taxonomy and logging helpers.
"""

from .database import Database, PostgreSQLDatabase
from .errors import (
    ChannelDeliveryError,
    ConcurrencyConflictError,
    FulfillmentError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    ProviderUnavailableError,
    ValidationError,
)
from .structured_logging import get_structured_logger

__all__ = [
    "Database",
    "PostgreSQLDatabase",
    "FulfillmentError",
    "ValidationError",
    "NotFoundError",
    "InvalidStateError",
    "InvalidTransitionError",
    "ProviderUnavailableError",
    "ChannelDeliveryError",
    "ConcurrencyConflictError",
    "get_structured_logger",
]
