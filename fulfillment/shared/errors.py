"""
Error taxonomy shared by all fulfillment services.

Every caller-visible failure is one of these named kinds. The HTTP layer maps
``code`` and ``http_status`` directly onto its responses.
"""

from __future__ import annotations


class FulfillmentError(Exception):
    """Base class for named, expected service errors."""

    code = "fulfillment_error"
    http_status = 500

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload = {"error": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(FulfillmentError):
    """Raised for malformed input, before any side effect happens."""

    code = "validation_error"
    http_status = 400


class NotFoundError(FulfillmentError):
    """Raised when a referenced entity does not exist."""

    code = "not_found"
    http_status = 404


class InvalidStateError(FulfillmentError):
    """Raised when an entity is not in a state that allows the operation."""

    code = "invalid_state"
    http_status = 409


class InvalidTransitionError(FulfillmentError):
    """Raised when a status change is not a declared edge of the state machine."""

    code = "invalid_transition"
    http_status = 409


class ProviderUnavailableError(FulfillmentError):
    """Raised when a provider does not actively offer the requested service."""

    code = "provider_unavailable"
    http_status = 422


class ChannelDeliveryError(FulfillmentError):
    """Raised by a channel sender when a single delivery fails."""

    code = "channel_delivery_error"
    http_status = 502

    def __init__(self, channel: str, message: str):
        super().__init__(message, channel=channel)
        self.channel = channel


class ConcurrencyConflictError(FulfillmentError):
    """Raised when the booking uniqueness constraint catches a concurrent conversion."""

    code = "concurrency_conflict"
    http_status = 409
