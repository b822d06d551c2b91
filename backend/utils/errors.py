import logging

from flask import jsonify

from fulfillment.shared import FulfillmentError, ValidationError

logger = logging.getLogger(__name__)


def _sanitize_error_message(error: Exception) -> str:
    """Sanitize error messages to avoid leaking sensitive information.

    Args:
        error: Exception object

    Returns:
        Sanitized error message safe for client display
    """
    error_str = str(error).lower()

    # Remove potential file paths
    if "/" in str(error) or "\\" in str(error):
        return "File operation failed. Please check file permissions."

    # Remove database connection strings
    if "password" in error_str or "connection" in error_str or "database" in error_str:
        return "Database operation failed. Please try again."

    # Remove API keys
    if ("api" in error_str or "twilio" in error_str) and ("key" in error_str or "token" in error_str):
        return "API authentication failed. Please check configuration."

    # Generic fallback for unknown errors
    return "An unexpected error occurred. Please try again later."


def error_response(error: FulfillmentError):
    """Turn a named service error into its JSON body and status code."""
    return jsonify(error.to_dict()), error.http_status


def internal_error_response(error: Exception, context: str):
    """Log an unexpected error and return a sanitized 500 response."""
    logger.error(f"Error {context}: {error}", exc_info=True)
    return jsonify({"error": "internal_error", "message": _sanitize_error_message(error)}), 500


def get_json_body(request) -> dict:
    """Request JSON object body, or an empty dict when there is none.

    Raises:
        ValidationError: If the body is present but not a JSON object
    """
    if not request.get_data():
        return {}
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data
