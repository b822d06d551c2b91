import logging

from flask import Blueprint, jsonify, request

from backend.config import Config
from backend.utils.decorators import current_actor, roles_required
from backend.utils.errors import error_response, get_json_body, internal_error_response
from backend.utils.services import get_conversion_service
from fulfillment.shared import FulfillmentError, ValidationError

logger = logging.getLogger(__name__)
conversions_bp = Blueprint("conversions", __name__, url_prefix="/api/conversions")


@conversions_bp.route("", methods=["POST"])
@roles_required(*Config.OPERATOR_ROLES)
def api_convert_request():
    """Convert a client request into a booking.

    Body: request_id, provider_id, service_id, optional estimated_hours.
    Returns 201 when a booking was created, 200 when an existing one is returned.
    """
    try:
        data = get_json_body(request)
        missing = [
            name for name in ("request_id", "provider_id", "service_id") if not data.get(name)
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        conversion_service = get_conversion_service()
        result = conversion_service.convert(
            request_id=str(data["request_id"]),
            provider_id=str(data["provider_id"]),
            service_id=str(data["service_id"]),
            actor=current_actor(),
            estimated_hours=data.get("estimated_hours"),
        )
        return jsonify(result.to_dict()), 201 if result.created else 200
    except FulfillmentError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "converting request")
