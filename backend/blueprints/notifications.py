import logging

from flask import Blueprint, jsonify, request

from backend.config import Config
from backend.utils.decorators import roles_required
from backend.utils.errors import error_response, get_json_body, internal_error_response
from backend.utils.services import get_notification_orchestrator
from fulfillment.shared import FulfillmentError

logger = logging.getLogger(__name__)
notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.route("/<template_name>", methods=["POST"])
@roles_required(*Config.OPERATOR_ROLES)
def api_notify(template_name: str):
    """Send a templated notification.

    Body: {"recipient": {"id", "name", "email", "phone"}, "data": {...}}
    """
    try:
        data = get_json_body(request)
        orchestrator = get_notification_orchestrator()
        result = orchestrator.notify(template_name, data.get("recipient"), data.get("data") or {})
        return jsonify(result.to_dict()), 200
    except FulfillmentError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, f"sending {template_name} notification")
