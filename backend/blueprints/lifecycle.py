import logging

from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from backend.config import Config
from backend.utils.decorators import current_actor, roles_required
from backend.utils.errors import error_response, get_json_body, internal_error_response
from backend.utils.services import get_status_service
from fulfillment.shared import FulfillmentError, ValidationError

logger = logging.getLogger(__name__)
lifecycle_bp = Blueprint("lifecycle", __name__, url_prefix="/api/lifecycle")


@lifecycle_bp.route("/<entity_type>/<entity_id>/transition", methods=["POST"])
@roles_required(*Config.OPERATOR_ROLES)
def api_transition(entity_type: str, entity_id: str):
    """Move a request or application to a new status.

    Body: {"status": "<target>", "comment": "..."}
    """
    try:
        data = get_json_body(request)
        target = data.get("status")
        if not target:
            raise ValidationError("status is required")

        status_service = get_status_service()
        result = status_service.transition(
            entity_id=entity_id,
            entity_type=entity_type,
            target=target,
            actor=current_actor(),
            comment=data.get("comment"),
        )
        return jsonify(result.to_dict()), 200
    except FulfillmentError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, f"transitioning {entity_type} {entity_id}")


@lifecycle_bp.route("/<entity_type>/<entity_id>/history", methods=["GET"])
@jwt_required()
def api_history(entity_type: str, entity_id: str):
    """Status history of a request or application, oldest first."""
    try:
        status_service = get_status_service()
        history = status_service.get_history(entity_id=entity_id, entity_type=entity_type)
        return jsonify({"history": [record.to_dict() for record in history]}), 200
    except FulfillmentError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, f"fetching history for {entity_type} {entity_id}")


@lifecycle_bp.route("/<entity_type>/transitions/<status>", methods=["GET"])
@jwt_required()
def api_allowed_transitions(entity_type: str, status: str):
    """Statuses a caller may move an entity to from ``status``."""
    try:
        status_service = get_status_service()
        return jsonify(
            {"status": status, "allowed": status_service.allowed_targets(entity_type, status)}
        ), 200
    except FulfillmentError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, f"listing transitions for {entity_type}")
