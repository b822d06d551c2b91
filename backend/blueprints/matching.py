import logging

from flask import Blueprint, jsonify, request
from flask_jwt_extended import get_jwt_identity, jwt_required

from backend.utils.errors import error_response, get_json_body, internal_error_response
from backend.utils.services import get_provider_matcher
from fulfillment.matching import MatchCriteria
from fulfillment.shared import FulfillmentError

logger = logging.getLogger(__name__)
matching_bp = Blueprint("matching", __name__, url_prefix="/api/matching")


@matching_bp.route("/search", methods=["POST"])
@jwt_required()
def api_search_providers():
    """Rank providers for a service request.

    Body: serviceType/service_type, location, latitude, longitude,
    urgencyLevel, minRating, maxPrice, useGeolocation, area.
    """
    try:
        criteria = MatchCriteria.from_dict(get_json_body(request))
        matcher = get_provider_matcher()
        result = matcher.search(criteria)

        logger.info(
            f"User {get_jwt_identity()} searched {criteria.service_type}: "
            f"{result.quality.providers_found} candidate(s)"
        )
        return jsonify(result.to_dict()), 200
    except FulfillmentError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "searching providers")
