import logging
from functools import wraps

from flask import jsonify
from flask_jwt_extended import get_jwt, get_jwt_identity, jwt_required

logger = logging.getLogger(__name__)


def roles_required(*roles: str):
    """Decorator to require a valid JWT carrying at least one of ``roles``.

    Roles come from the token's "roles" claim.
    """

    def decorator(f):
        @wraps(f)
        @jwt_required()
        def decorated_function(*args, **kwargs):
            claims = get_jwt()
            token_roles = claims.get("roles") or []
            if isinstance(token_roles, str):
                token_roles = [token_roles]

            if not set(token_roles) & set(roles):
                logger.warning(
                    f"User {get_jwt_identity()} denied access to {f.__name__} "
                    f"(roles={token_roles})"
                )
                return jsonify(
                    {"error": "forbidden", "message": f"Requires one of roles: {', '.join(roles)}"}
                ), 403
            return f(*args, **kwargs)

        return decorated_function

    return decorator


def current_actor() -> str:
    """Actor identity of the current request (the JWT subject)."""
    return str(get_jwt_identity())
