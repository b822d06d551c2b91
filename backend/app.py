import atexit
import logging
import os

from flask import Flask, jsonify
from flask_cors import CORS
from flask_jwt_extended import JWTManager

from backend.blueprints.conversions import conversions_bp
from backend.blueprints.lifecycle import lifecycle_bp
from backend.blueprints.matching import matching_bp
from backend.blueprints.notifications import notifications_bp
from backend.blueprints.system import system_bp
from backend.config import Config
from backend.utils.services import shutdown_notifications

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def create_app(config_object=Config):
    """Application factory function."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Initialize JWT
    jwt = JWTManager(app)

    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return jsonify({"error": "unauthorized", "message": "Token has expired"}), 401

    @jwt.invalid_token_loader
    def invalid_token_callback(error):
        logger.error(f"Invalid token error: {str(error)}")
        return jsonify({"error": "unauthorized", "message": f"Invalid token: {str(error)}"}), 422

    @jwt.unauthorized_loader
    def missing_token_callback(error):
        return jsonify({"error": "unauthorized", "message": "Missing authorization header"}), 401

    # Initialize CORS
    CORS(
        app,
        origins=config_object.CORS_ORIGINS,
        supports_credentials=True,
        allow_headers=["Content-Type", "Authorization"],
    )

    # Register Blueprints
    app.register_blueprint(matching_bp)
    app.register_blueprint(lifecycle_bp)
    app.register_blueprint(conversions_bp)
    app.register_blueprint(notifications_bp)
    app.register_blueprint(system_bp)

    # Let queued notifications finish on process exit
    atexit.register(shutdown_notifications)

    return app


app = create_app()

if __name__ == "__main__":
    debug = os.getenv("ENVIRONMENT", "development") == "development"
    app.run(host="0.0.0.0", port=5000, debug=debug, use_reloader=debug)
