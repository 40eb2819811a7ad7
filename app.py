import os
import time
from datetime import datetime, timezone

from flask import Flask, g, jsonify, request
from flask_cors import CORS
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from config import Config
from extensions import db, login_manager, init_extensions
from logger import app_logger, file_handler
from models import Account
from earnings.errors import AccountError, AuthError, NotFoundError
from earnings.lifecycle import AccountLifecycle
from earnings.tokens import bearer_token, verify_token


STARTED_AT = time.monotonic()


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    if not app.testing:
        for key in ("SECRET_KEY", "JWT_SECRET"):
            if not app.config.get(key):
                raise ValueError(f"{key} must be set in production")

    # ------------------------------------------------------------------------------------------
    # LOGGING
    # ------------------------------------------------------------------------------------------
    import logging
    app.logger.handlers.clear()
    app.logger.addHandler(file_handler(os.path.join(app.config["LOG_DIR"], "app.log")))
    app.logger.setLevel(logging.INFO)
    app.logger.propagate = False  # Prevent duplicate logs

    # Also add console handler for development
    if app.debug:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG)
        app.logger.addHandler(console_handler)

    # ----------------------------------------------------------------------------------------------------------------------------------
    # DATABASE URI Fix
    # --------------------------------------------------------------------------------------------------------------------------------------------
    database_uri = app.config.get("SQLALCHEMY_DATABASE_URI")
    if database_uri.startswith("sqlite:///") and ":memory:" not in database_uri:
        os.makedirs(os.path.dirname(database_uri.replace("sqlite:///", "", 1)), exist_ok=True)

    # --------------------------------------------------------------------------------------------------------------------------
    # Initialize extensions
    # ----------------------------------------------------------------------------------------------------------------------------
    init_extensions(app)
    CORS(app, origins=cors_origins(app.config["CORS_ORIGINS"]))
    app.extensions["account_lifecycle"] = AccountLifecycle(app.config)

    with app.app_context():
        try:
            db.create_all()
            db.session.execute(text("SELECT 1"))
        except SQLAlchemyError:
            app_logger.critical("Database unreachable at startup", exc_info=True)
            raise

    register_blueprints(app)
    register_auth(app)
    register_error_handlers(app)
    register_security_headers(app)

    # ----------------------
    # Basic routes
    # ----------------------
    @app.route("/health")
    def health():
        return jsonify({
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": round(time.monotonic() - STARTED_AT, 3)
        }), 200

    app_logger.info(f"App created ({app.config.get('FLASK_ENV')}), API at {app.config['API_PREFIX']}")
    return app


def cors_origins(value):
    if value == "*":
        return "*"
    return [origin.strip() for origin in value.split(",") if origin.strip()]


# ------------------------------------------------------------------------------------------------------------------------
# Register blueprints
# -----------------------------------------------------------------------------------------------------------------------
def register_blueprints(app):
    from blueprints.auth import bp as auth_bp
    from blueprints.profile import bp as profile_bp
    from blueprints.earnings import bp as earnings_bp

    prefix = app.config["API_PREFIX"]
    app.register_blueprint(auth_bp, url_prefix=prefix)
    app.register_blueprint(profile_bp, url_prefix=prefix)
    app.register_blueprint(earnings_bp, url_prefix=prefix)

# ------------------------------------------------------------------------------------------------------------------------
# Bearer-token auth through Flask-Login
# ------------------------------------------------------------------------------------------------------------------------
def register_auth(app):

    @login_manager.request_loader
    def load_account_from_request(req):
        token = bearer_token(req.headers.get("Authorization"))
        if not token:
            return None
        try:
            claims = verify_token(token)
        except AuthError as e:
            g.auth_error = e
            return None

        account = Account.find_by_id(claims.get("id"))
        if not account:
            g.auth_error = NotFoundError("User not found")
        return account

    @login_manager.unauthorized_handler
    def unauthorized():
        error = g.pop("auth_error", None)
        if error is not None:
            return jsonify(error.to_dict()), error.status_code
        return jsonify({
            "success": False,
            "message": "Access denied. No token provided."
        }), 401

# ------------------------------------------------------------------------------------------------------------------------
# Error envelopes
# ------------------------------------------------------------------------------------------------------------------------
def register_error_handlers(app):

    @app.errorhandler(AccountError)
    def handle_account_error(e):
        if e.status_code >= 500:
            app.logger.error(f"{request.method} {request.path} failed: {e.message}")
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"success": False, "message": "Endpoint not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"success": False, "message": "Method not allowed"}), 405

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        if isinstance(e, HTTPException):
            return jsonify({"success": False, "message": e.description}), e.code

        db.session.rollback()
        app.logger.error(f"Unhandled error on {request.method} {request.path}: {e}", exc_info=True)
        payload = {"success": False, "message": "Something went wrong!"}
        if app.config.get("DEBUG"):
            payload["error"] = str(e)
        return jsonify(payload), 500


# ------------------------------------------------------------------------------------------------------------------------
# Security headers
# ------------------------------------------------------------------------------------------------------------------------
SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
}


def register_security_headers(app):

    @app.after_request
    def add_security_headers(response):
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response


# ----------------------
# Local development
# ----------------------
if __name__ == "__main__":
    from config import DevelopmentConfig

    app = create_app(DevelopmentConfig)
    port = int(os.environ.get("PORT", 5000))
    app.run(debug=app.config.get("DEBUG", True), host="0.0.0.0", port=port)
