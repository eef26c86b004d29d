"""
app/__init__.py — Flask application factory.

create_app(config_name) builds a configured app; nothing is initialised at
import time, so tests can create isolated instances and `flask db` commands
work without starting a server.

Responsibilities:
  1. Load configuration from config_by_name[config_name]
  2. Configure logging from LOG_LEVEL
  3. Initialise extensions (SQLAlchemy, Marshmallow)
  4. Register blueprints under /api/v1, plus /health
  5. Register global error handlers (AppError → JSON, Exception → 500)
  6. Serialise Decimal as a string in every JSON response
"""

from __future__ import annotations

import logging
import traceback
from decimal import Decimal

from flask import Flask, jsonify, request
from flask.json.provider import DefaultJSONProvider
from marshmallow import ValidationError as SchemaValidationError

from backend.config import config_by_name, validate_production_config


class DecimalJSONProvider(DefaultJSONProvider):
    """
    Serialises Decimal as str so amounts never travel as JSON numbers.

    Example: Decimal("10.50") → "10.50" (not 10.5)
    """

    def default(self, o):
        if isinstance(o, Decimal):
            return str(o)
        return super().default(o)


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str = "development") -> Flask:
    """
    Args:
        config_name: "development", "testing" or "production".
                     Unknown names fall back to development.
    """
    app = Flask(__name__)
    app.json_provider_class = DecimalJSONProvider
    app.json = DecimalJSONProvider(app)

    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    _configure_logging(app)

    from backend.app.extensions import db, ma
    db.init_app(app)
    ma.init_app(app)

    # Populate SQLAlchemy's MetaData for create_all() and Alembic.
    with app.app_context():
        from backend.app.models import (  # noqa: F401
            expense,
            group,
            member,
            split,
            user,
        )

    _register_blueprints(app)
    _register_error_handlers(app)
    _register_cors(app)

    app.logger.debug("App created with %s", config_class.__name__)
    return app


def _configure_logging(app: Flask) -> None:
    """Applies LOG_LEVEL to the app logger and the backend.* module loggers."""
    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO

    app.logger.setLevel(level)

    package_logger = logging.getLogger("backend")
    package_logger.setLevel(level)
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
        )
        package_logger.addHandler(handler)


def _register_blueprints(app: Flask) -> None:
    """
    Registers every blueprint under /api/v1.

    Route files only declare paths relative to their resource.
    """
    from backend.app.routes.auth import auth_bp
    from backend.app.routes.balances import balances_bp
    from backend.app.routes.expenses import expenses_bp
    from backend.app.routes.groups import groups_bp
    from backend.app.routes.users import users_bp

    app.register_blueprint(auth_bp,     url_prefix="/api/v1/auth")
    app.register_blueprint(groups_bp,   url_prefix="/api/v1/groups")
    # Owns both /groups/<id>/expenses and /expenses/<id>.
    app.register_blueprint(expenses_bp, url_prefix="/api/v1")
    app.register_blueprint(balances_bp, url_prefix="/api/v1/groups")
    app.register_blueprint(users_bp,    url_prefix="/api/v1/users")

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"data": {"status": "ok"}, "warnings": []}), 200


def _register_error_handlers(app: Flask) -> None:
    """
    AppError             → its own code and status
    SchemaValidationError → MISSING_FIELD / INVALID_FIELD / embedded code (400)
    HTTPException        → its own status (404 for unknown routes, 405, ...)
    Exception            → INTERNAL_ERROR (500); traceback logged, never returned
    """
    from werkzeug.exceptions import HTTPException

    from backend.app.errors import AppError, ErrorCode

    known_codes = set(vars(ErrorCode).values())

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        if error.http_status >= 500:
            app.logger.error("%r on %s %s", error, request.method, request.path)
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(SchemaValidationError)
    def handle_validation_error(error: SchemaValidationError):
        """Reports the first schema error only."""
        field, raw_message = _first_schema_error(error.messages)

        if raw_message in known_codes:
            code = raw_message
            message = _code_to_message(code)
        elif raw_message.startswith("Missing data for required field"):
            code = ErrorCode.MISSING_FIELD
            message = raw_message
        else:
            code = ErrorCode.INVALID_FIELD
            message = raw_message

        body = {"error": {"code": code, "message": message}}
        if field is not None:
            body["error"]["field"] = field
        return jsonify(body), 400

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        return jsonify({
            "error": {
                "code": error.name.upper().replace(" ", "_"),
                "message": error.description,
            }
        }), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        app.logger.error(
            "Unhandled exception: %s\n%s",
            str(error),
            traceback.format_exc(),
        )
        return jsonify({
            "error": {
                "code": ErrorCode.INTERNAL_ERROR,
                "message": "An unexpected error occurred. Please try again later.",
            }
        }), 500


def _first_schema_error(messages) -> tuple[str | None, str]:
    """
    Walks marshmallow's nested messages down to the first string.

    {"splits": {0: {"member_id": ["..."]}}} → ("splits", "...")
    """
    field = None
    current = messages
    while True:
        if isinstance(current, dict):
            if not current:
                return field, "Invalid input."
            key, current = next(iter(current.items()))
            if field is None and isinstance(key, str) and key != "_schema":
                field = key
        elif isinstance(current, list):
            if not current:
                return field, "Invalid input."
            current = current[0]
        else:
            return field, str(current)


def _register_cors(app: Flask) -> None:
    """Reflects the request origin in DEBUG/TESTING so local frontends can call the API."""

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if app.config.get("DEBUG") or app.config.get("TESTING"):
            response.headers["Access-Control-Allow-Origin"] = origin if origin else "*"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, PATCH, DELETE, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
        return response


def _code_to_message(code: str) -> str:
    """Default message when a schema error message is itself an error code."""
    _messages = {
        "INVALID_AMOUNT_PRECISION": "Amount must have at most 2 decimal places.",
        "INVALID_CATEGORY":         "The category value is not valid.",
        "INVALID_SPLIT_POLICY":     "split_policy must be 'equal', 'percentage' or 'custom'.",
        "DUPLICATE_PARTICIPANT":    "The same member_id appears more than once in splits.",
    }
    return _messages.get(code, "Invalid input.")
