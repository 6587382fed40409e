"""
sharedledger/__init__.py — Flask application factory.

Pattern: create_app(config_name) creates and returns a configured Flask app.
         Nothing is initialised at import time, so tests can build isolated
         app instances and the pure services import without Flask config.

Responsibilities:
  1. Load configuration from config_by_name[config_name]
  2. Set the app logger level from LOG_LEVEL
  3. Register all route blueprints under /api/v1
  4. Register global error handlers (AppError → JSON, Exception → 500)
  5. Register a custom JSON provider to serialise Decimal as string
"""

from __future__ import annotations

import traceback
from decimal import Decimal

from flask import Flask, jsonify, request
from flask.json.provider import DefaultJSONProvider
from marshmallow import ValidationError as SchemaValidationError
from werkzeug.exceptions import HTTPException

from sharedledger.config import config_by_name, validate_production_config


# ── Custom JSON provider ───────────────────────────────────────────────────
# Money leaves the API as decimal strings. Route serializers already produce
# strings; this catches any Decimal that reaches jsonify() directly.

class DecimalJSONProvider(DefaultJSONProvider):
    """
    Extends Flask's default JSON provider to serialise Decimal as str.

    Example: Decimal("10.50") → "10.50" (not 10.5 or 10.500000001)
    """

    def default(self, o):
        if isinstance(o, Decimal):
            return str(o)
        return super().default(o)


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str = "development") -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
                     Unknown names fall back to "development".
    """
    app = Flask(__name__)
    app.json_provider_class = DecimalJSONProvider
    app.json = DecimalJSONProvider(app)

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)
    app.json.sort_keys = app.config["JSON_SORT_KEYS"]

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    app.logger.setLevel(app.config["LOG_LEVEL"])

    _register_blueprints(app)
    _register_error_handlers(app)
    _register_cors(app)

    return app


def _register_blueprints(app: Flask) -> None:
    """
    Registers all route blueprints under the /api/v1 prefix.

    Route files only specify the path relative to the prefix
    (e.g. "/splits", "/balances/users/<user_id>").
    """
    from sharedledger.routes.balances import balances_bp
    from sharedledger.routes.settlements import settlements_bp
    from sharedledger.routes.splits import splits_bp

    app.register_blueprint(splits_bp,      url_prefix="/api/v1")
    app.register_blueprint(balances_bp,    url_prefix="/api/v1")
    app.register_blueprint(settlements_bp, url_prefix="/api/v1")


def _first_error(messages, field=None):
    """
    Walks marshmallow's nested messages to the first leaf message.

    Returns (field, message). Nested list indexes are kept in the field path,
    e.g. "participants.1.split_value".
    """
    if isinstance(messages, dict):
        for key, value in messages.items():
            if key == "_schema":
                return _first_error(value, field)
            path = str(key) if field is None else f"{field}.{key}"
            return _first_error(value, path)
        return field, "Invalid input."
    if isinstance(messages, list):
        if not messages:
            return field, "Invalid value."
        return _first_error(messages[0], field)
    return field, str(messages)


def _register_error_handlers(app: Flask) -> None:
    """
    Registers global error handlers.

    Handlers:
      AppError         → structured JSON error envelope with its HTTP status
      ValidationError  → marshmallow schema errors formatted as MISSING_FIELD /
                         INVALID_FIELD (or the registered code) responses (400)
      HTTPException    → werkzeug errors (404, 405, bad JSON) in the same envelope
      Exception        → generic INTERNAL_ERROR (500); traceback logged only
    """
    from sharedledger.errors import AppError, ErrorCode

    known_codes = {v for k, v in vars(ErrorCode).items() if not k.startswith("_")}

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        """Routes never catch AppError. They let it propagate here."""
        app.logger.debug("AppError %s on %s %s", error.code, request.method, request.path)
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(SchemaValidationError)
    def handle_validation_error(error: SchemaValidationError):
        """
        Converts marshmallow ValidationError into the standard error envelope.

        Only the FIRST error is returned. If the message is already a
        registered ErrorCode it is used as the code directly.
        """
        field, raw_message = _first_error(error.messages)

        if raw_message in known_codes:
            code = raw_message
            message = _code_to_message(code)
        elif raw_message.startswith("Missing data for required field"):
            code = ErrorCode.MISSING_FIELD
            message = raw_message
        else:
            code = ErrorCode.INVALID_FIELD
            message = raw_message

        response_body = {"error": {"code": code, "message": message}}
        if field is not None:
            response_body["error"]["field"] = field

        return jsonify(response_body), 400

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        code = ErrorCode.INVALID_FIELD if error.code == 400 else error.name.upper().replace(" ", "_")
        return jsonify({
            "error": {
                "code": code,
                "message": error.description,
            }
        }), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        """
        Catches all unhandled exceptions and returns a generic 500 response.
        Stack traces never leave the server in the response body.
        """
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


def _register_cors(app: Flask) -> None:
    """
    Adds CORS headers for browser-based local development.

    Enabled when DEBUG or TESTING is true so a frontend served from another
    local port can post snapshots to the API.
    """

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allow_all = bool(app.config.get("DEBUG") or app.config.get("TESTING"))

        if allow_all:
            response.headers["Access-Control-Allow-Origin"] = origin if origin else "*"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Methods"] = "POST, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"

        return response


def _code_to_message(code: str) -> str:
    """
    Returns a human-readable default message for a known error code.
    Used when a schema ValidationError message IS the error code constant.
    """
    _messages = {
        "INVALID_AMOUNT_PRECISION": "Amount has more decimal places than the currency allows.",
        "INVALID_AMOUNT": "Amount must be a positive number.",
        "INVALID_CURRENCY": "Currency must be a three-letter ISO 4217 code.",
        "INVALID_CATEGORY": "The category value is not valid.",
        "INVALID_SPLIT_TYPE": "split_type must be one of 'equal', 'percentage', 'exact', 'shares'.",
        "DUPLICATE_PARTICIPANT": "The same user_id appears more than once in participants.",
        "INVALID_PAYMENT": "Payment amounts must be zero or greater.",
        "INVALID_FIELD": "Invalid input.",
        "MISSING_FIELD": "A required field is missing.",
    }
    return _messages.get(code, "Invalid input.")
