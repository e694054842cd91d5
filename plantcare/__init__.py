"""
Application factory and global configuration.

Creates the Flask app, applies security headers, configures rate limiting and
CSRF, registers the JSON blueprints and CLI commands, builds the care engine,
and maps engine errors to JSON responses. Keeps startup/config concerns
together and avoids domain logic here.
"""

from __future__ import annotations
import os
from flask import Flask, Response, jsonify, request
from flask_wtf.csrf import CSRFProtect
from dotenv import load_dotenv  # <-- ensure .env is loaded for local dev
from .cli import register_commands
from .engine import build_engine
from .extensions import limiter
from .routes.advice import advice_bp
from .routes.recommendations import recommendations_bp
from .routes.reminders import reminders_bp
from .routes.weather import weather_bp
from .services import supabase_client
from .utils.errors import PlantCareError, public_message, sanitize_error


def _validate_production_security(app: Flask, cfg_path: str) -> None:
    """
    Validate critical security settings in production environments.

    Raises RuntimeError if production security requirements are not met.

    Checks:
    - SESSION_COOKIE_SECURE must be True (cookies only over HTTPS)
    - SECRET_KEY must be set and strong (>= 32 characters)
    - DEBUG must be False (no debug mode in production)
    """
    is_production = "ProdConfig" in cfg_path
    is_test = app.config.get("TESTING", False)

    if not is_production or is_test:
        return

    errors = []

    if not app.config.get("SESSION_COOKIE_SECURE", False):
        errors.append(
            "SESSION_COOKIE_SECURE must be True in production. "
            "Cookies must only be sent over HTTPS to prevent session hijacking."
        )

    secret_key = app.config.get("SECRET_KEY", "")
    if not secret_key:
        errors.append(
            "SECRET_KEY is not set. Set FLASK_SECRET_KEY environment variable. "
            "Generate with: python -c 'import secrets; print(secrets.token_hex(32))'"
        )
    elif len(secret_key) < 32:
        errors.append(
            f"SECRET_KEY is too weak ({len(secret_key)} chars). "
            "Must be at least 32 characters for production security."
        )

    if app.config.get("DEBUG", False):
        errors.append("DEBUG must be False in production.")

    if errors:
        error_msg = "\n\n[ERROR] PRODUCTION SECURITY VALIDATION FAILED:\n\n" + "\n\n".join(f"  * {err}" for err in errors)
        raise RuntimeError(error_msg)

    app.logger.info("[OK] Production security validation passed")


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(PlantCareError)
    def handle_plant_care_error(error: PlantCareError):
        if error.http_status >= 500:
            message = sanitize_error(error, error.error_type, log_prefix=f"{request.method} {request.path}")
        else:
            app.logger.info(f"{request.method} {request.path} -> {error.http_status}: {error.message}")
            message = public_message(error)

        body = {"success": False, "error": message}
        field = getattr(error, "field", None)
        if field:
            body["field"] = field
        return jsonify(body), error.http_status

    @app.errorhandler(404)
    def handle_not_found(error):
        return jsonify({"success": False, "error": "Not found"}), 404

    @app.errorhandler(429)
    def handle_rate_limited(error):
        return jsonify({"success": False, "error": "Too many requests. Please slow down."}), 429


def create_app() -> Flask:
    # Load .env early (for local dev)
    load_dotenv(override=True)

    app = Flask(__name__)

    # Allow APP_CONFIG to override (e.g., plantcare.config.DevConfig)
    cfg_path = os.getenv("APP_CONFIG", "plantcare.config.ProdConfig")
    try:
        app.config.from_object(cfg_path)
    except (ImportError, AttributeError) as e:
        app.logger.warning(f"Could not load config object {cfg_path}: {e}")

    _validate_production_security(app, cfg_path)

    limiter.init_app(app)

    if not app.config.get("RATELIMIT_ENABLED", True):
        limiter.enabled = False

    if not app.secret_key:
        app.secret_key = app.config.get("SECRET_KEY", "")

    CSRFProtect(app)

    supabase_client.init_supabase(app)

    @app.after_request
    def apply_security_headers(resp: Response) -> Response:
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        resp.headers["X-Frame-Options"] = "DENY"
        return resp

    app.register_blueprint(recommendations_bp)
    app.register_blueprint(reminders_bp)
    app.register_blueprint(advice_bp)
    app.register_blueprint(weather_bp)

    _register_error_handlers(app)
    register_commands(app)
    build_engine(app)

    return app
