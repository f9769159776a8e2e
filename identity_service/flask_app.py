"""Flask application factory and bootstrap.

This module provides the create_app() factory function for initializing
the Flask application with the gateway component graph, blueprints and
error handlers.

Gunicorn:
    gunicorn -c gunicorn.conf.py "identity_service.flask_app:create_app()"
"""
from __future__ import annotations
import logging
from typing import Optional

from flask import Flask

from identity_service.config import AppConfig, load_settings
from identity_service.core.gateway_service import GatewayOperations

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Cache-Control": "no-store",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
}


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(cfg: Optional[AppConfig] = None, gateway: Optional[GatewayOperations] = None) -> Flask:
    """Create and configure Flask application.

    Args:
        cfg: Settings (loaded from the environment when omitted)
        gateway: Prebuilt operations (built from ``cfg`` when omitted)
    """
    cfg = cfg or load_settings()
    _configure_logging(cfg.log_level)

    app = Flask(__name__)
    app.config["APP_CONFIG"] = cfg

    # One instance per process: token and signing key caches are shared by all requests
    from identity_service.api.decorators import EXTENSION_KEY
    app.extensions[EXTENSION_KEY] = gateway or GatewayOperations.from_config(cfg)

    # Register blueprints
    from identity_service.api import errors, gateway as gateway_routes, health

    app.register_blueprint(health.bp)
    app.register_blueprint(gateway_routes.bp)

    # Register error handlers
    errors.register_error_handlers(app)

    @app.after_request
    def set_security_headers(response):
        """Apply security headers to every response (JSON API, never framed or cached)."""
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response

    mode_label = "DEVELOPMENT" if cfg.is_development else "PRODUCTION"
    app.logger.info(f"Identity Service initialized (mode={mode_label})")
    app.logger.info("API base path: /api/identity (prefix stripped by gateway)")

    return app


def _configure_logging(level: str) -> None:
    """Configure root logging once (gunicorn may already have done it)."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


if __name__ == "__main__":
    settings = load_settings()
    create_app(settings).run(host=settings.host, port=settings.port, debug=settings.is_development)
