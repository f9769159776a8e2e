"""Error handlers for the application."""
from __future__ import annotations
from flask import current_app, jsonify
from werkzeug.exceptions import HTTPException

from identity_service.core.errors import AuthenticationFailure, GatewayError, Unauthenticated


def _show_details() -> bool:
    cfg = current_app.config.get("APP_CONFIG")
    return bool(cfg and cfg.is_development)


def register_error_handlers(app):
    """Register error handlers with the Flask app."""

    @app.errorhandler(GatewayError)
    def handle_gateway_error(error: GatewayError):
        """Map the gateway error taxonomy to the JSON envelope."""
        if isinstance(error, AuthenticationFailure):
            app.logger.error(f"Identity provider authentication failed: {error.detail}")
        elif error.status >= 500:
            app.logger.error(f"{error.message}: {error.detail}")

        response = jsonify(error.to_dict(include_detail=_show_details()))
        response.status_code = error.status
        if isinstance(error, Unauthenticated):
            response.headers["WWW-Authenticate"] = "Bearer"
        return response

    @app.errorhandler(404)
    def not_found(error):
        """Handle unknown routes."""
        return jsonify({"success": False, "message": "Route not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({"success": False, "message": "Method not allowed"}), 405

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions."""
        if isinstance(error, HTTPException):
            return jsonify({"success": False, "message": error.description}), error.code

        # ALWAYS log the full error, never return it outside development mode
        app.logger.error(f"Unhandled error: {error}", exc_info=True)

        body = {"success": False, "message": "Internal server error"}
        if _show_details():
            body["error"] = str(error)
        return jsonify(body), 500
