"""Error taxonomy shared by the token core, the Asgardeo client and the API layer.

Every caller-visible failure is a ``GatewayError`` carrying the HTTP status it
maps to. The ``detail`` attribute holds internal diagnostics (upstream payloads,
verification reasons) and is only rendered in development mode.
"""
from __future__ import annotations
from typing import Any, Optional


class GatewayError(Exception):
    """Base error with HTTP status and caller-safe message."""

    status = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, detail: Any = None):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)

    def to_dict(self, include_detail: bool = False) -> dict:
        """Convert to the JSON error envelope."""
        body = {"success": False, "message": self.message}
        if include_detail and self.detail is not None:
            body["error"] = self.detail if isinstance(self.detail, (str, dict, list)) else str(self.detail)
        return body


class AuthenticationFailure(GatewayError):
    """M2M token could not be obtained, or the upstream rejected it."""

    status = 503
    default_message = "Failed to authenticate with identity provider. Check service credentials."


class Unauthenticated(GatewayError):
    """No usable caller token."""

    status = 401
    default_message = "Authentication required. No token provided."


class InvalidTokenError(Unauthenticated):
    """Caller token failed verification.

    The caller only ever sees the generic message. ``reason`` names the failed
    check for logs.
    """

    default_message = "Invalid or expired token."

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(self.default_message, detail=reason)

    def to_dict(self, include_detail: bool = False) -> dict:
        return {"success": False, "message": self.message}


class Forbidden(GatewayError):
    status = 403
    default_message = "Admin access required."


class ValidationError(GatewayError):
    status = 400
    default_message = "Email, firstName, and lastName are required"


class NotFound(GatewayError):
    status = 404
    default_message = "Resource not found"


class Conflict(GatewayError):
    status = 409
    default_message = "Resource already exists"


class UpstreamError(GatewayError):
    """Any other identity provider failure.

    Attributes:
        status_code: Upstream HTTP status (None for transport errors)
        endpoint: Upstream endpoint that failed
    """

    status = 500
    default_message = "Identity provider request failed"

    def __init__(
        self,
        message: Optional[str] = None,
        detail: Any = None,
        status_code: Optional[int] = None,
        endpoint: Optional[str] = None,
    ):
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message, detail)


class KeyResolutionError(Exception):
    """Signing key could not be resolved (unknown kid, JWKS fetch failure)."""
    pass
