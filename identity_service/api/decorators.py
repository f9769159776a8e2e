"""
Flask decorators for authentication and authorization.

Every gateway route is admin-only: the Bearer token (RFC 6750) is verified
against the Asgardeo JWKS and the caller must belong to an admin group.
The verified CallerIdentity is stored on ``g.caller``.
"""
from __future__ import annotations
import logging
from functools import wraps
from typing import Optional

from flask import current_app, g, request

from identity_service.core.errors import Unauthenticated
from identity_service.core.gateway_service import GatewayOperations
from identity_service.core.models import CallerIdentity

logger = logging.getLogger(__name__)

EXTENSION_KEY = "identity_gateway"


def get_gateway() -> GatewayOperations:
    """Return the process-wide GatewayOperations built by create_app()."""
    return current_app.extensions[EXTENSION_KEY]


def extract_bearer_token(auth_header: Optional[str]) -> Optional[str]:
    """Return the token from 'Bearer <token>', or None for anything else."""
    if not auth_header:
        return None
    parts = auth_header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        return None
    return parts[1]


def require_admin(fn):
    """Decorator requiring a valid admin Bearer token.

    Raises:
        Unauthenticated (401): Missing, malformed, invalid or expired token
        Forbidden (403): Valid token without an admin group

    Example:
        @bp.route("/groups")
        @require_admin
        def list_groups():
            return jsonify(get_gateway().list_groups(current_caller()))
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        token = extract_bearer_token(request.headers.get("Authorization"))
        if token is None:
            logger.warning(f"Request to {request.path} without Bearer token")
            raise Unauthenticated()

        g.caller = get_gateway().admit(token)
        return fn(*args, **kwargs)

    return wrapper


def current_caller() -> CallerIdentity:
    """Get the verified caller. Must be called after @require_admin."""
    caller = getattr(g, "caller", None)
    if caller is None:
        raise Unauthenticated("Authentication required.")
    return caller
