# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import auth_service
from .services.auth_service import AuthenticationError


def _is_authenticated() -> bool:
    return hasattr(g, 'identity')


def require_auth(f):
    """
    Require a valid bearer token.

    Sets the following Flask g attributes:
    - g.identity: auth_service.Identity
    - g.user_id / g.user_role / g.user_email: shortcuts into the identity

    Returns 403 when no token is sent and 401 when the token is invalid or
    expired.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        # Extract token from Authorization header
        auth_header = request.headers.get("Authorization", "")
        parts = auth_header.split()

        if len(parts) != 2 or parts[0].lower() != "bearer":
            return jsonify({"success": False, "error": "No token provided. Please login."}), 403

        try:
            identity = auth_service.resolve_identity(parts[1])
        except AuthenticationError as e:
            return jsonify({"success": False, "error": str(e)}), 401

        g.identity = identity
        g.user_id = identity.user_id
        g.user_role = identity.role
        g.user_email = identity.email

        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """Require the admin role. Must be applied after @require_auth."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"success": False, "error": "Authentication required"}), 401

        if not g.identity.is_admin:
            return jsonify({
                "success": False,
                "error": "Admin access required. You do not have permission.",
            }), 403

        return f(*args, **kwargs)

    return decorated_function
