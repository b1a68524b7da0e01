# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from . import permissions
from .errors import AuthenticationError, AuthorizationError, PosError
from .services import session_service


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'session_context')


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid bearer token.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.session_context: The full SessionContext object

    Returns 503 if the session store is unavailable, 401 if:
    - No Authorization header
    - Invalid, expired or revoked token
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return jsonify(AuthenticationError("Authentication required").to_dict()), 401

        try:
            context = session_service.validate_session(token)
        except PosError as e:
            return jsonify(e.to_dict()), e.status_code
        if not context:
            return jsonify(AuthenticationError("Invalid or expired token").to_dict()), 401

        g.current_user = context.user
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """Require the authenticated user's role to hold a permission."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth was called first
            if not _is_authenticated():
                return jsonify(AuthenticationError("Authentication required").to_dict()), 401

            user = g.current_user
            try:
                permissions.require_permission(user.role, permission_code)
            except AuthorizationError as e:
                current_app.logger.warning(
                    "Permission denied user=%s role=%s permission=%s path=%s",
                    user.username, user.role, permission_code, request.path,
                )
                return jsonify(e.to_dict()), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
