# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/attar_pos/routes/auth.py
"""
Authentication API routes

- Login exchanges username/password for a bearer token
- Only admins create accounts (no self-registration)
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..errors import AuthenticationError, PosError, ValidationError, error_response
from ..decorators import require_auth, require_permission, bearer_token


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username")
        password = data.get("password")

        if not all([username, password]):
            return error_response(ValidationError("Please provide username and password"))

        user = auth_service.authenticate(username, password)
        if not user:
            current_app.logger.info("Failed login for username=%r from %s", username, request.remote_addr)
            return error_response(AuthenticationError("Invalid credentials"))

        session, token = session_service.create_session(user_id=user.id)

        return jsonify({
            "token": token,
            "user": user.to_dict(),
            "session": session.to_dict(),
        }), 200

    except PosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """Revoke the token used for this request."""
    try:
        session_service.revoke_session(bearer_token())
        return jsonify({"message": "Logged out"}), 200
    except PosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()}), 200


@auth_bp.post("/register")
@require_auth
@require_permission("MANAGE_USERS")
def register_route():
    """
    Create a staff account.

    Requires: MANAGE_USERS permission
    Available to: admin
    """
    try:
        data = request.get_json(silent=True) or {}
        user = auth_service.create_user(
            username=data.get("username"),
            password=data.get("password"),
            display_name=data.get("display_name"),
            role=data.get("role") or "cashier",
        )
        current_app.logger.info("User %s created by %s", user.username, g.current_user.username)
        return jsonify({"message": "User created successfully", "user": user.to_dict()}), 201

    except PosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500
