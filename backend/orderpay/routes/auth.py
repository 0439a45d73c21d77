# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/orderpay/routes/auth.py
"""
Authentication API routes

- Registration with password strength validation
- Login issues an opaque bearer token (stored hashed server-side)
- Logout revokes the presented token; refresh swaps it for a new one
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..services import auth_service, session_service
from ..services.auth_service import PasswordValidationError, UserExistsError
from ..time_utils import utcnow
from ..validation import ValidationError, validate_login, validate_registration

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _token_response(session, token: str) -> dict:
    return {
        "access_token": token,
        "token_type": "bearer",
        "expires_in": max(0, int((session.expires_at - utcnow()).total_seconds())),
    }


def _client_info() -> dict:
    return {
        "user_agent": request.headers.get("User-Agent"),
        "ip_address": request.remote_addr,
    }


@auth_bp.post("/register")
def register_route():
    data = validate_registration(request.get_json(silent=True))

    try:
        user = auth_service.create_user(
            data["name"],
            data["email"],
            data["password"],
            rounds=current_app.config["BCRYPT_ROUNDS"],
        )
    except UserExistsError as exc:
        raise ValidationError({"email": [str(exc)]}) from exc
    except PasswordValidationError as exc:
        raise ValidationError({"password": [str(exc)]}) from exc

    session, token = session_service.create_session(user.id, **_client_info())
    current_app.logger.info("Registered user %s", user.email)

    return jsonify({
        "success": True,
        "message": "User registered successfully",
        "data": {"user": user.to_dict(), **_token_response(session, token)},
    }), 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate by email/password and create a session token.

    The token goes in the Authorization header: "Bearer <token>".
    """
    data = validate_login(request.get_json(silent=True))

    user = auth_service.authenticate(data["email"], data["password"])
    if not user:
        current_app.logger.info("Failed login for %s", data["email"])
        return jsonify({"success": False, "message": "Invalid credentials"}), 401

    session, token = session_service.create_session(user.id, **_client_info())

    return jsonify({
        "success": True,
        "message": "Login successful",
        "data": {"user": user.to_dict(), **_token_response(session, token)},
    }), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(g.token, reason="User logout")
    return jsonify({"success": True, "message": "Successfully logged out"}), 200


@auth_bp.post("/refresh")
@require_auth
def refresh_route():
    refreshed = session_service.refresh_session(g.token, **_client_info())
    if refreshed is None:
        return jsonify({"success": False, "message": "Invalid or expired token"}), 401

    session, token = refreshed
    return jsonify({"success": True, "data": _token_response(session, token)}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"success": True, "data": g.current_user.to_dict()}), 200
