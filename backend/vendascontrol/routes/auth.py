# Overview: Flask API routes for auth operations; login, logout and user administration.

"""
Authentication API routes

- Login returns a bearer token; the client sends it as
  "Authorization: Bearer <token>" on every other request.
- Self-registration does not exist: admins create accounts here or with
  `flask users create`.
"""

from flask import Blueprint, request, jsonify, g

from ..services import auth_service
from ..services import session_service
from ..validation import ValidationError
from ..decorators import require_auth, require_role


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not all([email, password]):
        return jsonify({"error": "email and password required"}), 400

    user = auth_service.authenticate(email, password)
    if not user:
        return jsonify({"error": "Invalid credentials"}), 401

    session, token = session_service.create_session(
        user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )

    return jsonify({
        "user": user.to_dict(),
        "token": token,
        "expires_at": session.to_dict()["expires_at"],
    }), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(g.session_token)
    return jsonify({"message": "Logged out"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()}), 200


@auth_bp.get("/users")
@require_auth
@require_role("admin")
def list_users_route():
    users = auth_service.list_users()
    return jsonify({"items": [u.to_dict() for u in users], "count": len(users)}), 200


@auth_bp.post("/users")
@require_auth
@require_role("admin")
def create_user_route():
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.create_user(
            name=data.get("name"),
            email=data.get("email"),
            password=data.get("password"),
            role=data.get("role", "seller"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e), "field_errors": e.field_errors}), 400
    except ValueError as e:
        return jsonify({"error": str(e)}), 409

    return jsonify({"user": user.to_dict()}), 201


@auth_bp.patch("/users/<int:user_id>")
@require_auth
@require_role("admin")
def update_user_route(user_id: int):
    data = request.get_json(silent=True) or {}
    if user_id == g.current_user.id and data.get("is_active") is False:
        return jsonify({"error": "You cannot deactivate your own account"}), 400

    try:
        user = auth_service.update_user(
            user_id,
            name=data.get("name"),
            role=data.get("role"),
            is_active=data.get("is_active"),
            password=data.get("password"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e), "field_errors": e.field_errors}), 400
    except LookupError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify({"user": user.to_dict()}), 200
