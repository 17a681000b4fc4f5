# Overview: Flask API routes for auth operations; login, logout and the caller's profile.

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..validation import ConflictError, NotFoundError, ValidationError
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate by email + password and issue a session token.

    The token goes in the Authorization header: "Bearer <token>".
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not email or not password:
        return jsonify({"error": "Email and password are required"}), 400

    user = auth_service.authenticate(email, password)
    if user is None:
        current_app.logger.warning("Failed login for %s", email)
        return jsonify({"error": "Invalid credentials"}), 401

    session, token = session_service.create_session(user.id)
    return jsonify({
        "user": user.to_dict(),
        "token": token,
        "expires_at": session.to_dict()["expires_at"],
    }), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(g.token)
    return jsonify({"message": "Logged out"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()}), 200


@auth_bp.put("/me")
@require_auth
def update_me_route():
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.update_profile(
            user_id=g.current_user.id,
            name=data.get("name"),
            email=data.get("email"),
        )
    except ValidationError as e:
        return e.to_dict(), 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    return jsonify({"user": user.to_dict()}), 200


@auth_bp.post("/me/password")
@require_auth
def change_password_route():
    data = request.get_json(silent=True) or {}
    try:
        auth_service.change_password(
            user_id=g.current_user.id,
            current_password=data.get("current_password"),
            new_password=data.get("new_password"),
        )
    except ValidationError as e:
        return e.to_dict(), 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return jsonify({"message": "Password updated"}), 200
