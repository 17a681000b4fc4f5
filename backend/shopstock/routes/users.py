# Overview: Flask API routes for staff account administration (ADMIN only).

from flask import Blueprint, request, jsonify, g, current_app

from ..services import auth_service
from ..services.authorization import can_manage_users
from ..validation import ConflictError, NotFoundError, ValidationError
from ..decorators import require_auth, require_role

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_role(can_manage_users)
def list_users_route():
    return auth_service.list_users(
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@users_bp.post("")
@require_auth
@require_role(can_manage_users)
def create_user_route():
    data = request.get_json(silent=True) or {}
    role = data.get("role") or "CLERK"
    try:
        user = auth_service.create_user(
            name=data.get("name"),
            email=data.get("email"),
            password=data.get("password"),
            role=role.upper() if isinstance(role, str) else role,
        )
    except ValidationError as e:
        return e.to_dict(), 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"user": user.to_dict()}), 201


@users_bp.post("/<int:user_id>/deactivate")
@require_auth
@require_role(can_manage_users)
def deactivate_user_route(user_id: int):
    if user_id == g.current_user.id:
        return {"error": "You cannot deactivate your own account"}, 409
    try:
        user = auth_service.set_active(user_id=user_id, is_active=False)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return jsonify({"user": user.to_dict()}), 200


@users_bp.post("/<int:user_id>/activate")
@require_auth
@require_role(can_manage_users)
def activate_user_route(user_id: int):
    try:
        user = auth_service.set_active(user_id=user_id, is_active=True)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return jsonify({"user": user.to_dict()}), 200


@users_bp.delete("/<int:user_id>")
@require_auth
@require_role(can_manage_users)
def delete_user_route(user_id: int):
    try:
        auth_service.delete_user(user_id=user_id, acting_user_id=g.current_user.id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    return {"success": True}, 200
