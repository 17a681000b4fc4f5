# Overview: Flask API routes for suppliers; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..models import Supplier
from ..services import supplier_service
from ..services.authorization import can_manage_catalog
from ..services.supplier_service import SUPPLIER_POLICY
from ..validation import ConflictError, NotFoundError, ValidationError, enforce_email, validate_payload
from ..decorators import require_auth, require_role

suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@suppliers_bp.get("")
@require_auth
def list_suppliers_route():
    return supplier_service.list_suppliers(
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
        search=request.args.get("search"),
    )


@suppliers_bp.get("/all")
@require_auth
def list_all_suppliers_route():
    return jsonify(supplier_service.list_all_suppliers())


@suppliers_bp.get("/<int:supplier_id>")
@require_auth
def get_supplier_route(supplier_id: int):
    try:
        return supplier_service.get_supplier(supplier_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404


@suppliers_bp.post("")
@require_auth
@require_role(can_manage_catalog)
def create_supplier_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=False)
        enforce_email(patch)
    except ValidationError as e:
        return e.to_dict(), 400

    try:
        created = supplier_service.create_supplier(patch=patch)
    except Exception:
        current_app.logger.exception("Failed to create supplier")
        return jsonify({"error": "Internal server error"}), 500
    return created, 201


@suppliers_bp.put("/<int:supplier_id>")
@require_auth
@require_role(can_manage_catalog)
def update_supplier_route(supplier_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=True)
        enforce_email(patch)
        return supplier_service.update_supplier(supplier_id=supplier_id, patch=patch)
    except ValidationError as e:
        return e.to_dict(), 400
    except NotFoundError as e:
        return {"error": str(e)}, 404


@suppliers_bp.delete("/<int:supplier_id>")
@require_auth
@require_role(can_manage_catalog)
def delete_supplier_route(supplier_id: int):
    try:
        supplier_service.delete_supplier(supplier_id=supplier_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    return {"success": True}, 200
