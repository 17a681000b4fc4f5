# Overview: Flask API routes for customers; parses input and returns JSON responses.

"""
Customer routes.

Any signed-in role may look up and register customers (clerks do so at the
counter); deleting one needs ADMIN or MANAGER.
"""

from flask import Blueprint, request, jsonify, current_app

from ..models import Customer
from ..services import customer_service
from ..services.authorization import can_manage_catalog
from ..services.customer_service import CUSTOMER_POLICY
from ..validation import ConflictError, NotFoundError, ValidationError, enforce_email, validate_payload
from ..decorators import require_auth, require_role

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
def list_customers_route():
    return customer_service.list_customers(
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
        search=request.args.get("search"),
    )


@customers_bp.get("/<int:customer_id>")
@require_auth
def get_customer_route(customer_id: int):
    try:
        return customer_service.get_customer(customer_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404


@customers_bp.post("")
@require_auth
def create_customer_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
        enforce_email(patch)
    except ValidationError as e:
        return e.to_dict(), 400

    try:
        created = customer_service.create_customer(patch=patch)
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500
    return created, 201


@customers_bp.put("/<int:customer_id>")
@require_auth
def update_customer_route(customer_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
        enforce_email(patch)
        return customer_service.update_customer(customer_id=customer_id, patch=patch)
    except ValidationError as e:
        return e.to_dict(), 400
    except NotFoundError as e:
        return {"error": str(e)}, 404


@customers_bp.delete("/<int:customer_id>")
@require_auth
@require_role(can_manage_catalog)
def delete_customer_route(customer_id: int):
    try:
        customer_service.delete_customer(customer_id=customer_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    return {"success": True}, 200
