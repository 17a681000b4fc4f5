# Overview: Flask API routes for sales and purchases; maps posting outcomes to HTTP statuses.

"""
Transaction routes.

POST deliberately does not use @require_auth: a missing or invalid token is
passed to the poster as "no actor", which reports it the same way as any
other posting failure.
"""

from flask import Blueprint, request

from ..services import transaction_service
from ..validation import NotFoundError, parse_optional_id
from ..decorators import optional_actor, require_auth

transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")

STATUS_BY_REASON = {
    "AuthenticationMissing": 401,
    "AuthorizationDenied": 403,
    "ValidationFailed": 400,
    "PersistenceFailed": 500,
}


@transactions_bp.post("")
def post_transaction_route():
    """
    Record a sale or purchase.

    Body: {"type": "SALE"|"PURCHASE", "items": [{product_id, quantity, price, discount?}],
           "customer_id"?: int, "supplier_id"?: int}

    Returns:
    - 201 {"success": true, "transaction_id", "total"}
    - 400 {"error": "Invalid data", "issues": [...]}
    - 401/403 {"error": "Unauthorized..."}
    - 500 {"error": "Transaction failed"}
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}

    result = transaction_service.post_transaction(
        optional_actor(),
        payload.get("type"),
        payload.get("items"),
        customer_id=payload.get("customer_id"),
        supplier_id=payload.get("supplier_id"),
    )

    if result.ok:
        return result.to_dict(), 201
    return result.to_dict(), STATUS_BY_REASON.get(result.reason, 500)


@transactions_bp.get("")
@require_auth
def list_transactions_route():
    """
    Query params:
    - type: SALE | PURCHASE
    - search: customer name, product name or id
    - customer_id, supplier_id
    - page, per_page
    """
    try:
        customer_id = parse_optional_id(request.args.get("customer_id"), "customer_id")
        supplier_id = parse_optional_id(request.args.get("supplier_id"), "supplier_id")
    except ValueError as e:
        return {"error": str(e)}, 400

    return transaction_service.list_transactions(
        transaction_type=request.args.get("type"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
        search=request.args.get("search"),
        customer_id=customer_id,
        supplier_id=supplier_id,
    )


@transactions_bp.get("/<int:transaction_id>")
@require_auth
def get_transaction_route(transaction_id: int):
    try:
        transaction = transaction_service.get_transaction(transaction_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return transaction.to_dict()
