# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product catalog routes.

SECURITY: All routes require authentication.
- Reads: any role
- Writes (create/update/archive/delete/import): ADMIN or MANAGER

stock_qty and cost_price are owned by postings and adjustments once a product
exists; they are writable here only for seeding and manager corrections.
"""

import csv
import io
import json

from flask import Blueprint, request, jsonify, current_app

from ..models import Product
from ..services import products_service
from ..services.authorization import can_manage_catalog
from ..services.products_service import PRODUCT_POLICY
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    parse_decimal,
    validate_payload,
)
from ..decorators import require_auth, require_role

products_bp = Blueprint("products", __name__, url_prefix="/api/products")

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _flag(name: str) -> bool:
    return (request.args.get(name) or "").strip().lower() in _TRUE_VALUES


def _multi(name: str) -> tuple:
    """Repeated or comma-separated query values, as a tuple (cache key safe)."""
    values = []
    for raw in request.args.getlist(name):
        values.extend(v.strip() for v in raw.split(",") if v.strip())
    return tuple(values)


@products_bp.get("")
@require_auth
def list_products_route():
    """
    List products, newest first.

    Query params:
    - q: search in name, sku, brand, category
    - category, brand: repeatable or comma-separated filters
    - min_price, max_price: sale price bounds
    - in_stock: only stock_qty > 0
    - archived: list archived products instead of active ones
    - page, per_page: pagination (per_page default 20, max 100)
    """
    try:
        min_price = request.args.get("min_price")
        max_price = request.args.get("max_price")
        min_price = parse_decimal(min_price, "min_price") if min_price else None
        max_price = parse_decimal(max_price, "max_price") if max_price else None
    except ValueError as e:
        return {"error": str(e)}, 400

    return products_service.list_products(
        query=request.args.get("q"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
        categories=_multi("category"),
        brands=_multi("brand"),
        min_price=min_price,
        max_price=max_price,
        in_stock=_flag("in_stock"),
        archived=_flag("archived"),
    )


@products_bp.get("/distinct")
@require_auth
def distinct_values_route():
    return products_service.get_distinct_values()


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    try:
        return products_service.get_product(product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404


@products_bp.post("")
@require_auth
@require_role(can_manage_catalog)
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        created = products_service.create_product(patch=patch)
    except ValidationError as e:
        return e.to_dict(), 400
    except ConflictError as e:
        return {"error": str(e)}, 409

    return created, 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_role(can_manage_catalog)
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        return products_service.update_product(product_id=product_id, patch=patch)
    except ValidationError as e:
        return e.to_dict(), 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409


@products_bp.post("/<int:product_id>/archive")
@require_auth
@require_role(can_manage_catalog)
def archive_product_route(product_id: int):
    try:
        return products_service.set_archived(product_id=product_id, archived=True)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409


@products_bp.post("/<int:product_id>/unarchive")
@require_auth
@require_role(can_manage_catalog)
def unarchive_product_route(product_id: int):
    try:
        return products_service.set_archived(product_id=product_id, archived=False)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role(can_manage_catalog)
def delete_product_route(product_id: int):
    """Delete a product with no history; otherwise 409 (archive instead)."""
    try:
        products_service.delete_product(product_id=product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to delete product %s", product_id)
        return jsonify({"error": "Internal server error"}), 500
    return {"success": True}, 200


def _read_import_rows():
    if "file" in request.files:
        file = request.files["file"]
        ext = (file.filename or "").split(".")[-1].lower()
        if ext == "csv":
            stream = io.StringIO(file.stream.read().decode("utf-8-sig"))
            rows = list(csv.DictReader(stream))
        elif ext == "json":
            rows = json.load(file.stream)
        else:
            raise ValueError("Unsupported file type (use .csv or .json)")
    else:
        rows = request.get_json(silent=True)

    if isinstance(rows, dict):
        rows = rows.get("rows", [])
    if not isinstance(rows, list):
        raise ValueError("rows must be a list")

    # Spreadsheet exports carry every column; empty cells mean "not provided"
    return [
        {k.strip(): v for k, v in row.items() if k and v not in (None, "")}
        if isinstance(row, dict) else row
        for row in rows
    ]


@products_bp.post("/import")
@require_auth
@require_role(can_manage_catalog)
def import_products_route():
    """
    Bulk upsert by SKU from a CSV/JSON upload or a JSON body {"rows": [...]}.

    Rows are independent: the response lists per-row failures.
    """
    try:
        rows = _read_import_rows()
    except (ValueError, UnicodeDecodeError) as e:
        return {"error": str(e)}, 400

    result = products_service.import_products(rows)
    current_app.logger.info("Product import: %d ok, %d failed", result["success"], result["failed"])
    return jsonify(result), 200
