# Overview: Flask API routes for manual stock adjustments.

from flask import Blueprint, request, jsonify, g, current_app

from ..services import adjustment_service
from ..services.authorization import can_manage_catalog
from ..validation import NotFoundError, ValidationError
from ..decorators import require_auth, require_role

adjustments_bp = Blueprint("adjustments", __name__, url_prefix="/api/adjustments")


@adjustments_bp.get("")
@require_auth
def list_adjustments_route():
    product_id = request.args.get("product_id", type=int)
    limit = min(request.args.get("limit", default=200, type=int), 1000)
    adjustments = adjustment_service.list_adjustments(product_id=product_id, limit=limit)
    return jsonify({"items": [a.to_dict() for a in adjustments]})


@adjustments_bp.post("")
@require_auth
@require_role(can_manage_catalog)
def create_adjustment_route():
    """
    Body: {"product_id": int, "qty_change": int (signed, non-zero), "reason": str}

    Changes stock only; cost_price is untouched.
    """
    payload = request.get_json(silent=True) or {}
    try:
        adjustment = adjustment_service.adjust_stock(
            actor=g.actor,
            product_id=payload.get("product_id"),
            qty_change=payload.get("qty_change"),
            reason=payload.get("reason"),
        )
    except ValidationError as e:
        return e.to_dict(), 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500
    return adjustment.to_dict(), 201
