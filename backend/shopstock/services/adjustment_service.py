# Overview: Manual stock corrections; same locking discipline as posting.

"""
Adjustments change stock_qty by a signed amount and record who did it and why.
They never touch cost_price: weighted-average cost only moves on purchases.
Like postings, overselling via a negative adjustment is not floored.
"""

from __future__ import annotations

from ..cache import invalidate_tags
from ..extensions import db
from ..models import Adjustment, Product
from ..validation import Issue, NotFoundError, ValidationError, parse_int
from .authorization import Actor
from .concurrency import begin_write_transaction, lock_for_update

MAX_REASON_LENGTH = 255


def _parse_adjustment(product_id, qty_change, reason) -> tuple[int, int, str]:
    issues: list[Issue] = []
    parsed: dict = {}

    for name, raw in (("product_id", product_id), ("qty_change", qty_change)):
        try:
            parsed[name] = parse_int(raw, name)
        except ValueError as e:
            issues.append(Issue(str(e), (name,)))

    if parsed.get("qty_change") == 0:
        issues.append(Issue("qty_change must be non-zero", ("qty_change",)))

    reason = (reason or "").strip() if isinstance(reason, (str, type(None))) else ""
    if not reason:
        issues.append(Issue("reason is required", ("reason",)))
    elif len(reason) > MAX_REASON_LENGTH:
        issues.append(Issue(f"reason exceeds max length {MAX_REASON_LENGTH}", ("reason",)))

    if issues:
        raise ValidationError(issues=issues)
    return parsed["product_id"], parsed["qty_change"], reason


def adjust_stock(*, actor: Actor, product_id, qty_change, reason) -> Adjustment:
    """
    Apply a signed stock correction under the product row lock.

    Raises:
        ValidationError: Bad input
        NotFoundError: Unknown product
    """
    product_id, qty_change, reason = _parse_adjustment(product_id, qty_change, reason)

    def _op():
        begin_write_transaction()
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")

        adjustment = Adjustment(
            product_id=product.id,
            user_id=actor.user_id,
            reason=reason,
            qty_change=qty_change,
        )
        product.stock_qty = product.stock_qty + qty_change
        db.session.add(adjustment)
        db.session.commit()
        return adjustment

    try:
        adjustment = _op()
    except Exception:
        db.session.rollback()
        raise

    invalidate_tags("products", "reports", sender="adjustments")
    return adjustment


def list_adjustments(*, product_id: int | None = None, limit: int = 200) -> list[Adjustment]:
    q = db.session.query(Adjustment)
    if product_id is not None:
        q = q.filter(Adjustment.product_id == product_id)
    return q.order_by(Adjustment.created_at.desc(), Adjustment.id.desc()).limit(limit).all()
