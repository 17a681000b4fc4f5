# Overview: Transaction Poster; records SALE/PURCHASE documents and folds them into product stock.

"""
Transaction Poster

post_transaction() is the only write path for sales and purchases. One call
is one indivisible step with two outcomes: committed or not committed.

ORDER OF CHECKS (all before any DB write, no retry):
1. actor present                   -> "Unauthorized"
2. type known                      -> "Invalid data" (path: type)
3. authorization gate              -> "Unauthorized. Clerks cannot record purchases."
4. items / counterparties valid    -> "Invalid data" + issues

UNIT OF WORK:
- lock every distinct product (ascending id, so concurrent postings take
  locks in the same order) before any insert references it
- insert Transaction, then its TransactionItems
- apply each line, in the order supplied, to the locked row:
    PURCHASE -> valuation.apply_purchase_line (stock + weighted-average cost)
    SALE     -> valuation.apply_sale_line (stock only)
  Two lines for the same product hit the same in-session row one after the
  other, so the second line sees the first line's result.
- commit

Nothing is retried. Any database failure (lock-wait timeout, busy database,
lost connection, missing reference) rolls back and is reported as
"Transaction failed". Cache tags
are invalidated only after a commit.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Sequence

from flask import current_app
from sqlalchemy import String, cast

from ..cache import cached, invalidate_tags
from ..extensions import db
from ..models import (
    Customer,
    Product,
    Transaction,
    TransactionItem,
    TRANSACTION_TYPES,
    TRANSACTION_PURCHASE,
)
from ..money import money_str
from ..pagination import paginate
from ..validation import Issue, LineItem, NotFoundError, ValidationError, parse_line_items, parse_optional_id
from shopstock.time_utils import utcnow
from .authorization import Actor, can_post, denial_message
from .concurrency import begin_write_transaction, lock_for_update
from .valuation import apply_purchase_line, apply_sale_line, transaction_total

INVALIDATED_ON_POST = ("transactions", "products", "reports")


# =============================================================================
# ERRORS AND RESULT
# =============================================================================


class PostingError(Exception):
    """Base for every way a posting can fail; never escapes post_transaction()."""

    def __init__(self, message: str, issues: Sequence[Issue] | None = None):
        super().__init__(message)
        self.issues = list(issues or [])


class AuthenticationMissing(PostingError):
    pass


class AuthorizationDenied(PostingError):
    pass


class ValidationFailed(PostingError):
    pass


class PersistenceFailed(PostingError):
    """Opaque: constraint violations, missing references, lost connections, lock timeouts."""


@dataclass(frozen=True)
class PostingResult:
    ok: bool
    transaction_id: int | None = None
    total: Decimal | None = None
    error: str | None = None
    issues: tuple = ()
    # PostingError subclass name on failure; lets the HTTP layer pick a status
    reason: str | None = None

    @classmethod
    def failure(cls, exc: PostingError) -> "PostingResult":
        return cls(ok=False, error=str(exc), issues=tuple(exc.issues), reason=type(exc).__name__)

    def to_dict(self) -> dict:
        if self.ok:
            return {
                "success": True,
                "transaction_id": self.transaction_id,
                "total": money_str(self.total),
            }
        data = {"error": self.error}
        if self.issues:
            data["issues"] = [issue.to_dict() for issue in self.issues]
        return data


# =============================================================================
# POSTING
# =============================================================================


def normalize_type(transaction_type: Any) -> str | None:
    if not isinstance(transaction_type, str):
        return None
    normalized = transaction_type.strip().upper()
    return normalized if normalized in TRANSACTION_TYPES else None


def _admit(actor: Actor | None, transaction_type: Any) -> str:
    if actor is None:
        raise AuthenticationMissing("Unauthorized")

    tx_type = normalize_type(transaction_type)
    if tx_type is None:
        raise ValidationFailed(
            "Invalid data",
            issues=[Issue(f"type must be one of: {', '.join(TRANSACTION_TYPES)}", ("type",))],
        )

    if not can_post(actor.role, tx_type):
        raise AuthorizationDenied(denial_message(actor.role, tx_type))

    return tx_type


def _parse(items: Any, customer_id: Any, supplier_id: Any) -> tuple[list[LineItem], int | None, int | None]:
    issues: list[Issue] = []
    lines: list[LineItem] = []

    try:
        lines = parse_line_items(items)
    except ValidationError as e:
        issues.extend(e.issues)

    parsed_ids: dict[str, int | None] = {}
    for name, raw in (("customer_id", customer_id), ("supplier_id", supplier_id)):
        try:
            parsed_ids[name] = parse_optional_id(raw, name)
        except ValueError as e:
            issues.append(Issue(str(e), (name,)))

    if issues:
        raise ValidationFailed("Invalid data", issues=issues)

    return lines, parsed_ids["customer_id"], parsed_ids["supplier_id"]


def _lock_products(product_ids: set[int]) -> dict[int, Product]:
    ordered = sorted(product_ids)
    rows = lock_for_update(
        db.session.query(Product).filter(Product.id.in_(ordered)).order_by(Product.id.asc())
    ).all()
    products = {p.id: p for p in rows}
    missing = [pid for pid in ordered if pid not in products]
    if missing:
        raise NotFoundError(f"Products not found: {', '.join(str(pid) for pid in missing)}")
    return products


def _write(
    actor: Actor,
    tx_type: str,
    lines: list[LineItem],
    total: Decimal,
    customer_id: int | None,
    supplier_id: int | None,
) -> int:
    def _op():
        begin_write_transaction()

        # Row locks before the item inserts; their FK checks share-lock the same rows
        products = _lock_products({line.product_id for line in lines})

        transaction = Transaction(
            type=tx_type,
            date=utcnow(),
            total=total,
            user_id=actor.user_id,
            customer_id=customer_id,
            supplier_id=supplier_id,
        )
        db.session.add(transaction)
        db.session.flush()

        for line in lines:
            db.session.add(TransactionItem(
                transaction_id=transaction.id,
                product_id=line.product_id,
                quantity=line.quantity,
                price=line.price,
                discount=line.discount,
            ))
        db.session.flush()

        for line in lines:
            product = products[line.product_id]
            if tx_type == TRANSACTION_PURCHASE:
                position = apply_purchase_line(
                    product.stock_qty,
                    product.cost_price,
                    line.quantity,
                    line.price,
                    line.discount,
                )
                product.cost_price = position.cost_price
            else:
                position = apply_sale_line(product.stock_qty, product.cost_price, line.quantity)
            product.stock_qty = position.stock_qty

        transaction_id = transaction.id
        db.session.commit()
        return transaction_id

    try:
        return _op()
    except Exception as exc:
        db.session.rollback()
        current_app.logger.exception("Transaction failed (%s by user %s)", tx_type, actor.user_id)
        raise PersistenceFailed("Transaction failed") from exc


def post_transaction(
    actor: Actor | None,
    transaction_type: Any,
    items: Any,
    *,
    customer_id: Any = None,
    supplier_id: Any = None,
) -> PostingResult:
    """
    Record a SALE or PURCHASE and apply it to product stock/cost atomically.

    Args:
        actor: Authenticated identity (None -> Unauthorized)
        transaction_type: "SALE" or "PURCHASE" (case-insensitive)
        items: Sequence of {product_id, quantity, price, discount?} mappings or LineItems
        customer_id: Optional counterparty for sales
        supplier_id: Optional counterparty for purchases

    Returns:
        PostingResult; never raises for a failed posting.
    """
    try:
        tx_type = _admit(actor, transaction_type)
        lines, customer_id, supplier_id = _parse(items, customer_id, supplier_id)
        total = transaction_total(lines)
        transaction_id = _write(actor, tx_type, lines, total, customer_id, supplier_id)
    except PostingError as e:
        return PostingResult.failure(e)

    current_app.logger.info(
        "Posted %s %s: %d line(s), total %s, user %s",
        tx_type, transaction_id, len(lines), total, actor.user_id,
    )

    invalidate_tags(*INVALIDATED_ON_POST, sender="transactions")

    return PostingResult(ok=True, transaction_id=transaction_id, total=total)


# =============================================================================
# READS
# =============================================================================


@cached("transactions", "products")
def list_transactions(
    transaction_type: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
    search: str | None = None,
    customer_id: int | None = None,
    supplier_id: int | None = None,
) -> dict:
    """
    Newest-first transaction listing.

    search matches customer name, any item's product name, or the id.
    """
    query = db.session.query(Transaction)

    tx_type = normalize_type(transaction_type)
    if tx_type:
        query = query.filter(Transaction.type == tx_type)
    if customer_id is not None:
        query = query.filter(Transaction.customer_id == customer_id)
    if supplier_id is not None:
        query = query.filter(Transaction.supplier_id == supplier_id)

    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(db.or_(
            Transaction.customer.has(Customer.name.ilike(pattern)),
            Transaction.items.any(TransactionItem.product.has(Product.name.ilike(pattern))),
            cast(Transaction.id, String).ilike(pattern),
        ))

    query = query.order_by(Transaction.date.desc(), Transaction.id.desc())
    page_data = paginate(query, page, per_page)

    return {
        "items": [t.to_dict() for t in page_data["items"]],
        "count": len(page_data["items"]),
        "pagination": page_data["pagination"],
    }


def get_transaction(transaction_id: int) -> Transaction:
    transaction = db.session.query(Transaction).filter_by(id=transaction_id).first()
    if transaction is None:
        raise NotFoundError(f"Transaction {transaction_id} not found")
    return transaction
