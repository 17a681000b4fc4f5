# Overview: Read-only reports over posted transactions and current stock positions.

"""
Reports are arithmetic reductions over rows the poster already made
consistent; none of them write. Money is summed as Decimal in Python rather
than with SQL SUM, which SQLite evaluates in floating point.

Every report is cached under the "reports" tag, which postings, adjustments
and catalog writes invalidate.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from decimal import Decimal

from ..cache import cached
from ..extensions import db
from ..models import Product, Supplier, Transaction, TransactionItem, TRANSACTION_SALE, TRANSACTION_PURCHASE
from ..money import ZERO, cost_str, money_str, to_money
from shopstock.time_utils import to_utc_z


def _low_stock_query():
    return (
        db.session.query(Product)
        .filter(Product.is_archived.is_(False), Product.stock_qty <= Product.min_stock)
        .order_by(Product.stock_qty.asc(), Product.id.asc())
    )


@cached("reports")
def low_stock_report() -> list[dict]:
    """Active products at or below their reorder threshold, emptiest first."""
    return [
        {
            "id": p.id,
            "sku": p.sku,
            "name": p.name,
            "stock_qty": p.stock_qty,
            "min_stock": p.min_stock,
        }
        for p in _low_stock_query().all()
    ]


@cached("reports")
def low_stock_by_supplier() -> list[dict]:
    """Low-stock products grouped by supplier (reorder sheet); unassigned last."""
    groups: dict[int | None, list[Product]] = defaultdict(list)
    for p in _low_stock_query().all():
        groups[p.supplier_id].append(p)

    suppliers = {}
    if groups:
        ids = [sid for sid in groups if sid is not None]
        suppliers = {s.id: s for s in db.session.query(Supplier).filter(Supplier.id.in_(ids)).all()}

    result = []
    for supplier_id in sorted(groups, key=lambda sid: (sid is None, suppliers[sid].name if sid else "")):
        supplier = suppliers.get(supplier_id)
        result.append({
            "supplier": supplier.to_dict() if supplier else None,
            "products": [
                {
                    "id": p.id,
                    "sku": p.sku,
                    "name": p.name,
                    "stock_qty": p.stock_qty,
                    "min_stock": p.min_stock,
                    "reorder_qty": max(p.min_stock - p.stock_qty, 0),
                }
                for p in groups[supplier_id]
            ],
        })
    return result


@cached("reports")
def inventory_valuation() -> dict:
    """
    Stock on hand valued at weighted-average cost and at retail.

    totals: total_cost = sum(qty * cost_price), total_retail = sum(qty * sale_price),
    item_count = sum(qty), over active products.
    """
    products = (
        db.session.query(Product)
        .filter(Product.is_archived.is_(False))
        .order_by(Product.name.asc(), Product.id.asc())
        .all()
    )

    total_cost = ZERO
    total_retail = ZERO
    item_count = 0
    rows = []

    for p in products:
        qty = p.stock_qty
        cost_value = qty * p.cost_price
        retail_value = qty * p.sale_price
        total_cost += cost_value
        total_retail += retail_value
        item_count += qty
        rows.append({
            "id": p.id,
            "sku": p.sku,
            "name": p.name,
            "stock_qty": qty,
            "cost_price": cost_str(p.cost_price),
            "sale_price": money_str(p.sale_price),
            "cost_value": money_str(cost_value),
            "retail_value": money_str(retail_value),
        })

    return {
        "totals": {
            "total_cost": money_str(total_cost),
            "total_retail": money_str(total_retail),
            "item_count": item_count,
        },
        "products": rows,
    }


@cached("reports")
def sales_history(limit: int = 50) -> list[dict]:
    """Most recent sales with who rang them up and what was sold."""
    sales = (
        db.session.query(Transaction)
        .filter(Transaction.type == TRANSACTION_SALE)
        .order_by(Transaction.date.desc(), Transaction.id.desc())
        .limit(limit)
        .all()
    )
    return [
        {
            "id": t.id,
            "date": to_utc_z(t.date),
            "total": money_str(t.total),
            "user": {"name": t.user.name, "email": t.user.email} if t.user else None,
            "items": [
                {
                    "id": item.id,
                    "quantity": item.quantity,
                    "product": {"name": item.product.name if item.product else "Unknown"},
                }
                for item in t.items
            ],
        }
        for t in sales
    ]


def _items_in_range(transaction_type: str, date_from: datetime | None, date_to: datetime | None):
    q = (
        db.session.query(TransactionItem, Transaction, Product)
        .join(Transaction, TransactionItem.transaction_id == Transaction.id)
        .join(Product, TransactionItem.product_id == Product.id)
        .filter(Transaction.type == transaction_type)
    )
    if date_from is not None:
        q = q.filter(Transaction.date >= date_from)
    if date_to is not None:
        q = q.filter(Transaction.date <= date_to)
    return q


@cached("reports")
def profit_and_loss(date_from: datetime | None = None, date_to: datetime | None = None) -> dict:
    """
    Revenue, purchases and gross profit for an inclusive date range.

    Cost of goods sold is estimated at each product's current cost_price;
    posted sale lines do not snapshot cost.
    """
    revenue = ZERO
    cogs = ZERO
    units_sold = 0
    sale_ids = set()
    for item, transaction, product in _items_in_range(TRANSACTION_SALE, date_from, date_to).all():
        revenue += item.quantity * item.price - item.discount
        cogs += item.quantity * product.cost_price
        units_sold += item.quantity
        sale_ids.add(transaction.id)

    purchases = ZERO
    purchase_ids = set()
    for item, transaction, _product in _items_in_range(TRANSACTION_PURCHASE, date_from, date_to).all():
        purchases += item.quantity * item.price - item.discount
        purchase_ids.add(transaction.id)

    revenue = to_money(revenue)
    cogs = to_money(cogs)
    gross_profit = revenue - cogs

    return {
        "date_from": to_utc_z(date_from),
        "date_to": to_utc_z(date_to),
        "revenue": money_str(revenue),
        "cost_of_goods_sold": money_str(cogs),
        "gross_profit": money_str(gross_profit),
        "gross_margin_percent": str((gross_profit * 100 / revenue).quantize(ZERO)) if revenue else None,
        "purchases": money_str(purchases),
        "sale_count": len(sale_ids),
        "purchase_count": len(purchase_ids),
        "units_sold": units_sold,
    }


@cached("reports")
def top_sellers(limit: int = 10) -> list[dict]:
    """Products ranked by units sold, ties broken by revenue."""
    units: dict[int, int] = defaultdict(int)
    revenue: dict[int, Decimal] = defaultdict(lambda: ZERO)
    products: dict[int, Product] = {}

    for item, _transaction, product in _items_in_range(TRANSACTION_SALE, None, None).all():
        units[product.id] += item.quantity
        revenue[product.id] += item.quantity * item.price - item.discount
        products[product.id] = product

    ranked = sorted(units, key=lambda pid: (-units[pid], -revenue[pid], pid))[:limit]
    return [
        {
            "product_id": pid,
            "sku": products[pid].sku,
            "name": products[pid].name,
            "units_sold": units[pid],
            "revenue": money_str(revenue[pid]),
        }
        for pid in ranked
    ]
