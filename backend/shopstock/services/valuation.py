# Overview: Pure stock/cost arithmetic applied per posted transaction line.

"""
Valuation Engine

Weighted-average cost (WAC), folded forward one purchase line at a time:

    new_stock = stock + q
    effective = q * price - discount          (cost of the incoming batch)
    new_cost  = effective / q                           if stock <= 0
              = (stock * cost + effective) / new_stock  otherwise

A stock position at or below zero has nothing to weight against, so the
incoming batch becomes the new baseline. Oversold (negative) stock therefore
discards its cost history on the next purchase; this is long-standing
behaviour and is kept as is.

SALE lines only decrement stock. There is no floor: overselling drives
stock_qty negative and leaves cost_price untouched.

Decimal in, Decimal out. Floats are rejected so binary rounding never
reaches a stored cost.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from ..money import ZERO, to_cost, to_money


@dataclass(frozen=True)
class StockPosition:
    stock_qty: int
    cost_price: Decimal


def _as_decimal(value, name: str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return Decimal(value)
    raise TypeError(f"{name} must be a Decimal or int, got {type(value).__name__}")


def line_amount(quantity: int, price: Decimal, discount: Decimal = ZERO) -> Decimal:
    """quantity * price - discount, unrounded."""
    return quantity * _as_decimal(price, "price") - _as_decimal(discount, "discount")


def transaction_total(lines: Iterable) -> Decimal:
    """
    Sum of line amounts, rounded to cents.

    Accepts anything with quantity/price/discount attributes (LineItem,
    TransactionItem).
    """
    total = ZERO
    for line in lines:
        total += line_amount(line.quantity, line.price, line.discount)
    return to_money(total)


def apply_purchase_line(
    current_stock_qty: int,
    current_cost_price: Decimal,
    quantity: int,
    price: Decimal,
    discount: Decimal = ZERO,
) -> StockPosition:
    if quantity <= 0:
        raise ValueError("purchase quantity must be positive")

    current_cost_price = _as_decimal(current_cost_price, "current_cost_price")
    effective_cost = line_amount(quantity, price, discount)
    new_stock = current_stock_qty + quantity

    if current_stock_qty <= 0:
        new_cost = effective_cost / quantity
    else:
        new_cost = (current_stock_qty * current_cost_price + effective_cost) / new_stock

    return StockPosition(stock_qty=new_stock, cost_price=to_cost(new_cost))


def apply_sale_line(current_stock_qty: int, current_cost_price: Decimal, quantity: int) -> StockPosition:
    if quantity <= 0:
        raise ValueError("sale quantity must be positive")
    return StockPosition(
        stock_qty=current_stock_qty - quantity,
        cost_price=_as_decimal(current_cost_price, "current_cost_price"),
    )
