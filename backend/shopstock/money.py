# Overview: Decimal precision rules shared by models, validation and the valuation engine.

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

# Prices, discounts and transaction totals
MONEY_PLACES = 2
MONEY_QUANTUM = Decimal("0.01")

# Weighted-average unit cost keeps two extra places so repeated blending does not drift
COST_PLACES = 4
COST_QUANTUM = Decimal("0.0001")

ZERO = Decimal("0")

# Largest value a Numeric(12, 2) column holds
MAX_MONEY = Decimal("9999999999.99")


def to_money(value) -> Decimal:
    return Decimal(value).quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def to_cost(value) -> Decimal:
    return Decimal(value).quantize(COST_QUANTUM, rounding=ROUND_HALF_UP)


def money_str(value) -> str | None:
    """JSON-safe money representation ("19.99"); decimals never go through float."""
    if value is None:
        return None
    return str(to_money(value))


def cost_str(value) -> str | None:
    if value is None:
        return None
    return str(to_cost(value))
