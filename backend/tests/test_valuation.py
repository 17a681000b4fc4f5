"""
Weighted-average cost arithmetic.

Pure functions: no app or database needed.
"""

from decimal import Decimal

import pytest

from shopstock.services.valuation import (
    apply_purchase_line,
    apply_sale_line,
    line_amount,
    transaction_total,
)
from shopstock.validation import LineItem


class TestPurchaseLine:
    def test_first_stock_takes_batch_cost(self):
        pos = apply_purchase_line(0, Decimal("0"), 10, Decimal("5.00"))
        assert pos.stock_qty == 10
        assert pos.cost_price == Decimal("5.0000")

    def test_blends_with_existing_stock(self):
        pos = apply_purchase_line(10, Decimal("5.00"), 10, Decimal("7.00"))
        assert pos.stock_qty == 20
        assert pos.cost_price == Decimal("6.0000")

    def test_discount_lowers_batch_cost(self):
        # 4 @ 10.00 less 8.00 -> batch cost 32.00 -> 8.00 each
        pos = apply_purchase_line(0, Decimal("0"), 4, Decimal("10.00"), Decimal("8.00"))
        assert pos.cost_price == Decimal("8.0000")

    def test_negative_stock_resets_to_batch_cost(self):
        pos = apply_purchase_line(-3, Decimal("99.00"), 5, Decimal("4.00"))
        assert pos.stock_qty == 2
        assert pos.cost_price == Decimal("4.0000")

    def test_zero_stock_ignores_stale_cost(self):
        pos = apply_purchase_line(0, Decimal("12.3456"), 2, Decimal("3.00"))
        assert pos.cost_price == Decimal("3.0000")

    def test_rounds_half_up_to_four_places(self):
        # (1 * 1.00 + 2 * 1.00 - 0.01) / 3 = 0.99666...
        pos = apply_purchase_line(1, Decimal("1.00"), 2, Decimal("1.00"), Decimal("0.01"))
        assert pos.cost_price == Decimal("0.9967")

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_rejects_non_positive_quantity(self, quantity):
        with pytest.raises(ValueError):
            apply_purchase_line(5, Decimal("1.00"), quantity, Decimal("1.00"))

    def test_rejects_float_money(self):
        with pytest.raises(TypeError):
            apply_purchase_line(5, Decimal("1.00"), 1, 1.5)


class TestSaleLine:
    def test_decrements_stock_only(self):
        pos = apply_sale_line(10, Decimal("5.0000"), 2)
        assert pos.stock_qty == 8
        assert pos.cost_price == Decimal("5.0000")

    def test_oversell_goes_negative(self):
        pos = apply_sale_line(1, Decimal("5.0000"), 4)
        assert pos.stock_qty == -3
        assert pos.cost_price == Decimal("5.0000")


class TestTotals:
    def test_line_amount(self):
        assert line_amount(3, Decimal("2.50"), Decimal("0.50")) == Decimal("7.00")

    def test_transaction_total_sums_lines(self):
        lines = [
            LineItem(product_id=1, quantity=2, price=Decimal("19.99")),
            LineItem(product_id=2, quantity=1, price=Decimal("4.50"), discount=Decimal("0.50")),
        ]
        assert transaction_total(lines) == Decimal("43.98")

    def test_empty_total_is_zero(self):
        assert transaction_total([]) == Decimal("0.00")
