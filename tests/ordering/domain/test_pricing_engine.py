"""Tests for the pricing engine and pricing policies."""

from decimal import Decimal

import pytest
from ordering.cart.snapshot import CartSnapshot, SnapshotLine
from ordering.pricing.engine import PricingEngine
from ordering.pricing.policy import FlatPricing, PercentagePricing, build_pricing_policy
from shared.config import Settings


def _line(product_id, price, quantity, stock=100):
    return SnapshotLine(
        line_id=product_id,
        product_id=product_id,
        product_name=f"Product {product_id}",
        quantity=quantity,
        unit_price=Decimal(price),
        stock_quantity=stock,
    )


def _snapshot(*lines):
    return CartSnapshot(user_id=1, lines=tuple(lines))


class TestFlatPricing:
    def test_example_cart(self):
        quote = PricingEngine().price(_snapshot(_line(1, "10.00", 2), _line(2, "5.00", 1)))
        assert quote.subtotal == Decimal("25.00")
        assert quote.tax == Decimal("0.00")
        assert quote.shipping_cost == Decimal("0.00")
        assert quote.total == Decimal("25.00")

    def test_line_totals_are_price_times_quantity(self):
        quote = PricingEngine().price(_snapshot(_line(1, "19.99", 3)))
        assert quote.lines[0].unit_price == Decimal("19.99")
        assert quote.lines[0].total_price == Decimal("59.97")

    def test_no_binary_float_drift(self):
        lines = [_line(i, "0.10", 1) for i in range(1, 11)]
        quote = PricingEngine().price(_snapshot(*lines))
        assert quote.subtotal == Decimal("1.00")
        assert isinstance(quote.total, Decimal)

    def test_total_is_exact_sum(self):
        quote = PricingEngine(FlatPricing()).price(_snapshot(_line(1, "0.01", 7), _line(2, "3.33", 3)))
        assert quote.total == quote.subtotal + quote.tax + quote.shipping_cost
        assert quote.subtotal == sum(line.total_price for line in quote.lines)

    def test_lines_keep_snapshot_order(self):
        quote = PricingEngine().price(_snapshot(_line(3, "1.00", 1), _line(1, "2.00", 1)))
        assert [line.product_id for line in quote.lines] == [3, 1]


class TestPercentagePricing:
    def test_tax_rounds_half_up_to_cents(self):
        policy = PercentagePricing(tax_rate="0.075")
        quote = PricingEngine(policy).price(_snapshot(_line(1, "10.10", 1)))
        # 10.10 * 0.075 = 0.7575
        assert quote.tax == Decimal("0.76")
        assert quote.total == Decimal("10.86")

    def test_flat_shipping_added(self):
        policy = PercentagePricing(flat_shipping="4.99")
        quote = PricingEngine(policy).price(_snapshot(_line(1, "20.00", 1)))
        assert quote.shipping_cost == Decimal("4.99")
        assert quote.total == Decimal("24.99")

    def test_free_shipping_at_threshold(self):
        policy = PercentagePricing(flat_shipping="4.99", free_shipping_threshold="50")
        quote = PricingEngine(policy).price(_snapshot(_line(1, "25.00", 2)))
        assert quote.shipping_cost == Decimal("0.00")

    def test_below_threshold_pays_shipping(self):
        policy = PercentagePricing(flat_shipping="4.99", free_shipping_threshold="50")
        quote = PricingEngine(policy).price(_snapshot(_line(1, "49.99", 1)))
        assert quote.shipping_cost == Decimal("4.99")

    def test_negative_rate_rejected(self):
        with pytest.raises(ValueError):
            PercentagePricing(tax_rate="-0.1")


class TestBuildPricingPolicy:
    def test_flat_by_default(self):
        assert isinstance(build_pricing_policy(Settings()), FlatPricing)

    def test_percentage(self):
        policy = build_pricing_policy(Settings(pricing_policy="percentage", tax_rate=Decimal("0.2")))
        assert isinstance(policy, PercentagePricing)
        assert policy.tax_rate == Decimal("0.2")

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            build_pricing_policy(Settings(pricing_policy="tiered"))
