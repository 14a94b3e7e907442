"""Tests for the arithmetic checks on order, cart and pricing records."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest
from ordering.cart.lines import CartLine
from ordering.order.records import Order, OrderLineItem, OrderStatus
from ordering.pricing.engine import PricedLine, Quote
from protean.exceptions import ValidationError


def _item(product_id=1, quantity=2, unit_price="10.00", total_price="20.00"):
    return OrderLineItem(
        product_id=product_id,
        quantity=quantity,
        unit_price=Decimal(unit_price),
        total_price=Decimal(total_price),
    )


def _order(subtotal="25.00", tax="0.00", shipping_cost="0.00", total="25.00", items=()):
    return Order(
        id=1,
        user_id=1,
        status=OrderStatus.PENDING,
        subtotal=Decimal(subtotal),
        tax=Decimal(tax),
        shipping_cost=Decimal(shipping_cost),
        total=Decimal(total),
        created_at=datetime.now(UTC),
        items=items,
    )


class TestOrderLineItem:
    def test_consistent_line(self):
        assert _item().total_price == Decimal("20.00")

    def test_total_must_match_price_times_quantity(self):
        with pytest.raises(ValidationError) as exc_info:
            _item(total_price="19.99")
        assert "total_price" in exc_info.value.messages

    def test_quantity_must_be_positive(self):
        with pytest.raises(ValidationError) as exc_info:
            _item(quantity=0, total_price="0.00")
        assert "quantity" in exc_info.value.messages

    def test_negative_price(self):
        with pytest.raises(ValidationError):
            _item(unit_price="-1.00", total_price="-2.00")

    def test_line_is_immutable(self):
        item = _item()
        with pytest.raises(Exception):
            item.quantity = 5


class TestOrder:
    def test_consistent_order(self):
        order = _order(subtotal="25.00", tax="2.00", shipping_cost="4.99", total="31.99")
        assert order.total == Decimal("31.99")

    def test_total_must_be_exact_sum(self):
        with pytest.raises(ValidationError) as exc_info:
            _order(total="24.99")
        assert "total" in exc_info.value.messages

    def test_negative_tax(self):
        with pytest.raises(ValidationError) as exc_info:
            _order(tax="-1.00", total="24.00")
        assert "tax" in exc_info.value.messages

    def test_subtotal_must_match_items(self):
        with pytest.raises(ValidationError) as exc_info:
            _order(items=(_item(),))
        assert "subtotal" in exc_info.value.messages

    def test_header_without_items(self):
        assert _order().items == ()

    def test_with_items_checks_the_new_items(self):
        order = _order(subtotal="25.00", total="25.00")
        complete = order.with_items([_item(), _item(product_id=2, quantity=1, unit_price="5.00", total_price="5.00")])
        assert len(complete.items) == 2
        assert order.items == ()

        with pytest.raises(ValidationError):
            order.with_items([_item()])


class TestCartLine:
    def test_positive_quantity(self):
        assert CartLine(id=1, user_id=1, product_id=1, quantity=1).quantity == 1

    def test_zero_quantity(self):
        with pytest.raises(ValidationError):
            CartLine(id=1, user_id=1, product_id=1, quantity=0)


class TestQuote:
    def _line(self, total_price="20.00"):
        return PricedLine(
            product_id=1,
            product_name="A",
            quantity=2,
            unit_price=Decimal("10.00"),
            total_price=Decimal(total_price),
        )

    def test_priced_line_total(self):
        with pytest.raises(ValidationError):
            self._line(total_price="21.00")

    def test_subtotal_must_match_lines(self):
        with pytest.raises(ValidationError) as exc_info:
            Quote(
                lines=(self._line(),),
                subtotal=Decimal("19.00"),
                tax=Decimal("0.00"),
                shipping_cost=Decimal("0.00"),
                total=Decimal("19.00"),
            )
        assert "subtotal" in exc_info.value.messages

    def test_total_must_be_exact_sum(self):
        with pytest.raises(ValidationError) as exc_info:
            Quote(
                lines=(self._line(),),
                subtotal=Decimal("20.00"),
                tax=Decimal("1.00"),
                shipping_cost=Decimal("0.00"),
                total=Decimal("20.00"),
            )
        assert "total" in exc_info.value.messages
