"""Pricing Engine: turns a cart snapshot into exact order amounts.

All arithmetic is ``Decimal`` quantized to cents. Line totals are
``unit_price * quantity``; the subtotal is their exact sum; the total is
exactly ``subtotal + tax + shipping``.
"""

from decimal import Decimal

from protean.exceptions import ValidationError
from pydantic import BaseModel, ConfigDict, model_validator

from ordering.cart.snapshot import CartSnapshot
from ordering.pricing.policy import FlatPricing, PricingPolicy
from shared.storage import to_money


class PricedLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: int
    product_name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal

    @model_validator(mode="after")
    def _check_line_total(self):
        if self.total_price != self.unit_price * self.quantity:
            raise ValidationError({"total_price": ["Line total must equal unit price times quantity"]})
        return self


class Quote(BaseModel):
    model_config = ConfigDict(frozen=True)

    lines: tuple[PricedLine, ...]
    subtotal: Decimal
    tax: Decimal
    shipping_cost: Decimal
    total: Decimal

    @model_validator(mode="after")
    def _check_totals(self):
        if self.subtotal != sum((line.total_price for line in self.lines), Decimal("0")):
            raise ValidationError({"subtotal": ["Subtotal must equal the sum of the line totals"]})
        if self.total != self.subtotal + self.tax + self.shipping_cost:
            raise ValidationError({"total": ["Total must equal subtotal + tax + shipping_cost"]})
        return self


class PricingEngine:
    def __init__(self, policy: PricingPolicy | None = None):
        self.policy = policy or FlatPricing()

    def price(self, snapshot: CartSnapshot) -> Quote:
        lines = tuple(
            PricedLine(
                product_id=line.product_id,
                product_name=line.product_name,
                quantity=line.quantity,
                unit_price=to_money(line.unit_price),
                total_price=to_money(line.unit_price) * line.quantity,
            )
            for line in snapshot.lines
        )
        subtotal = to_money(sum((line.total_price for line in lines), Decimal("0")))
        tax = to_money(self.policy.tax_for(subtotal, lines))
        shipping_cost = to_money(self.policy.shipping_for(subtotal, lines))

        return Quote(
            lines=lines,
            subtotal=subtotal,
            tax=tax,
            shipping_cost=shipping_cost,
            total=subtotal + tax + shipping_cost,
        )
