"""Pricing policy port: pluggable tax and shipping rules.

The checkout coordinator programs against ``PricingPolicy``; concrete
policies are swapped via configuration without touching checkout code.
"""

from abc import ABC, abstractmethod
from decimal import Decimal

from shared.config import Settings
from shared.storage import to_money

ZERO = Decimal("0.00")


class PricingPolicy(ABC):
    """Abstract interface for tax and shipping rules."""

    @abstractmethod
    def tax_for(self, subtotal: Decimal, lines) -> Decimal:
        """Tax owed on an order with the given subtotal and priced lines."""
        ...

    @abstractmethod
    def shipping_for(self, subtotal: Decimal, lines) -> Decimal:
        """Shipping cost for an order with the given subtotal and priced lines."""
        ...


class FlatPricing(PricingPolicy):
    """No tax, no shipping."""

    def tax_for(self, subtotal, lines):
        return ZERO

    def shipping_for(self, subtotal, lines):
        return ZERO


class PercentagePricing(PricingPolicy):
    """Percentage tax on the subtotal and a flat shipping fee.

    Shipping is waived once the subtotal reaches ``free_shipping_threshold``.
    """

    def __init__(self, tax_rate="0", flat_shipping="0", free_shipping_threshold=None):
        self.tax_rate = Decimal(str(tax_rate))
        if self.tax_rate < 0:
            raise ValueError(f"Tax rate must not be negative: {tax_rate}")
        self.flat_shipping = to_money(flat_shipping)
        self.free_shipping_threshold = (
            to_money(free_shipping_threshold) if free_shipping_threshold is not None else None
        )

    def tax_for(self, subtotal, lines):
        return to_money(subtotal * self.tax_rate)

    def shipping_for(self, subtotal, lines):
        if not lines:
            return ZERO
        if self.free_shipping_threshold is not None and subtotal >= self.free_shipping_threshold:
            return ZERO
        return self.flat_shipping


def build_pricing_policy(settings: Settings) -> PricingPolicy:
    """Return the pricing policy selected by ``settings.pricing_policy``."""
    if settings.pricing_policy == "flat":
        return FlatPricing()
    if settings.pricing_policy == "percentage":
        return PercentagePricing(
            tax_rate=settings.tax_rate,
            flat_shipping=settings.flat_shipping,
            free_shipping_threshold=settings.free_shipping_threshold,
        )
    raise ValueError(f"Unknown pricing policy: {settings.pricing_policy}")
