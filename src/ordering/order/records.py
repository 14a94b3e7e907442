"""Order header and line item records.

An order is immutable once created except for ``status`` and
``updated_at``; line items never change. Unit prices are the prices
captured in the cart snapshot at checkout, not the product's current price.

Both records check their arithmetic when built: a line's total is its unit
price times its quantity, and an order's total is exactly its subtotal plus
tax plus shipping. An order carrying its items must also have a subtotal
equal to the sum of their totals.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from protean.exceptions import ValidationError
from pydantic import BaseModel, ConfigDict, model_validator


class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @classmethod
    def values(cls) -> list[str]:
        return [status.value for status in cls]


class OrderLineItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int | None = None
    order_id: int | None = None
    product_id: int
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    product_name: str | None = None

    @model_validator(mode="after")
    def _check_line_total(self):
        if self.quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})
        if self.unit_price < 0:
            raise ValidationError({"unit_price": ["Unit price cannot be negative"]})
        if self.total_price != self.unit_price * self.quantity:
            raise ValidationError({"total_price": ["Line total must equal unit price times quantity"]})
        return self


class Order(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    user_id: int
    status: OrderStatus
    subtotal: Decimal
    tax: Decimal
    shipping_cost: Decimal
    total: Decimal
    created_at: datetime
    updated_at: datetime | None = None
    shipping_address_id: int | None = None
    billing_address_id: int | None = None
    notes: str | None = None
    items: tuple[OrderLineItem, ...] = ()

    @model_validator(mode="after")
    def _check_amounts(self):
        for name in ("subtotal", "tax", "shipping_cost"):
            if getattr(self, name) < 0:
                raise ValidationError({name: [f"{name} cannot be negative"]})
        if self.total != self.subtotal + self.tax + self.shipping_cost:
            raise ValidationError({"total": ["Total must equal subtotal + tax + shipping_cost"]})
        if self.items and self.subtotal != sum(item.total_price for item in self.items):
            raise ValidationError({"subtotal": ["Subtotal must equal the sum of the line totals"]})
        return self

    def with_items(self, items) -> "Order":
        return Order(**{**dict(self), "items": tuple(items)})


def order_from_row(row) -> Order:
    return Order(
        id=row.id,
        user_id=row.user_id,
        status=OrderStatus(row.status),
        subtotal=row.subtotal,
        tax=row.tax,
        shipping_cost=row.shipping_cost,
        total=row.total,
        created_at=row.created_at,
        updated_at=row.updated_at,
        shipping_address_id=row.shipping_address_id,
        billing_address_id=row.billing_address_id,
        notes=row.notes,
    )


def line_item_from_row(row) -> OrderLineItem:
    return OrderLineItem(
        id=row.id,
        order_id=row.order_id,
        product_id=row.product_id,
        quantity=row.quantity,
        unit_price=row.unit_price,
        total_price=row.total_price,
        product_name=getattr(row, "product_name", None),
    )
