"""Pydantic request/response schemas for the Ordering API.

These are external contracts, kept separate from the internal records.
Monetary amounts are ``Decimal`` and serialize as strings ("25.00").
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from ordering.cart.lines import CartLine
from ordering.cart.snapshot import SnapshotLine
from ordering.order.records import Order, OrderLineItem


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: int
    quantity: int = 1

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": 1,
                    "quantity": 2,
                }
            ]
        }
    }


class UpdateCartItemRequest(BaseModel):
    quantity: int


class CartProductSchema(BaseModel):
    name: str
    price: Decimal
    image_url: str | None = None
    stock_quantity: int


class CartViewItemSchema(BaseModel):
    id: int
    product_id: int
    quantity: int
    created_at: datetime | None = None
    product: CartProductSchema

    @classmethod
    def from_line(cls, line: SnapshotLine) -> "CartViewItemSchema":
        return cls(
            id=line.line_id,
            product_id=line.product_id,
            quantity=line.quantity,
            created_at=line.added_at,
            product=CartProductSchema(
                name=line.product_name,
                price=line.unit_price,
                image_url=line.image_url,
                stock_quantity=line.stock_quantity,
            ),
        )


class CartResponse(BaseModel):
    cart: list[CartViewItemSchema]


class CartLineSchema(BaseModel):
    id: int
    product_id: int
    quantity: int
    created_at: datetime | None = None

    @classmethod
    def from_line(cls, line: CartLine) -> "CartLineSchema":
        return cls(id=line.id, product_id=line.product_id, quantity=line.quantity, created_at=line.created_at)


class CartLineResponse(BaseModel):
    item: CartLineSchema


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class CheckoutRequestSchema(BaseModel):
    shipping_address_id: int | None = None
    billing_address_id: int | None = None
    notes: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "shipping_address_id": 1,
                    "billing_address_id": 1,
                    "notes": "Leave at the front desk",
                }
            ]
        }
    }


class UpdateOrderStatusRequest(BaseModel):
    status: str | None = None


class OrderItemSchema(BaseModel):
    id: int | None = None
    product_id: int
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    product_name: str | None = None

    @classmethod
    def from_item(cls, item: OrderLineItem) -> "OrderItemSchema":
        return cls(
            id=item.id,
            product_id=item.product_id,
            quantity=item.quantity,
            unit_price=item.unit_price,
            total_price=item.total_price,
            product_name=item.product_name,
        )


class OrderSchema(BaseModel):
    id: int
    user_id: int
    shipping_address_id: int | None = None
    billing_address_id: int | None = None
    status: str
    subtotal: Decimal
    tax: Decimal
    shipping_cost: Decimal
    total: Decimal
    notes: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    items: list[OrderItemSchema] | None = None

    @classmethod
    def from_order(cls, order: Order, include_items=True) -> "OrderSchema":
        return cls(
            id=order.id,
            user_id=order.user_id,
            shipping_address_id=order.shipping_address_id,
            billing_address_id=order.billing_address_id,
            status=order.status.value,
            subtotal=order.subtotal,
            tax=order.tax,
            shipping_cost=order.shipping_cost,
            total=order.total,
            notes=order.notes,
            created_at=order.created_at,
            updated_at=order.updated_at,
            items=[OrderItemSchema.from_item(item) for item in order.items] if include_items else None,
        )


class OrderResponse(BaseModel):
    order: OrderSchema


class OrderListResponse(BaseModel):
    orders: list[OrderSchema]
