"""Cart Materializer: point-in-time, priced view of a user's cart.

A snapshot is immutable: it records the price and stock each product had at
the instant of the read. Checkout prices line items from the snapshot and
never re-reads product prices, while the inventory ledger re-checks stock
at write time.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select

from shared.storage import Store, cart_items, products


@dataclass(frozen=True)
class SnapshotLine:
    line_id: int
    product_id: int
    product_name: str
    quantity: int
    unit_price: Decimal
    stock_quantity: int
    image_url: str | None = None
    added_at: datetime | None = None

    @property
    def exceeds_stock(self) -> bool:
        return self.quantity > self.stock_quantity


@dataclass(frozen=True)
class CartSnapshot:
    user_id: int
    lines: tuple[SnapshotLine, ...]

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def first_shortfall(self) -> SnapshotLine | None:
        """The first line asking for more than the snapshot's stock, if any."""
        return next((line for line in self.lines if line.exceeds_stock), None)


class CartMaterializer:
    """Joins a user's cart lines with their active products' price and stock."""

    def __init__(self, store: Store):
        self.store = store

    def load(self, user_id, newest_first=False, conn=None) -> CartSnapshot:
        """Return the user's snapshot; an empty cart yields an empty snapshot.

        Lines are ordered by insertion (oldest first) unless ``newest_first``.
        Lines for inactive products are left out.
        """
        order_by = (
            (cart_items.c.created_at.desc(), cart_items.c.id.desc())
            if newest_first
            else (cart_items.c.created_at, cart_items.c.id)
        )
        query = (
            select(
                cart_items.c.id,
                cart_items.c.product_id,
                cart_items.c.quantity,
                cart_items.c.created_at,
                products.c.name,
                products.c.price,
                products.c.stock_quantity,
                products.c.image_url,
            )
            .select_from(cart_items.join(products, cart_items.c.product_id == products.c.id))
            .where(cart_items.c.user_id == user_id)
            .where(products.c.is_active.is_(True))
            .order_by(*order_by)
        )

        if conn is None:
            with self.store.connect() as conn:
                rows = conn.execute(query).all()
        else:
            rows = conn.execute(query).all()

        return CartSnapshot(
            user_id=user_id,
            lines=tuple(
                SnapshotLine(
                    line_id=row.id,
                    product_id=row.product_id,
                    product_name=row.name,
                    quantity=row.quantity,
                    unit_price=row.price,
                    stock_quantity=row.stock_quantity,
                    image_url=row.image_url,
                    added_at=row.created_at,
                )
                for row in rows
            ),
        )
