"""Cart line management: add, update, remove and clear.

Each write enforces the cart line invariants at write time: one line per
(user, product), quantity of at least one, and never more than the
product's current stock.
"""

from datetime import datetime

from protean.exceptions import ValidationError
from pydantic import BaseModel, ConfigDict, model_validator
from sqlalchemy import and_, delete, func, insert, or_, select, update

from ordering.cart.snapshot import CartMaterializer, CartSnapshot
from shared.errors import CartChanged, CartLineNotFound, InsufficientStock, InvalidQuantity, ProductNotFound
from shared.logging import get_logger
from shared.storage import Store, cart_items, products

logger = get_logger(__name__)


class CartLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    user_id: int
    product_id: int
    quantity: int
    created_at: datetime | None = None

    @model_validator(mode="after")
    def _quantity_is_positive(self):
        if self.quantity < 1:
            raise ValidationError({"quantity": ["Cart line quantity must be at least 1"]})
        return self


def _validated_quantity(quantity) -> int:
    if isinstance(quantity, bool):
        raise InvalidQuantity(quantity)
    try:
        qty = int(quantity)
    except (TypeError, ValueError):
        raise InvalidQuantity(quantity) from None
    if qty < 1:
        raise InvalidQuantity(quantity)
    return qty


class CartLines:
    def __init__(self, store: Store, materializer: CartMaterializer | None = None):
        self.store = store
        self.materializer = materializer or CartMaterializer(store)

    def view(self, user_id) -> CartSnapshot:
        """The user's cart, newest lines first."""
        return self.materializer.load(user_id, newest_first=True)

    def add(self, user_id, product_id, quantity) -> CartLine:
        """Add ``quantity`` units, merging into an existing line for the product."""
        qty = _validated_quantity(quantity)

        with self.store.begin() as conn:
            stock = conn.execute(
                select(products.c.stock_quantity)
                .where(products.c.id == product_id)
                .where(products.c.is_active.is_(True))
            ).scalar_one_or_none()
            if stock is None:
                raise ProductNotFound(product_id)

            existing = conn.execute(
                select(cart_items.c.id, cart_items.c.quantity)
                .where(cart_items.c.user_id == user_id)
                .where(cart_items.c.product_id == product_id)
            ).first()

            new_quantity = existing.quantity + qty if existing else qty
            if new_quantity > stock:
                raise InsufficientStock(product_id, stock, requested=new_quantity)

            if existing:
                conn.execute(update(cart_items).where(cart_items.c.id == existing.id).values(quantity=new_quantity))
                line_id = existing.id
            else:
                result = conn.execute(insert(cart_items).values(user_id=user_id, product_id=product_id, quantity=qty))
                line_id = result.inserted_primary_key[0]

            line = self._get(conn, user_id, line_id)

        logger.debug("cart_line_added", user_id=user_id, product_id=product_id, quantity=line.quantity)
        return line

    def update(self, user_id, line_id, quantity) -> CartLine:
        """Replace a line's quantity."""
        qty = _validated_quantity(quantity)

        with self.store.begin() as conn:
            row = conn.execute(
                select(cart_items.c.id, products.c.stock_quantity)
                .select_from(cart_items.join(products, cart_items.c.product_id == products.c.id))
                .where(cart_items.c.id == line_id)
                .where(cart_items.c.user_id == user_id)
            ).first()
            if row is None:
                raise CartLineNotFound(line_id)
            if qty > row.stock_quantity:
                line = self._get(conn, user_id, line_id)
                raise InsufficientStock(line.product_id, row.stock_quantity, requested=qty)

            conn.execute(
                update(cart_items)
                .where(cart_items.c.id == line_id)
                .where(cart_items.c.user_id == user_id)
                .values(quantity=qty)
            )
            return self._get(conn, user_id, line_id)

    def remove(self, user_id, line_id):
        with self.store.begin() as conn:
            result = conn.execute(
                delete(cart_items).where(cart_items.c.id == line_id).where(cart_items.c.user_id == user_id)
            )
            if result.rowcount == 0:
                raise CartLineNotFound(line_id)

    def clear(self, user_id, conn=None) -> int:
        """Delete every line the user owns. Returns the number removed."""
        statement = delete(cart_items).where(cart_items.c.user_id == user_id)
        if conn is not None:
            return conn.execute(statement).rowcount
        with self.store.begin() as conn:
            return conn.execute(statement).rowcount

    def consume(self, conn, snapshot: CartSnapshot):
        """Delete the snapshot's lines inside the caller's transaction.

        Each line must still exist with the quantity the snapshot read, and no
        other line for an active product may have appeared since; otherwise
        ``CartChanged`` is raised and the caller rolls back. Lines left over
        for inactive products go with the rest of the cart.
        """
        matches = or_(
            *(
                and_(cart_items.c.id == line.line_id, cart_items.c.quantity == line.quantity)
                for line in snapshot.lines
            )
        )
        removed = conn.execute(
            delete(cart_items).where(cart_items.c.user_id == snapshot.user_id).where(matches)
        ).rowcount
        if removed != len(snapshot.lines):
            raise CartChanged(snapshot.user_id)

        added_since = conn.execute(
            select(func.count())
            .select_from(cart_items.join(products, cart_items.c.product_id == products.c.id))
            .where(cart_items.c.user_id == snapshot.user_id)
            .where(products.c.is_active.is_(True))
        ).scalar_one()
        if added_since:
            raise CartChanged(snapshot.user_id)

        self.clear(snapshot.user_id, conn=conn)

    @staticmethod
    def _get(conn, user_id, line_id) -> CartLine:
        row = conn.execute(
            select(cart_items).where(cart_items.c.id == line_id).where(cart_items.c.user_id == user_id)
        ).first()
        if row is None:
            raise CartLineNotFound(line_id)
        return CartLine(
            id=row.id,
            user_id=row.user_id,
            product_id=row.product_id,
            quantity=row.quantity,
            created_at=row.created_at,
        )
