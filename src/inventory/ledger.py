"""Inventory Ledger: the only writer of ``products.stock_quantity``.

Every stock mutation is a single conditional ``UPDATE``: the stock predicate
and the arithmetic run inside the database in one statement, so two
concurrent writers can never both pass a check that only one of them should.
Reads taken earlier (cart snapshots, advisory checks) are never trusted here.

Stock Model:
    stock_quantity >= 0 at all times (also enforced by a CHECK constraint)
    decrement(n):  succeeds only if stock_quantity >= n
    adjust(delta): succeeds only if stock_quantity + delta >= 0
    restock(n):    always succeeds for an existing product
"""

from sqlalchemy import select, update

from shared.errors import InsufficientStock, InvalidQuantity, ProductNotFound
from shared.logging import get_logger
from shared.storage import Store, products, utcnow

logger = get_logger(__name__)


class InventoryLedger:
    def __init__(self, store: Store):
        self.store = store

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def available(self, product_id, conn=None) -> int:
        """Current stock for a product, raising ``ProductNotFound`` if unknown."""
        if conn is None:
            with self.store.connect() as conn:
                return self._read_stock(conn, product_id)
        return self._read_stock(conn, product_id)

    def _read_stock(self, conn, product_id):
        stock = conn.execute(
            select(products.c.stock_quantity).where(products.c.id == product_id)
        ).scalar_one_or_none()
        if stock is None:
            raise ProductNotFound(product_id)
        return stock

    # -------------------------------------------------------------------
    # Conditional decrement (checkout)
    # -------------------------------------------------------------------
    def decrement(self, conn, product_id, quantity):
        """Take ``quantity`` units out of stock inside the caller's transaction.

        The change becomes visible only when the caller commits. Raises
        ``InsufficientStock`` with the quantity available at write time when
        the guard fails.
        """
        if quantity < 1:
            raise InvalidQuantity(quantity)

        result = conn.execute(
            update(products)
            .where(products.c.id == product_id)
            .where(products.c.stock_quantity >= quantity)
            .values(
                stock_quantity=products.c.stock_quantity - quantity,
                updated_at=utcnow(),
            )
        )
        if result.rowcount == 1:
            return

        available = self._read_stock(conn, product_id)
        logger.info(
            "stock_decrement_refused",
            product_id=product_id,
            requested=quantity,
            available=available,
        )
        raise InsufficientStock(product_id, available, requested=quantity)

    # -------------------------------------------------------------------
    # Product management adjustments
    # -------------------------------------------------------------------
    def restock(self, product_id, quantity) -> int:
        """Add received units to stock. Returns the new stock level."""
        if quantity < 1:
            raise InvalidQuantity(quantity)

        with self.store.begin() as conn:
            result = conn.execute(
                update(products)
                .where(products.c.id == product_id)
                .values(
                    stock_quantity=products.c.stock_quantity + quantity,
                    updated_at=utcnow(),
                )
            )
            if result.rowcount == 0:
                raise ProductNotFound(product_id)
            new_stock = self._read_stock(conn, product_id)

        logger.info("stock_restocked", product_id=product_id, quantity=quantity, new_stock=new_stock)
        return new_stock

    def adjust(self, product_id, delta) -> int:
        """Apply a signed correction, refusing to drive stock below zero."""
        with self.store.begin() as conn:
            result = conn.execute(
                update(products)
                .where(products.c.id == product_id)
                .where(products.c.stock_quantity + delta >= 0)
                .values(
                    stock_quantity=products.c.stock_quantity + delta,
                    updated_at=utcnow(),
                )
            )
            if result.rowcount == 0:
                available = self._read_stock(conn, product_id)
                raise InsufficientStock(product_id, available, requested=-delta)
            new_stock = self._read_stock(conn, product_id)

        logger.info("stock_adjusted", product_id=product_id, delta=delta, new_stock=new_stock)
        return new_stock
