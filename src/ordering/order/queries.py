"""Order read paths: projections of stored orders and their line items."""

from sqlalchemy import select

from ordering.order.records import Order, line_item_from_row, order_from_row
from ordering.order.status import parse_status
from shared.errors import OrderAccessDenied, OrderNotFound
from shared.storage import Store, order_items, orders, products


class OrderQueries:
    def __init__(self, store: Store):
        self.store = store

    def list_orders(self, user_id, status=None) -> list[Order]:
        """The user's order headers, newest first. An empty ``status`` means no filter."""
        query = select(orders).where(orders.c.user_id == user_id)
        if status:
            query = query.where(orders.c.status == parse_status(status).value)
        query = query.order_by(orders.c.created_at.desc(), orders.c.id.desc())

        with self.store.connect() as conn:
            return [order_from_row(row) for row in conn.execute(query)]

    def get_order(self, order_id, requester_id, is_admin=False) -> Order:
        """An order with its line items, visible to its owner and to admins."""
        with self.store.connect() as conn:
            row = conn.execute(select(orders).where(orders.c.id == order_id)).first()
            if row is None:
                raise OrderNotFound(order_id)
            if row.user_id != requester_id and not is_admin:
                raise OrderAccessDenied(order_id)

            item_rows = conn.execute(
                select(order_items, products.c.name.label("product_name"))
                .select_from(order_items.join(products, order_items.c.product_id == products.c.id))
                .where(order_items.c.order_id == order_id)
                .order_by(order_items.c.id)
            ).all()

        return order_from_row(row).with_items(line_item_from_row(item) for item in item_rows)
