"""Address ownership checks used at checkout."""

from sqlalchemy import select

from shared.errors import InvalidAddress
from shared.storage import Store, addresses


class AddressValidator:
    """Confirms that an address reference belongs to the requesting user."""

    def __init__(self, store: Store):
        self.store = store

    def validate(self, user_id, address_id, field="address_id", conn=None):
        """Pass silently when ``address_id`` is absent or owned by ``user_id``.

        Raises ``InvalidAddress`` naming ``field`` otherwise.
        """
        if address_id is None:
            return
        if conn is None:
            with self.store.connect() as conn:
                owned = self._is_owned(conn, user_id, address_id)
        else:
            owned = self._is_owned(conn, user_id, address_id)
        if not owned:
            raise InvalidAddress(field, address_id)

    def validate_checkout(self, user_id, shipping_address_id=None, billing_address_id=None):
        with self.store.connect() as conn:
            self.validate(user_id, shipping_address_id, "shipping_address_id", conn=conn)
            self.validate(user_id, billing_address_id, "billing_address_id", conn=conn)

    @staticmethod
    def _is_owned(conn, user_id, address_id):
        row = conn.execute(
            select(addresses.c.id).where(addresses.c.id == address_id).where(addresses.c.user_id == user_id)
        ).first()
        return row is not None
