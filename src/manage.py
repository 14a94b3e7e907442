"""Storefront management CLI.

Creates and drops the database schema and applies stock adjustments through
the inventory ledger, against the database named by ``DATABASE_URL``.

Usage:
    python src/manage.py setup-db              # Create all tables
    python src/manage.py drop-db               # Drop all tables
    python src/manage.py restock 12 40         # Add 40 units to product 12
    python src/manage.py adjust 12 -- -3       # Remove 3 units from product 12
"""

import argparse
import sys

from inventory.ledger import InventoryLedger
from shared.config import Settings
from shared.errors import InsufficientStock, InvalidQuantity, ProductNotFound
from shared.storage import create_store, drop_db, setup_db


def main(argv=None):
    parser = argparse.ArgumentParser(description="Storefront database management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    restock_parser = subparsers.add_parser("restock", help="Add received units to a product's stock")
    restock_parser.add_argument("product_id", type=int)
    restock_parser.add_argument("quantity", type=int)

    adjust_parser = subparsers.add_parser("adjust", help="Apply a signed stock correction")
    adjust_parser.add_argument("product_id", type=int)
    adjust_parser.add_argument("delta", type=int)

    args = parser.parse_args(argv)

    store = create_store(Settings.from_env())
    try:
        if args.command == "setup-db":
            setup_db(store)
            print("Schema ready.")
        elif args.command == "drop-db":
            drop_db(store)
            print("Schema dropped.")
        elif args.command == "restock":
            new_stock = InventoryLedger(store).restock(args.product_id, args.quantity)
            print(f"Product {args.product_id} stock: {new_stock}")
        elif args.command == "adjust":
            new_stock = InventoryLedger(store).adjust(args.product_id, args.delta)
            print(f"Product {args.product_id} stock: {new_stock}")
    except (InsufficientStock, InvalidQuantity, ProductNotFound) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        store.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(main())
