"""PulseQueue operator CLI.

Manages the inventory store and runs a purchase through both stages locally.
The store is chosen the same way the processing units choose it:
INVENTORY_DATABASE_URI selects the SQL store, otherwise an in-memory one.

Usage:
    python src/manage.py setup-db                       # Create inventory tables
    python src/manage.py drop-db                        # Drop inventory tables
    python src/manage.py seed --sku SKU-1 --sku SKU-2   # Stock 100, reserved 0
    python src/manage.py place-order --customer c-1 --item SKU-1:2 --force-outcome SUCCESS
"""

import argparse
import sys


def _sql_store(config):
    from inventory.store.sqlalchemy_adapter import SqlInventoryStore

    if not config.inventory_db_uri:
        print("INVENTORY_DATABASE_URI is not set; nothing to do for the in-memory store.")
        sys.exit(1)
    return SqlInventoryStore.from_uri(config.inventory_db_uri, table_name=config.inventory_table_name)


def setup_database(config):
    """Create the inventory, settlement-marker and settlement-ledger tables."""
    store = _sql_store(config)
    print(f"Creating {config.inventory_table_name} schema...")
    store.setup_schema()
    print("Done.")


def drop_database(config):
    """Drop the inventory tables."""
    store = _sql_store(config)
    print(f"Dropping {config.inventory_table_name} schema...")
    store.drop_schema()
    print("Done.")


def seed(config, skus, stock):
    from inventory.seeding import seed_inventory
    from inventory.store import build_inventory_store

    store = build_inventory_store(config)
    for sku in seed_inventory(store, skus, stock=stock):
        print(f"  {sku}: stock={stock} reserved=0")
    print("Done.")


def _parse_item(value):
    sku, sep, quantity = value.rpartition(":")
    if not sep or not sku:
        raise argparse.ArgumentTypeError(f"Expected SKU:QUANTITY, got {value!r}")
    try:
        return {"sku": sku, "quantity": int(quantity)}
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Quantity must be an integer, got {quantity!r}") from exc


def place_order(config, customer_id, items, force_outcome=None, stock=100):
    """Run one purchase through reservation and settlement in this process."""
    from inventory.seeding import seed_inventory
    from inventory.store import build_inventory_store
    from ordering.handler import ensure_domain, handle_purchase_request
    from ordering.purchase import ReservationStage, set_reservation_stage
    from payments.authorizer import CoinFlipAuthorizer, ForcedOutcomeAuthorizer
    from payments.handler import handle_settlement_request
    from payments.settlement import SettlementStage, set_settlement_stage
    from shared.bus import InMemoryEventBus

    store = build_inventory_store(config)
    if not config.inventory_db_uri:
        seed_inventory(store, sorted({item["sku"] for item in items}), stock=stock)

    bus = InMemoryEventBus(bus_name=config.settlement_bus_name, source=config.settlement_source)
    set_reservation_stage(ReservationStage(config, store, bus))
    set_settlement_stage(
        SettlementStage(
            config,
            store,
            ForcedOutcomeAuthorizer(CoinFlipAuthorizer(), enabled=force_outcome is not None),
        )
    )
    ensure_domain()

    payload = {"customerId": customer_id, "items": items}
    if force_outcome:
        payload["_testForceOutcome"] = force_outcome

    response = handle_purchase_request(payload)
    print(f"Reservation: {response['statusCode']} {response['body']}")

    for outcome in bus.deliver(handle_settlement_request):
        print(f"Settlement: {outcome['status']} (payment {outcome['paymentId']})")

    for record in store.records():
        print(f"  {record.sku}: stock={record.stock} reserved={record.reserved}")
    return response


def main():
    from shared.config import SagaConfig
    from shared.logging import configure_logging

    parser = argparse.ArgumentParser(description="PulseQueue inventory and purchase management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create inventory tables")
    subparsers.add_parser("drop-db", help="Drop inventory tables")

    seed_parser = subparsers.add_parser("seed", help="Provision SKUs with stock and nothing reserved")
    seed_parser.add_argument("--sku", action="append", required=True, help="SKU to seed (repeatable)")
    seed_parser.add_argument("--stock", type=int, default=100, help="Stock per SKU (default: 100)")

    order_parser = subparsers.add_parser("place-order", help="Run a purchase through both stages locally")
    order_parser.add_argument("--customer", required=True, help="Customer id")
    order_parser.add_argument(
        "--item",
        action="append",
        required=True,
        type=_parse_item,
        help="Line item as SKU:QUANTITY (repeatable)",
    )
    order_parser.add_argument(
        "--force-outcome",
        choices=["SUCCESS", "FAILURE"],
        help="Force the payment outcome instead of flipping a coin",
    )
    order_parser.add_argument(
        "--stock",
        type=int,
        default=100,
        help="Stock to seed each SKU with when using the in-memory store (default: 100)",
    )

    args = parser.parse_args()

    configure_logging()
    config = SagaConfig.from_env()

    if args.command == "setup-db":
        setup_database(config)
    elif args.command == "drop-db":
        drop_database(config)
    elif args.command == "seed":
        seed(config, args.sku, args.stock)
    elif args.command == "place-order":
        place_order(config, args.customer, args.item, args.force_outcome, args.stock)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
