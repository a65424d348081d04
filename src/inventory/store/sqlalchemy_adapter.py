"""SQLAlchemy inventory store adapter.

Works against any SQLAlchemy-supported RDBMS (PostgreSQL in deployment,
SQLite in tests). Atomicity comes from the database:

- reservations are a guarded ``UPDATE ... WHERE stock - reserved >= :qty``
  and succeed only when exactly one row is touched;
- settlement idempotency comes from primary keys on the marker and ledger
  tables, inserted in the same transaction as the counter update.
"""

from datetime import UTC, datetime

import structlog
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from inventory.store.port import InventoryRecord, InventoryStore, SettlementMarker
from shared.exceptions import InfrastructureError

logger = structlog.get_logger(__name__)


class SqlInventoryStore(InventoryStore):
    def __init__(self, engine: Engine, table_name: str = "inventory") -> None:
        self.engine = engine
        self.metadata = MetaData()
        self.items = Table(
            table_name,
            self.metadata,
            Column("sku", String(100), primary_key=True),
            Column("stock", Integer, nullable=False, default=0),
            Column("reserved", Integer, nullable=False, default=0),
        )
        self.outcomes = Table(
            f"{table_name}_settlements",
            self.metadata,
            Column("order_id", String(100), primary_key=True),
            Column("payment_id", String(100), nullable=False),
            Column("status", String(20), nullable=False),
            Column("recorded_at", DateTime(timezone=True), nullable=False),
        )
        self.ledger = Table(
            f"{table_name}_settled_lines",
            self.metadata,
            Column("order_id", String(100), primary_key=True),
            Column("sku", String(100), primary_key=True),
            Column("quantity", Integer, nullable=False),
            Column("committed", Boolean, nullable=False),
            Column("settled_at", DateTime(timezone=True), nullable=False),
        )

    @classmethod
    def from_uri(cls, database_uri: str, table_name: str = "inventory", **engine_options) -> "SqlInventoryStore":
        if database_uri.startswith("sqlite"):
            # Connections are pooled across worker threads.
            engine_options.setdefault("connect_args", {"check_same_thread": False})
        return cls(create_engine(database_uri, **engine_options), table_name=table_name)

    # -------------------------------------------------------------------
    # Schema management
    # -------------------------------------------------------------------
    def setup_schema(self) -> None:
        self.metadata.create_all(self.engine)

    def drop_schema(self) -> None:
        self.metadata.drop_all(self.engine)

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def get(self, sku: str) -> InventoryRecord | None:
        query = select(self.items.c.sku, self.items.c.stock, self.items.c.reserved).where(self.items.c.sku == sku)
        try:
            with self.engine.connect() as conn:
                row = conn.execute(query).first()
        except SQLAlchemyError as exc:
            raise InfrastructureError(f"Failed to read inventory for {sku}") from exc
        if row is None:
            return None
        return InventoryRecord(sku=row.sku, stock=row.stock, reserved=row.reserved)

    def records(self) -> list[InventoryRecord]:
        query = select(self.items.c.sku, self.items.c.stock, self.items.c.reserved).order_by(self.items.c.sku)
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(query).all()
        except SQLAlchemyError as exc:
            raise InfrastructureError("Failed to list inventory") from exc
        return [InventoryRecord(sku=row.sku, stock=row.stock, reserved=row.reserved) for row in rows]

    def get_outcome(self, order_id: str) -> SettlementMarker | None:
        query = select(self.outcomes).where(self.outcomes.c.order_id == order_id)
        try:
            with self.engine.connect() as conn:
                row = conn.execute(query).first()
        except SQLAlchemyError as exc:
            raise InfrastructureError(f"Failed to read settlement marker for {order_id}") from exc
        if row is None:
            return None
        return SettlementMarker(order_id=row.order_id, payment_id=row.payment_id, status=row.status)

    # -------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------
    def seed(self, sku: str, stock: int) -> None:
        try:
            with self.engine.begin() as conn:
                updated = conn.execute(
                    update(self.items).where(self.items.c.sku == sku).values(stock=stock, reserved=0)
                ).rowcount
                if not updated:
                    conn.execute(insert(self.items).values(sku=sku, stock=stock, reserved=0))
        except SQLAlchemyError as exc:
            raise InfrastructureError(f"Failed to seed {sku}") from exc

    def reserve(self, sku: str, quantity: int, allow_unseeded: bool = True) -> bool:
        guarded = (
            update(self.items)
            .where(
                self.items.c.sku == sku,
                self.items.c.stock - self.items.c.reserved >= quantity,
            )
            .values(reserved=self.items.c.reserved + quantity)
        )
        try:
            with self.engine.begin() as conn:
                if conn.execute(guarded).rowcount == 1:
                    return True
                exists = conn.execute(select(self.items.c.sku).where(self.items.c.sku == sku)).first()
                if exists is not None or not allow_unseeded:
                    return False
                conn.execute(insert(self.items).values(sku=sku, stock=0, reserved=quantity))
                return True
        except IntegrityError:
            # A concurrent first reservation created the record; evaluate against it.
            logger.debug("Unseeded SKU created concurrently, retrying", sku=sku)
            return self.reserve(sku, quantity, allow_unseeded)
        except SQLAlchemyError as exc:
            raise InfrastructureError(f"Failed to reserve {sku}") from exc

    def release(self, sku: str, quantity: int) -> None:
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    update(self.items)
                    .where(self.items.c.sku == sku)
                    .values(reserved=self.items.c.reserved - quantity)
                )
        except SQLAlchemyError as exc:
            raise InfrastructureError(f"Failed to release reservation on {sku}") from exc

    def record_outcome(self, order_id: str, payment_id: str, status: str) -> SettlementMarker:
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    insert(self.outcomes).values(
                        order_id=order_id,
                        payment_id=payment_id,
                        status=status,
                        recorded_at=datetime.now(UTC),
                    )
                )
        except IntegrityError:
            existing = self.get_outcome(order_id)
            if existing is None:
                raise InfrastructureError(f"Settlement marker for {order_id} vanished") from None
            return existing
        except SQLAlchemyError as exc:
            raise InfrastructureError(f"Failed to record settlement for {order_id}") from exc
        return SettlementMarker(order_id=order_id, payment_id=payment_id, status=status)

    def settle_line(self, order_id: str, sku: str, quantity: int, commit: bool) -> bool:
        values = {"reserved": self.items.c.reserved - quantity}
        if commit:
            values["stock"] = self.items.c.stock - quantity
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    insert(self.ledger).values(
                        order_id=order_id,
                        sku=sku,
                        quantity=quantity,
                        committed=commit,
                        settled_at=datetime.now(UTC),
                    )
                )
                conn.execute(update(self.items).where(self.items.c.sku == sku).values(**values))
        except IntegrityError:
            return False
        except SQLAlchemyError as exc:
            raise InfrastructureError(f"Failed to settle {sku} for {order_id}") from exc
        return True
