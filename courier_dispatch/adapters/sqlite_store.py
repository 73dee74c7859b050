"""SQLite implementation of the dispatch store port.

Couriers and orders are SQLAlchemy declarative rows. Conditional writes are
single ``update(...).where(<guard>)`` statements whose ``rowcount`` tells
whether the check-and-set won; SQLite serializes writers on the database
file, so independent threads or processes can share one file. Every
operation runs in its own session transaction.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from sqlalchemy import URL, Boolean, String, create_engine, event, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from courier_dispatch.core.domain.errors import StoreError
from courier_dispatch.core.domain.types import (
    Courier,
    DeliveryType,
    Order,
    OrderStatus,
    Point,
)

LOGGER = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Table mapping
# ---------------------------------------------------------------------------


class _Base(DeclarativeBase):
    pass


class CourierRow(_Base):
    __tablename__ = "couriers"

    # seq keeps insertion order, which is the listing order
    seq: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String, unique=True)
    name: Mapped[str]
    x: Mapped[int]
    y: Mapped[int]
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    active_order_id: Mapped[str | None] = mapped_column(default=None)


class OrderRow(_Base):
    __tablename__ = "orders"

    seq: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String, unique=True)
    pickup_x: Mapped[int]
    pickup_y: Mapped[int]
    drop_x: Mapped[int]
    drop_y: Mapped[int]
    delivery_type: Mapped[str]
    status: Mapped[str] = mapped_column(index=True)
    courier_id: Mapped[str | None] = mapped_column(default=None, index=True)


def _courier_from_row(row: CourierRow) -> Courier:
    return Courier(
        id=row.id,
        name=row.name,
        location=Point(x=row.x, y=row.y),
        is_available=row.is_available,
        active_order_id=row.active_order_id,
    )


def _order_from_row(row: OrderRow) -> Order:
    return Order(
        id=row.id,
        pickup_location=Point(x=row.pickup_x, y=row.pickup_y),
        drop_location=Point(x=row.drop_x, y=row.drop_y),
        delivery_type=DeliveryType(row.delivery_type),
        status=OrderStatus(row.status),
        courier_id=row.courier_id,
    )


def _enable_wal(dbapi_connection: Any, _connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class SQLiteDispatchStore:
    """File-backed store using SQLAlchemy conditional updates."""

    def __init__(self, path: str | Path, *, timeout_s: float = 30.0) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)

        self._engine = create_engine(
            URL.create("sqlite+pysqlite", database=str(self._path)),
            connect_args={"timeout": float(timeout_s), "check_same_thread": False},
        )
        event.listen(self._engine, "connect", _enable_wal)
        self._sessions = sessionmaker(self._engine, expire_on_commit=False)

        try:
            _Base.metadata.create_all(self._engine)
        except SQLAlchemyError as exc:
            LOGGER.exception("SQLite schema setup failed", extra={"path": str(self._path)})
            raise StoreError(f"Cannot open store at {self._path}: {exc}") from exc

    @property
    def path(self) -> Path:
        return self._path

    @contextmanager
    def _session(self) -> Iterator[Session]:
        """One transaction: committed on success, rolled back on any error."""
        try:
            with self._sessions.begin() as session:
                yield session
        except SQLAlchemyError as exc:
            LOGGER.exception("SQLite operation failed", extra={"path": str(self._path)})
            raise StoreError(str(exc)) from exc

    @staticmethod
    def _fetch_courier(session: Session, courier_id: str) -> Courier | None:
        row = session.scalars(select(CourierRow).where(CourierRow.id == courier_id)).one_or_none()
        return _courier_from_row(row) if row is not None else None

    @staticmethod
    def _fetch_order(session: Session, order_id: str) -> Order | None:
        row = session.scalars(select(OrderRow).where(OrderRow.id == order_id)).one_or_none()
        return _order_from_row(row) if row is not None else None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_courier(self, courier_id: str) -> Courier | None:
        with self._session() as session:
            return self._fetch_courier(session, courier_id)

    def get_order(self, order_id: str) -> Order | None:
        with self._session() as session:
            return self._fetch_order(session, order_id)

    def list_couriers(self, *, available: bool | None = None) -> list[Courier]:
        query = select(CourierRow)
        if available is not None:
            query = query.where(CourierRow.is_available.is_(bool(available)))
        with self._session() as session:
            return [_courier_from_row(r) for r in session.scalars(query.order_by(CourierRow.seq))]

    def find_available_couriers(self) -> list[Courier]:
        query = (
            select(CourierRow)
            .where(CourierRow.is_available.is_(True), CourierRow.active_order_id.is_(None))
            .order_by(CourierRow.seq)
        )
        with self._session() as session:
            return [_courier_from_row(r) for r in session.scalars(query)]

    def list_orders(
        self,
        *,
        status: OrderStatus | None = None,
        delivery_type: DeliveryType | None = None,
    ) -> list[Order]:
        query = select(OrderRow)
        if status is not None:
            query = query.where(OrderRow.status == OrderStatus(status).value)
        if delivery_type is not None:
            query = query.where(OrderRow.delivery_type == DeliveryType(delivery_type).value)
        with self._session() as session:
            return [_order_from_row(r) for r in session.scalars(query.order_by(OrderRow.seq))]

    # ------------------------------------------------------------------
    # Inserts
    # ------------------------------------------------------------------

    def insert_courier(self, courier: Courier) -> Courier:
        with self._session() as session:
            session.add(
                CourierRow(
                    id=courier.id,
                    name=courier.name,
                    x=courier.location.x,
                    y=courier.location.y,
                    is_available=courier.is_available,
                    active_order_id=courier.active_order_id,
                )
            )
            try:
                session.flush()
            except IntegrityError as exc:
                raise StoreError(f"Duplicate courier id: {courier.id}") from exc
        return courier.model_copy()

    def insert_order(self, order: Order) -> Order:
        with self._session() as session:
            session.add(
                OrderRow(
                    id=order.id,
                    pickup_x=order.pickup_location.x,
                    pickup_y=order.pickup_location.y,
                    drop_x=order.drop_location.x,
                    drop_y=order.drop_location.y,
                    delivery_type=order.delivery_type.value,
                    status=order.status.value,
                    courier_id=order.courier_id,
                )
            )
            try:
                session.flush()
            except IntegrityError as exc:
                raise StoreError(f"Duplicate order id: {order.id}") from exc
        return order.model_copy()

    # ------------------------------------------------------------------
    # Conditional writes
    # ------------------------------------------------------------------

    def claim_courier(self, courier_id: str, order_id: str) -> Courier | None:
        with self._session() as session:
            result = session.execute(
                update(CourierRow)
                .where(
                    CourierRow.id == courier_id,
                    CourierRow.is_available.is_(True),
                    CourierRow.active_order_id.is_(None),
                )
                .values(is_available=False, active_order_id=order_id)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                return None
            return self._fetch_courier(session, courier_id)

    def compare_and_set_order_status(
        self,
        order_id: str,
        expected: OrderStatus,
        new: OrderStatus,
        *,
        courier_id: str | None = None,
    ) -> Order | None:
        values: dict[str, Any] = {"status": OrderStatus(new).value}
        if courier_id is not None:
            values["courier_id"] = courier_id

        with self._session() as session:
            result = session.execute(
                update(OrderRow)
                .where(OrderRow.id == order_id, OrderRow.status == OrderStatus(expected).value)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                return None
            return self._fetch_order(session, order_id)

    # ------------------------------------------------------------------
    # Unconditional writes
    # ------------------------------------------------------------------

    def release_courier(self, courier_id: str) -> Courier | None:
        with self._session() as session:
            session.execute(
                update(CourierRow)
                .where(CourierRow.id == courier_id)
                .values(is_available=True, active_order_id=None)
                .execution_options(synchronize_session=False)
            )
            return self._fetch_courier(session, courier_id)

    def update_courier_location(self, courier_id: str, location: Point) -> Courier | None:
        with self._session() as session:
            session.execute(
                update(CourierRow)
                .where(CourierRow.id == courier_id)
                .values(x=location.x, y=location.y)
                .execution_options(synchronize_session=False)
            )
            return self._fetch_courier(session, courier_id)
