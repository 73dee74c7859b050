"""
Semantic test: store port contract, shared by every backend.

Invariants:
- claim_courier succeeds only on a free courier and binds it to the order.
- compare_and_set_order_status writes only when the current status matches.
- Listings keep insertion order and honour their filters.
- Duplicate ids are rejected with StoreError.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from courier_dispatch.adapters.memory_store import InMemoryDispatchStore
from courier_dispatch.adapters.sqlite_store import SQLiteDispatchStore
from courier_dispatch.core.domain.errors import StoreError
from courier_dispatch.core.domain.types import Courier, DeliveryType, Order, OrderStatus, Point


@pytest.fixture(params=["memory", "sqlite"])
def store(request: pytest.FixtureRequest, tmp_path: Path):
    if request.param == "memory":
        return InMemoryDispatchStore()
    return SQLiteDispatchStore(tmp_path / "store.sqlite3")


def _courier(courier_id: str, x: int = 0, y: int = 0) -> Courier:
    return Courier(id=courier_id, name=f"Courier {courier_id}", location=Point(x=x, y=y))


def _order(order_id: str, delivery_type: DeliveryType = DeliveryType.NORMAL) -> Order:
    return Order(
        id=order_id,
        pickup_location=Point(x=1, y=2),
        drop_location=Point(x=-3, y=4),
        delivery_type=delivery_type,
    )


def test_insert_and_get_round_trip(store) -> None:
    store.insert_courier(_courier("c1", 4, -5))
    store.insert_order(_order("o1", DeliveryType.EXPRESS))

    courier = store.get_courier("c1")
    order = store.get_order("o1")

    assert courier == _courier("c1", 4, -5)
    assert order == _order("o1", DeliveryType.EXPRESS)
    assert store.get_courier("missing") is None
    assert store.get_order("missing") is None


def test_duplicate_ids_rejected(store) -> None:
    store.insert_courier(_courier("c1"))
    store.insert_order(_order("o1"))

    with pytest.raises(StoreError, match="Duplicate courier id: c1"):
        store.insert_courier(_courier("c1"))
    with pytest.raises(StoreError, match="Duplicate order id: o1"):
        store.insert_order(_order("o1"))


def test_claim_only_free_courier(store) -> None:
    store.insert_courier(_courier("c1"))

    claimed = store.claim_courier("c1", "o1")
    again = store.claim_courier("c1", "o2")

    assert claimed is not None
    assert not claimed.is_available
    assert claimed.active_order_id == "o1"
    assert again is None
    assert store.get_courier("c1").active_order_id == "o1"
    assert store.claim_courier("missing", "o1") is None


def test_release_then_claim_again(store) -> None:
    store.insert_courier(_courier("c1"))
    store.claim_courier("c1", "o1")

    released = store.release_courier("c1")

    assert released.is_available
    assert released.active_order_id is None
    assert store.claim_courier("c1", "o2").active_order_id == "o2"
    assert store.release_courier("missing") is None


def test_order_cas_checks_expected_status(store) -> None:
    store.insert_order(_order("o1"))

    stale = store.compare_and_set_order_status("o1", OrderStatus.ASSIGNED, OrderStatus.PICKED_UP)
    won = store.compare_and_set_order_status(
        "o1", OrderStatus.CREATED, OrderStatus.ASSIGNED, courier_id="c9"
    )
    lost = store.compare_and_set_order_status("o1", OrderStatus.CREATED, OrderStatus.CANCELLED)

    assert stale is None
    assert won.status == OrderStatus.ASSIGNED
    assert won.courier_id == "c9"
    assert lost is None
    assert store.get_order("o1").status == OrderStatus.ASSIGNED
    assert store.compare_and_set_order_status("x", OrderStatus.CREATED, OrderStatus.ASSIGNED) is None


def test_cas_without_courier_keeps_binding(store) -> None:
    store.insert_order(_order("o1"))
    store.compare_and_set_order_status("o1", OrderStatus.CREATED, OrderStatus.ASSIGNED, courier_id="c1")

    updated = store.compare_and_set_order_status("o1", OrderStatus.ASSIGNED, OrderStatus.PICKED_UP)

    assert updated.courier_id == "c1"


def test_listings_keep_order_and_filter(store) -> None:
    for courier_id in ("c3", "c1", "c2"):
        store.insert_courier(_courier(courier_id))
    store.claim_courier("c1", "o1")
    store.insert_order(_order("o2", DeliveryType.EXPRESS))
    store.insert_order(_order("o1"))
    store.compare_and_set_order_status("o1", OrderStatus.CREATED, OrderStatus.CANCELLED)

    assert [c.id for c in store.list_couriers()] == ["c3", "c1", "c2"]
    assert [c.id for c in store.list_couriers(available=True)] == ["c3", "c2"]
    assert [c.id for c in store.list_couriers(available=False)] == ["c1"]
    assert [c.id for c in store.find_available_couriers()] == ["c3", "c2"]

    assert [o.id for o in store.list_orders()] == ["o2", "o1"]
    assert [o.id for o in store.list_orders(status=OrderStatus.CANCELLED)] == ["o1"]
    assert [o.id for o in store.list_orders(delivery_type=DeliveryType.EXPRESS)] == ["o2"]
    assert (
        store.list_orders(status=OrderStatus.CREATED, delivery_type=DeliveryType.NORMAL) == []
    )


def test_update_location(store) -> None:
    store.insert_courier(_courier("c1"))

    moved = store.update_courier_location("c1", Point(x=7, y=-1))

    assert moved.location == Point(x=7, y=-1)
    assert store.get_courier("c1").location == Point(x=7, y=-1)
    assert store.update_courier_location("missing", Point(x=0, y=0)) is None


def test_returned_records_are_copies() -> None:
    store = InMemoryDispatchStore()
    store.insert_courier(_courier("c1"))

    fetched = store.get_courier("c1")
    fetched.location = Point(x=99, y=99)

    assert store.get_courier("c1").location == Point(x=0, y=0)


def test_sqlite_persists_across_handles(tmp_path: Path) -> None:
    path = tmp_path / "shared.sqlite3"
    SQLiteDispatchStore(path).insert_courier(_courier("c1", 2, 2))

    reopened = SQLiteDispatchStore(path)

    assert reopened.get_courier("c1") == _courier("c1", 2, 2)
    assert reopened.claim_courier("c1", "o1") is not None
    assert SQLiteDispatchStore(path).claim_courier("c1", "o2") is None


def test_sqlite_unopenable_path_raises_store_error(tmp_path: Path) -> None:
    # a directory cannot be opened as a database file
    with pytest.raises(StoreError):
        SQLiteDispatchStore(tmp_path)


def test_sqlite_claim_guard_is_one_conditional_update(tmp_path: Path) -> None:
    store = SQLiteDispatchStore(tmp_path / "claims.sqlite3")
    store.insert_courier(_courier("c1"))

    results = [store.claim_courier("c1", f"o{i}") for i in range(3)]

    assert [r is not None for r in results] == [True, False, False]
    assert store.list_couriers(available=False)[0].active_order_id == "o0"
