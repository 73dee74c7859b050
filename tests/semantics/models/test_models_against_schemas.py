"""Schema conformance tests for core Pydantic models.

Every Point, Courier and Order the models accept must dump to an instance
that its JSON Schema accepts, and every input the schema rejects must be
rejected by the model as well.
"""

# pylint: disable=line-too-long,missing-function-docstring
# pylint: disable=redefined-outer-name,global-statement
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from jsonschema import ValidationError as JsonSchemaValidationError
from jsonschema import validate as jsonschema_validate
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from referencing import Registry, Resource
from referencing.jsonschema import DRAFT202012

import courier_dispatch
from courier_dispatch.core.domain.types import Courier, Order, Point

SCHEMA_DIR = Path(courier_dispatch.__file__).parent / "core" / "schemas"
SCHEMA_REGISTRY = Registry()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def load_schema(name: str) -> dict:
    """
    Load a JSON schema shipped with the package and register it by $id.
    """
    global SCHEMA_REGISTRY

    with (SCHEMA_DIR / name).open("r", encoding="utf-8") as f:
        schema = json.load(f)

    schema_id = schema.get("$id")
    if isinstance(schema_id, str) and schema_id:
        resource = Resource.from_contents(schema, default_specification=DRAFT202012)
        SCHEMA_REGISTRY = SCHEMA_REGISTRY.with_resource(schema_id, resource)

    return schema


def assert_pydantic_then_schema_ok(model_type: type[BaseModel], data: dict[str, Any], schema: dict[str, Any]) -> dict:
    """
    Validate with Pydantic first, then validate the dumped instance with JSON Schema.
    None values are dropped so optional fields are omitted instead of null.
    """
    instance = model_type.model_validate(data).model_dump(mode="json", exclude_none=True)
    jsonschema_validate(instance=instance, schema=schema, registry=SCHEMA_REGISTRY)
    return instance


def assert_schema_invalid_but_pydantic_rejects(model_type: type[BaseModel], data: dict[str, Any], schema: dict[str, Any]):
    """
    If the schema rejects an input, the model must reject it too.
    """
    with pytest.raises(JsonSchemaValidationError):
        jsonschema_validate(instance=data, schema=schema, registry=SCHEMA_REGISTRY)

    with pytest.raises(PydanticValidationError):
        model_type.model_validate(data)


def mk_point(x: Any = 0, y: Any = 0) -> dict[str, Any]:
    return {"x": x, "y": y}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="module")
def point_schema() -> dict:
    return load_schema("point.schema.json")


@pytest.fixture(scope="module")
def courier_schema(point_schema) -> dict:
    return load_schema("courier.schema.json")


@pytest.fixture(scope="module")
def order_schema(point_schema) -> dict:
    return load_schema("order.schema.json")


# ---------------------------------------------------------------------------
# Point
# ---------------------------------------------------------------------------

def test_point_valid_including_negative(point_schema):
    assert assert_pydantic_then_schema_ok(Point, mk_point(-4, 7), point_schema) == {"x": -4, "y": 7}


def test_point_rejects_non_integer_coordinates(point_schema):
    assert_schema_invalid_but_pydantic_rejects(Point, mk_point(1.5, 0), point_schema)
    assert_schema_invalid_but_pydantic_rejects(Point, mk_point("1", 0), point_schema)
    assert_schema_invalid_but_pydantic_rejects(Point, mk_point(True, 0), point_schema)


def test_point_requires_both_coordinates(point_schema):
    assert_schema_invalid_but_pydantic_rejects(Point, {"x": 1}, point_schema)


def test_point_rejects_additional_properties(point_schema):
    data = mk_point()
    data["z"] = 1
    assert_schema_invalid_but_pydantic_rejects(Point, data, point_schema)


# ---------------------------------------------------------------------------
# Courier
# ---------------------------------------------------------------------------

def make_courier(**overrides) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": "c-1",
        "name": "Courier Alpha",
        "location": mk_point(3, 4),
        "is_available": True,
    }
    data.update(overrides)
    return data


def test_courier_available_valid(courier_schema):
    assert_pydantic_then_schema_ok(Courier, make_courier(), courier_schema)


def test_courier_busy_valid(courier_schema):
    data = make_courier(is_available=False, active_order_id="o-1")
    assert_pydantic_then_schema_ok(Courier, data, courier_schema)


def test_courier_available_with_active_order_rejected(courier_schema):
    bad = make_courier(active_order_id="o-1")
    assert_schema_invalid_but_pydantic_rejects(Courier, bad, courier_schema)


def test_courier_busy_without_active_order_rejected(courier_schema):
    bad = make_courier(is_available=False)
    assert_schema_invalid_but_pydantic_rejects(Courier, bad, courier_schema)


def test_courier_min_length_fields(courier_schema):
    assert_schema_invalid_but_pydantic_rejects(Courier, make_courier(name=""), courier_schema)
    assert_schema_invalid_but_pydantic_rejects(Courier, make_courier(id=""), courier_schema)


def test_courier_bad_location_rejected(courier_schema):
    bad = make_courier(location=mk_point(0.5, 1))
    assert_schema_invalid_but_pydantic_rejects(Courier, bad, courier_schema)


def test_courier_rejects_additional_properties(courier_schema):
    data = make_courier()
    data["speed"] = 3
    assert_schema_invalid_but_pydantic_rejects(Courier, data, courier_schema)


# ---------------------------------------------------------------------------
# Order
# ---------------------------------------------------------------------------

def make_order(**overrides) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": "o-1",
        "pickup_location": mk_point(1, 1),
        "drop_location": mk_point(5, -2),
        "delivery_type": "EXPRESS",
        "status": "CREATED",
    }
    data.update(overrides)
    return data


def test_order_created_valid(order_schema):
    assert_pydantic_then_schema_ok(Order, make_order(), order_schema)


@pytest.mark.parametrize("status", ["ASSIGNED", "PICKED_UP", "IN_TRANSIT", "DELIVERED", "CANCELLED"])
def test_order_bound_statuses_valid(order_schema, status):
    assert_pydantic_then_schema_ok(Order, make_order(status=status, courier_id="c-1"), order_schema)


def test_order_cancelled_without_courier_valid(order_schema):
    assert_pydantic_then_schema_ok(Order, make_order(status="CANCELLED"), order_schema)


@pytest.mark.parametrize("status", ["ASSIGNED", "PICKED_UP", "IN_TRANSIT", "DELIVERED"])
def test_order_bound_status_requires_courier(order_schema, status):
    assert_schema_invalid_but_pydantic_rejects(Order, make_order(status=status), order_schema)


def test_order_created_with_courier_rejected(order_schema):
    bad = make_order(courier_id="c-1")
    assert_schema_invalid_but_pydantic_rejects(Order, bad, order_schema)


def test_order_unknown_enums_rejected(order_schema):
    assert_schema_invalid_but_pydantic_rejects(Order, make_order(delivery_type="SAME_DAY"), order_schema)
    assert_schema_invalid_but_pydantic_rejects(Order, make_order(status="LOST"), order_schema)


def test_order_bad_locations_rejected(order_schema):
    bad = make_order(drop_location={"x": 1})
    assert_schema_invalid_but_pydantic_rejects(Order, bad, order_schema)


def test_order_rejects_additional_properties(order_schema):
    data = make_order()
    data["priority"] = 1
    assert_schema_invalid_but_pydantic_rejects(Order, data, order_schema)
