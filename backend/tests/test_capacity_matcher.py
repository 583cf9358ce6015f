"""
Unit tests for the capacity matcher.

Pure functions, no database needed.
"""

import pytest

from backend.app.core.exceptions import InvalidLoadSpecError
from backend.app.models.load import Load
from backend.app.models.truck import Truck
from backend.app.models.truck_enums import TruckType
from backend.app.services.capacity_matcher import (
    TRUCK_CAPACITIES,
    find_eligible_trucks,
    fits,
    smallest_capacity_for,
    validate_load_spec,
)


def _load(width, length, height, payload) -> Load:
    return Load(width=width, length=length, height=height, payload=payload)


def _fleet():
    return [
        Truck(id=7, type=TruckType.LARGE_STRAIGHT),
        Truck(id=3, type=TruckType.SMALL_STRAIGHT),
        Truck(id=5, type=TruckType.SPRINTER),
        Truck(id=2, type=TruckType.SPRINTER),
    ]


def test_small_load_fits_every_class_smallest_first():
    """Eligible trucks are ordered by capacity class, then by id."""
    eligible = find_eligible_trucks(_load(2, 2, 2, 100), _fleet())

    assert [truck.id for truck in eligible] == [2, 5, 3, 7]


def test_payload_excludes_smaller_classes():
    """2000 kg is too heavy for a sprinter."""
    eligible = find_eligible_trucks(_load(100, 100, 100, 2000), _fleet())

    assert [truck.type for truck in eligible] == [TruckType.SMALL_STRAIGHT, TruckType.LARGE_STRAIGHT]


def test_single_oversized_dimension_excludes_class():
    """A 400 cm long load only fits straights; 600 cm only the large one."""
    assert [t.id for t in find_eligible_trucks(_load(100, 400, 100, 100), _fleet())] == [3, 7]
    assert [t.id for t in find_eligible_trucks(_load(100, 600, 100, 100), _fleet())] == [7]


def test_nothing_fits():
    assert find_eligible_trucks(_load(100, 100, 100, 5000), _fleet()) == []
    assert smallest_capacity_for({"width": 400, "length": 1, "height": 1, "payload": 1}) is None


def test_empty_candidate_list():
    assert find_eligible_trucks(_load(1, 1, 1, 1), []) == []


def test_bounds_are_inclusive():
    """A load exactly matching a class's limits fits that class."""
    capacity = TRUCK_CAPACITIES[TruckType.SPRINTER]
    spec = validate_load_spec(capacity["width"], capacity["length"], capacity["height"], capacity["payload"])

    assert fits(TruckType.SPRINTER, spec)
    assert smallest_capacity_for(spec) == TruckType.SPRINTER


@pytest.mark.parametrize("spec", [
    {"width": 1, "length": 1, "height": 1, "payload": 1},
    {"width": 250, "length": 300, "height": 170, "payload": 1800},
    {"width": 250, "length": 450, "height": 170, "payload": 2000},
    {"width": 300, "length": 650, "height": 190, "payload": 3900},
    {"width": 360, "length": 100, "height": 100, "payload": 100},
])
def test_capacity_monotonicity(spec):
    """If a class can carry a load, every larger class can too."""
    classes = list(TRUCK_CAPACITIES)
    spec = validate_load_spec(**spec)

    for rank, truck_type in enumerate(classes):
        if fits(truck_type, spec):
            assert all(fits(larger, spec) for larger in classes[rank:])


@pytest.mark.parametrize("width, length, height, payload", [
    (0, 2, 2, 100),
    (2, -1, 2, 100),
    (2, 2, 2, 0),
    (2, 2, None, 100),
    (2, 2, 2, "heavy"),
    (2, 2, 2, float("nan")),
    (True, 2, 2, 100),
])
def test_malformed_spec_rejected(width, length, height, payload):
    with pytest.raises(InvalidLoadSpecError) as exc_info:
        find_eligible_trucks(_load(width, length, height, payload), _fleet())

    assert exc_info.value.error_code == "ERR_LOAD_SPEC"
