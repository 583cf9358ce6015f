"""
Capacity matching service.

Decides which trucks can physically carry a load. Pure functions, no database access.
"""

import math
from numbers import Real
from typing import Dict, Iterable, List, Optional

from backend.app.core.exceptions import InvalidLoadSpecError
from backend.app.models.truck_enums import TruckType


# Capacity table: bounding box (cm) and max payload (kg) per truck class.
# Ordered by capacity; every bound grows with the rank.
TRUCK_CAPACITIES: Dict[TruckType, Dict[str, float]] = {
    TruckType.SPRINTER: {"width": 250, "length": 300, "height": 170, "payload": 1700},
    TruckType.SMALL_STRAIGHT: {"width": 250, "length": 500, "height": 170, "payload": 2500},
    TruckType.LARGE_STRAIGHT: {"width": 350, "length": 700, "height": 200, "payload": 4000},
}

CAPACITY_RANK: Dict[TruckType, int] = {truck_type: rank for rank, truck_type in enumerate(TRUCK_CAPACITIES)}

SPEC_FIELDS = ("width", "length", "height", "payload")


def validate_load_spec(width, length, height, payload) -> Dict[str, float]:
    """
    Validate load dimensions and payload.

    Returns:
        Spec dict with float values

    Raises:
        InvalidLoadSpecError: If any value is missing, non-numeric, zero or negative
    """
    spec = {"width": width, "length": length, "height": height, "payload": payload}
    invalid = {}
    for field, value in spec.items():
        if value is None or isinstance(value, bool) or not isinstance(value, Real):
            invalid[field] = "must be a number"
        elif not math.isfinite(value) or value <= 0:
            invalid[field] = "must be a positive number"

    if invalid:
        raise InvalidLoadSpecError(
            f"Invalid load specification: {', '.join(sorted(invalid))}",
            details={"fields": invalid}
        )

    return {field: float(value) for field, value in spec.items()}


def load_spec_of(load) -> Dict[str, float]:
    """Read and validate the spec fields of a load-like object."""
    return validate_load_spec(*(getattr(load, field, None) for field in SPEC_FIELDS))


def fits(truck_type: TruckType, spec: Dict[str, float]) -> bool:
    """True if a truck of ``truck_type`` can carry a load of ``spec``."""
    capacity = TRUCK_CAPACITIES[truck_type]
    return all(spec[field] <= capacity[field] for field in SPEC_FIELDS)


def smallest_capacity_for(spec: Dict[str, float]) -> Optional[TruckType]:
    """Smallest truck class able to carry ``spec``, or None if nothing fits."""
    for truck_type in TRUCK_CAPACITIES:
        if fits(truck_type, spec):
            return truck_type
    return None


def find_eligible_trucks(load, candidate_trucks: Iterable) -> List:
    """
    Select the trucks able to carry a load.

    Args:
        load: Object with width, length, height and payload attributes
        candidate_trucks: Trucks to consider (objects with ``id`` and ``type``)

    Returns:
        Eligible trucks, smallest capacity class first, then by ascending id

    Raises:
        InvalidLoadSpecError: If the load spec is malformed
    """
    spec = load_spec_of(load)

    eligible = [truck for truck in candidate_trucks if fits(TruckType(truck.type), spec)]
    eligible.sort(key=lambda truck: (CAPACITY_RANK[TruckType(truck.type)], truck.id))

    return eligible
