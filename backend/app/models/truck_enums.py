"""
Truck-related enumerations.
"""

import enum


class TruckType(str, enum.Enum):
    """Truck capacity class. Declaration order is capacity order."""
    SPRINTER = "SPRINTER"
    SMALL_STRAIGHT = "SMALL_STRAIGHT"
    LARGE_STRAIGHT = "LARGE_STRAIGHT"


class TruckStatus(str, enum.Enum):
    """Truck availability."""
    FREE = "FREE"  # Not backing any load
    ASSIGNED = "ASSIGNED"  # Reserved for an ASSIGNED load, not yet loaded
    ON_ROUTE = "ON_ROUTE"  # Carrying the load to delivery


# Statuses that tie a truck to an active load
BUSY_TRUCK_STATUSES = (TruckStatus.ASSIGNED, TruckStatus.ON_ROUTE)
