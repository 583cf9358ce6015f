"""
Load-related enumerations and transition tables.
"""

import enum


class LoadStatus(str, enum.Enum):
    """Coarse load lifecycle phase."""
    NEW = "NEW"  # Created by shipper, editable
    POSTED = "POSTED"  # Visible to the matcher
    ASSIGNED = "ASSIGNED"  # Driver and truck reserved, sub-state tracked
    SHIPPED = "SHIPPED"  # Cargo handed over at destination
    DELIVERED = "DELIVERED"  # Terminal


class LoadState(str, enum.Enum):
    """Fine-grained phase while a load is ASSIGNED."""
    EN_ROUTE_TO_PICK_UP = "EN_ROUTE_TO_PICK_UP"
    ARRIVED_TO_PICK_UP = "ARRIVED_TO_PICK_UP"
    EN_ROUTE_TO_DELIVERY = "EN_ROUTE_TO_DELIVERY"
    ARRIVED_TO_DELIVERY = "ARRIVED_TO_DELIVERY"

    @property
    def label(self) -> str:
        return STATE_LABELS[self]


# Allowed next statuses. Anything missing here is rejected.
STATUS_TRANSITIONS = {
    LoadStatus.NEW: {LoadStatus.POSTED},
    LoadStatus.POSTED: {LoadStatus.ASSIGNED, LoadStatus.NEW},
    LoadStatus.ASSIGNED: {LoadStatus.SHIPPED},
    LoadStatus.SHIPPED: {LoadStatus.DELIVERED},
    LoadStatus.DELIVERED: set(),
}

# Linear sub-state chain while ASSIGNED; None marks the end of the chain.
STATE_TRANSITIONS = {
    LoadState.EN_ROUTE_TO_PICK_UP: LoadState.ARRIVED_TO_PICK_UP,
    LoadState.ARRIVED_TO_PICK_UP: LoadState.EN_ROUTE_TO_DELIVERY,
    LoadState.EN_ROUTE_TO_DELIVERY: LoadState.ARRIVED_TO_DELIVERY,
    LoadState.ARRIVED_TO_DELIVERY: None,
}

STATE_LABELS = {
    LoadState.EN_ROUTE_TO_PICK_UP: "En route to Pick Up",
    LoadState.ARRIVED_TO_PICK_UP: "Arrived to Pick Up",
    LoadState.EN_ROUTE_TO_DELIVERY: "En route to delivery",
    LoadState.ARRIVED_TO_DELIVERY: "Arrived to delivery",
}

# Loads in these statuses may still be deleted by their shipper
DELETABLE_STATUSES = (LoadStatus.NEW, LoadStatus.POSTED)


def can_transition(current: LoadStatus, target: LoadStatus) -> bool:
    """Check whether the status table allows ``current`` -> ``target``."""
    return target in STATUS_TRANSITIONS.get(current, set())
