"""
Load state machine service.

Moves a load through NEW -> POSTED -> ASSIGNED -> SHIPPED -> DELIVERED and,
while ASSIGNED, through the pick-up/delivery sub-states.

Each transition is a compare-and-set UPDATE on the expected current status
(and state) plus one shipping-log insert. Functions flush but never commit:
the caller commits both together or rolls both back.
"""

import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update

from backend.app.core.config import settings
from backend.app.core.exceptions import (
    InvalidTransitionError,
    NotAuthorizedError,
    ResourceNotFoundError,
)
from backend.app.models.load import Load
from backend.app.models.load_log import LoadLog
from backend.app.models.load_enums import (
    LoadStatus,
    LoadState,
    STATE_TRANSITIONS,
    can_transition,
)
from backend.app.services import truck_registry

logger = logging.getLogger(__name__)


async def get_load(db: AsyncSession, load_id: int) -> Load:
    """
    Fetch a load, refreshing any stale copy held by the session.

    Raises:
        ResourceNotFoundError: If the load does not exist
    """
    result = await db.execute(
        select(Load).where(Load.id == load_id).execution_options(populate_existing=True)
    )
    load = result.scalar_one_or_none()

    if not load:
        raise ResourceNotFoundError("Load", load_id)

    return load


async def append_log(db: AsyncSession, load_id: int, message: str) -> LoadLog:
    """Append one entry to the load's shipping log."""
    entry = LoadLog(load_id=load_id, message=message)
    db.add(entry)
    await db.flush()

    return entry


async def get_logs(db: AsyncSession, load_id: int) -> List[LoadLog]:
    """Shipping log in insertion order."""
    result = await db.execute(
        select(LoadLog)
        .where(LoadLog.load_id == load_id)
        .order_by(LoadLog.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def _compare_and_set(
    db: AsyncSession,
    load_id: int,
    expected_status: LoadStatus,
    expected_state: Optional[LoadState],
    message: str,
    via: tuple = (),
    **values
) -> Load:
    """
    Apply ``values`` only if the load is still in the expected status/state,
    then append ``message`` to its log.

    ``via`` lists intermediate statuses walked inside the same unit of work;
    every edge of the path must be in the transition table.

    Raises:
        InvalidTransitionError: If the path is not allowed, or another
            request moved the load first
    """
    target = values.get("status", expected_status)
    if target != expected_status:
        path = [expected_status, *via, target]
        for current, following in zip(path, path[1:]):
            if not can_transition(current, following):
                raise InvalidTransitionError(
                    f"Transition {current.value} -> {following.value} is not allowed",
                    details={"load_id": load_id}
                )

    state_clause = Load.state.is_(None) if expected_state is None else Load.state == expected_state

    result = await db.execute(
        update(Load)
        .where(Load.id == load_id, Load.status == expected_status, state_clause)
        .values(**values)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount != 1:
        current = await get_load(db, load_id)
        raise InvalidTransitionError(
            f"Load {load_id} is no longer {expected_status.value}, current status: {current.status.value}",
            details={"load_id": load_id, "status": current.status.value}
        )

    await append_log(db, load_id, message)

    return await get_load(db, load_id)


def _require_status(load: Load, expected: LoadStatus, action: str) -> None:
    if load.status != expected:
        raise InvalidTransitionError(
            f"Can only {action} {expected.value} load, current status: {load.status.value}",
            details={"load_id": load.id, "status": load.status.value}
        )


async def post(db: AsyncSession, load_id: int) -> Load:
    """NEW -> POSTED. The load becomes visible to the matcher."""
    load = await get_load(db, load_id)
    _require_status(load, LoadStatus.NEW, "post")

    load = await _compare_and_set(
        db, load_id, LoadStatus.NEW, None, "Load posted",
        status=LoadStatus.POSTED
    )
    logger.info("Load %s posted", load_id)

    return load


async def unpost(db: AsyncSession, load_id: int) -> Load:
    """POSTED -> NEW, so the shipper can edit the load again."""
    load = await get_load(db, load_id)
    _require_status(load, LoadStatus.POSTED, "withdraw")

    return await _compare_and_set(
        db, load_id, LoadStatus.POSTED, None, "Load returned to NEW: no driver found",
        status=LoadStatus.NEW
    )


async def assign(db: AsyncSession, load_id: int, driver_id: int, truck_id: int) -> Load:
    """POSTED -> ASSIGNED with state EN_ROUTE_TO_PICK_UP."""
    load = await get_load(db, load_id)
    _require_status(load, LoadStatus.POSTED, "assign")

    load = await _compare_and_set(
        db, load_id, LoadStatus.POSTED, None, f"Assigned to driver {driver_id}",
        status=LoadStatus.ASSIGNED,
        state=LoadState.EN_ROUTE_TO_PICK_UP,
        assigned_to=driver_id,
        truck_id=truck_id
    )
    logger.info("Load %s assigned to driver %s (truck %s)", load_id, driver_id, truck_id)

    return load


def _delivers(next_state: Optional[LoadState]) -> bool:
    """Whether stepping into ``next_state`` finishes the delivery."""
    if next_state is None:
        return True
    return next_state == LoadState.ARRIVED_TO_DELIVERY and not settings.confirm_delivery_step


async def advance(db: AsyncSession, load_id: int, driver_id: int) -> Load:
    """
    Move an ASSIGNED load to its next sub-state.

    Entering EN_ROUTE_TO_DELIVERY puts the truck ON_ROUTE. Finishing the
    chain walks ASSIGNED -> SHIPPED -> DELIVERED in the same unit of work,
    clears the state and releases the truck.

    Raises:
        InvalidTransitionError: If the load is not ASSIGNED (or moved concurrently)
        NotAuthorizedError: If ``driver_id`` is not the assigned driver
    """
    load = await get_load(db, load_id)
    _require_status(load, LoadStatus.ASSIGNED, "advance")

    if load.assigned_to != driver_id:
        raise NotAuthorizedError(
            "This load is not assigned to you",
            details={"load_id": load_id}
        )

    current_state = load.state
    next_state = STATE_TRANSITIONS[current_state]

    if not _delivers(next_state):
        load = await _compare_and_set(
            db, load_id, LoadStatus.ASSIGNED, current_state,
            f"Load state changed to '{next_state.label}'",
            state=next_state
        )
        if next_state == LoadState.EN_ROUTE_TO_DELIVERY:
            await truck_registry.mark_on_route(db, load.truck_id)

        logger.info("Load %s advanced to %s", load_id, next_state.value)
        return load

    load = await _compare_and_set(
        db, load_id, LoadStatus.ASSIGNED, current_state, "Load delivered",
        via=(LoadStatus.SHIPPED,),
        status=LoadStatus.DELIVERED,
        state=None
    )
    await truck_registry.release(db, load.truck_id)

    logger.info("Load %s delivered by driver %s", load_id, driver_id)
    return load
