"""
Truck registry service.

Owns truck records and their availability. Every status change is a single
conditional UPDATE keyed on the current status, so two requests racing for
the same truck cannot both win.

None of these functions commit: the caller owns the transaction.
"""

import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, exists
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import aliased

from backend.app.core.exceptions import ResourceNotFoundError, TruckUnavailableError
from backend.app.models.truck import Truck
from backend.app.models.truck_enums import TruckType, TruckStatus, BUSY_TRUCK_STATUSES

logger = logging.getLogger(__name__)


def _driver_has_busy_truck(driver_column):
    """EXISTS clause: the driver already has a truck tied to an active load."""
    busy_truck = aliased(Truck)
    return exists().where(
        busy_truck.created_by == driver_column,
        busy_truck.status.in_(BUSY_TRUCK_STATUSES)
    )


async def get_truck(db: AsyncSession, truck_id: int) -> Optional[Truck]:
    """Fetch a truck, refreshing any stale copy held by the session."""
    result = await db.execute(
        select(Truck).where(Truck.id == truck_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_free_trucks(
    db: AsyncSession,
    driver_id: Optional[int] = None,
    active_only: bool = False
) -> List[Truck]:
    """
    List FREE trucks in one snapshot query.

    Trucks of drivers that already carry a load are left out, since a driver
    handles at most one load at a time.

    Args:
        db: Database session
        driver_id: Restrict to one driver's trucks
        active_only: Only each driver's designated active truck

    Returns:
        FREE trucks ordered by id
    """
    query = select(Truck).where(
        Truck.status == TruckStatus.FREE,
        ~_driver_has_busy_truck(Truck.created_by)
    )

    if driver_id is not None:
        query = query.where(Truck.created_by == driver_id)

    if active_only:
        query = query.where(Truck.is_active == True)

    result = await db.execute(query.order_by(Truck.id).execution_options(populate_existing=True))
    return list(result.scalars().all())


async def reserve(db: AsyncSession, truck_id: int) -> Truck:
    """
    Atomically move a truck FREE -> ASSIGNED.

    The EXISTS check covers committed reservations; a concurrent reservation
    of another truck of the same driver is caught by the
    ``ix_trucks_one_busy_per_driver`` unique index. After that violation the
    transaction must be rolled back before it is reused.

    Raises:
        TruckUnavailableError: If the truck is not FREE, does not exist, or its
            driver already has a truck on an active load (race lost)
    """
    try:
        result = await db.execute(
            update(Truck)
            .where(
                Truck.id == truck_id,
                Truck.status == TruckStatus.FREE,
                ~_driver_has_busy_truck(Truck.created_by)
            )
            .values(status=TruckStatus.ASSIGNED)
            .execution_options(synchronize_session=False)
        )
    except IntegrityError:
        logger.info("Reservation of truck %s lost: driver already has a busy truck", truck_id)
        raise TruckUnavailableError(truck_id, "Driver already has a truck on an active load")

    if result.rowcount != 1:
        logger.debug("Reservation of truck %s lost", truck_id)
        raise TruckUnavailableError(truck_id, "Truck could not be reserved")

    return await get_truck(db, truck_id)


async def mark_on_route(db: AsyncSession, truck_id: int) -> Truck:
    """
    Atomically move a truck ASSIGNED -> ON_ROUTE.

    Raises:
        TruckUnavailableError: If the truck is not ASSIGNED
    """
    result = await db.execute(
        update(Truck)
        .where(Truck.id == truck_id, Truck.status == TruckStatus.ASSIGNED)
        .values(status=TruckStatus.ON_ROUTE)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount != 1:
        raise TruckUnavailableError(truck_id, "Truck is not reserved")

    return await get_truck(db, truck_id)


async def release(db: AsyncSession, truck_id: int) -> bool:
    """
    Move a truck back to FREE.

    Returns:
        True if the truck was released, False if it was already FREE
    """
    result = await db.execute(
        update(Truck)
        .where(Truck.id == truck_id, Truck.status.in_(BUSY_TRUCK_STATUSES))
        .values(status=TruckStatus.FREE)
        .execution_options(synchronize_session=False)
    )

    released = result.rowcount == 1
    if released:
        logger.info("Truck %s released", truck_id)

    return released


async def create_truck(
    db: AsyncSession,
    driver_id: int,
    truck_type: TruckType,
    name: Optional[str] = None
) -> Truck:
    """Register a FREE truck for a driver."""
    truck = Truck(
        created_by=driver_id,
        type=truck_type,
        name=name,
        status=TruckStatus.FREE,
        is_active=False
    )
    db.add(truck)
    await db.flush()
    await db.refresh(truck)

    return truck


async def list_driver_trucks(db: AsyncSession, driver_id: int) -> List[Truck]:
    """All trucks of a driver, oldest first."""
    result = await db.execute(
        select(Truck)
        .where(Truck.created_by == driver_id)
        .order_by(Truck.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def get_driver_truck(db: AsyncSession, driver_id: int, truck_id: int) -> Truck:
    """
    Fetch a truck owned by the driver.

    Raises:
        ResourceNotFoundError: If the truck does not exist or belongs to someone else
    """
    truck = await get_truck(db, truck_id)

    if not truck or truck.created_by != driver_id:
        raise ResourceNotFoundError("Truck", truck_id)

    return truck


async def rename_truck(db: AsyncSession, driver_id: int, truck_id: int, name: str) -> Truck:
    """Change a truck's label. Type is immutable."""
    truck = await get_driver_truck(db, driver_id, truck_id)
    truck.name = name
    await db.flush()

    return truck


async def delete_truck(db: AsyncSession, driver_id: int, truck_id: int) -> None:
    """
    Delete a FREE truck.

    Raises:
        TruckUnavailableError: If the truck backs an active load
    """
    truck = await get_driver_truck(db, driver_id, truck_id)

    if truck.status != TruckStatus.FREE:
        raise TruckUnavailableError(truck_id, "Truck is carrying a load and cannot be deleted")

    await db.delete(truck)
    await db.flush()


async def assign_truck(db: AsyncSession, driver_id: int, truck_id: int) -> Truck:
    """
    Make a truck the driver's active truck.

    Raises:
        ResourceNotFoundError: If the driver does not own the truck
        TruckUnavailableError: If the driver currently carries a load
    """
    await get_driver_truck(db, driver_id, truck_id)

    busy_result = await db.execute(
        select(Truck.id).where(
            Truck.created_by == driver_id,
            Truck.status.in_(BUSY_TRUCK_STATUSES)
        )
    )
    if busy_result.first() is not None:
        raise TruckUnavailableError(truck_id, "Driver is on an active load; trucks cannot be switched")

    await db.execute(
        update(Truck)
        .where(Truck.created_by == driver_id, Truck.id != truck_id)
        .values(is_active=False)
        .execution_options(synchronize_session=False)
    )

    result = await db.execute(
        update(Truck)
        .where(Truck.id == truck_id, Truck.status == TruckStatus.FREE)
        .values(is_active=True)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount != 1:
        raise TruckUnavailableError(truck_id)

    return await get_truck(db, truck_id)
