"""
Freight engine facade.

Entry points used by the HTTP layer. Each function is one unit of work:
it commits on success and rolls back on any error, so a failed request
never leaves partial state behind.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, func

from backend.app.core.exceptions import (
    InvalidTransitionError,
    NotAuthorizedError,
    ResourceNotFoundError,
)
from backend.app.db.session import unit_of_work
from backend.app.models.load import Load
from backend.app.models.load_log import LoadLog
from backend.app.models.load_enums import LoadStatus, DELETABLE_STATUSES
from backend.app.models.truck import Truck
from backend.app.models.truck_enums import TruckType
from backend.app.models.user import User
from backend.app.models.enums import UserRole
from backend.app.services import load_state_machine, truck_registry
from backend.app.services.assignment import AssignmentResult, post_and_assign
from backend.app.services.capacity_matcher import validate_load_spec

logger = logging.getLogger(__name__)

ADDRESS_FIELDS = ("city", "street", "zip")


def _flatten_spec(spec: Dict[str, Any]) -> Dict[str, Any]:
    """
    Turn a nested load spec into Load column values.

    Accepts ``dimensions`` ({width, length, height}), ``payload``, ``name``,
    ``description``, ``pick_up_address`` and ``delivery_address``
    ({city, street, zip}). Missing keys are left out.
    """
    values = {}

    dimensions = spec.get("dimensions")
    if dimensions is not None:
        for field in ("width", "length", "height"):
            values[field] = dimensions.get(field)

    for field in ("payload", "name", "description"):
        if spec.get(field) is not None:
            values[field] = spec[field]

    for prefix in ("pick_up", "delivery"):
        address = spec.get(f"{prefix}_address")
        if address:
            for field in ADDRESS_FIELDS:
                values[f"{prefix}_{field}"] = address.get(field)

    return values


async def create_load(db: AsyncSession, shipper_id: int, spec: Dict[str, Any]) -> Load:
    """
    Create a NEW load owned by a shipper.

    Raises:
        InvalidLoadSpecError: If dimensions or payload are malformed
    """
    values = _flatten_spec(spec)
    dimensions = spec.get("dimensions") or {}
    validate_load_spec(
        dimensions.get("width"), dimensions.get("length"), dimensions.get("height"), spec.get("payload")
    )

    async with unit_of_work(db):
        load = Load(created_by=shipper_id, status=LoadStatus.NEW, state=None, **values)
        if load.name is None:
            load.name = "Load"
        if load.description is None:
            load.description = ""
        db.add(load)
        await db.flush()

    logger.info("Load %s created by shipper %s", load.id, shipper_id)
    return await get_load(db, load.id)


async def get_load(db: AsyncSession, load_id: int) -> Load:
    """Fetch a load or raise ResourceNotFoundError."""
    return await load_state_machine.get_load(db, load_id)


async def get_shipper_load(db: AsyncSession, load_id: int, shipper_id: int) -> Load:
    """
    Fetch a load owned by the shipper.

    Raises:
        ResourceNotFoundError: If the load does not exist
        NotAuthorizedError: If another shipper owns it
    """
    load = await get_load(db, load_id)

    if load.created_by != shipper_id:
        raise NotAuthorizedError("Access denied. You do not own this load.", details={"load_id": load_id})

    return load


async def list_shipper_loads(
    db: AsyncSession,
    shipper_id: int,
    status: Optional[LoadStatus] = None,
    page: int = 1,
    page_size: int = 50
) -> Tuple[List[Load], int]:
    """Paginated loads of a shipper, newest first, with the total count."""
    filters = [Load.created_by == shipper_id]
    if status is not None:
        filters.append(Load.status == status)

    total_result = await db.execute(select(func.count(Load.id)).where(*filters))
    total = total_result.scalar()

    offset = (page - 1) * page_size
    result = await db.execute(
        select(Load).where(*filters).order_by(Load.id.desc()).offset(offset).limit(page_size)
    )

    return list(result.scalars().all()), total


async def get_driver_active_load(db: AsyncSession, driver_id: int) -> Optional[Load]:
    """The load the driver is currently carrying, if any."""
    result = await db.execute(
        select(Load).where(
            Load.assigned_to == driver_id,
            Load.status == LoadStatus.ASSIGNED
        ).execution_options(populate_existing=True)
    )
    return result.scalars().first()


async def update_load(db: AsyncSession, load_id: int, changes: Dict[str, Any]) -> Load:
    """
    Edit a NEW load.

    Raises:
        InvalidTransitionError: If the load is no longer NEW
        InvalidLoadSpecError: If the merged dimensions/payload are malformed
    """
    load = await get_load(db, load_id)
    values = _flatten_spec(changes)

    if not values:
        return load

    validate_load_spec(
        values.get("width", load.width),
        values.get("length", load.length),
        values.get("height", load.height),
        values.get("payload", load.payload)
    )

    async with unit_of_work(db):
        result = await db.execute(
            update(Load)
            .where(Load.id == load_id, Load.status == LoadStatus.NEW)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidTransitionError(
                f"Can only edit NEW load, current status: {load.status.value}",
                details={"load_id": load_id, "status": load.status.value}
            )

    return await get_load(db, load_id)


async def delete_load(db: AsyncSession, load_id: int) -> None:
    """
    Delete a NEW or POSTED load together with its log.

    Raises:
        InvalidTransitionError: If the load has an assignment
    """
    load = await get_load(db, load_id)

    async with unit_of_work(db):
        result = await db.execute(
            delete(Load)
            .where(Load.id == load_id, Load.status.in_(DELETABLE_STATUSES))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidTransitionError(
                f"Can only delete NEW or POSTED load, current status: {load.status.value}",
                details={"load_id": load_id, "status": load.status.value}
            )
        await db.execute(delete(LoadLog).where(LoadLog.load_id == load_id))

    db.expunge(load)
    logger.info("Load %s deleted", load_id)


async def post_load(db: AsyncSession, load_id: int) -> AssignmentResult:
    """
    Post a NEW load and try to assign it right away.

    The POSTED status is committed first, so the load stays POSTED
    when no driver is found.
    """
    async with unit_of_work(db):
        await load_state_machine.post(db, load_id)

    return await post_and_assign(db, load_id)


async def retry_assignment(db: AsyncSession, load_id: int) -> AssignmentResult:
    """Run matching again for a load that is already POSTED."""
    return await post_and_assign(db, load_id)


async def unpost_load(db: AsyncSession, load_id: int) -> Load:
    """Return a POSTED load to NEW."""
    async with unit_of_work(db):
        load = await load_state_machine.unpost(db, load_id)
    return load


async def advance_load_state(db: AsyncSession, load_id: int, driver_id: int) -> Load:
    """Driver moves their load to the next state."""
    async with unit_of_work(db):
        load = await load_state_machine.advance(db, load_id, driver_id)
    return load


async def get_shipping_log(db: AsyncSession, load_id: int) -> List[LoadLog]:
    """Shipping log of an existing load, oldest entry first."""
    await get_load(db, load_id)
    return await load_state_machine.get_logs(db, load_id)


async def create_truck(
    db: AsyncSession,
    driver_id: int,
    truck_type: TruckType,
    name: Optional[str] = None
) -> Truck:
    """Register a truck for a driver."""
    async with unit_of_work(db):
        truck = await truck_registry.create_truck(db, driver_id, truck_type, name)

    logger.info("Truck %s (%s) created by driver %s", truck.id, truck.type.value, driver_id)
    return truck


async def list_trucks(db: AsyncSession, driver_id: int) -> List[Truck]:
    return await truck_registry.list_driver_trucks(db, driver_id)


async def rename_truck(db: AsyncSession, driver_id: int, truck_id: int, name: str) -> Truck:
    async with unit_of_work(db):
        truck = await truck_registry.rename_truck(db, driver_id, truck_id, name)
    return truck


async def delete_truck(db: AsyncSession, driver_id: int, truck_id: int) -> None:
    async with unit_of_work(db):
        await truck_registry.delete_truck(db, driver_id, truck_id)


async def assign_truck(db: AsyncSession, driver_id: int, truck_id: int) -> Truck:
    """Make a truck the driver's active truck."""
    async with unit_of_work(db):
        truck = await truck_registry.assign_truck(db, driver_id, truck_id)

    logger.info("Driver %s switched to truck %s", driver_id, truck_id)
    return truck


async def get_profile(db: AsyncSession, user_id: int, role: UserRole) -> User:
    """
    Fetch an active user of the given role.

    Raises:
        ResourceNotFoundError: If no such user exists
    """
    result = await db.execute(
        select(User).where(User.id == user_id, User.role == role, User.is_active == True)
    )
    user = result.scalar_one_or_none()

    if not user:
        raise ResourceNotFoundError(role.value.capitalize(), user_id)

    return user


async def deactivate_shipper(db: AsyncSession, shipper_id: int) -> User:
    """
    Deactivate a shipper account.

    Raises:
        InvalidTransitionError: If the shipper has loads in transit
    """
    user = await get_profile(db, shipper_id, UserRole.SHIPPER)

    active_result = await db.execute(
        select(func.count(Load.id)).where(
            Load.created_by == shipper_id,
            Load.status == LoadStatus.ASSIGNED
        )
    )
    if active_result.scalar():
        raise InvalidTransitionError(
            "Shipper has loads in transit and cannot be deleted",
            details={"shipper_id": shipper_id}
        )

    async with unit_of_work(db):
        user.is_active = False

    logger.info("Shipper %s deactivated", shipper_id)
    return user
