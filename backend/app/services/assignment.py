"""
Assignment coordinator.

Matches a POSTED load with a FREE truck and commits the truck reservation,
the load transition and the log entry as one transaction.
"""

import logging
from typing import Optional

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.exceptions import InvalidTransitionError, TruckUnavailableError
from backend.app.models.load_enums import LoadStatus
from backend.app.services import load_state_machine, truck_registry
from backend.app.services.capacity_matcher import find_eligible_trucks

logger = logging.getLogger(__name__)


class AssignmentResult(BaseModel):
    """Outcome of matching a posted load."""
    load_id: int
    driver_id: Optional[int] = None
    truck_id: Optional[int] = None
    no_driver_found: bool = False


def _ensure_posted(load) -> None:
    if load.status != LoadStatus.POSTED:
        raise InvalidTransitionError(
            f"Can only assign POSTED load, current status: {load.status.value}",
            details={"load_id": load.id, "status": load.status.value}
        )


async def post_and_assign(db: AsyncSession, load_id: int) -> AssignmentResult:
    """
    Assign a POSTED load to the smallest eligible FREE truck.

    Flow:
    1. Validate the load is POSTED
    2. Snapshot FREE trucks
    3. Order eligible trucks smallest capacity first, then by id
    4. Reserve a truck, then assign the load to its driver
    5. Lost reservation -> roll back, next candidate
    6. Failed assign -> release; next candidate while the load is still POSTED
    7. Nothing left -> no driver found, load stays POSTED

    Raises:
        InvalidTransitionError: If the load is not POSTED, including when a
            concurrent request assigned it first
        InvalidLoadSpecError: If the load spec is malformed
    """
    load = await load_state_machine.get_load(db, load_id)
    _ensure_posted(load)

    free_trucks = await truck_registry.list_free_trucks(
        db, active_only=settings.match_active_trucks_only
    )
    candidate_ids = [truck.id for truck in find_eligible_trucks(load, free_trucks)]

    try:
        for truck_id in candidate_ids:
            try:
                reserved = await truck_registry.reserve(db, truck_id)
            except TruckUnavailableError:
                # Only net-zero reserve/release pairs are pending at this point
                await db.rollback()
                logger.info("Truck %s taken concurrently, trying next candidate for load %s", truck_id, load_id)
                continue

            try:
                await load_state_machine.assign(db, load_id, reserved.created_by, reserved.id)
            except InvalidTransitionError as e:
                await truck_registry.release(db, reserved.id)
                logger.warning("Assigning load %s to truck %s failed: %s", load_id, reserved.id, e.message)
                _ensure_posted(await load_state_machine.get_load(db, load_id))
                continue

            await db.commit()

            return AssignmentResult(
                load_id=load_id,
                driver_id=reserved.created_by,
                truck_id=reserved.id
            )

        _ensure_posted(await load_state_machine.get_load(db, load_id))
    except Exception:
        await db.rollback()
        raise

    await db.commit()

    logger.info("No driver found for load %s (%d candidates tried)", load_id, len(candidate_ids))
    return AssignmentResult(load_id=load_id, no_driver_found=True)
