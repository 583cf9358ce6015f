"""
Load API Endpoints.

Shippers create, edit and post loads; drivers advance the loads assigned to them.
"""

from typing import Optional
from fastapi import APIRouter, Depends, status, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.models.enums import UserRole
from backend.app.models.load_enums import LoadStatus
from backend.app.schemas.load import (
    LoadCreate, LoadUpdate, LoadResponse, LoadListResponse,
    PostLoadResponse, ShippingLogResponse, LoadLogResponse
)
from backend.app.core.guards import require_role
from backend.app.core.dependencies import get_current_user
from backend.app.core.exceptions import NotAuthorizedError
from backend.app.services import freight_engine
from backend.app.services.assignment import AssignmentResult

router = APIRouter(prefix="/loads", tags=["Loads"])


async def _post_response(db: AsyncSession, result: AssignmentResult) -> PostLoadResponse:
    load = await freight_engine.get_load(db, result.load_id)
    return PostLoadResponse(
        load_id=load.id,
        status=load.status,
        assigned_to=result.driver_id,
        truck_id=result.truck_id,
        no_driver_found=result.no_driver_found
    )


async def _get_visible_load(db: AsyncSession, load_id: int, current_user: dict):
    """Load visible to its shipper or to the driver it is assigned to."""
    load = await freight_engine.get_load(db, load_id)
    user_id = current_user["user_id"]

    if current_user.get("role") == UserRole.SHIPPER.value and load.created_by == user_id:
        return load
    if current_user.get("role") == UserRole.DRIVER.value and load.assigned_to == user_id:
        return load

    raise NotAuthorizedError("Access denied. You do not have permission to access this load.")


@router.post("", response_model=LoadResponse, status_code=status.HTTP_201_CREATED)
async def create_load(
    load_data: LoadCreate,
    current_user: dict = Depends(require_role([UserRole.SHIPPER])),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a NEW load (Shipper only).

    Rejects non-positive dimensions or payload with ERR_LOAD_SPEC.
    """
    load = await freight_engine.create_load(db, current_user["user_id"], load_data.model_dump())
    return LoadResponse.from_load(load)


@router.get("", response_model=LoadListResponse)
async def list_loads(
    status_filter: Optional[LoadStatus] = Query(None, alias="status", description="Filter by status (shippers)"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    List loads.

    Shippers see their own loads; drivers see the load they are carrying.
    """
    if current_user.get("role") == UserRole.DRIVER.value:
        active = await freight_engine.get_driver_active_load(db, current_user["user_id"])
        loads = [active] if active else []
        return LoadListResponse(
            loads=[LoadResponse.from_load(load) for load in loads],
            total=len(loads),
            page=1,
            page_size=page_size
        )

    loads, total = await freight_engine.list_shipper_loads(
        db, current_user["user_id"], status=status_filter, page=page, page_size=page_size
    )
    return LoadListResponse(
        loads=[LoadResponse.from_load(load) for load in loads],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/{load_id}", response_model=LoadResponse)
async def get_load(
    load_id: int = Path(..., description="Load ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get a load (its shipper or assigned driver)."""
    load = await _get_visible_load(db, load_id, current_user)
    return LoadResponse.from_load(load)


@router.put("/{load_id}", response_model=LoadResponse)
async def update_load(
    load_data: LoadUpdate,
    load_id: int = Path(..., description="Load ID"),
    current_user: dict = Depends(require_role([UserRole.SHIPPER])),
    db: AsyncSession = Depends(get_db)
):
    """Edit a NEW load (owning Shipper only)."""
    await freight_engine.get_shipper_load(db, load_id, current_user["user_id"])
    load = await freight_engine.update_load(db, load_id, load_data.model_dump(exclude_none=True))
    return LoadResponse.from_load(load)


@router.delete("/{load_id}")
async def delete_load(
    load_id: int = Path(..., description="Load ID"),
    current_user: dict = Depends(require_role([UserRole.SHIPPER])),
    db: AsyncSession = Depends(get_db)
):
    """Delete a NEW or POSTED load (owning Shipper only)."""
    await freight_engine.get_shipper_load(db, load_id, current_user["user_id"])
    await freight_engine.delete_load(db, load_id)
    return {"load_id": load_id, "deleted": True}


@router.patch("/{load_id}/post", response_model=PostLoadResponse)
async def post_load(
    load_id: int = Path(..., description="Load ID"),
    current_user: dict = Depends(require_role([UserRole.SHIPPER])),
    db: AsyncSession = Depends(get_db)
):
    """
    Post a NEW load and match it with a driver (owning Shipper only).

    When no truck fits, the load stays POSTED and ``no_driver_found`` is true.
    """
    await freight_engine.get_shipper_load(db, load_id, current_user["user_id"])
    result = await freight_engine.post_load(db, load_id)
    return await _post_response(db, result)


@router.patch("/{load_id}/match", response_model=PostLoadResponse)
async def retry_matching(
    load_id: int = Path(..., description="Load ID"),
    current_user: dict = Depends(require_role([UserRole.SHIPPER])),
    db: AsyncSession = Depends(get_db)
):
    """Run matching again for a POSTED load (owning Shipper only)."""
    await freight_engine.get_shipper_load(db, load_id, current_user["user_id"])
    result = await freight_engine.retry_assignment(db, load_id)
    return await _post_response(db, result)


@router.patch("/{load_id}/unpost", response_model=LoadResponse)
async def unpost_load(
    load_id: int = Path(..., description="Load ID"),
    current_user: dict = Depends(require_role([UserRole.SHIPPER])),
    db: AsyncSession = Depends(get_db)
):
    """Return a POSTED load to NEW so it can be edited (owning Shipper only)."""
    await freight_engine.get_shipper_load(db, load_id, current_user["user_id"])
    load = await freight_engine.unpost_load(db, load_id)
    return LoadResponse.from_load(load)


@router.patch("/{load_id}/state", response_model=LoadResponse)
async def advance_load_state(
    load_id: int = Path(..., description="Load ID"),
    current_user: dict = Depends(require_role([UserRole.DRIVER])),
    db: AsyncSession = Depends(get_db)
):
    """
    Advance the load to its next state (assigned Driver only).

    The last step delivers the load and frees the truck.
    """
    load = await freight_engine.advance_load_state(db, load_id, current_user["user_id"])
    return LoadResponse.from_load(load)


@router.get("/{load_id}/logs", response_model=ShippingLogResponse)
async def get_shipping_log(
    load_id: int = Path(..., description="Load ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Shipping log in chronological order (shipper or assigned driver)."""
    await _get_visible_load(db, load_id, current_user)
    logs = await freight_engine.get_shipping_log(db, load_id)
    return ShippingLogResponse(
        load_id=load_id,
        logs=[LoadLogResponse.model_validate(entry) for entry in logs]
    )
