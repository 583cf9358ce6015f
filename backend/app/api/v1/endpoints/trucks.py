"""
Truck API Endpoints.

Drivers register and manage their own trucks.
"""

from fastapi import APIRouter, Depends, status, Path
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.models.enums import UserRole
from backend.app.schemas.truck import TruckCreate, TruckUpdate, TruckResponse, TruckListResponse
from backend.app.core.guards import require_role
from backend.app.services import freight_engine

router = APIRouter(prefix="/trucks", tags=["Driver - Trucks"])


@router.post("", response_model=TruckResponse, status_code=status.HTTP_201_CREATED)
async def create_truck(
    truck_data: TruckCreate,
    current_user: dict = Depends(require_role([UserRole.DRIVER])),
    db: AsyncSession = Depends(get_db)
):
    """Register a FREE truck of a capacity class (Driver only)."""
    truck = await freight_engine.create_truck(
        db, current_user["user_id"], truck_data.type, truck_data.name
    )
    return TruckResponse.model_validate(truck)


@router.get("", response_model=TruckListResponse)
async def list_trucks(
    current_user: dict = Depends(require_role([UserRole.DRIVER])),
    db: AsyncSession = Depends(get_db)
):
    """List own trucks (Driver only)."""
    trucks = await freight_engine.list_trucks(db, current_user["user_id"])
    return TruckListResponse(
        trucks=[TruckResponse.model_validate(truck) for truck in trucks],
        total=len(trucks)
    )


@router.patch("/{truck_id}/assign", response_model=TruckResponse)
async def assign_truck(
    truck_id: int = Path(..., description="Truck ID"),
    current_user: dict = Depends(require_role([UserRole.DRIVER])),
    db: AsyncSession = Depends(get_db)
):
    """
    Make a truck the driver's active truck (Driver only).

    Fails with ERR_TRUCK_UNAVAILABLE while the driver carries a load.
    """
    truck = await freight_engine.assign_truck(db, current_user["user_id"], truck_id)
    return TruckResponse.model_validate(truck)


@router.put("/{truck_id}", response_model=TruckResponse)
async def rename_truck(
    truck_data: TruckUpdate,
    truck_id: int = Path(..., description="Truck ID"),
    current_user: dict = Depends(require_role([UserRole.DRIVER])),
    db: AsyncSession = Depends(get_db)
):
    """Rename an own truck (Driver only)."""
    truck = await freight_engine.rename_truck(db, current_user["user_id"], truck_id, truck_data.name)
    return TruckResponse.model_validate(truck)


@router.delete("/{truck_id}")
async def delete_truck(
    truck_id: int = Path(..., description="Truck ID"),
    current_user: dict = Depends(require_role([UserRole.DRIVER])),
    db: AsyncSession = Depends(get_db)
):
    """Delete an own FREE truck (Driver only)."""
    await freight_engine.delete_truck(db, current_user["user_id"], truck_id)
    return {"truck_id": truck_id, "deleted": True}
