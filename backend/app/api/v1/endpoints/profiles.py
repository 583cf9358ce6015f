"""
Profile API Endpoints.

Public driver/shipper profile lookups and shipper account removal.
"""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.models.enums import UserRole
from backend.app.schemas.auth import UserResponse
from backend.app.core.guards import require_role
from backend.app.core.dependencies import get_current_user
from backend.app.services import freight_engine

router = APIRouter(tags=["Profiles"])


@router.get("/drivers/{driver_id}", response_model=UserResponse)
async def get_driver_profile(
    driver_id: int = Path(..., description="Driver ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Driver profile (any authenticated user)."""
    driver = await freight_engine.get_profile(db, driver_id, UserRole.DRIVER)
    return UserResponse.model_validate(driver)


@router.get("/shippers/{shipper_id}", response_model=UserResponse)
async def get_shipper_profile(
    shipper_id: int = Path(..., description="Shipper ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Shipper profile (any authenticated user)."""
    shipper = await freight_engine.get_profile(db, shipper_id, UserRole.SHIPPER)
    return UserResponse.model_validate(shipper)


@router.delete("/shippers/me")
async def delete_own_shipper_account(
    current_user: dict = Depends(require_role([UserRole.SHIPPER])),
    db: AsyncSession = Depends(get_db)
):
    """
    Deactivate the caller's shipper account.

    Refused while any of the shipper's loads is in transit.
    """
    shipper = await freight_engine.deactivate_shipper(db, current_user["user_id"])
    return {"shipper_id": shipper.id, "deleted": True}
