"""
Load Pydantic schemas.

Dimension and payload values are checked by the capacity matcher rules,
so malformed specs surface as ERR_LOAD_SPEC rather than a schema error.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from backend.app.models.load_enums import LoadStatus, LoadState


class Dimensions(BaseModel):
    """Load bounding box in cm."""
    width: float
    length: float
    height: float


class Address(BaseModel):
    """Postal address of a pick-up or delivery point."""
    city: str = Field(..., min_length=1, max_length=100)
    street: str = Field(..., min_length=1, max_length=255)
    zip: str = Field(..., min_length=5, max_length=5)


class LoadCreate(BaseModel):
    """Schema for creating a load."""
    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    dimensions: Dimensions
    payload: float = Field(..., description="Weight in kg")
    pick_up_address: Optional[Address] = None
    delivery_address: Optional[Address] = None


class LoadUpdate(BaseModel):
    """Schema for editing a NEW load. Omitted fields are left unchanged."""
    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    dimensions: Optional[Dimensions] = None
    payload: Optional[float] = None
    pick_up_address: Optional[Address] = None
    delivery_address: Optional[Address] = None


class LoadLogResponse(BaseModel):
    """One shipping log entry."""
    message: str
    time: datetime
    
    class Config:
        from_attributes = True


class LoadResponse(BaseModel):
    """Schema for load response."""
    id: int
    name: str
    description: str
    created_by: int
    assigned_to: Optional[int]
    truck_id: Optional[int]
    status: LoadStatus
    state: Optional[LoadState]
    dimensions: Dimensions
    payload: float
    pick_up_address: Optional[Address]
    delivery_address: Optional[Address]
    created_at: datetime
    
    @classmethod
    def from_load(cls, load) -> "LoadResponse":
        return cls(
            id=load.id,
            name=load.name,
            description=load.description,
            created_by=load.created_by,
            assigned_to=load.assigned_to,
            truck_id=load.truck_id,
            status=load.status,
            state=load.state,
            dimensions=Dimensions(width=load.width, length=load.length, height=load.height),
            payload=load.payload,
            pick_up_address=_address(load, "pick_up"),
            delivery_address=_address(load, "delivery"),
            created_at=load.created_at,
        )


def _address(load, prefix: str) -> Optional[Address]:
    city = getattr(load, f"{prefix}_city")
    if not city:
        return None
    return Address(
        city=city,
        street=getattr(load, f"{prefix}_street"),
        zip=getattr(load, f"{prefix}_zip"),
    )


class LoadListResponse(BaseModel):
    """Schema for paginated load list."""
    loads: List[LoadResponse]
    total: int
    page: int
    page_size: int


class PostLoadResponse(BaseModel):
    """Result of posting a load."""
    load_id: int
    status: LoadStatus
    assigned_to: Optional[int] = None
    truck_id: Optional[int] = None
    no_driver_found: bool = False


class ShippingLogResponse(BaseModel):
    load_id: int
    logs: List[LoadLogResponse]
