"""
Truck Pydantic schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from backend.app.models.truck_enums import TruckType, TruckStatus


class TruckCreate(BaseModel):
    """Schema for registering a truck."""
    type: TruckType = Field(..., description="Capacity class")
    name: Optional[str] = Field(None, max_length=100, description="Optional label")


class TruckUpdate(BaseModel):
    """Only the label can change; capacity class is fixed."""
    name: str = Field(..., min_length=1, max_length=100)


class TruckResponse(BaseModel):
    """Schema for truck response."""
    id: int
    created_by: int
    name: Optional[str]
    type: TruckType
    status: TruckStatus
    is_active: bool
    created_at: datetime
    
    class Config:
        from_attributes = True


class TruckListResponse(BaseModel):
    trucks: List[TruckResponse]
    total: int
