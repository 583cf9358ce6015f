"""
Truck database model.

Drivers register trucks of a fixed capacity class.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Enum, Index, text
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.truck_enums import TruckType, TruckStatus


class Truck(Base):
    """
    Truck model.
    
    ``type`` is fixed at creation. ``status`` moves FREE -> ASSIGNED -> ON_ROUTE -> FREE
    through conditional updates in the truck registry. ``is_active`` marks the
    truck the driver currently drives (at most one per driver).
    """
    __tablename__ = "trucks"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    # Ownership - Truck belongs to Driver
    created_by = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    
    name = Column(String(100), nullable=True)
    type = Column(Enum(TruckType), nullable=False)
    status = Column(Enum(TruckStatus), default=TruckStatus.FREE, nullable=False, index=True)
    is_active = Column(Boolean, default=False, nullable=False)
    
    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    # At most one busy (non-FREE) truck per driver
    __table_args__ = (
        Index('ix_trucks_one_busy_per_driver', 'created_by', unique=True,
              postgresql_where=text("status != 'FREE'"),
              sqlite_where=text("status != 'FREE'")),
    )
    
    def __repr__(self):
        return f"<Truck(id={self.id}, type='{self.type.value}', status='{self.status.value}', driver={self.created_by})>"
