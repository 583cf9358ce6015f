"""
Load database model.

A load is created by a shipper, posted for matching and carried by a driver's truck.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Enum
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.load_enums import LoadStatus, LoadState


class Load(Base):
    """
    Load model.
    
    ``status`` is the coarse lifecycle phase; ``state`` is only set while
    the load is ASSIGNED. Both are changed exclusively through conditional
    updates in the load state machine service.
    """
    __tablename__ = "loads"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), default="Load", nullable=False)
    description = Column(String(1000), default="", nullable=False)
    
    # Ownership - Load belongs to Shipper
    created_by = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    
    # Assignment (kept after delivery as history)
    assigned_to = Column(Integer, ForeignKey('users.id'), nullable=True, index=True)
    truck_id = Column(Integer, ForeignKey('trucks.id', ondelete="SET NULL"), nullable=True, index=True)
    
    # Lifecycle
    status = Column(Enum(LoadStatus), default=LoadStatus.NEW, nullable=False, index=True)
    state = Column(Enum(LoadState), nullable=True)
    
    # Dimensions (cm) and payload (kg)
    width = Column(Float, nullable=False)
    length = Column(Float, nullable=False)
    height = Column(Float, nullable=False)
    payload = Column(Float, nullable=False)
    
    # Addresses
    pick_up_city = Column(String(100), nullable=True)
    pick_up_street = Column(String(255), nullable=True)
    pick_up_zip = Column(String(5), nullable=True)
    delivery_city = Column(String(100), nullable=True)
    delivery_street = Column(String(255), nullable=True)
    delivery_zip = Column(String(5), nullable=True)
    
    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<Load(id={self.id}, status='{self.status.value}', assigned_to={self.assigned_to})>"
