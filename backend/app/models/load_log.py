"""
Load shipping log model.

Append-only history of a load's transitions. Ordering is by ``id``.
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from backend.app.db.session import Base


class LoadLog(Base):
    """One entry of a load's shipping log. Rows are inserted, never updated."""
    __tablename__ = "load_logs"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    load_id = Column(Integer, ForeignKey('loads.id', ondelete="CASCADE"), nullable=False, index=True)
    message = Column(String(500), nullable=False)
    time = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<LoadLog(load_id={self.load_id}, message='{self.message}')>"
