"""
User roles enumeration.

Defines the role types for the freight brokerage system.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.
    
    Roles:
        SHIPPER: Creates and posts loads
        DRIVER: Owns trucks and carries assigned loads (default role)
    """
    SHIPPER = "SHIPPER"
    DRIVER = "DRIVER"
