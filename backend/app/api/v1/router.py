"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from backend.app.api.v1.endpoints import auth, loads, trucks, profiles

router = APIRouter()

# Include authentication endpoints
router.include_router(auth.router)

# Shipper load lifecycle and driver state changes
router.include_router(loads.router)

# Driver truck management
router.include_router(trucks.router)

# Profile lookups
router.include_router(profiles.router)
