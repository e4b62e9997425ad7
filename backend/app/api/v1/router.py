"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from backend.app.api.v1.endpoints import drivers, maintenance, vehicles

router = APIRouter()

# Vehicles, assignment and status changes
router.include_router(vehicles.router)

# Driver profiles
router.include_router(drivers.router)

# Maintenance ledger (read-only)
router.include_router(maintenance.router)
