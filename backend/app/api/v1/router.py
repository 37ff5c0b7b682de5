"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from backend.app.api.v1.endpoints import loads, trips, payments

router = APIRouter()

# Load board and assignment
router.include_router(loads.router)

# Trip execution
router.include_router(trips.router)

# Escrow payments and disputes
router.include_router(payments.router)
router.include_router(payments.admin_router)
