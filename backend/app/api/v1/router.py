"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from backend.app.api.v1.endpoints import (
    rates, quotes, requests, profitability, settlements
)

router = APIRouter()

# Rate tables and fare calculation
router.include_router(rates.router)
router.include_router(rates.center_fare_router)
router.include_router(quotes.router)

# Transport requests and dispatch
router.include_router(requests.router)

# Billing
router.include_router(settlements.router)
router.include_router(profitability.router)
