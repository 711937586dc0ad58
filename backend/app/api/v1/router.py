"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from backend.app.api.v1.endpoints import admin_pricing, payments, tracking, transport_pricing

router = APIRouter()

# Admin pricing configuration
router.include_router(admin_pricing.router)

# Quotes, routes and price locking
router.include_router(transport_pricing.router)

# Live tracking
router.include_router(tracking.router)

# Transactions and payment stats
router.include_router(payments.router)
router.include_router(payments.admin_router)
