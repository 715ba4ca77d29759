"""
Admin endpoints - requires admin authentication
"""
from fastapi import APIRouter
from . import activity, dashboard, offers, orders, realtime, remittance_types, remittances

router = APIRouter()

# Admin Dashboard
router.include_router(dashboard.router)

# Orders (payment validation, dispatch, delivery proof)
router.include_router(orders.router)

# Remittances (payment validation, delivery confirmation, deadline alerts)
router.include_router(remittances.router)

# Remittance types (rates, commissions, limits)
router.include_router(remittance_types.router)

# Offers / Coupons
router.include_router(offers.router)

# Activity Log
router.include_router(activity.router)

# Change feed and notifications
router.include_router(realtime.router)
