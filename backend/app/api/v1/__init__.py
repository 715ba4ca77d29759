"""
API v1 Router - RemitDesk
"""
from fastapi import APIRouter
from app.api.v1.endpoints import auth, orders, remittances
from app.api.v1.endpoints.admin import router as admin_router

router = APIRouter()

# Authentication
router.include_router(auth.router)

# Customer orders (checkout, payment proof upload)
router.include_router(orders.router)

# Customer remittances (create, payment proof upload, self-cancel)
router.include_router(remittances.router)

# Admin (orders, remittances, offers, activity, dashboard)
router.include_router(
    admin_router,
    prefix="/admin",
    tags=["admin"]
)
