"""
Admin Dashboard Endpoints

Summary numbers for the back office: orders, remittances and remittances
close to their delivery deadline.
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.v1.deps import get_current_admin_user
from app.db.session import get_db
from app.models.user import User
from app.schemas.dashboard import DashboardResponse
from app.services.dashboard_stats import (
    get_order_stats,
    get_remittance_stats,
    remittances_needing_alert,
)

router = APIRouter(prefix="/dashboard", tags=["Admin - Dashboard"])


@router.get("", response_model=DashboardResponse)
async def get_dashboard(
    start_date: Optional[datetime] = Query(None, description="Only count records created on/after"),
    end_date: Optional[datetime] = Query(None, description="Only count records created on/before"),
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    """
    Get admin dashboard stats.

    The alert count ignores the date range; it always reflects what is due now.
    """
    return {
        "orders": get_order_stats(db, start_date, end_date),
        "remittances": get_remittance_stats(db, start_date, end_date),
        "remittances_needing_alert": len(remittances_needing_alert(db)),
    }
