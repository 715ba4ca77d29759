"""
Admin Activity Log - who did what, newest first
"""
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import desc, or_
from sqlalchemy.orm import Session, joinedload

from app.api.v1.deps import get_current_admin_user, get_pagination_params
from app.db.session import get_db
from app.models.activity_log import ActivityLog
from app.models.user import User
from app.schemas.activity_log import ActivityLogResponse
from app.schemas.common import ListResponse, PaginationParams

router = APIRouter(prefix="/activity", tags=["Admin - Activity"])


def _to_response(entry: ActivityLog) -> ActivityLogResponse:
    return ActivityLogResponse(
        id=entry.id,
        action=entry.action,
        entity_type=entry.entity_type,
        entity_id=entry.entity_id,
        performed_by=entry.performed_by,
        performed_by_email=entry.user.email if entry.user else None,
        description=entry.description,
        metadata=entry.details or {},
        created_at=entry.created_at,
    )


@router.get("", response_model=ListResponse[ActivityLogResponse])
async def list_activity(
    pagination: Annotated[PaginationParams, Depends(get_pagination_params)],
    action: Optional[str] = Query(None, description="e.g. validate_payment, cancel, offer_created"),
    entity_type: Optional[str] = Query(None, description="order, remittance or offer"),
    search: Optional[str] = Query(None, description="Description, entity id or admin email"),
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    """
    List admin activity.

    ``search`` matches the description, the entity id, or the email of the
    admin who performed the action.
    """
    query = db.query(ActivityLog).options(joinedload(ActivityLog.user))
    if action:
        query = query.filter(ActivityLog.action == action)
    if entity_type:
        query = query.filter(ActivityLog.entity_type == entity_type)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.outerjoin(User, ActivityLog.performed_by == User.id).filter(
            or_(
                ActivityLog.description.ilike(pattern),
                ActivityLog.entity_id.ilike(pattern),
                User.email.ilike(pattern),
            )
        )

    total = query.count()
    entries = (
        query.order_by(desc(ActivityLog.created_at), desc(ActivityLog.id))
        .offset(pagination.offset)
        .limit(pagination.limit)
        .all()
    )
    items = [_to_response(e) for e in entries]

    return {
        "items": items,
        "pagination": {
            "total": total,
            "offset": pagination.offset,
            "limit": pagination.limit,
            "returned": len(items),
        },
    }
