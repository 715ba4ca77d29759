"""
Admin change feed and notifications

List views poll ``/changes?since=<last_seq>`` and replace each entity they
hold with the snapshot received; the notification bell drains
``/notifications``.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from app.api.v1.deps import get_current_admin_user
from app.models.user import User
from app.schemas.workflow import ChangeFeedResponse, NotificationResponse
from app.services.change_feed import change_feed
from app.services.notification_service import notifications

router = APIRouter(tags=["Admin - Realtime"])


@router.get("/changes", response_model=ChangeFeedResponse)
async def get_changes(
    since: int = Query(0, ge=0, description="Last sequence number already seen"),
    entity_type: Optional[str] = Query(None, description="order or remittance"),
    current_admin: User = Depends(get_current_admin_user),
):
    return {
        "last_seq": change_feed.last_seq,
        "changes": change_feed.since(since, entity_type),
    }


@router.get("/notifications", response_model=List[NotificationResponse])
async def get_notifications(
    peek: bool = Query(False, description="Return without clearing"),
    current_admin: User = Depends(get_current_admin_user),
):
    """Notifications queued for the current admin; cleared unless ``peek``."""
    if peek:
        return notifications.peek(current_admin.id)
    return notifications.drain(current_admin.id)
