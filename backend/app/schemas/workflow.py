"""
Workflow action request / response schemas

Reason and tracking fields are optional here on purpose: an empty or
whitespace-only value is reported as MISSING_REASON / MISSING_TRACKING_INFO
by the workflow, not as a generic request validation error.
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime


class ActionRequest(BaseModel):
    """Body for actions with no required input"""
    notes: Optional[str] = Field(None, max_length=2000)
    expected_version: Optional[int] = Field(
        None, description="Version the admin was looking at; stale versions are rejected"
    )


class ReasonRequest(ActionRequest):
    """Cancel / reject payment"""
    reason: Optional[str] = Field(None, max_length=2000)


class DispatchRequest(ActionRequest):
    """Mark an order as dispatched"""
    tracking_info: Optional[str] = Field(None, max_length=255)


class StatusHistoryResponse(BaseModel):
    """One applied transition"""
    id: int
    entity_type: str
    entity_id: int
    action: str
    field: str
    old_value: Optional[str] = None
    new_value: str
    changed_by: Optional[int] = None
    notes: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class TransitionInfo(BaseModel):
    """One row of the transition table"""
    action: str
    field: str
    from_states: List[str]
    to_state: str
    guards: Dict[str, str] = {}
    requires_reason: bool = False
    requires_tracking: bool = False
    requires_delivery_proof: bool = False
    requires_payment_proof: bool = False
    admin_only: bool = True
    owner_from_states: List[str] = []


class StatusTransitionsResponse(BaseModel):
    """Transition table and labels for one entity type"""
    entity_type: str
    statuses: Dict[str, str]
    terminal_states: List[str]
    transitions: List[TransitionInfo]


class ChangeEntry(BaseModel):
    seq: int
    entity_type: str
    entity_id: int
    action: str
    entity: Dict[str, Any]
    published_at: str


class ChangeFeedResponse(BaseModel):
    """Entries newer than ``since``"""
    last_seq: int
    changes: List[ChangeEntry]


class NotificationResponse(BaseModel):
    message: str
    severity: str
    created_at: str
    entity_type: Optional[str] = None
    entity_id: Optional[int] = None
    action: Optional[str] = None
    error: Optional[str] = None
