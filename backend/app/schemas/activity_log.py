"""
Activity Log Pydantic Schemas
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
from datetime import datetime


class ActivityLogResponse(BaseModel):
    id: int
    action: str
    entity_type: str
    entity_id: Optional[str] = None
    performed_by: Optional[int] = None
    performed_by_email: Optional[str] = None
    description: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
