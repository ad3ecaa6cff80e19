# api/notifications/notifications_schema.py
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

class NotificationRead(BaseModel):
    id: int
    student_id: UUID
    session_id: UUID
    message: str
    type: Literal["verification_pending", "attendance_confirmed", "attendance_failed"]
    read: bool = Field(..., alias="is_read")
    link: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)
