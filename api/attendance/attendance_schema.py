# api/attendance/attendance_schema.py

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional
from uuid import UUID
from datetime import datetime

from api.attendance.attendance_records_model import AttendanceStatus, VerificationMethod


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CheckInIn(CamelModel):
    """
    Sent by a classroom reader when it detects a student's tag.
    """
    reader_id: str = Field(..., min_length=1, max_length=64)
    subject_identifier: str = Field(
        ...,
        min_length=1,
        max_length=64,
        alias="subjectIdentifierAsPresentedByReader",
    )
    reader_latitude: float = Field(..., ge=-90, le=90)
    reader_longitude: float = Field(..., ge=-180, le=180)


class CheckInOut(CamelModel):
    success: bool = True
    subject_display_name: str
    session_label: str
    confirmation_link: str
    expires_in_minutes: int


class VerifyIn(CamelModel):
    token_id: str = Field(..., min_length=1, max_length=64)
    confirmer_latitude: float = Field(..., ge=-90, le=90)
    confirmer_longitude: float = Field(..., ge=-180, le=180)


class VerifyOut(CamelModel):
    success: bool = True
    within_range: bool
    distance_meters: int
    session_label: str
    message: str


class VerificationDetailsOut(CamelModel):
    token_id: str
    session_label: str
    classroom_name: Optional[str] = None
    expires_at: datetime
    consumed: bool
    expired: bool


class AttendanceRecordOut(CamelModel):
    session_id: UUID
    student_id: UUID
    status: AttendanceStatus
    verification_method: Optional[VerificationMethod] = None
    confirmed_at: Optional[datetime] = None
    confirmer_latitude: Optional[float] = None
    confirmer_longitude: Optional[float] = None
    distance_meters: Optional[float] = None

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class ErrorOut(BaseModel):
    success: bool = False
    error: str
