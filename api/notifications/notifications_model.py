# api/notifications/notifications_model.py

from sqlalchemy import (
    Column,
    Integer,
    Text,
    String,
    Boolean,
    Enum,
    ForeignKey,
    DateTime,
    Uuid,
    func,
)
from config.database import Base

class AttendanceNotification(Base):
    __tablename__ = "attendance_notifications"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("profiles.user_id", ondelete="CASCADE"), nullable=False, index=True)
    session_id = Column(Uuid(as_uuid=True), ForeignKey("attendance_sessions.id", ondelete="CASCADE"), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(
        Enum(
            "verification_pending",
            "attendance_confirmed",
            "attendance_failed",
            name="attendance_notification_type",
        ),
        nullable=False,
    )
    is_read = Column(Boolean, nullable=False, default=False)
    link = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
