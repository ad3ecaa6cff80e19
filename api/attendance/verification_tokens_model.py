from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    DateTime,
    Boolean,
    ForeignKey,
    Index,
    Uuid,
    func,
)
from config.database import Base

class VerificationToken(Base):
    __tablename__ = "verification_tokens"
    __table_args__ = (
        Index("ix_verification_tokens_active", "session_id", "student_id", "consumed", "expires_at"),
    )

    id               = Column(Integer, primary_key=True, index=True)
    token            = Column(String(64), nullable=False, unique=True, index=True)
    session_id       = Column(Uuid(as_uuid=True), ForeignKey("attendance_sessions.id", ondelete="CASCADE"), nullable=False)
    student_id       = Column(Uuid(as_uuid=True), ForeignKey("profiles.user_id", ondelete="CASCADE"), nullable=False)
    reader_device_id = Column(String(64), nullable=True)
    reader_latitude  = Column(Float, nullable=False)
    reader_longitude = Column(Float, nullable=False)
    issued_at        = Column(DateTime(timezone=True), nullable=False)
    expires_at       = Column(DateTime(timezone=True), nullable=False)
    consumed         = Column(Boolean, nullable=False, default=False)
    consumed_at      = Column(DateTime(timezone=True), nullable=True)
    created_at       = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __init__(self, token, session_id, student_id, reader_latitude, reader_longitude,
                 issued_at, expires_at, reader_device_id=None):
        self.token            = token
        self.session_id       = session_id
        self.student_id       = student_id
        self.reader_latitude  = reader_latitude
        self.reader_longitude = reader_longitude
        self.issued_at        = issued_at
        self.expires_at       = expires_at
        self.reader_device_id = reader_device_id
        self.consumed         = False
