from sqlalchemy import (
    Column,
    Integer,
    Float,
    DateTime,
    Enum,
    ForeignKey,
    Uuid,
    func,
    UniqueConstraint,
)
import enum
from config.database import Base

class AttendanceStatus(enum.Enum):
    pending = "pending"
    present = "present"
    absent  = "absent"

class VerificationMethod(enum.Enum):
    manual   = "manual"
    rfid     = "rfid"
    location = "location"

class AttendanceRecord(Base):
    __tablename__ = "attendance_records"
    __table_args__ = (
        UniqueConstraint("session_id", "student_id", name="uq_attendance_session_student"),
    )

    id                  = Column(Integer, primary_key=True, index=True)
    session_id          = Column(Uuid(as_uuid=True), ForeignKey("attendance_sessions.id", ondelete="CASCADE"), nullable=False)
    student_id          = Column(Uuid(as_uuid=True), ForeignKey("profiles.user_id", ondelete="CASCADE"), nullable=False)
    status              = Column(Enum(AttendanceStatus), nullable=False, default=AttendanceStatus.pending)
    verification_method = Column(Enum(VerificationMethod), nullable=True, default=VerificationMethod.rfid)
    reader_latitude     = Column(Float, nullable=True)
    reader_longitude    = Column(Float, nullable=True)
    # written once, on the pending -> present/absent transition
    confirmed_at        = Column(DateTime(timezone=True), nullable=True)
    confirmer_latitude  = Column(Float, nullable=True)
    confirmer_longitude = Column(Float, nullable=True)
    distance_meters     = Column(Float, nullable=True)
    created_at          = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at          = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __init__(self, session_id, student_id, reader_latitude=None, reader_longitude=None,
                 method=VerificationMethod.rfid):
        self.session_id          = session_id
        self.student_id          = student_id
        self.status              = AttendanceStatus.pending
        self.verification_method = method
        self.reader_latitude     = reader_latitude
        self.reader_longitude    = reader_longitude
