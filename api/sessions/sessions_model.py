# api/sessions/sessions_model.py

from sqlalchemy import (
    Column,
    String,
    Text,
    Float,
    Boolean,
    DateTime,
    ForeignKey,
    Uuid,
    func,
)
from sqlalchemy.orm import relationship
import uuid
from config.database import Base


class Subject(Base):
    __tablename__ = "subjects"

    id         = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name       = Column(Text, nullable=False)
    code       = Column(String(32), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Classroom(Base):
    __tablename__ = "classrooms"

    id         = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name       = Column(Text, nullable=False)
    location   = Column(Text, nullable=True)
    latitude   = Column(Float, nullable=True)
    longitude  = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class AttendanceSession(Base):
    __tablename__ = "attendance_sessions"

    id               = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    subject_id       = Column(Uuid(as_uuid=True), ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False)
    classroom_id     = Column(Uuid(as_uuid=True), ForeignKey("classrooms.id", ondelete="CASCADE"), nullable=False)
    reader_device_id = Column(String(64), nullable=True, index=True)
    is_active        = Column(Boolean, nullable=False, default=True)
    created_at       = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at       = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    subject   = relationship("Subject", lazy="joined")
    classroom = relationship("Classroom", lazy="joined")

    @property
    def label(self) -> str:
        """Human-readable session name shown to students and readers."""
        return self.subject.name if self.subject else str(self.id)
