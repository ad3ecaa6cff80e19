# api/profiles/profiles_model.py

from sqlalchemy import (
    Column,
    String,
    Text,
    DateTime,
    Enum,
    Uuid,
    func,
)
import uuid
from config.database import Base


class Profile(Base):
    __tablename__ = "profiles"

    id         = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id    = Column(Uuid(as_uuid=True), nullable=False, unique=True, default=uuid.uuid4)
    full_name  = Column(Text, nullable=False)
    email      = Column(String(255), nullable=False)
    role       = Column(Enum("student", "teacher", name="profile_role"), nullable=False, server_default="student")
    # tag id printed on the student card, as presented by the reader
    rfid_tag   = Column(String(64), nullable=True, unique=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
