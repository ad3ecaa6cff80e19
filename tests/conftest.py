import os
import pathlib
import sys
import tempfile
from types import SimpleNamespace

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

_DB_DIR = tempfile.mkdtemp(prefix="attendance-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR}/attendance.db"
os.environ["CLIENT_URL"] = "https://attend.example.edu"
os.environ.pop("READER_API_KEY", None)

from config.database import Base, SessionLocal, engine  # noqa: E402
from models.index import init_db  # noqa: E402
from api.profiles.profiles_model import Profile  # noqa: E402
from api.sessions.sessions_model import AttendanceSession, Classroom, Subject  # noqa: E402

init_db()

READER_LAT = 14.5995
READER_LNG = 120.9842


@pytest.fixture(autouse=True)
def clean_tables():
    yield
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def roster(db):
    subject = Subject(name="Data Structures", code="CS201")
    classroom = Classroom(name="Room 101", latitude=READER_LAT, longitude=READER_LNG)
    db.add_all([subject, classroom])
    db.flush()

    session = AttendanceSession(
        subject_id=subject.id,
        classroom_id=classroom.id,
        reader_device_id="reader-101",
        is_active=True,
    )
    student = Profile(
        full_name="Ana Cruz",
        email="ana.cruz@example.edu",
        role="student",
        rfid_tag="TAG-0001",
    )
    db.add_all([session, student])
    db.commit()

    return SimpleNamespace(
        session_id=session.id,
        student_id=student.user_id,
        session_label="Data Structures",
        reader_id="reader-101",
        tag="TAG-0001",
        student_name="Ana Cruz",
    )


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from main import app

    with TestClient(app) as test_client:
        yield test_client
