# api/attendance/attendance_controller.py

import logging
from typing import List
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config.settings import settings
from api.attendance.attendance_exceptions import (
    ERRORS_BY_REASON,
    NoActiveSessionError,
    StoreUnavailableError,
    SubjectNotFoundError,
    TokenNotFoundError,
)
from api.attendance.attendance_schema import (
    AttendanceRecordOut,
    CheckInIn,
    CheckInOut,
    VerificationDetailsOut,
    VerifyIn,
    VerifyOut,
)
from api.attendance.attendance_service import AttendanceService, VERIFICATION_WINDOW
from api.profiles.profiles_model import Profile
from api.sessions.sessions_model import AttendanceSession
from utils.time_utils import as_utc, utcnow

logger = logging.getLogger(__name__)


class AttendanceController:
    @staticmethod
    def _resolve_reader(db: Session, payload: CheckInIn):
        try:
            session = (
                db.query(AttendanceSession)
                .filter_by(reader_device_id=payload.reader_id, is_active=True)
                .order_by(AttendanceSession.created_at.desc())
                .first()
            )
            student = None
            if session:
                student = (
                    db.query(Profile)
                    .filter_by(rfid_tag=payload.subject_identifier, role="student")
                    .one_or_none()
                )
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Store failure while resolving reader %s", payload.reader_id)
            raise StoreUnavailableError() from exc

        if not session:
            logger.warning("No active session for reader %s", payload.reader_id)
            raise NoActiveSessionError()
        if not student:
            logger.warning("No student with tag %s (reader %s)", payload.subject_identifier, payload.reader_id)
            raise SubjectNotFoundError()
        return session, student

    @staticmethod
    def check_in(payload: CheckInIn, db: Session) -> CheckInOut:
        session, student = AttendanceController._resolve_reader(db, payload)
        session_id, session_label = session.id, session.label
        student_id, student_name = student.user_id, student.full_name

        token = AttendanceService(db).issue_token(
            session_id=session_id,
            student_id=student_id,
            reader_latitude=payload.reader_latitude,
            reader_longitude=payload.reader_longitude,
            reader_device_id=payload.reader_id,
            session_label=session_label,
        )
        return CheckInOut(
            subject_display_name=student_name,
            session_label=session_label,
            confirmation_link=settings.verification_link(token.token),
            expires_in_minutes=int(VERIFICATION_WINDOW.total_seconds() // 60),
        )

    @staticmethod
    def verify(payload: VerifyIn, db: Session) -> VerifyOut:
        outcome = AttendanceService(db).confirm(
            payload.token_id,
            payload.confirmer_latitude,
            payload.confirmer_longitude,
        )
        error = ERRORS_BY_REASON.get(outcome.reason.value)
        if error:
            raise error()

        return VerifyOut(
            within_range=outcome.accepted,
            distance_meters=outcome.rounded_distance,
            session_label=outcome.session_label,
            message=outcome.message,
        )

    @staticmethod
    def verification_details(token_id: str, db: Session) -> VerificationDetailsOut:
        svc = AttendanceService(db)
        token = svc.get_token(token_id)
        if not token:
            raise TokenNotFoundError()

        session = db.get(AttendanceSession, token.session_id)
        expires_at = as_utc(token.expires_at)
        return VerificationDetailsOut(
            token_id=token.token,
            session_label=session.label if session else str(token.session_id),
            classroom_name=session.classroom.name if session and session.classroom else None,
            expires_at=expires_at,
            consumed=token.consumed,
            expired=utcnow() > expires_at,
        )

    @staticmethod
    def list_session_records(session_id: UUID, db: Session) -> List[AttendanceRecordOut]:
        rows = AttendanceService(db).list_session_records(session_id)
        return [AttendanceRecordOut.model_validate(r) for r in rows]
