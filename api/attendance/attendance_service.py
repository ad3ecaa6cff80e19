# api/attendance/attendance_service.py

import enum
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config.settings import settings
from api.attendance.attendance_exceptions import (
    AttendanceAlreadyRecordedError,
    DuplicateActiveTokenError,
    StoreUnavailableError,
)
from api.attendance.attendance_records_model import AttendanceRecord, AttendanceStatus
from api.attendance.attendance_store import AttendanceStore
from api.attendance.verification_tokens_model import VerificationToken
from api.notifications.notifications_service import NotificationEmitter
from api.sessions.sessions_model import AttendanceSession
from utils.geoutils import distance_meters, within_radius
from utils.time_utils import as_utc, utcnow

logger = logging.getLogger(__name__)

VERIFICATION_WINDOW = timedelta(minutes=5)
ACCEPTANCE_RADIUS_M = 100.0
TOKEN_BYTES = 24


class VerificationReason(str, enum.Enum):
    ok                 = "ok"
    too_far            = "too-far"
    expired            = "expired"
    already_used       = "already-used"
    not_found          = "not-found"
    record_not_pending = "record-not-pending"


@dataclass
class VerificationOutcome:
    accepted: bool
    reason: VerificationReason
    distance_meters: Optional[float] = None
    session_id: Optional[UUID] = None
    student_id: Optional[UUID] = None
    session_label: Optional[str] = None
    status: Optional[AttendanceStatus] = None

    @property
    def completed(self) -> bool:
        """True when this call moved the attendance record to a final status."""
        return self.reason in (VerificationReason.ok, VerificationReason.too_far)

    @property
    def rounded_distance(self) -> Optional[int]:
        if self.distance_meters is None:
            return None
        return int(round(self.distance_meters))

    @property
    def message(self) -> str:
        if self.reason == VerificationReason.ok:
            return "Attendance confirmed successfully!"
        if self.reason == VerificationReason.too_far:
            return (
                f"You were too far from the classroom ({self.rounded_distance}m away, "
                f"max {ACCEPTANCE_RADIUS_M:.0f}m allowed)"
            )
        return self.reason.value


class AttendanceService:
    def __init__(self, db: Session, notifier: NotificationEmitter = None):
        self.db = db
        self.store = AttendanceStore(db)
        self.notifier = notifier or NotificationEmitter()

    # ── token issuing ───────────────────────────────────────────────────────

    def issue_token(
        self,
        session_id: UUID,
        student_id: UUID,
        reader_latitude: float,
        reader_longitude: float,
        now: Optional[datetime] = None,
        reader_device_id: Optional[str] = None,
        session_label: Optional[str] = None,
    ) -> VerificationToken:
        """
        Start a presence check for `student_id` in an already-resolved active
        session. Creates the pending attendance record if needed and a fresh
        single-use token valid for VERIFICATION_WINDOW.

        Raises DuplicateActiveTokenError while an earlier token for the same
        (session, student) is still unconsumed and unexpired, and
        AttendanceAlreadyRecordedError once the record has a final status.
        """
        now = now or utcnow()
        try:
            record = self.store.ensure_pending_record(
                session_id, student_id, reader_latitude, reader_longitude
            )
            status = record.status
            if status != AttendanceStatus.pending:
                self.db.rollback()
                raise AttendanceAlreadyRecordedError(
                    f"Attendance for student {student_id} is already {status.value}"
                )

            if self.store.find_active_token(session_id, student_id, now) is not None:
                self.db.rollback()
                raise DuplicateActiveTokenError(
                    f"Student {student_id} already has an active token for session {session_id}"
                )

            token = VerificationToken(
                token            = secrets.token_urlsafe(TOKEN_BYTES),
                session_id       = session_id,
                student_id       = student_id,
                reader_latitude  = reader_latitude,
                reader_longitude = reader_longitude,
                issued_at        = now,
                expires_at       = now + VERIFICATION_WINDOW,
                reader_device_id = reader_device_id,
            )
            self.db.add(token)
            self.db.commit()
            self.db.refresh(token)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Store failure while issuing token for session %s", session_id)
            raise StoreUnavailableError() from exc

        logger.info(
            "Issued verification token %s for student %s in session %s (expires %s)",
            token.id, student_id, session_id, token.expires_at,
        )
        self.notifier.verification_pending(
            student_id,
            session_id,
            session_label or str(session_id),
            link=settings.verification_link(token.token),
        )
        return token

    # ── verification ────────────────────────────────────────────────────────

    def confirm(
        self,
        token_str: str,
        confirmer_latitude: float,
        confirmer_longitude: float,
        now: Optional[datetime] = None,
    ) -> VerificationOutcome:
        """
        Consume `token_str` and settle the attendance record using the
        confirmer's position. Every call ends with the token consumed (if it
        exists) and at most one record transition across all callers.
        """
        now = now or utcnow()
        try:
            outcome = self._confirm(token_str, confirmer_latitude, confirmer_longitude, now)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Store failure while confirming a verification token")
            raise StoreUnavailableError() from exc

        logger.info(
            "Verification for student %s in session %s: %s (distance=%s)",
            outcome.student_id, outcome.session_id, outcome.reason.value, outcome.distance_meters,
        )

        # committed above; notification problems stay inside the emitter
        if outcome.completed:
            self.notifier.verification_completed(
                outcome.student_id,
                outcome.session_id,
                outcome.accepted,
                self._notification_message(outcome),
            )
        return outcome

    def _confirm(
        self,
        token_str: str,
        confirmer_latitude: float,
        confirmer_longitude: float,
        now: datetime,
    ) -> VerificationOutcome:
        token = self.store.get_token(token_str)
        if token is None:
            return VerificationOutcome(accepted=False, reason=VerificationReason.not_found)

        token_id   = token.id
        session_id = token.session_id
        student_id = token.student_id
        label      = self._session_label(session_id)

        def outcome(reason, **extra):
            return VerificationOutcome(
                accepted=extra.pop("accepted", False),
                reason=reason,
                session_id=session_id,
                student_id=student_id,
                session_label=label,
                **extra,
            )

        if token.consumed:
            return outcome(VerificationReason.already_used)

        if now > as_utc(token.expires_at):
            if not self.store.consume_token(token_id, now):
                self.db.rollback()
                return outcome(VerificationReason.already_used)
            self.db.commit()
            return outcome(VerificationReason.expired)

        record = self.store.get_record(session_id, student_id)
        current_status = record.status if record is not None else None
        if current_status != AttendanceStatus.pending:
            if not self.store.consume_token(token_id, now):
                self.db.rollback()
                return outcome(VerificationReason.already_used)
            self.db.commit()
            return outcome(VerificationReason.record_not_pending, status=current_status)

        distance = distance_meters(
            confirmer_latitude,
            confirmer_longitude,
            token.reader_latitude,
            token.reader_longitude,
        )
        accepted = within_radius(distance, ACCEPTANCE_RADIUS_M)
        new_status = AttendanceStatus.present if accepted else AttendanceStatus.absent

        if not self.store.consume_token(token_id, now):
            self.db.rollback()
            return outcome(VerificationReason.already_used)

        transitioned = self.store.transition_record(
            session_id,
            student_id,
            new_status,
            confirmed_at=now,
            confirmer_latitude=confirmer_latitude,
            confirmer_longitude=confirmer_longitude,
            distance=distance,
        )
        # the token stays consumed either way
        self.db.commit()
        if not transitioned:
            return outcome(VerificationReason.record_not_pending)

        return outcome(
            VerificationReason.ok if accepted else VerificationReason.too_far,
            accepted=accepted,
            distance_meters=distance,
            status=new_status,
        )

    # ── helpers ─────────────────────────────────────────────────────────────

    def _session_label(self, session_id: UUID) -> str:
        session = self.db.get(AttendanceSession, session_id)
        return session.label if session else str(session_id)

    def _notification_message(self, outcome: VerificationOutcome) -> str:
        if outcome.accepted:
            return f"✅ Attendance confirmed for {outcome.session_label}! You were within range."
        return (
            f"❌ Attendance marked as absent for {outcome.session_label}. "
            f"You were {outcome.rounded_distance}m away (max {ACCEPTANCE_RADIUS_M:.0f}m allowed)."
        )

    def get_token(self, token_str: str) -> Optional[VerificationToken]:
        return self.store.get_token(token_str)

    def list_session_records(self, session_id: UUID) -> List[AttendanceRecord]:
        return self.store.list_session_records(session_id)
