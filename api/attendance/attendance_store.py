# api/attendance/attendance_store.py

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from api.attendance.attendance_records_model import AttendanceRecord, AttendanceStatus
from api.attendance.verification_tokens_model import VerificationToken


class AttendanceStore:
    """
    Persistence contract used by the check-in protocol.

    Every state change goes through a conditional UPDATE whose WHERE clause
    carries the expected current state, so the database decides which of two
    racing writers wins. Callers own the transaction (commit / rollback).
    """

    def __init__(self, db: Session):
        self.db = db

    # ── tokens ──────────────────────────────────────────────────────────────

    def get_token(self, token_str: str) -> Optional[VerificationToken]:
        return (
            self.db.query(VerificationToken)
            .filter_by(token=token_str)
            .populate_existing()
            .one_or_none()
        )

    def find_active_token(
        self,
        session_id: UUID,
        student_id: UUID,
        now: datetime
    ) -> Optional[VerificationToken]:
        return (
            self.db.query(VerificationToken)
            .filter_by(session_id=session_id, student_id=student_id)
            .filter(VerificationToken.consumed.is_(False))
            .filter(VerificationToken.expires_at > now)
            .order_by(VerificationToken.issued_at.desc())
            .first()
        )

    def consume_token(self, token_id: int, now: datetime) -> bool:
        """Flip consumed false -> true. False means another writer got there first."""
        result = self.db.execute(
            update(VerificationToken)
            .where(
                VerificationToken.id == token_id,
                VerificationToken.consumed.is_(False),
            )
            .values(consumed=True, consumed_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    # ── attendance records ──────────────────────────────────────────────────

    def get_record(self, session_id: UUID, student_id: UUID) -> Optional[AttendanceRecord]:
        return (
            self.db.query(AttendanceRecord)
            .filter_by(session_id=session_id, student_id=student_id)
            .populate_existing()
            .one_or_none()
        )

    def _lock_record(self, session_id: UUID, student_id: UUID) -> Optional[AttendanceRecord]:
        return (
            self.db.query(AttendanceRecord)
            .filter_by(session_id=session_id, student_id=student_id)
            .with_for_update()
            .populate_existing()
            .one_or_none()
        )

    def ensure_pending_record(
        self,
        session_id: UUID,
        student_id: UUID,
        reader_latitude: float,
        reader_longitude: float
    ) -> AttendanceRecord:
        """
        Load the record for (session, student) under a row lock, creating it
        in `pending` when missing. The lock is held until the caller's
        commit/rollback. A resolved record is returned untouched.
        """
        rec = self._lock_record(session_id, student_id)
        if rec is None:
            rec = AttendanceRecord(
                session_id       = session_id,
                student_id       = student_id,
                reader_latitude  = reader_latitude,
                reader_longitude = reader_longitude,
            )
            self.db.add(rec)
            try:
                self.db.flush()
            except IntegrityError:
                # a concurrent check-in inserted it first
                self.db.rollback()
                rec = self._lock_record(session_id, student_id)
                if rec is None:
                    raise
            else:
                return rec

        if rec.status == AttendanceStatus.pending:
            rec.reader_latitude  = reader_latitude
            rec.reader_longitude = reader_longitude
        return rec

    def transition_record(
        self,
        session_id: UUID,
        student_id: UUID,
        new_status: AttendanceStatus,
        confirmed_at: datetime,
        confirmer_latitude: float,
        confirmer_longitude: float,
        distance: float,
        expected_status: AttendanceStatus = AttendanceStatus.pending,
    ) -> bool:
        """Move the record out of `expected_status`. False on conflict."""
        result = self.db.execute(
            update(AttendanceRecord)
            .where(
                AttendanceRecord.session_id == session_id,
                AttendanceRecord.student_id == student_id,
                AttendanceRecord.status == expected_status,
            )
            .values(
                status              = new_status,
                confirmed_at        = confirmed_at,
                confirmer_latitude  = confirmer_latitude,
                confirmer_longitude = confirmer_longitude,
                distance_meters     = distance,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def list_session_records(self, session_id: UUID) -> List[AttendanceRecord]:
        return (
            self.db.query(AttendanceRecord)
                .filter_by(session_id=session_id)
                .order_by(AttendanceRecord.created_at.asc(), AttendanceRecord.id.asc())
                .all()
        )
