from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from config.database import SessionLocal
from api.attendance.attendance_exceptions import (
    AttendanceAlreadyRecordedError,
    DuplicateActiveTokenError,
    StoreUnavailableError,
)
from api.attendance.attendance_records_model import AttendanceRecord, AttendanceStatus
from api.attendance.attendance_service import (
    ACCEPTANCE_RADIUS_M,
    AttendanceService,
    VERIFICATION_WINDOW,
    VerificationReason,
)
from api.attendance.attendance_store import AttendanceStore
from api.attendance.verification_tokens_model import VerificationToken
from api.notifications.notifications_model import AttendanceNotification
from api.notifications.notifications_service import verification_completed
from utils.geoutils import destination_point
from utils.time_utils import as_utc

from conftest import READER_LAT, READER_LNG

T0 = datetime(2026, 10, 17, 9, 0, tzinfo=timezone.utc)


def _issue(db, roster, now=T0):
    return AttendanceService(db).issue_token(
        roster.session_id,
        roster.student_id,
        READER_LAT,
        READER_LNG,
        now=now,
        reader_device_id=roster.reader_id,
        session_label=roster.session_label,
    )


def _record(db, roster):
    db.expire_all()
    return (
        db.query(AttendanceRecord)
        .filter_by(session_id=roster.session_id, student_id=roster.student_id)
        .one()
    )


def _token(db, token_str):
    db.expire_all()
    return db.query(VerificationToken).filter_by(token=token_str).one()


def test_issue_creates_pending_record_and_five_minute_token(db, roster):
    token = _issue(db, roster)

    assert len(token.token) >= 32
    assert token.consumed is False
    assert as_utc(token.expires_at) == T0 + VERIFICATION_WINDOW
    assert token.reader_latitude == READER_LAT
    assert token.reader_longitude == READER_LNG

    record = _record(db, roster)
    assert record.status == AttendanceStatus.pending
    assert record.confirmed_at is None
    assert record.distance_meters is None


def test_issued_tokens_are_not_sequential(db, roster):
    first = _issue(db, roster)
    second = _issue(db, roster, now=T0 + timedelta(minutes=6))
    assert first.token != second.token


def test_accept_when_confirmer_is_at_the_reader(db, roster):
    token = _issue(db, roster)

    outcome = AttendanceService(db).confirm(
        token.token, READER_LAT, READER_LNG, now=T0 + timedelta(minutes=1)
    )

    assert outcome.reason == VerificationReason.ok
    assert outcome.accepted is True
    assert outcome.rounded_distance == 0
    assert outcome.session_label == roster.session_label

    record = _record(db, roster)
    assert record.status == AttendanceStatus.present
    assert record.distance_meters == 0
    assert record.confirmer_latitude == READER_LAT
    assert as_utc(record.confirmed_at) == T0 + timedelta(minutes=1)
    assert _token(db, token.token).consumed is True


def test_reject_when_confirmer_is_150m_away(db, roster):
    token = _issue(db, roster)
    lat, lng = destination_point(READER_LAT, READER_LNG, 0, 150)

    outcome = AttendanceService(db).confirm(token.token, lat, lng, now=T0 + timedelta(minutes=2))

    assert outcome.reason == VerificationReason.too_far
    assert outcome.accepted is False
    assert outcome.rounded_distance == 150
    assert "150m away" in outcome.message

    record = _record(db, roster)
    assert record.status == AttendanceStatus.absent
    assert record.distance_meters == pytest.approx(150, abs=0.01)


@pytest.mark.parametrize("bearing", [0, 90, 135, 180, 270])
@pytest.mark.parametrize(
    "meters,reason,status",
    [
        (ACCEPTANCE_RADIUS_M, VerificationReason.ok, AttendanceStatus.present),
        (ACCEPTANCE_RADIUS_M + 0.001, VerificationReason.too_far, AttendanceStatus.absent),
    ],
)
def test_acceptance_boundary(db, roster, bearing, meters, reason, status):
    token = _issue(db, roster)
    lat, lng = destination_point(READER_LAT, READER_LNG, bearing, meters)

    outcome = AttendanceService(db).confirm(token.token, lat, lng, now=T0)

    assert outcome.reason == reason
    assert outcome.accepted is (reason == VerificationReason.ok)
    assert _record(db, roster).status == status


@pytest.mark.parametrize("distance", [0, 150, 5000])
def test_expired_token_is_rejected_and_record_stays_pending(db, roster, distance):
    token = _issue(db, roster)
    lat, lng = destination_point(READER_LAT, READER_LNG, 180, distance)

    outcome = AttendanceService(db).confirm(token.token, lat, lng, now=T0 + timedelta(minutes=6))

    assert outcome.reason == VerificationReason.expired
    assert outcome.accepted is False
    assert _record(db, roster).status == AttendanceStatus.pending
    assert _token(db, token.token).consumed is True


def test_token_is_still_valid_at_the_expiry_instant(db, roster):
    token = _issue(db, roster)

    outcome = AttendanceService(db).confirm(
        token.token, READER_LAT, READER_LNG, now=T0 + VERIFICATION_WINDOW
    )

    assert outcome.reason == VerificationReason.ok


def test_expired_token_cannot_be_confirmed_later(db, roster):
    token = _issue(db, roster)
    svc = AttendanceService(db)

    svc.confirm(token.token, READER_LAT, READER_LNG, now=T0 + timedelta(minutes=6))
    again = svc.confirm(token.token, READER_LAT, READER_LNG, now=T0 + timedelta(minutes=7))

    assert again.reason == VerificationReason.already_used


def test_token_is_single_use(db, roster):
    token = _issue(db, roster)
    svc = AttendanceService(db)
    far_lat, far_lng = destination_point(READER_LAT, READER_LNG, 0, 500)

    first = svc.confirm(token.token, READER_LAT, READER_LNG, now=T0)
    second = svc.confirm(token.token, far_lat, far_lng, now=T0 + timedelta(seconds=5))
    third = svc.confirm(token.token, READER_LAT, READER_LNG, now=T0 + timedelta(seconds=10))

    assert first.reason == VerificationReason.ok
    assert second.reason == VerificationReason.already_used
    assert third.reason == VerificationReason.already_used
    record = _record(db, roster)
    assert record.status == AttendanceStatus.present
    assert record.distance_meters == 0


def test_unknown_token_is_not_found(db, roster):
    outcome = AttendanceService(db).confirm("no-such-token", READER_LAT, READER_LNG, now=T0)

    assert outcome.reason == VerificationReason.not_found
    assert outcome.session_id is None


def test_duplicate_issue_within_window_is_refused(db, roster):
    first = _issue(db, roster)

    with pytest.raises(DuplicateActiveTokenError):
        _issue(db, roster, now=T0 + timedelta(minutes=2))

    assert db.query(VerificationToken).count() == 1
    assert _token(db, first.token).consumed is False


def test_reissue_after_expiry_is_allowed(db, roster):
    _issue(db, roster)

    second = _issue(db, roster, now=T0 + timedelta(minutes=6))

    assert as_utc(second.expires_at) == T0 + timedelta(minutes=11)
    assert db.query(VerificationToken).count() == 2
    assert db.query(AttendanceRecord).count() == 1


def test_concurrent_first_issue_loses_on_insert_and_is_refused(db, roster, monkeypatch):
    original_lock_record = AttendanceStore._lock_record
    inner_tokens = []
    race = {"started": False}

    def racing_lock_record(self, session_id, student_id):
        # another reader creates the record and its token first; this issuer
        # saw no row and will hit the unique constraint on insert
        if not race["started"]:
            race["started"] = True
            other = SessionLocal()
            try:
                inner_tokens.append(_issue(other, roster).token)
            finally:
                other.close()
            return None
        return original_lock_record(self, session_id, student_id)

    monkeypatch.setattr(AttendanceStore, "_lock_record", racing_lock_record)

    with pytest.raises(DuplicateActiveTokenError):
        _issue(db, roster)

    db.expire_all()
    assert [t.token for t in db.query(VerificationToken)] == inner_tokens
    assert db.query(AttendanceRecord).count() == 1
    assert _record(db, roster).status == AttendanceStatus.pending


def test_issue_after_record_resolved_is_refused(db, roster):
    token = _issue(db, roster)
    AttendanceService(db).confirm(token.token, READER_LAT, READER_LNG, now=T0)

    with pytest.raises(AttendanceAlreadyRecordedError):
        _issue(db, roster, now=T0 + timedelta(minutes=1))


def test_second_token_for_same_record_sees_record_not_pending(db, roster):
    first = _issue(db, roster)
    # a second outstanding token, as left behind by an older issuer
    stray = VerificationToken(
        token="stray-token-0001",
        session_id=roster.session_id,
        student_id=roster.student_id,
        reader_latitude=READER_LAT,
        reader_longitude=READER_LNG,
        issued_at=T0,
        expires_at=T0 + VERIFICATION_WINDOW,
    )
    db.add(stray)
    db.commit()

    svc = AttendanceService(db)
    winner = svc.confirm(first.token, READER_LAT, READER_LNG, now=T0)
    far_lat, far_lng = destination_point(READER_LAT, READER_LNG, 0, 900)
    loser = svc.confirm("stray-token-0001", far_lat, far_lng, now=T0)

    assert winner.reason == VerificationReason.ok
    assert loser.reason == VerificationReason.record_not_pending
    assert loser.status == AttendanceStatus.present
    assert _record(db, roster).status == AttendanceStatus.present
    assert _token(db, "stray-token-0001").consumed is True


def test_concurrent_confirms_on_same_token_only_one_wins(db, roster, monkeypatch):
    token = _issue(db, roster)
    original_get_record = AttendanceStore.get_record
    inner_outcomes = []
    race = {"started": False}

    def racing_get_record(self, session_id, student_id):
        # let a second request run to completion between the consumed check
        # and the conditional writes of the first one
        if not race["started"]:
            race["started"] = True
            other = SessionLocal()
            try:
                inner_outcomes.append(
                    AttendanceService(other).confirm(token.token, READER_LAT, READER_LNG, now=T0)
                )
            finally:
                other.close()
        return original_get_record(self, session_id, student_id)

    monkeypatch.setattr(AttendanceStore, "get_record", racing_get_record)

    outer = AttendanceService(db).confirm(token.token, READER_LAT, READER_LNG, now=T0)

    assert inner_outcomes[0].reason == VerificationReason.ok
    assert outer.reason == VerificationReason.already_used
    assert _record(db, roster).status == AttendanceStatus.present


def test_concurrent_confirms_with_different_tokens_transition_once(db, roster, monkeypatch):
    token = _issue(db, roster)
    db.add(VerificationToken(
        token="racing-token-0002",
        session_id=roster.session_id,
        student_id=roster.student_id,
        reader_latitude=READER_LAT,
        reader_longitude=READER_LNG,
        issued_at=T0,
        expires_at=T0 + VERIFICATION_WINDOW,
    ))
    db.commit()

    original_get_record = AttendanceStore.get_record
    inner_outcomes = []
    race = {"started": False}
    far_lat, far_lng = destination_point(READER_LAT, READER_LNG, 0, 400)

    def racing_get_record(self, session_id, student_id):
        if not race["started"]:
            race["started"] = True
            other = SessionLocal()
            try:
                inner_outcomes.append(
                    AttendanceService(other).confirm("racing-token-0002", far_lat, far_lng, now=T0)
                )
            finally:
                other.close()
        return original_get_record(self, session_id, student_id)

    monkeypatch.setattr(AttendanceStore, "get_record", racing_get_record)

    outer = AttendanceService(db).confirm(token.token, READER_LAT, READER_LNG, now=T0)

    assert inner_outcomes[0].reason == VerificationReason.too_far
    assert outer.reason == VerificationReason.record_not_pending
    record = _record(db, roster)
    assert record.status == AttendanceStatus.absent
    assert record.distance_meters == pytest.approx(400, abs=0.01)


def test_record_transition_is_conditional(db, roster):
    _issue(db, roster)
    store = AttendanceStore(db)

    first = store.transition_record(
        roster.session_id, roster.student_id, AttendanceStatus.present,
        confirmed_at=T0, confirmer_latitude=READER_LAT, confirmer_longitude=READER_LNG, distance=0.0,
    )
    second = store.transition_record(
        roster.session_id, roster.student_id, AttendanceStatus.absent,
        confirmed_at=T0, confirmer_latitude=0.0, confirmer_longitude=0.0, distance=9000.0,
    )
    db.commit()

    assert first is True
    assert second is False
    assert _record(db, roster).status == AttendanceStatus.present


def test_consume_token_is_conditional(db, roster):
    token = _issue(db, roster)
    store = AttendanceStore(db)

    assert store.consume_token(token.id, T0) is True
    assert store.consume_token(token.id, T0) is False
    db.commit()


def test_notifications_are_stored_for_pending_and_result(db, roster):
    token = _issue(db, roster)
    AttendanceService(db).confirm(token.token, READER_LAT, READER_LNG, now=T0)

    db.expire_all()
    kinds = [
        n.type for n in db.query(AttendanceNotification)
        .filter_by(student_id=roster.student_id)
        .order_by(AttendanceNotification.id)
    ]
    assert kinds == ["verification_pending", "attendance_confirmed"]


def test_failed_notification_does_not_undo_attendance(db, roster):
    token = _issue(db, roster)

    def broken_listener(sender, **kwargs):
        raise RuntimeError("push gateway down")

    with verification_completed.connected_to(broken_listener):
        outcome = AttendanceService(db).confirm(token.token, READER_LAT, READER_LNG, now=T0)

    assert outcome.reason == VerificationReason.ok
    assert _record(db, roster).status == AttendanceStatus.present


def test_store_failure_is_reported_as_retryable(db, roster, monkeypatch):
    token = _issue(db, roster)

    def unavailable(self, token_str):
        raise OperationalError("SELECT", {}, Exception("connection refused"))

    monkeypatch.setattr(AttendanceStore, "get_token", unavailable)

    with pytest.raises(StoreUnavailableError):
        AttendanceService(db).confirm(token.token, READER_LAT, READER_LNG, now=T0)

    monkeypatch.undo()
    retry = AttendanceService(db).confirm(token.token, READER_LAT, READER_LNG, now=T0)
    assert retry.reason == VerificationReason.ok
