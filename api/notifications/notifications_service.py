# api/notifications/notifications_service.py

import logging
from typing import Optional
from uuid import UUID

from blinker import signal

from config.database import SessionLocal
from api.notifications.notifications_model import AttendanceNotification

logger = logging.getLogger(__name__)

# ------------------------------------------
# Define signals
# ------------------------------------------
verification_pending   = signal("verification_pending")
verification_completed = signal("verification_completed")

PENDING   = "verification_pending"
CONFIRMED = "attendance_confirmed"
FAILED    = "attendance_failed"


def _store_notification(
    student_id: UUID,
    session_id: UUID,
    kind: str,
    message: str,
    link: Optional[str] = None
) -> None:
    db = SessionLocal()
    try:
        db.add(AttendanceNotification(
            student_id=student_id,
            session_id=session_id,
            message=message,
            type=kind,
            is_read=False,
            link=link,
        ))
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Failed to store %s notification for student %s", kind, student_id)
    finally:
        db.close()

# ------------------------------------------
# Listener: RFID check-in issued a token
# ------------------------------------------
@verification_pending.connect
def on_verification_pending(sender, **kwargs):
    logger.debug("verification_pending received for student %r", kwargs.get("student_id"))
    _store_notification(
        kwargs["student_id"],
        kwargs["session_id"],
        PENDING,
        kwargs["message"],
        kwargs.get("link"),
    )

# ------------------------------------------
# Listener: location confirmed (either way)
# ------------------------------------------
@verification_completed.connect
def on_verification_completed(sender, **kwargs):
    logger.debug("verification_completed received for student %r", kwargs.get("student_id"))
    _store_notification(
        kwargs["student_id"],
        kwargs["session_id"],
        CONFIRMED if kwargs.get("accepted") else FAILED,
        kwargs["message"],
    )


class NotificationEmitter:
    """
    Fire-and-forget bridge from the attendance protocol to notification
    listeners. Errors raised by listeners are logged here and never reach
    the caller; nothing is retried.
    """

    def _send(self, sig, **payload) -> None:
        try:
            sig.send(self, **payload)
        except Exception:
            logger.exception("Notification listener failed for %s", sig.name)

    def verification_pending(self, student_id, session_id, session_label: str, link: str = None) -> None:
        message = (
            "RFID detected! Tap the verification link to confirm your "
            f"attendance for {session_label}"
        )
        self._send(
            verification_pending,
            student_id=student_id,
            session_id=session_id,
            message=message,
            link=link,
        )

    def verification_completed(self, student_id, session_id, accepted: bool, message: str) -> None:
        self._send(
            verification_completed,
            student_id=student_id,
            session_id=session_id,
            accepted=accepted,
            message=message,
        )


def fetch_notifications(db, student_id: UUID, page: int = 1, limit: int = 10):
    offset = (page - 1) * limit
    return (
        db.query(AttendanceNotification)
        .filter(AttendanceNotification.student_id == student_id)
        .order_by(AttendanceNotification.created_at.desc(), AttendanceNotification.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def mark_read(db, notification_id: int) -> Optional[AttendanceNotification]:
    notification = db.get(AttendanceNotification, notification_id)
    if not notification:
        return None
    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return notification
