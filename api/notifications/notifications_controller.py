from sqlalchemy.orm import Session
from typing import List
from uuid import UUID

from api.attendance.attendance_exceptions import NotificationNotFoundError
from api.notifications.notifications_schema import NotificationRead
from api.notifications.notifications_service import fetch_notifications, mark_read


class NotificationsController:
    @staticmethod
    def list_for_student(
        db: Session,
        student_id: UUID,
        page: int = 1,
        limit: int = 10
    ) -> List[NotificationRead]:
        rows = fetch_notifications(db, student_id, page=page, limit=limit)
        return [NotificationRead.model_validate(r) for r in rows]

    @staticmethod
    def mark_read(db: Session, notification_id: int) -> NotificationRead:
        notification = mark_read(db, notification_id)
        if not notification:
            raise NotificationNotFoundError(f"Notification {notification_id} not found")
        return NotificationRead.model_validate(notification)
