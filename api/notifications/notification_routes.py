# api/notifications/notification_routes.py

from fastapi import APIRouter, Depends, Query
from typing import List
from uuid import UUID
from sqlalchemy.orm import Session

from config.database import get_db
from api.notifications.notifications_schema import NotificationRead
from api.notifications.notifications_controller import NotificationsController

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get(
    "/",
    response_model=List[NotificationRead],
    summary="Fetch paginated attendance notifications for a student"
)
def get_student_notifications(
    student_id: UUID = Query(...),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """
    Returns the student's notifications, newest first.
    """
    return NotificationsController.list_for_student(db, student_id, page=page, limit=limit)


@router.post(
    "/{notification_id}/read",
    response_model=NotificationRead,
    summary="Mark a notification as read"
)
def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
):
    return NotificationsController.mark_read(db, notification_id)
