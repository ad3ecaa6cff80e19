# api/attendance/attendance_routes.py

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from config.database import get_db
from middlewares.reader_auth import reader_auth
from api.attendance.attendance_schema import (
    AttendanceRecordOut,
    CheckInIn,
    CheckInOut,
    ErrorOut,
    VerificationDetailsOut,
    VerifyIn,
    VerifyOut,
)
from api.attendance.attendance_controller import AttendanceController

router = APIRouter(prefix="/attendance", tags=["attendance"])

ERROR_RESPONSES = {
    400: {"model": ErrorOut},
    401: {"model": ErrorOut},
    404: {"model": ErrorOut},
    409: {"model": ErrorOut},
    503: {"model": ErrorOut},
}


@router.post(
    "/checkin",
    response_model=CheckInOut,
    responses=ERROR_RESPONSES,
    summary="Reader detected a student tag; issue a location verification link",
    dependencies=[Depends(reader_auth)],
)
def check_in(
    payload: CheckInIn,
    db: Session = Depends(get_db),
) -> CheckInOut:
    return AttendanceController.check_in(payload, db)


@router.post(
    "/verify",
    response_model=VerifyOut,
    responses=ERROR_RESPONSES,
    summary="Student confirms their location for a pending check-in",
)
def verify(
    payload: VerifyIn,
    db: Session = Depends(get_db),
) -> VerifyOut:
    return AttendanceController.verify(payload, db)


@router.get(
    "/verify/{token_id}",
    response_model=VerificationDetailsOut,
    responses=ERROR_RESPONSES,
    summary="Details of a verification link, for the confirmation page",
)
def verification_details(
    token_id: str,
    db: Session = Depends(get_db),
) -> VerificationDetailsOut:
    return AttendanceController.verification_details(token_id, db)


@router.get(
    "/sessions/{session_id}/records",
    response_model=List[AttendanceRecordOut],
    summary="List all attendance records for a session",
)
def list_session_records(
    session_id: UUID,
    db: Session = Depends(get_db),
) -> List[AttendanceRecordOut]:
    return AttendanceController.list_session_records(session_id, db)
