# api/attendance/attendance_exceptions.py

from fastapi import status


class AttendanceProtocolError(Exception):
    """
    Expected, non-fatal outcome of a check-in or confirmation.
    Rendered as ``{"success": false, "error": code}`` by the app's handler.
    """
    code = "protocol-error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = None):
        super().__init__(message or self.code)


class NoActiveSessionError(AttendanceProtocolError):
    code = "no-active-session"
    status_code = status.HTTP_404_NOT_FOUND


class SubjectNotFoundError(AttendanceProtocolError):
    code = "subject-not-found"
    status_code = status.HTTP_404_NOT_FOUND


class DuplicateActiveTokenError(AttendanceProtocolError):
    code = "duplicate-active-token"
    status_code = status.HTTP_409_CONFLICT


class AttendanceAlreadyRecordedError(AttendanceProtocolError):
    code = "already-recorded"
    status_code = status.HTTP_409_CONFLICT


class TokenNotFoundError(AttendanceProtocolError):
    code = "not-found"
    status_code = status.HTTP_404_NOT_FOUND


class TokenExpiredError(AttendanceProtocolError):
    code = "expired"
    status_code = status.HTTP_400_BAD_REQUEST


class TokenAlreadyUsedError(AttendanceProtocolError):
    code = "already-used"
    status_code = status.HTTP_409_CONFLICT


class RecordNotPendingError(AttendanceProtocolError):
    code = "record-not-pending"
    status_code = status.HTTP_409_CONFLICT


class UnauthorizedReaderError(AttendanceProtocolError):
    code = "unauthorized-reader"
    status_code = status.HTTP_401_UNAUTHORIZED


class NotificationNotFoundError(AttendanceProtocolError):
    code = "not-found"
    status_code = status.HTTP_404_NOT_FOUND


class StoreUnavailableError(AttendanceProtocolError):
    """Read or conditional write failed; safe for the caller to retry."""
    code = "store-unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


# confirm() reports failures as outcome reasons; the controller raises these
ERRORS_BY_REASON = {
    cls.code: cls
    for cls in (TokenNotFoundError, TokenExpiredError, TokenAlreadyUsedError, RecordNotPendingError)
}
