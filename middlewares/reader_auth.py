# middlewares/reader_auth.py
import secrets
from typing import Optional

from fastapi import Header

from config.settings import settings
from api.attendance.attendance_exceptions import UnauthorizedReaderError


def reader_auth(x_reader_key: Optional[str] = Header(None)):
    """
    Shared-key check for classroom readers. Open when READER_API_KEY is unset.
    """
    expected = settings.READER_API_KEY
    if not expected:
        return None
    if not x_reader_key or not secrets.compare_digest(x_reader_key, expected):
        raise UnauthorizedReaderError()
    return x_reader_key
