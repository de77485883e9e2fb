from datetime import datetime

from booking_crm.core.db import get_session
from booking_crm.scheduling.engine import Clock

__all__ = ["get_clock", "get_session"]


def get_clock() -> Clock:
    """Source of "now" for past-slot filtering and lead-time checks; overridden in tests."""
    return datetime.now
