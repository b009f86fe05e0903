"""Time helpers.

Managers take a ``now`` callable so tests can pin the clock at expiry
boundaries.
"""

from datetime import datetime
from typing import Callable, Optional

import pytz

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(pytz.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value is None:
        return None
    if value.tzinfo is None:
        return pytz.utc.localize(value)
    return value.astimezone(pytz.utc)
