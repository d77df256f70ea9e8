"""Usage domain types and pure helpers. No IO."""

from datetime import datetime, time, timedelta
from enum import Enum


class Outcome(str, Enum):
    """Result of the metered external action."""

    SUCCESS = "success"
    FAILURE = "failure"


def seconds_until_next_day(at: datetime) -> int:
    """Whole seconds from *at* until the next UTC midnight (at least 1)."""
    midnight = datetime.combine(at.date() + timedelta(days=1), time.min, tzinfo=at.tzinfo)
    return max(1, int((midnight - at).total_seconds()))
