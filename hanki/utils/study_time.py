"""Study days: calendar days that start at a rollover hour instead of midnight.

All timestamps are epoch milliseconds, matching card due times.
"""

import time
from datetime import datetime, timedelta
from typing import Optional, Tuple


def _now_ms() -> int:
    return int(time.time() * 1000)


class StudyTime:
    """Maps timestamps onto study days."""

    def __init__(self, rollover_hour: int = 4):
        """
        Args:
            rollover_hour: Hour of day when the study day rolls over (default 4 AM)
        """
        self.rollover_hour = rollover_hour

    def _day_start(self, timestamp: int) -> datetime:
        dt = datetime.fromtimestamp(timestamp / 1000)
        start = dt.replace(hour=self.rollover_hour, minute=0, second=0, microsecond=0)
        if dt < start:
            start -= timedelta(days=1)
        return start

    def get_study_date(self, timestamp: Optional[int] = None) -> str:
        """
        Study date (YYYY-MM-DD) a timestamp belongs to.

        With the default rollover, 2 AM still counts as the previous day
        and 6 AM as the current one.
        """
        if timestamp is None:
            timestamp = _now_ms()
        return self._day_start(timestamp).strftime("%Y-%m-%d")

    def get_study_day_bounds(self, timestamp: Optional[int] = None) -> Tuple[int, int]:
        """Start (inclusive) and end (exclusive) of the study day containing timestamp."""
        if timestamp is None:
            timestamp = _now_ms()
        start = self._day_start(timestamp)
        end = start + timedelta(days=1)
        return int(start.timestamp() * 1000), int(end.timestamp() * 1000)

    def get_next_rollover_timestamp(self, timestamp: Optional[int] = None) -> int:
        """Epoch milliseconds of the next rollover after timestamp."""
        return self.get_study_day_bounds(timestamp)[1]

    def is_same_study_day(self, timestamp1: int, timestamp2: int) -> bool:
        return self.get_study_date(timestamp1) == self.get_study_date(timestamp2)

    def time_until_rollover(self, timestamp: Optional[int] = None) -> int:
        """Milliseconds until the next rollover."""
        if timestamp is None:
            timestamp = _now_ms()
        return max(0, self.get_next_rollover_timestamp(timestamp) - timestamp)
