"""Calendar-month windows for time series."""

from dataclasses import dataclass
from datetime import datetime

MONTH_LABELS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


@dataclass(frozen=True)
class MonthWindow:
    start: datetime
    end: datetime  # exclusive: first instant of the next month

    @property
    def label(self) -> str:
        return MONTH_LABELS[self.start.month - 1]

    def contains(self, when: datetime | None) -> bool:
        return when is not None and self.start <= when < self.end


def month_start(year: int, month: int) -> datetime:
    """First instant of a month; ``month`` may fall outside 1..12."""
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1
    return datetime(year, month, 1)


def trailing_months(now: datetime, count: int) -> list[MonthWindow]:
    """``count`` calendar months ending with the month of ``now``, oldest first."""
    windows = []
    for back in range(count - 1, -1, -1):
        start = month_start(now.year, now.month - back)
        windows.append(MonthWindow(start, month_start(start.year, start.month + 1)))
    return windows
