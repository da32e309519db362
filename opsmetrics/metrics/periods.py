"""
Period resolution

Derives the comparison windows for a base date range. Month and year shifts
use relativedelta, which clamps the day to the end of a shorter month
(31 Mar shifted back one month is 28/29 Feb).
"""
import calendar
from dataclasses import dataclass
from datetime import date
from typing import List, Tuple

from dateutil.relativedelta import relativedelta

from opsmetrics.metrics.errors import InvalidSelectionError


@dataclass(frozen=True)
class DateRange:
    """Inclusive date range"""
    start: date
    end: date

    def __post_init__(self):
        if self.start > self.end:
            raise InvalidSelectionError(f"Range start {self.start} is after end {self.end}")

    @property
    def year(self) -> int:
        """Year of the month the range is attributed to (its start)"""
        return self.start.year

    @property
    def month(self) -> int:
        return self.start.month

    def contains(self, value: date) -> bool:
        return self.start <= value <= self.end

    def shift(self, **delta) -> "DateRange":
        """
        Shift both bounds. An end on the last day of its month stays on the
        last day of the target month, so Apr 1-30 shifted back is Mar 1-31.
        """
        end = self.end + relativedelta(**delta)
        if self.end.day == calendar.monthrange(self.end.year, self.end.month)[1]:
            end = end + relativedelta(day=31)
        return DateRange(self.start + relativedelta(**delta), end)


def previous_month(base: DateRange) -> DateRange:
    """Same day-of-month span, one calendar month back"""
    return base.shift(months=-1)


def previous_year(base: DateRange) -> DateRange:
    """Same span, one calendar year back"""
    return base.shift(years=-1)


def month_range(year: int, month: int) -> DateRange:
    """First to last day of a calendar month"""
    last_day = calendar.monthrange(year, month)[1]
    return DateRange(date(year, month, 1), date(year, month, last_day))


def trailing_months(anchor: date, count: int = 6) -> List[Tuple[int, int]]:
    """
    (year, month) keys of the last N calendar months ending at the anchor's
    month, oldest first. The anchor month is included even if partial.
    """
    first = date(anchor.year, anchor.month, 1)
    months = []
    for offset in range(count - 1, -1, -1):
        d = first - relativedelta(months=offset)
        months.append((d.year, d.month))
    return months
