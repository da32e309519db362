"""
Schedule expansion

Turns weekly day-factor rules into the expected number of work-day units in a
calendar month. Weekday numbering follows the schedule table: 0 = Sunday.
"""
import calendar
from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, Iterable

from opsmetrics.metrics.records import ScheduleRule
from opsmetrics.utils.helpers import mean, to_float


def schedule_weekday(value: date) -> int:
    """Weekday of a date in schedule numbering (0 = Sunday ... 6 = Saturday)"""
    return (value.weekday() + 1) % 7


def average_day_factors(rules: Iterable[ScheduleRule]) -> Dict[int, float]:
    """
    Average the day factor per weekday across every business in the selection.

    A weekday is only averaged over the businesses that have a rule for it.
    """
    by_weekday: Dict[int, list] = defaultdict(list)
    for rule in rules:
        by_weekday[int(rule.day_of_week)].append(to_float(rule.day_factor))
    return {dow: mean(factors) for dow, factors in by_weekday.items()}


def expected_work_days(day_factors: Dict[int, float], year: int, month: int) -> float:
    """Sum of the scheduled day factor over every date of the month"""
    total = 0.0
    current = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])
    while current <= last:
        total += day_factors.get(schedule_weekday(current), 0.0)
        current += timedelta(days=1)
    return total
