"""
Rule Matcher - Selects the price rules whose conditions a booking satisfies.

Used by the pricing engine before price resolution. Matching is driven
only by which condition blocks are present on a rule; the rule's type
tag is never consulted.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, time, tzinfo
from typing import Iterable, Optional

from .models import (
    BookingInterval,
    DateCondition,
    DayCondition,
    DurationCondition,
    PriceRule,
    TimeCondition,
)

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


@dataclass
class MatchedRule:
    """A rule that matched with context."""
    rule: PriceRule
    match_reason: str

    @property
    def rule_id(self) -> str:
        return self.rule.id

    @property
    def priority(self) -> int:
        return self.rule.priority


def parse_clock(value: str) -> int:
    """Parse "HH:mm" into minutes since midnight. "24:00" is end of day."""
    text = str(value).strip()
    hours_str, _, minutes_str = text.partition(':')
    hours = int(hours_str)
    minutes = int(minutes_str or 0)
    if hours == 24 and minutes == 0:
        return MINUTES_PER_DAY
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        raise ValueError(f"Invalid time of day '{value}', expected HH:mm")
    return hours * 60 + minutes


def day_of_week(moment: datetime) -> int:
    """Day of week with 0 = Sunday ... 6 = Saturday."""
    return (moment.weekday() + 1) % 7


def time_matches(condition: TimeCondition, start: time) -> bool:
    """
    Check a start time against a [start, end) window.

    end < start wraps past midnight, end == start covers the whole day.
    """
    window_start = parse_clock(condition.start_time) % MINUTES_PER_DAY
    window_end = parse_clock(condition.end_time)
    minute = start.hour * 60 + start.minute

    if window_end % MINUTES_PER_DAY == window_start:
        return True
    if window_end > window_start:
        return window_start <= minute < window_end
    return minute >= window_start or minute < window_end


def day_matches(condition: DayCondition, start: datetime) -> bool:
    return day_of_week(start) in condition.days_of_week


def date_matches(condition: DateCondition, start: datetime) -> bool:
    return condition.start_date <= start.date() <= condition.end_date


def duration_matches(condition: DurationCondition, hours: int) -> bool:
    if hours < condition.min_hours:
        return False
    if condition.max_hours is not None and hours > condition.max_hours:
        return False
    return True


class RuleMatcher:
    """
    Matches price rules against a booking interval.

    Time, day and date conditions are evaluated on the booking's local
    start; multi-day bookings are judged by their first day only.
    """

    def __init__(self, timezone: Optional[tzinfo] = None):
        self.timezone = timezone

    def find_matching_rules(
        self,
        rules: Iterable[PriceRule],
        interval: BookingInterval,
    ) -> list[MatchedRule]:
        """
        Find all rules that match the given booking.

        Returns rules sorted by priority (lower = applied first), ties kept
        in their original order.
        """
        start = interval.local_start(self.timezone)
        hours = interval.billable_hours

        matched = []
        for index, rule in enumerate(rules):
            if not rule.is_active:
                continue

            reasons = self._match(rule, start, hours)
            if reasons is None:
                logger.debug("Rule %s skipped for parking %s", rule.id, interval.parking_id)
                continue

            matched.append((rule.priority, index, MatchedRule(
                rule=rule,
                match_reason=", ".join(reasons) if reasons else "always",
            )))

        matched.sort(key=lambda m: (m[0], m[1]))
        return [m[2] for m in matched]

    def _match(self, rule: PriceRule, start: datetime, hours: int) -> Optional[list[str]]:
        """Return match reasons, or None when any present condition fails."""
        conditions = rule.conditions
        reasons = []

        if conditions.time:
            if not time_matches(conditions.time, start.time()):
                return None
            reasons.append(f"time {conditions.time.start_time}-{conditions.time.end_time}")

        if conditions.day:
            if not day_matches(conditions.day, start):
                return None
            reasons.append(f"day={day_of_week(start)}")

        if conditions.date:
            if not date_matches(conditions.date, start):
                return None
            reasons.append(f"date {conditions.date.start_date}..{conditions.date.end_date}")

        if conditions.duration:
            if not duration_matches(conditions.duration, hours):
                return None
            reasons.append(f"hours={hours}")

        return reasons
