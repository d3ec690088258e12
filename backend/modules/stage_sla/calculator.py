"""
Business-calendar arithmetic
- Business time: every hour of Monday to Friday
- Weekend days count zero, with no partial-day or holiday logic
- Calendar days are decided in the reference timezone (settings.REFERENCE_TIMEZONE)
- All instants are normalized to aware UTC datetimes
"""
import logging
import math
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Iterable, Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil.parser import isoparse

from .config import settings
from .exceptions import InvalidInput

logger = logging.getLogger("stage_sla.calculator")

InstantLike = Union[datetime, date, str]


def to_instant(value: InstantLike, tz: Optional[tzinfo] = None) -> datetime:
    """
    Resolves a value to an aware UTC datetime

    Args:
        value: aware or naive datetime (naive is read as UTC), date
            (00:00 of that day in the reference timezone) or ISO-8601 string
        tz: Timezone a bare date belongs to (shared calendar's when omitted)

    Returns:
        Aware datetime in UTC

    Raises:
        InvalidInput: when the value cannot be resolved to a point in time
    """
    if isinstance(value, datetime):
        instant = value
    elif isinstance(value, date):
        instant = datetime.combine(value, time(0, 0), tzinfo=tz or get_calendar().tz)
    elif isinstance(value, str):
        if not value.strip():
            raise InvalidInput(value, "empty string")
        try:
            instant = isoparse(value.strip())
        except (ValueError, OverflowError) as e:
            raise InvalidInput(value, str(e)) from e
    else:
        raise InvalidInput(value, f"unsupported type {type(value).__name__}")

    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    try:
        return instant.astimezone(timezone.utc)
    except (ValueError, OverflowError) as e:
        raise InvalidInput(value, str(e)) from e


def _to_budget(hours) -> float:
    try:
        budget = float(hours)
    except (TypeError, ValueError) as e:
        raise InvalidInput(hours, "hours must be a number") from e
    if math.isnan(budget) or math.isinf(budget):
        raise InvalidInput(hours, "hours must be finite")
    return budget


class BusinessCalendar:
    """Weekday/weekend calendar used by every business-time calculation"""

    def __init__(
        self,
        timezone_name: Optional[str] = None,
        weekend_days: Optional[Iterable[int]] = None,
        round_digits: Optional[int] = None,
    ):
        name = timezone_name or settings.REFERENCE_TIMEZONE
        try:
            self.tz = ZoneInfo(name)
        except ZoneInfoNotFoundError as e:
            raise ValueError(f"Unknown reference timezone: {name}") from e

        self.weekend_days = frozenset(
            weekend_days if weekend_days is not None else settings.WEEKEND_DAYS
        )
        if len(self.weekend_days) >= 7:
            raise ValueError("At least one day of the week must be a business day")

        self.round_digits = settings.ROUND_DIGITS if round_digits is None else round_digits

    # ==================== Calendar Days ====================

    def _local_date(self, instant: datetime) -> date:
        return instant.astimezone(self.tz).date()

    def _is_weekend_date(self, day: date) -> bool:
        return day.weekday() in self.weekend_days

    def _day_window(self, day: date) -> Tuple[datetime, datetime]:
        """Half-open [00:00, next 00:00) window of a local day, in UTC"""
        start = datetime.combine(day, time(0, 0), tzinfo=self.tz)
        end = datetime.combine(day + timedelta(days=1), time(0, 0), tzinfo=self.tz)
        return start.astimezone(timezone.utc), end.astimezone(timezone.utc)

    def is_weekend(self, instant: InstantLike) -> bool:
        """
        Checks whether the instant's calendar day is a weekend day

        Args:
            instant: Instant to check

        Returns:
            True for Saturday/Sunday (in the reference timezone)
        """
        return self._is_weekend_date(self._local_date(to_instant(instant, self.tz)))

    def day_start(self, instant: InstantLike) -> datetime:
        """Start (00:00) of the instant's calendar day, in UTC"""
        return self._day_window(self._local_date(to_instant(instant, self.tz)))[0]

    def next_day_start(self, instant: InstantLike) -> datetime:
        """Start (00:00) of the calendar day after the instant's day, in UTC"""
        return self._day_window(self._local_date(to_instant(instant, self.tz)))[1]

    def next_business_day(self, instant: InstantLike) -> datetime:
        """
        Start of the next non-weekend calendar day, stepping one day at a time
        from the day after the instant

        Args:
            instant: Reference instant

        Returns:
            00:00 of the next business day, in UTC
        """
        day = self._local_date(to_instant(instant, self.tz)) + timedelta(days=1)
        while self._is_weekend_date(day):
            day += timedelta(days=1)
        return self._day_window(day)[0]

    # ==================== Business Hours ====================

    def business_hours(self, start: InstantLike, end: InstantLike) -> float:
        """
        Business hours elapsed between two instants, weekends excluded

        Args:
            start: Start instant
            end: End instant

        Returns:
            Hours (>= 0) rounded once, on the total

        Raises:
            InvalidInput: when either instant cannot be resolved
        """
        start = to_instant(start, self.tz)
        end = to_instant(end, self.tz)

        if start >= end:
            return 0.0

        first_day = self._local_date(start)
        last_day = self._local_date(end)

        if first_day == last_day:
            if self._is_weekend_date(first_day):
                return 0.0
            return round((end - start).total_seconds() / 3600, self.round_digits)

        total = timedelta(0)
        current = first_day
        while current <= last_day:
            if not self._is_weekend_date(current):
                day_start, day_end = self._day_window(current)
                overlap_start = max(start, day_start)
                overlap_end = min(end, day_end)
                if overlap_start < overlap_end:
                    total += overlap_end - overlap_start
            current += timedelta(days=1)

        return round(total.total_seconds() / 3600, self.round_digits)

    # ==================== Deadline Projection ====================

    def add_business_hours(self, start: InstantLike, hours) -> datetime:
        """
        Instant reached after consuming `hours` of business time from `start`

        Weekend time never counts: a weekend start jumps to 00:00 of the next
        business day before the budget is touched.

        Args:
            start: Start instant
            hours: Business hours to add

        Returns:
            Projected instant, in UTC

        Raises:
            InvalidInput: when start is not an instant or hours is not finite
        """
        current = to_instant(start, self.tz)
        budget = _to_budget(hours)

        if budget <= 0:
            return current

        if self.is_weekend(current):
            current = self.next_business_day(current)

        remaining = timedelta(hours=budget)
        while True:
            day_end = self.next_day_start(current)
            left_today = day_end - current
            if remaining <= left_today:
                return current + remaining
            remaining -= left_today
            current = day_end
            if self.is_weekend(current):
                current = self.next_business_day(current)


# Global instance
_calendar: Optional[BusinessCalendar] = None


def get_calendar() -> BusinessCalendar:
    """Returns the shared calendar built from settings"""
    global _calendar
    if _calendar is None:
        _calendar = BusinessCalendar()
        logger.debug(
            f"Business calendar ready (tz={_calendar.tz.key}, weekend={sorted(_calendar.weekend_days)})"
        )
    return _calendar


def init_calendar(calendar: Optional[BusinessCalendar] = None) -> BusinessCalendar:
    """Replaces the shared calendar, e.g. after changing the reference timezone"""
    global _calendar
    _calendar = calendar or BusinessCalendar()
    return _calendar


def is_weekend(instant: InstantLike) -> bool:
    return get_calendar().is_weekend(instant)


def next_business_day(instant: InstantLike) -> datetime:
    return get_calendar().next_business_day(instant)


def business_hours(start: InstantLike, end: InstantLike) -> float:
    return get_calendar().business_hours(start, end)


def add_business_hours(start: InstantLike, hours) -> datetime:
    return get_calendar().add_business_hours(start, hours)
