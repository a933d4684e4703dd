# services/billing_calendar.py
"""
Billing period arithmetic.

Converts a named fee period (Monthly, Quarterly, ...) into a cycle length
and derives the next cycle's start and due dates from the previous due
date. Everything here is pure; unknown period names fall back to the
default (Monthly) period instead of raising.
"""
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional, Tuple

import config


def utcnow() -> datetime:
     """Current time as a naive UTC datetime (the convention used for stored dates)."""
     return datetime.now(timezone.utc).replace(tzinfo=None)


def period_length_days(fee_period: Optional[str]) -> float:
     """Cycle length in days for a fee period; unknown names use the default period."""
     days = config.FEE_PERIOD_DAYS.get(fee_period or "")
     if days is None:
          days = config.FEE_PERIOD_DAYS[config.DEFAULT_FEE_PERIOD]
     return days


def period_length(fee_period: Optional[str]) -> timedelta:
     return timedelta(days=period_length_days(fee_period))


def is_short_period(fee_period: Optional[str]) -> bool:
     """Sub-day periods advance by the minute instead of by the day."""
     return period_length_days(fee_period) < 1


def cycle_step(fee_period: Optional[str]) -> timedelta:
     if is_short_period(fee_period):
          return config.SHORT_PERIOD_STEP
     return config.CALENDAR_PERIOD_STEP


def duplicate_tolerance(fee_period: Optional[str]) -> timedelta:
     """How close two start dates must be to count as the same cycle."""
     if is_short_period(fee_period):
          return config.SHORT_PERIOD_TOLERANCE
     return config.CALENDAR_PERIOD_TOLERANCE


def compute_next_cycle(previous_due_date: datetime, fee_period: Optional[str]) -> Tuple[datetime, datetime]:
     """
     Compute the cycle that follows one ending at previous_due_date.

     The next cycle starts one step (a day, or a minute for short periods)
     after the previous due date and is due one period after it starts.

     Example:
          >>> compute_next_cycle(datetime(2024, 1, 31), "Monthly")
          (datetime.datetime(2024, 2, 1, 0, 0), datetime.datetime(2024, 3, 2, 0, 0))

     Returns:
          (next_start_date, next_due_date)
     """
     next_start = previous_due_date + cycle_step(fee_period)
     next_due = next_start + period_length(fee_period)
     return next_start, next_due


def coerce_datetime(value: Any) -> Optional[datetime]:
     """
     Normalize a stored date value to a naive UTC datetime.

     Accepts datetimes, dates, ISO-8601 strings and epoch seconds. Returns
     None for anything that cannot be read as a date.
     """
     if value is None or isinstance(value, bool):
          return None

     if isinstance(value, datetime):
          parsed = value
     elif isinstance(value, date):
          parsed = datetime(value.year, value.month, value.day)
     elif isinstance(value, (int, float)):
          try:
               parsed = datetime.fromtimestamp(value, tz=timezone.utc)
          except (OverflowError, OSError, ValueError):
               return None
     elif isinstance(value, str):
          text = value.strip()
          if not text:
               return None
          if text.endswith("Z"):
               text = text[:-1] + "+00:00"
          try:
               parsed = datetime.fromisoformat(text)
          except ValueError:
               return None
     else:
          return None

     if parsed.tzinfo is not None:
          parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
     return parsed
