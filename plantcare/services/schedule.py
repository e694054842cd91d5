"""
Care schedule arithmetic.

Maps frequency tokens (daily, weekly, ...) to concrete date deltas. Unknown
tokens (free-form catalog values, older reminders) fall back to weekly.
"""

from __future__ import annotations
from calendar import monthrange
from datetime import datetime, timedelta
from typing import Optional

DEFAULT_TOKEN = "weekly"

# Fixed-length frequencies, in days
FREQUENCY_DAYS = {
    "daily": 1,
    "every-2-days": 2,
    "weekly": 7,
    "bi-weekly": 14,
}

# Calendar frequencies, in months
FREQUENCY_MONTHS = {
    "monthly": 1,
    "seasonal": 3,
    "annually": 12,
}

# Frequency token -> reminder recurrence interval.
# every-2-days is tracked with daily granularity on the reminder itself.
FREQUENCY_TO_INTERVAL = {
    "daily": "daily",
    "every-2-days": "daily",
    "weekly": "weekly",
    "bi-weekly": "bi-weekly",
    "monthly": "monthly",
    "seasonal": "seasonal",
    "annually": "annually",
}

_ALIASES = {
    "every_2_days": "every-2-days",
    "every 2 days": "every-2-days",
    "biweekly": "bi-weekly",
    "bi_weekly": "bi-weekly",
    "annual": "annually",
    "yearly": "annually",
}


def normalize_token(token: Optional[str]) -> str:
    """Lower-case a token and resolve known spellings. Unknown tokens become weekly."""
    t = (token or "").strip().lower()
    t = _ALIASES.get(t, t)
    if t in FREQUENCY_DAYS or t in FREQUENCY_MONTHS:
        return t
    return DEFAULT_TOKEN


def add_months(value: datetime, months: int) -> datetime:
    """Add calendar months, clamping the day to the end of the target month."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def next_date(last_date: datetime, token: Optional[str]) -> datetime:
    """
    Compute the next due date after `last_date` for a frequency token.

    Args:
        last_date: When the task was last performed (or the anchor date)
        token: Frequency token (daily, every-2-days, weekly, bi-weekly,
               monthly, seasonal, annually). Anything else acts as weekly.

    Returns:
        The next due datetime (same tzinfo as `last_date`)
    """
    t = normalize_token(token)
    if t in FREQUENCY_DAYS:
        return last_date + timedelta(days=FREQUENCY_DAYS[t])
    return add_months(last_date, FREQUENCY_MONTHS[t])


def is_due(last_date: datetime, token: Optional[str], now: datetime) -> bool:
    return next_date(last_date, token) <= now


def interval_for(token: Optional[str]) -> str:
    """Map a frequency token to a reminder recurrence interval."""
    return FREQUENCY_TO_INTERVAL[normalize_token(token)]
