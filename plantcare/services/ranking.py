"""
Priority ordering for candidates and stored recommendations.

Items sort by priority rank (urgent first), then by due date (sooner first),
then by title so equal items keep a stable order across requests.
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional

PRIORITY_RANK = {
    "urgent": 4,
    "high": 3,
    "medium": 2,
    "low": 1,
}

# Items with no date sort after everything else in their priority band
_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


def rank(priority: Optional[str]) -> int:
    return PRIORITY_RANK.get((priority or "").lower(), 0)


def _item_date(item: Any) -> datetime:
    value = getattr(item, "sort_date", None)
    return value or _FAR_FUTURE


def sort_key(item: Any) -> tuple:
    return (-rank(getattr(item, "priority", None)), _item_date(item), getattr(item, "title", "") or "")


def rank_items(items: Iterable[Any]) -> List[Any]:
    """Return a new list ordered by priority (desc), date (asc), title."""
    return sorted(items, key=sort_key)


def top(items: Iterable[Any], n: int) -> List[Any]:
    return rank_items(items)[:max(n, 0)]


def urgency_score(item: Any, now: datetime) -> int:
    """
    Dashboard urgency: priority rank, doubled when one day or less remains.

    Only items with an expiry (stored AutoRecommendations) can be doubled;
    candidates score their plain rank.
    """
    score = rank(getattr(item, "priority", None))
    days_remaining = getattr(item, "days_remaining", None)
    if callable(days_remaining) and days_remaining(now) <= 1:
        return score * 2
    return score
