"""
Care-schedule reminders (watering, fertilizing, pruning).

For each care type the catalog defines, the next due date is computed from the
user's override frequency (or the catalog default), anchored on the last time
the task was performed (or the planted date if never). A reminder candidate
is emitted only once that date has passed.

Also emits planting/harvest suggestions when the current season matches the
catalog's seasonal windows.
"""

from __future__ import annotations
from datetime import datetime, timedelta
from typing import List, Optional

from ..models import Candidate, PlantCareProfile, UserPlant
from . import schedule
from .seasonal import season_for

HIGH_AFTER_DAYS = 7
URGENT_AFTER_DAYS = 14

# care type -> (candidate kind, title verb, default priority)
CARE_RULES = {
    "watering": ("watering_reminder", "Water", "medium"),
    "fertilizing": ("fertilizing_reminder", "Fertilize", "medium"),
    "pruning": ("pruning_reminder", "Prune", "low"),
}


def watering_priority(last_watered: Optional[datetime], now: datetime) -> str:
    """
    Escalate watering urgency by time since the last watering.

    More than 7 days -> high, more than 14 days -> urgent. A plant that has
    never been watered stays at medium.
    """
    if not last_watered:
        return "medium"
    elapsed = now - last_watered
    if elapsed > timedelta(days=URGENT_AFTER_DAYS):
        return "urgent"
    if elapsed > timedelta(days=HIGH_AFTER_DAYS):
        return "high"
    return "medium"


def evaluate_care_schedule(
    user_plant: UserPlant,
    profile: PlantCareProfile,
    now: datetime,
    hemisphere: str = "north",
) -> List[Candidate]:
    """
    Derive due care reminders for one plant.

    Args:
        user_plant: The user's plant (overrides, planted date)
        profile: Catalog care profile
        now: Evaluation time
        hemisphere: Used for the planting/harvest season match

    Returns:
        Reminder candidates, each carrying the user plant id
    """
    name = user_plant.display_name(profile)
    out: List[Candidate] = []

    for care_type, (kind, verb, default_priority) in CARE_RULES.items():
        instruction = profile.instruction_for(care_type)
        if not instruction:
            continue

        override = user_plant.override_for(care_type)
        frequency = (override.frequency if override and override.frequency else None) or instruction.frequency
        last_performed = override.last_performed if override else None
        anchor = last_performed or user_plant.planted_date

        due = schedule.next_date(anchor, frequency)
        if due > now:
            continue

        if care_type == "watering":
            priority = watering_priority(last_performed, now)
        else:
            priority = default_priority

        out.append(Candidate(
            kind=kind,
            title=f"{verb} {name}",
            message=f"It's time for {care_type} your {profile.name or name}. {instruction.instructions}".strip(),
            priority=priority,
            due_date=due,
            rule=care_type,
            tags=[care_type, "routine-care"],
            plant_id=user_plant.id,
            reminder_type=care_type,
            is_recurring=True,
            recurring_interval=schedule.interval_for(frequency),
        ))

    season = season_for(now, hemisphere)
    if season in profile.planting_seasons:
        out.append(Candidate(
            kind="planting_suggestion",
            title=f"Optimal Planting Season for {profile.name or name}",
            message=f"This is an ideal time to plant or propagate {profile.name or name}.",
            priority="medium",
            due_date=now,
            rule=f"planting-{season}",
            tags=["seasonal", "planting"],
            plant_id=user_plant.id,
        ))
    if season in profile.harvest_seasons:
        out.append(Candidate(
            kind="harvest_reminder",
            title=f"Harvest Time for {name}",
            message=f"Check if your {profile.name or name} is ready for harvesting.",
            priority="medium",
            due_date=now,
            rule=f"harvest-{season}",
            tags=["seasonal", "harvest"],
            plant_id=user_plant.id,
            reminder_type="harvesting",
        ))

    return out
