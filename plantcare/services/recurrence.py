"""
Reminder completion and recurrence.

Completing a recurring reminder creates exactly one successor, due one
interval after the completed reminder's due date. Completing an already
completed reminder is a no-op: it returns the reminder and creates nothing.
The successor is written before the completion, and removed again if the
completion write fails, so a stored completion always has its successor.

Completions and manual care logs also record a care-history entry and move
the plant's `last_performed` date for that care type, which is what the care
schedule evaluator anchors on.
"""

from __future__ import annotations
import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from ..models import (
    CARE_ACTIONS,
    MAX_MESSAGE_LEN,
    MAX_NOTES_LEN,
    MAX_TITLE_LEN,
    RECURRING_INTERVALS,
    REMINDER_TYPES,
    CareHistoryEntry,
    CareOverride,
    Reminder,
    UserPlant,
    parse_datetime,
)
from ..repositories import Clock, UserPlantStore
from ..utils.errors import NotFoundError, PersistenceError, ValidationError
from ..utils.locks import KeyedLocks
from . import schedule

logger = logging.getLogger(__name__)

# Reminder type -> care-history action
REMINDER_ACTIONS = {
    "watering": "watered",
    "fertilizing": "fertilized",
    "pruning": "pruned",
    "harvesting": "harvested",
}

# Care-history action -> care type whose override tracks it
ACTION_CARE_TYPES = {
    "watered": "watering",
    "fertilized": "fertilizing",
    "pruned": "pruning",
}


class RecurrenceManager:
    """Completes reminders, schedules successors, and logs care for one store."""

    def __init__(self, store: UserPlantStore, clock: Clock, locks: Optional[KeyedLocks] = None) -> None:
        self.store = store
        self.clock = clock
        self.locks = locks or KeyedLocks()

    def complete_reminder(
        self,
        user_plant: UserPlant,
        reminder_id: str,
        completion_date: Optional[datetime] = None,
    ) -> Tuple[Reminder, Optional[Reminder]]:
        """
        Mark a reminder complete and schedule its successor if it recurs.

        Args:
            user_plant: Owner of the reminder (reminders loaded)
            reminder_id: Reminder id
            completion_date: Defaults to now

        Returns:
            (completed_reminder, successor_or_None)

        Raises:
            NotFoundError: Reminder id not on this plant
            PersistenceError: Store write failed
        """
        with self.locks.hold(user_plant.id):
            reminder = user_plant.find_reminder(reminder_id)
            if reminder is None:
                raise NotFoundError(f"Reminder {reminder_id} not found", detail={"user_plant_id": user_plant.id})

            if reminder.is_completed:
                logger.info(f"[Reminders] Reminder {reminder_id} already completed, nothing to do")
                return reminder, None

            when = completion_date or self.clock.now()

            successor = None
            if reminder.is_recurring:
                anchor = reminder.due_date or when
                successor = self.store.add_reminder(Reminder(
                    type=reminder.type,
                    title=reminder.title,
                    description=reminder.description,
                    due_date=schedule.next_date(anchor, reminder.recurring_interval),
                    user_plant_id=user_plant.id,
                    user_id=user_plant.user_id,
                    is_recurring=True,
                    recurring_interval=reminder.recurring_interval,
                ))

            try:
                self.store.update_reminder(replace(reminder, is_completed=True, completed_date=when))
            except PersistenceError:
                if successor is not None:
                    logger.warning(f"[Reminders] Completing {reminder_id} failed, removing successor {successor.id}")
                    self.store.delete_reminder(successor.id)
                raise

            reminder.is_completed = True
            reminder.completed_date = when
            if successor is not None:
                user_plant.reminders.append(successor)

            action = REMINDER_ACTIONS.get(reminder.type)
            if action:
                self._record_care(
                    user_plant,
                    action,
                    description=f"Completed reminder: {reminder.title}",
                    notes="",
                    when=when,
                    next_due=successor.due_date if successor else None,
                )

            return reminder, successor

    def add_reminder(self, user_plant: UserPlant, payload: Dict[str, Any]) -> Reminder:
        """
        Validate and attach a new reminder to a plant.

        Expected payload keys: type, title, due_date, and optionally
        description, is_recurring, recurring_interval.

        Raises:
            ValidationError: Bad type, title, due date or interval
        """
        reminder_type = (payload.get("type") or "").strip().lower()
        if reminder_type not in REMINDER_TYPES:
            raise ValidationError(f"Invalid reminder type: {payload.get('type')}", field="type")

        title = (payload.get("title") or "").strip()
        if not title or len(title) > MAX_TITLE_LEN:
            raise ValidationError(f"Title is required and must be under {MAX_TITLE_LEN} characters", field="title")

        description = (payload.get("description") or "").strip()
        if len(description) > MAX_MESSAGE_LEN:
            raise ValidationError(f"Description must be under {MAX_MESSAGE_LEN} characters", field="description")

        try:
            due_date = parse_datetime(payload.get("due_date"))
        except ValidationError as e:
            raise ValidationError(e.message, field="due_date") from e
        if due_date is None:
            raise ValidationError("due_date is required", field="due_date")

        is_recurring = bool(payload.get("is_recurring", False))
        interval = None
        if is_recurring:
            interval = (payload.get("recurring_interval") or "").strip().lower()
            if interval not in RECURRING_INTERVALS:
                raise ValidationError(f"Invalid recurring interval: {payload.get('recurring_interval')}",
                                      field="recurring_interval")

        with self.locks.hold(user_plant.id):
            reminder = self.store.add_reminder(Reminder(
                type=reminder_type,
                title=title,
                description=description,
                due_date=due_date,
                user_plant_id=user_plant.id,
                user_id=user_plant.user_id,
                is_recurring=is_recurring,
                recurring_interval=interval,
            ))
            user_plant.reminders.append(reminder)
        return reminder

    def log_care(
        self,
        user_plant: UserPlant,
        action: str,
        description: str = "",
        notes: str = "",
    ) -> CareHistoryEntry:
        """
        Append a manual care-history entry (watered, repotted, ...).

        Raises:
            ValidationError: Unknown action or notes too long
        """
        action = (action or "").strip().lower()
        if action not in CARE_ACTIONS:
            raise ValidationError(f"Invalid care action: {action}", field="action")
        notes = (notes or "").strip()
        if len(notes) > MAX_NOTES_LEN:
            raise ValidationError(f"Notes must be under {MAX_NOTES_LEN} characters", field="notes")

        with self.locks.hold(user_plant.id):
            return self._record_care(user_plant, action, (description or "").strip(), notes, self.clock.now())

    def _record_care(
        self,
        user_plant: UserPlant,
        action: str,
        description: str,
        notes: str,
        when: datetime,
        next_due: Optional[datetime] = None,
    ) -> CareHistoryEntry:
        entry = self.store.append_care_history(CareHistoryEntry(
            user_plant_id=user_plant.id,
            action=action,
            description=description,
            notes=notes,
            date=when,
        ))
        user_plant.care_history.append(entry)

        care_type = ACTION_CARE_TYPES.get(action)
        if care_type:
            override = user_plant.overrides.get(care_type) or CareOverride()
            override.last_performed = when
            override.next_due = next_due
            user_plant.overrides[care_type] = override
            self.store.save(user_plant)

        return entry
