"""
Unit tests for reminder completion, recurrence and care logging.
"""

from datetime import datetime, timedelta, timezone

import pytest

from fakes import FIXED_NOW, FakeUserPlantStore, make_reminder, make_user_plant
from plantcare.services.clock import FixedClock
from plantcare.services.recurrence import RecurrenceManager
from plantcare.utils.errors import NotFoundError, PersistenceError, ValidationError


class FlakyUserPlantStore(FakeUserPlantStore):
    """Fails the first add_reminder or update_reminder call when asked to."""

    def __init__(self, plants=None, fail_add=0, fail_update=0):
        super().__init__(plants)
        self.fail_add = fail_add
        self.fail_update = fail_update

    def add_reminder(self, reminder):
        if self.fail_add:
            self.fail_add -= 1
            raise PersistenceError("Error creating reminder")
        return super().add_reminder(reminder)

    def update_reminder(self, reminder):
        if self.fail_update:
            self.fail_update -= 1
            raise PersistenceError("Error updating reminder")
        return super().update_reminder(reminder)


@pytest.fixture
def setup():
    reminder = make_reminder(due_date=datetime(2025, 7, 10, 8, 0, tzinfo=timezone.utc))
    plant = make_user_plant(reminders=[reminder])
    store = FakeUserPlantStore([plant])
    manager = RecurrenceManager(store, FixedClock(FIXED_NOW))
    return manager, store, plant, reminder


class TestCompleteReminder:
    """Test completing reminders and scheduling successors."""

    def test_recurring_reminder_gets_one_successor(self, setup):
        manager, store, plant, reminder = setup
        before = len(plant.reminders)

        completed, successor = manager.complete_reminder(plant, reminder.id)

        assert completed.is_completed is True
        assert completed.completed_date == FIXED_NOW
        assert len(plant.reminders) == before + 1
        assert successor.is_completed is False
        assert successor.due_date == datetime(2025, 7, 17, 8, 0, tzinfo=timezone.utc)
        assert successor.recurring_interval == "weekly"
        assert successor.id and successor.id != reminder.id
        assert store.reminders[successor.id].user_plant_id == plant.id

    def test_successor_is_anchored_on_due_date_not_completion(self, setup):
        manager, _, plant, reminder = setup

        _, successor = manager.complete_reminder(plant, reminder.id, completion_date=FIXED_NOW + timedelta(days=3))

        assert successor.due_date == reminder.due_date + timedelta(days=7)

    def test_monthly_successor_clamps(self):
        reminder = make_reminder(due_date=datetime(2025, 1, 31, tzinfo=timezone.utc), recurring_interval="monthly")
        plant = make_user_plant(reminders=[reminder])
        manager = RecurrenceManager(FakeUserPlantStore([plant]), FixedClock(FIXED_NOW))

        _, successor = manager.complete_reminder(plant, reminder.id)

        assert successor.due_date == datetime(2025, 2, 28, tzinfo=timezone.utc)

    def test_one_off_reminder_has_no_successor(self):
        reminder = make_reminder(type="custom", is_recurring=False)
        plant = make_user_plant(reminders=[reminder])
        manager = RecurrenceManager(FakeUserPlantStore([plant]), FixedClock(FIXED_NOW))

        completed, successor = manager.complete_reminder(plant, reminder.id)

        assert completed.is_completed is True
        assert successor is None
        assert len(plant.reminders) == 1

    def test_completing_twice_is_a_no_op(self, setup):
        manager, store, plant, reminder = setup
        manager.complete_reminder(plant, reminder.id)
        count = len(plant.reminders)
        history = len(store.history)

        completed, successor = manager.complete_reminder(plant, reminder.id)

        assert completed.is_completed is True
        assert successor is None
        assert len(plant.reminders) == count
        assert len(store.history) == history

    def test_unknown_reminder(self, setup):
        manager, _, plant, _ = setup
        with pytest.raises(NotFoundError):
            manager.complete_reminder(plant, "missing")

    def test_records_care_and_moves_last_performed(self, setup):
        manager, store, plant, reminder = setup

        _, successor = manager.complete_reminder(plant, reminder.id)

        assert [h.action for h in store.history] == ["watered"]
        assert plant.care_history[-1].action == "watered"
        assert plant.overrides["watering"].last_performed == FIXED_NOW
        assert plant.overrides["watering"].next_due == successor.due_date
        assert store.saved == [plant.id]

    def test_harvest_completion_logs_without_override(self):
        reminder = make_reminder(type="harvesting", is_recurring=False)
        plant = make_user_plant(reminders=[reminder])
        store = FakeUserPlantStore([plant])
        manager = RecurrenceManager(store, FixedClock(FIXED_NOW))

        manager.complete_reminder(plant, reminder.id)

        assert [h.action for h in store.history] == ["harvested"]
        assert "harvesting" not in plant.overrides
        assert store.saved == []


class TestCompleteReminderWriteFailures:
    """A failed write must leave the reminder completable again."""

    def _setup(self, **failures):
        reminder = make_reminder(due_date=datetime(2025, 7, 10, 8, 0, tzinfo=timezone.utc))
        plant = make_user_plant(reminders=[reminder])
        store = FlakyUserPlantStore([plant], **failures)
        return RecurrenceManager(store, FixedClock(FIXED_NOW)), store, plant, reminder

    def test_failed_successor_insert_keeps_reminder_open(self):
        manager, store, plant, reminder = self._setup(fail_add=1)

        with pytest.raises(PersistenceError):
            manager.complete_reminder(plant, reminder.id)

        assert store.reminders[reminder.id].is_completed is False
        assert reminder.is_completed is False
        assert len(store.reminders) == 1
        assert store.history == []

    def test_retry_after_failed_insert_creates_successor(self):
        manager, store, plant, reminder = self._setup(fail_add=1)
        with pytest.raises(PersistenceError):
            manager.complete_reminder(plant, reminder.id)

        completed, successor = manager.complete_reminder(plant, reminder.id)

        assert completed.is_completed is True
        assert successor is not None
        assert successor.due_date == datetime(2025, 7, 17, 8, 0, tzinfo=timezone.utc)
        assert len(store.reminders) == 2
        assert len(plant.reminders) == 2

    def test_failed_completion_removes_successor(self):
        manager, store, plant, reminder = self._setup(fail_update=1)

        with pytest.raises(PersistenceError):
            manager.complete_reminder(plant, reminder.id)

        assert list(store.reminders) == [reminder.id]
        assert store.reminders[reminder.id].is_completed is False
        assert len(plant.reminders) == 1

        _, successor = manager.complete_reminder(plant, reminder.id)

        assert successor is not None
        assert len(store.reminders) == 2


class TestAddReminder:
    def setup_method(self):
        self.plant = make_user_plant()
        self.store = FakeUserPlantStore([self.plant])
        self.manager = RecurrenceManager(self.store, FixedClock(FIXED_NOW))

    def test_creates_reminder(self):
        reminder = self.manager.add_reminder(self.plant, {
            "type": "Fertilizing",
            "title": "Feed basil",
            "due_date": "2025-07-20T09:00:00Z",
            "is_recurring": True,
            "recurring_interval": "monthly",
        })

        assert reminder.id in self.store.reminders
        assert reminder.type == "fertilizing"
        assert reminder.due_date == datetime(2025, 7, 20, 9, 0, tzinfo=timezone.utc)
        assert reminder.recurring_interval == "monthly"
        assert self.plant.reminders == [reminder]

    def test_non_recurring_drops_interval(self):
        reminder = self.manager.add_reminder(self.plant, {
            "type": "custom", "title": "Check for aphids", "due_date": "2025-07-20",
            "recurring_interval": "weekly",
        })
        assert reminder.is_recurring is False
        assert reminder.recurring_interval is None

    @pytest.mark.parametrize("payload,field", [
        ({"type": "mowing", "title": "x", "due_date": "2025-07-20"}, "type"),
        ({"type": "watering", "title": "", "due_date": "2025-07-20"}, "title"),
        ({"type": "watering", "title": "x" * 201, "due_date": "2025-07-20"}, "title"),
        ({"type": "watering", "title": "x"}, "due_date"),
        ({"type": "watering", "title": "x", "due_date": "next tuesday"}, "due_date"),
        ({"type": "watering", "title": "x", "due_date": "2025-07-20", "is_recurring": True,
          "recurring_interval": "hourly"}, "recurring_interval"),
    ])
    def test_rejects_bad_payload(self, payload, field):
        with pytest.raises(ValidationError) as exc:
            self.manager.add_reminder(self.plant, payload)
        assert exc.value.field == field
        assert self.store.reminders == {}


class TestLogCare:
    def setup_method(self):
        self.plant = make_user_plant()
        self.store = FakeUserPlantStore([self.plant])
        self.manager = RecurrenceManager(self.store, FixedClock(FIXED_NOW))

    def test_watered_updates_override(self):
        entry = self.manager.log_care(self.plant, "Watered", notes="Deep soak")

        assert entry.action == "watered"
        assert entry.notes == "Deep soak"
        assert self.plant.overrides["watering"].last_performed == FIXED_NOW

    def test_repotted_only_logs(self):
        self.manager.log_care(self.plant, "repotted")

        assert [h.action for h in self.store.history] == ["repotted"]
        assert self.plant.overrides == {}

    def test_unknown_action(self):
        with pytest.raises(ValidationError):
            self.manager.log_care(self.plant, "sang to it")

    def test_notes_too_long(self):
        with pytest.raises(ValidationError) as exc:
            self.manager.log_care(self.plant, "watered", notes="x" * 501)
        assert exc.value.field == "notes"
