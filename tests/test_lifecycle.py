"""
Unit tests for the auto recommendation status lifecycle.

Policy: repeating a transition is a no-op, leaving a different terminal state
is a conflict, and another user's recommendation does not exist.
"""

from datetime import timedelta

import pytest

from fakes import FIXED_NOW, OTHER_USER_ID, USER_ID, FakeAutoRecommendationStore, make_recommendation
from plantcare.services.clock import FixedClock
from plantcare.services.lifecycle import RecommendationLifecycle, is_visible, visible_filter
from plantcare.utils.errors import ConflictError, NotFoundError, ValidationError


class TestVisibility:
    def test_active_in_window_is_visible(self):
        assert is_visible(make_recommendation(), FIXED_NOW) is True

    def test_future_schedule_is_hidden(self):
        assert is_visible(make_recommendation(scheduled_offset_days=1, expires_offset_days=3), FIXED_NOW) is False

    def test_expiry_is_exclusive(self):
        rec = make_recommendation(scheduled_offset_days=-3, expires_offset_days=0)
        assert is_visible(rec, FIXED_NOW) is False

    def test_scheduled_now_is_visible(self):
        assert is_visible(make_recommendation(scheduled_offset_days=0), FIXED_NOW) is True

    def test_non_active_is_hidden(self):
        assert is_visible(make_recommendation(status="acknowledged"), FIXED_NOW) is False

    def test_filter_matches_predicate(self):
        rows = [
            make_recommendation(),
            make_recommendation(scheduled_offset_days=1, expires_offset_days=3),
            make_recommendation(scheduled_offset_days=-3, expires_offset_days=0),
            make_recommendation(status="dismissed"),
            make_recommendation(user_id=OTHER_USER_ID),
        ]
        query = visible_filter(FIXED_NOW, USER_ID)
        assert [query.matches(r) for r in rows] == [True, False, False, False, False]


class TestTransitions:
    """Test acknowledge/dismiss with ownership and idempotency."""

    def setup_method(self):
        self.rec = make_recommendation()
        self.store = FakeAutoRecommendationStore([self.rec])
        self.lifecycle = RecommendationLifecycle(self.store, FixedClock(FIXED_NOW))

    def test_acknowledge(self):
        updated = self.lifecycle.acknowledge(USER_ID, self.rec.id, notes="  Watered it  ")

        assert updated.status == "acknowledged"
        assert updated.action_taken is True
        assert updated.action_date == FIXED_NOW
        assert updated.notes == "Watered it"
        assert self.store.rows[self.rec.id].status == "acknowledged"

    def test_dismiss(self):
        updated = self.lifecycle.dismiss(USER_ID, self.rec.id)

        assert updated.status == "dismissed"
        assert self.store.rows[self.rec.id].action_taken is True

    def test_acknowledge_twice_is_a_no_op(self):
        self.lifecycle.acknowledge(USER_ID, self.rec.id)
        updates = self.store.updates

        again = self.lifecycle.acknowledge(USER_ID, self.rec.id)

        assert again.status == "acknowledged"
        assert self.store.updates == updates

    def test_dismiss_twice_is_a_no_op(self):
        self.lifecycle.dismiss(USER_ID, self.rec.id)
        assert self.lifecycle.dismiss(USER_ID, self.rec.id).status == "dismissed"

    def test_acknowledge_after_dismiss_conflicts(self):
        self.lifecycle.dismiss(USER_ID, self.rec.id)

        with pytest.raises(ConflictError):
            self.lifecycle.acknowledge(USER_ID, self.rec.id)

        assert self.store.rows[self.rec.id].status == "dismissed"

    def test_dismiss_after_acknowledge_conflicts(self):
        self.lifecycle.acknowledge(USER_ID, self.rec.id)
        with pytest.raises(ConflictError):
            self.lifecycle.dismiss(USER_ID, self.rec.id)

    def test_other_user_gets_not_found(self):
        with pytest.raises(NotFoundError):
            self.lifecycle.acknowledge(OTHER_USER_ID, self.rec.id)
        assert self.store.rows[self.rec.id].status == "active"

    def test_unknown_id(self):
        with pytest.raises(NotFoundError):
            self.lifecycle.dismiss(USER_ID, "does-not-exist")

    def test_expired_window_conflicts(self):
        lifecycle = RecommendationLifecycle(self.store, FixedClock(self.rec.expires_at + timedelta(seconds=1)))
        with pytest.raises(ConflictError):
            lifecycle.acknowledge(USER_ID, self.rec.id)

    def test_notes_too_long(self):
        with pytest.raises(ValidationError):
            self.lifecycle.acknowledge(USER_ID, self.rec.id, notes="x" * 501)


class TestSweepExpired:
    def test_marks_only_closed_active_rows(self):
        closed = make_recommendation(scheduled_offset_days=-5, expires_offset_days=-1)
        open_ = make_recommendation()
        dismissed = make_recommendation(status="dismissed", scheduled_offset_days=-5, expires_offset_days=-1)
        store = FakeAutoRecommendationStore([closed, open_, dismissed])

        count = RecommendationLifecycle(store, FixedClock(FIXED_NOW)).sweep_expired()

        assert count == 1
        assert store.rows[closed.id].status == "expired"
        assert store.rows[open_.id].status == "active"
        assert store.rows[dismissed.id].status == "dismissed"

    def test_row_changed_after_listing_is_left_alone(self):
        closed = make_recommendation(scheduled_offset_days=-5, expires_offset_days=-1)

        class DismissedMidSweepStore(FakeAutoRecommendationStore):
            def find(self, query):
                rows = super().find(query)
                self.rows[closed.id].status = "dismissed"
                return rows

        store = DismissedMidSweepStore([closed])

        count = RecommendationLifecycle(store, FixedClock(FIXED_NOW)).sweep_expired()

        assert count == 0
        assert store.rows[closed.id].status == "dismissed"
        assert store.updates == 0
