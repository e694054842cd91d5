"""
AutoRecommendation status lifecycle.

    active -> acknowledged   (user acted on it)
    active -> dismissed      (user rejected it)
    active -> expired        (implicit: now >= expires_at)

Visibility is decided by the time window on every read, never by a job:
a row is visible iff status=active and scheduled_for <= now < expires_at.
`sweep_expired` only rewrites the stored status of rows that are already
invisible, for reporting.

Repeating the transition a row already went through returns it unchanged.
Moving a row out of a different terminal state, or acting on a row whose
window has closed, raises ConflictError.
"""

from __future__ import annotations
import logging
from datetime import datetime
from typing import Optional

from ..models import (
    MAX_NOTES_LEN,
    STATUS_ACKNOWLEDGED,
    STATUS_ACTIVE,
    STATUS_DISMISSED,
    STATUS_EXPIRED,
    AutoRecommendation,
)
from ..repositories import AutoRecommendationStore, Clock, RecommendationQuery
from ..utils.errors import ConflictError, NotFoundError, ValidationError
from ..utils.locks import KeyedLocks

logger = logging.getLogger(__name__)


def is_visible(rec: AutoRecommendation, now: datetime) -> bool:
    return rec.is_visible(now)


def visible_filter(now: datetime, user_id: Optional[str] = None) -> RecommendationQuery:
    """The compound visibility predicate as a store query."""
    return RecommendationQuery(
        user_id=user_id,
        status=STATUS_ACTIVE,
        scheduled_at_or_before=now,
        expires_after=now,
    )


class RecommendationLifecycle:
    def __init__(self, store: AutoRecommendationStore, clock: Clock, locks: Optional[KeyedLocks] = None) -> None:
        self.store = store
        self.clock = clock
        self.locks = locks or KeyedLocks()

    def get_owned(self, user_id: str, rec_id: str) -> AutoRecommendation:
        """
        Fetch a recommendation owned by `user_id`.

        Raises:
            NotFoundError: Absent, or owned by someone else
        """
        rec = self.store.get(rec_id)
        if rec is None or rec.user_id != user_id:
            raise NotFoundError(f"Recommendation {rec_id} not found")
        return rec

    def acknowledge(self, user_id: str, rec_id: str, notes: Optional[str] = None) -> AutoRecommendation:
        return self._transition(user_id, rec_id, STATUS_ACKNOWLEDGED, notes)

    def dismiss(self, user_id: str, rec_id: str, notes: Optional[str] = None) -> AutoRecommendation:
        return self._transition(user_id, rec_id, STATUS_DISMISSED, notes)

    def _transition(self, user_id: str, rec_id: str, target: str, notes: Optional[str]) -> AutoRecommendation:
        if notes is not None:
            notes = notes.strip()
            if len(notes) > MAX_NOTES_LEN:
                raise ValidationError(f"Notes must be under {MAX_NOTES_LEN} characters", field="notes")

        with self.locks.hold(rec_id):
            rec = self.get_owned(user_id, rec_id)
            now = self.clock.now()

            if rec.status == target:
                return rec
            if rec.status != STATUS_ACTIVE:
                raise ConflictError(
                    f"Recommendation is already {rec.status}",
                    detail={"id": rec_id, "status": rec.status, "requested": target},
                )
            if now >= rec.expires_at:
                raise ConflictError("Recommendation has expired", detail={"id": rec_id, "requested": target})

            rec.status = target
            rec.action_taken = True
            rec.action_date = now
            if notes:
                rec.notes = notes
            updated = self.store.update(rec)
            logger.info(f"[Auto Recommendations] {rec_id} -> {target} by {user_id}")
            return updated

    def sweep_expired(self, now: Optional[datetime] = None) -> int:
        """Mark active rows whose window has closed as expired. Returns the number updated."""
        now = now or self.clock.now()
        count = 0
        for rec in self.store.find(RecommendationQuery(status=STATUS_ACTIVE, expires_at_or_before=now)):
            with self.locks.hold(rec.id):
                current = self.store.get(rec.id)
                if current is None or current.status != STATUS_ACTIVE:
                    continue
                current.status = STATUS_EXPIRED
                self.store.update(current)
                count += 1
        return count
