"""
Human-authored advice for a user's plants.

A supervisor writes a recommendation (care, treatment, ...) for one of a
user's plants. The user sees it, may respond, and marks it implemented.

    pending -> viewed -> implemented | dismissed

The merged feed combines advice with reviewer feedback on the user's
observations, newest first.
"""

from __future__ import annotations
import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..models import (
    ADVICE_RESPONSE_STATUSES,
    ADVICE_STATUSES,
    ADVICE_TYPES,
    MAX_MESSAGE_LEN,
    MAX_NOTES_LEN,
    MAX_TITLE_LEN,
    PRIORITIES,
    Recommendation,
    parse_datetime,
)
from ..repositories import AdviceStore, Clock
from ..utils.errors import NotFoundError, ValidationError
from .observations import ObservationService

logger = logging.getLogger(__name__)

# Response status -> advice status it moves the advice to
_RESPONSE_TRANSITIONS = {
    "implemented": "implemented",
    "not-applicable": "dismissed",
}

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class AdviceService:
    def __init__(self, store: AdviceStore, clock: Clock, observations: Optional[ObservationService] = None) -> None:
        self.store = store
        self.clock = clock
        self.observations = observations

    def create(self, supervisor_id: str, user_id: str, user_plant_id: str, payload: Dict[str, Any]) -> Recommendation:
        """
        Create advice for a user's plant.

        Raises:
            ValidationError: Bad type, priority, title, description or due date
        """
        advice_type = payload.get("type") or "general"
        if advice_type not in ADVICE_TYPES:
            raise ValidationError(f"Invalid advice type: {advice_type}", field="type")
        priority = payload.get("priority") or "medium"
        if priority not in PRIORITIES:
            raise ValidationError(f"Invalid priority: {priority}", field="priority")
        title = (payload.get("title") or "").strip()
        if not title or len(title) > MAX_TITLE_LEN:
            raise ValidationError(f"Title is required and must be under {MAX_TITLE_LEN} characters", field="title")
        description = (payload.get("description") or "").strip()
        if not description or len(description) > MAX_MESSAGE_LEN:
            raise ValidationError(f"Description is required and must be under {MAX_MESSAGE_LEN} characters",
                                  field="description")
        try:
            due_date = parse_datetime(payload.get("due_date"))
        except ValidationError as e:
            raise ValidationError(e.message, field="due_date") from e

        follow_up = payload.get("follow_up") or {}
        advice = Recommendation(
            supervisor_id=supervisor_id,
            user_id=user_id,
            user_plant_id=user_plant_id,
            type=advice_type,
            title=title,
            description=description,
            priority=priority,
            due_date=due_date,
            tags=[str(t) for t in (payload.get("tags") or [])],
            follow_up={
                "is_required": bool(follow_up.get("is_required", False)),
                "date": follow_up.get("date"),
                "notes": follow_up.get("notes"),
            },
            created_at=self.clock.now(),
        )
        created = self.store.insert(advice)
        logger.info(f"[Advice] {supervisor_id} created advice for user {user_id}")
        return created

    def _get_owned(self, user_id: str, advice_id: str) -> Recommendation:
        advice = self.store.get(advice_id)
        if advice is None or advice.user_id != user_id:
            raise NotFoundError(f"Advice {advice_id} not found")
        return advice

    def list_for_user(self, user_id: str, status: Optional[str] = None) -> List[Recommendation]:
        if status is not None and status not in ADVICE_STATUSES:
            raise ValidationError(f"Invalid status: {status}", field="status")
        return self.store.list_for_user(user_id, status)

    def get(self, user_id: str, advice_id: str) -> Recommendation:
        return self._get_owned(user_id, advice_id)

    def mark_viewed(self, user_id: str, advice_id: str) -> Recommendation:
        """pending -> viewed. Any other status is left as is."""
        advice = self._get_owned(user_id, advice_id)
        if advice.status != "pending":
            return advice
        advice.status = "viewed"
        return self.store.update(advice)

    def respond(self, user_id: str, advice_id: str, status: str,
                message: Optional[str] = None, notes: Optional[str] = None) -> Recommendation:
        """
        Record the user's response.

        "implemented" moves the advice to implemented, "not-applicable" to
        dismissed; other responses keep the current status.
        """
        if status not in ADVICE_RESPONSE_STATUSES:
            raise ValidationError(f"Invalid response status: {status}", field="status")
        message = (message or "").strip()
        if len(message) > MAX_MESSAGE_LEN:
            raise ValidationError(f"Message must be under {MAX_MESSAGE_LEN} characters", field="message")
        notes = (notes or "").strip()
        if len(notes) > MAX_NOTES_LEN:
            raise ValidationError(f"Notes must be under {MAX_NOTES_LEN} characters", field="notes")

        advice = self._get_owned(user_id, advice_id)
        now = self.clock.now().isoformat()
        response = dict(advice.user_response)
        response.update({"status": status, "response_date": now})
        if message:
            response["message"] = message
        if notes:
            response["notes"] = notes

        new_status = _RESPONSE_TRANSITIONS.get(status)
        if new_status == "implemented":
            response["implementation_date"] = now
        if new_status:
            advice.status = new_status
        advice.user_response = response
        return self.store.update(advice)

    def merged_feed(self, user_id: str, status: Optional[str] = None, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        """Advice plus observation feedback, newest first, paginated."""
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be 1 or greater", field="page")

        items: List[tuple] = []
        for advice in self.list_for_user(user_id, status):
            data = advice.to_dict()
            data["kind"] = "recommendation"
            data["created_at"] = advice.created_at.isoformat() if advice.created_at else None
            items.append((advice.created_at or _EPOCH, data))

        feedback_count = 0
        if self.observations is not None:
            for observation in self.observations.feedback_for_user(user_id):
                data = observation.to_dict()
                data["kind"] = "observation_feedback"
                items.append((observation.created_at or _EPOCH, data))
                feedback_count += 1

        items.sort(key=lambda pair: pair[0], reverse=True)
        total = len(items)
        start = (page - 1) * limit
        return {
            "items": [data for _, data in items[start:start + limit]],
            "observation_feedbacks": feedback_count,
            "recommendations": total - feedback_count,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit),
            },
        }
