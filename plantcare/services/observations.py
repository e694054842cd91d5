"""
Plant observations.

An observation belongs to a plant that is either owned directly by a user or
kept in a shared garden. Both cases go through the same repository, keyed by
(owner_kind, owner_id, plant_ref):

    ("user",   user_id,   user_plant_id)
    ("garden", garden_id, garden plant id)

Reviewers attach feedback; a "concern" marks the observation as needing
attention, any other feedback marks it reviewed.
"""

from __future__ import annotations
import logging
from typing import List, Optional

from ..models import (
    FEEDBACK_STATUSES,
    MAX_MESSAGE_LEN,
    MAX_TITLE_LEN,
    OBSERVATION_OWNER_KINDS,
    Observation,
)
from ..repositories import Clock, ObservationRepository, UserPlantStore
from ..utils.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class ObservationService:
    def __init__(self, repository: ObservationRepository, clock: Clock,
                 plants: Optional[UserPlantStore] = None) -> None:
        self.repository = repository
        self.clock = clock
        self.plants = plants

    def record(self, owner_kind: str, owner_id: str, plant_ref: str, title: str, description: str = "") -> Observation:
        if owner_kind not in OBSERVATION_OWNER_KINDS:
            raise ValidationError(f"Invalid owner kind: {owner_kind}", field="owner_kind")
        if not owner_id or not plant_ref:
            raise ValidationError("owner_id and plant_ref are required", field="plant_ref")
        title = (title or "").strip()
        if not title or len(title) > MAX_TITLE_LEN:
            raise ValidationError(f"Title is required and must be under {MAX_TITLE_LEN} characters", field="title")
        description = (description or "").strip()
        if len(description) > MAX_MESSAGE_LEN:
            raise ValidationError(f"Description must be under {MAX_MESSAGE_LEN} characters", field="description")

        return self.repository.add(Observation(
            owner_kind=owner_kind,
            owner_id=owner_id,
            plant_ref=plant_ref,
            title=title,
            description=description,
            created_at=self.clock.now(),
        ))

    def record_for_user_plant(self, user_id: str, user_plant_id: str, title: str, description: str = "") -> Observation:
        """Record an observation on one of the user's own plants (ownership checked)."""
        if self.plants is not None:
            self.plants.get_for_user(user_id, user_plant_id)
        return self.record("user", user_id, user_plant_id, title, description)

    def list(self, owner_kind: str, owner_id: str, plant_ref: Optional[str] = None) -> List[Observation]:
        if owner_kind not in OBSERVATION_OWNER_KINDS:
            raise ValidationError(f"Invalid owner kind: {owner_kind}", field="owner_kind")
        return self.repository.list(owner_kind, owner_id, plant_ref)

    def review(self, observation_id: str, reviewer_id: str, message: str, status: str) -> Observation:
        """
        Attach reviewer feedback.

        Raises:
            NotFoundError: Unknown observation
            ValidationError: Empty message or unknown feedback status
        """
        if status not in FEEDBACK_STATUSES:
            raise ValidationError(f"Invalid feedback status: {status}", field="status")
        message = (message or "").strip()
        if not message or len(message) > MAX_MESSAGE_LEN:
            raise ValidationError(f"Feedback is required and must be under {MAX_MESSAGE_LEN} characters", field="message")

        observation = self.repository.get(observation_id)
        if observation is None:
            raise NotFoundError(f"Observation {observation_id} not found")

        observation.feedback = {
            "message": message,
            "status": status,
            "reviewed_by": reviewer_id,
            "reviewed_at": self.clock.now().isoformat(),
        }
        observation.status = "needs_attention" if status == "concern" else "reviewed"
        logger.info(f"[Observations] {observation_id} reviewed by {reviewer_id}: {status}")
        return self.repository.update(observation)

    def feedback_for_user(self, user_id: str) -> List[Observation]:
        """The user's observations that carry reviewer feedback."""
        return [o for o in self.repository.list("user", user_id) if (o.feedback or {}).get("message")]
