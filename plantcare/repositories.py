"""
Store interfaces consumed by the care engine.

The Supabase implementations live in `plantcare.services.stores`; tests use
in-memory fakes that satisfy the same protocols.
"""

from __future__ import annotations
from abc import abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Protocol

from .models import (
    AutoRecommendation,
    CareHistoryEntry,
    ForecastDay,
    Location,
    Observation,
    PlantCareProfile,
    Recommendation,
    Reminder,
    UserPlant,
    WeatherSnapshot,
)


@dataclass(frozen=True)
class RecommendationQuery:
    """
    Filter over auto_recommendations rows.

    Every field is optional; set fields are ANDed together. Stores translate
    this into a query, fakes evaluate it with `matches()`.
    """

    user_id: Optional[str] = None
    status: Optional[str] = None
    type: Optional[str] = None
    priority: Optional[str] = None
    scheduled_at_or_before: Optional[datetime] = None
    expires_after: Optional[datetime] = None
    expires_at_or_before: Optional[datetime] = None

    def matches(self, rec: AutoRecommendation) -> bool:
        if self.user_id is not None and rec.user_id != self.user_id:
            return False
        if self.status is not None and rec.status != self.status:
            return False
        if self.type is not None and rec.type != self.type:
            return False
        if self.priority is not None and rec.priority != self.priority:
            return False
        if self.scheduled_at_or_before is not None and rec.scheduled_for > self.scheduled_at_or_before:
            return False
        if self.expires_after is not None and rec.expires_at <= self.expires_after:
            return False
        if self.expires_at_or_before is not None and rec.expires_at > self.expires_at_or_before:
            return False
        return True


class Clock(Protocol):
    def now(self) -> datetime: ...


class PlantCatalog(Protocol):
    """Read-only lookup of static care profiles."""

    @abstractmethod
    def get_care_profile(self, plant_id: str) -> PlantCareProfile:
        """
        Get a plant's care profile.

        Raises:
            NotFoundError: Unknown plant id
        """
        ...


class UserPlantStore(Protocol):
    """A user's plants plus their reminders and care history."""

    @abstractmethod
    def list_active_for_user(self, user_id: str) -> List[UserPlant]:
        """Active plants for a user, with reminders loaded."""
        ...

    @abstractmethod
    def get_for_user(self, user_id: str, user_plant_id: str) -> UserPlant:
        """
        Get one plant, scoped to its owner.

        Raises:
            NotFoundError: No such plant for this user
        """
        ...

    @abstractmethod
    def save(self, user_plant: UserPlant) -> UserPlant:
        """Persist plant-level fields (care overrides, name, location)."""
        ...

    @abstractmethod
    def add_reminder(self, reminder: Reminder) -> Reminder:
        """Insert a reminder and return it with its assigned id."""
        ...

    @abstractmethod
    def update_reminder(self, reminder: Reminder) -> Reminder:
        ...

    @abstractmethod
    def delete_reminder(self, reminder_id: str) -> None:
        ...

    @abstractmethod
    def append_care_history(self, entry: CareHistoryEntry) -> CareHistoryEntry:
        ...


class AutoRecommendationStore(Protocol):
    @abstractmethod
    def find(self, query: RecommendationQuery) -> List[AutoRecommendation]:
        ...

    @abstractmethod
    def get(self, rec_id: str) -> Optional[AutoRecommendation]:
        ...

    @abstractmethod
    def insert(self, rec: AutoRecommendation) -> AutoRecommendation:
        ...

    @abstractmethod
    def update(self, rec: AutoRecommendation) -> AutoRecommendation:
        ...


class AdviceStore(Protocol):
    """Human-authored recommendations (advice) for a user's plants."""

    @abstractmethod
    def list_for_user(self, user_id: str, status: Optional[str] = None) -> List[Recommendation]:
        ...

    @abstractmethod
    def get(self, advice_id: str) -> Optional[Recommendation]:
        ...

    @abstractmethod
    def insert(self, advice: Recommendation) -> Recommendation:
        ...

    @abstractmethod
    def update(self, advice: Recommendation) -> Recommendation:
        ...


class ObservationRepository(Protocol):
    """Observations for plants owned directly by a user or kept in a garden."""

    @abstractmethod
    def add(self, observation: Observation) -> Observation:
        ...

    @abstractmethod
    def list(self, owner_kind: str, owner_id: str, plant_ref: Optional[str] = None) -> List[Observation]:
        ...

    @abstractmethod
    def get(self, observation_id: str) -> Optional[Observation]:
        ...

    @abstractmethod
    def update(self, observation: Observation) -> Observation:
        ...


class UserDirectory(Protocol):
    @abstractmethod
    def list_user_ids(self) -> List[str]:
        """Users with at least one active plant."""
        ...

    @abstractmethod
    def get_location(self, user_id: str) -> Optional[Location]:
        ...


class WeatherProvider(Protocol):
    @abstractmethod
    def get_current(self, location: Optional[Location]) -> WeatherSnapshot:
        """
        Current conditions for a location.

        Raises:
            UpstreamUnavailable: Missing location, missing API key, timeout or bad response
        """
        ...

    @abstractmethod
    def get_forecast(self, location: Optional[Location], days: int = 5) -> List[ForecastDay]:
        ...
