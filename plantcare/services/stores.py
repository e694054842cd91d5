"""
Supabase-backed stores for the care engine.

Tables:
- plant_catalog          static care profiles (read-only)
- user_plants            a user's plants, with care_overrides json
- reminders              one row per reminder, keyed by user_plant_id
- care_history           append-only care log, keyed by user_plant_id
- auto_recommendations   generated recommendations
- advice_recommendations human-authored advice
- observations           plant observations keyed by (owner_kind, owner_id, plant_ref)
- profiles               user location (city, country, hemisphere)

All stores use the admin client: they run for batch jobs as well as
requests, and every query is scoped by user id explicitly. Any client error
is logged and re-raised as PersistenceError.
"""

from __future__ import annotations
import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from supabase import Client

from ..models import (
    AutoRecommendation,
    CareHistoryEntry,
    Location,
    Observation,
    PlantCareProfile,
    Recommendation,
    Reminder,
    UserPlant,
)
from ..repositories import RecommendationQuery
from ..utils.errors import NotFoundError, PersistenceError
from .supabase_client import get_admin_client

logger = logging.getLogger(__name__)

_CATALOG_CACHE_TTL_SECONDS = 300  # 5 minutes


def _without_id(row: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in row.items() if not (k == "id" and v is None)}


class _SupabaseStore:
    """Shared client lookup and error wrapping."""

    table: str = ""

    def __init__(self, client: Optional[Client] = None,
                 client_factory: Callable[[], Optional[Client]] = get_admin_client) -> None:
        self._client = client
        self._client_factory = client_factory

    @property
    def client(self) -> Client:
        client = self._client or self._client_factory()
        if client is None:
            raise PersistenceError("Database not configured")
        return client

    def _execute(self, action: str, build: Callable[[Client], Any]) -> List[Dict[str, Any]]:
        try:
            response = build(self.client).execute()
        except PersistenceError:
            raise
        except Exception as e:
            logger.error(f"[Stores] Error {action} ({self.table}): {e}")
            raise PersistenceError(f"Error {action}", detail={"table": self.table, "error": str(e)}) from e
        data = response.data if response is not None else None
        if data is None:
            return []
        return data if isinstance(data, list) else [data]


class SupabasePlantCatalog(_SupabaseStore):
    """Catalog lookups with a small in-memory TTL cache (catalog rows rarely change)."""

    table = "plant_catalog"

    def __init__(self, client: Optional[Client] = None, **kwargs) -> None:
        super().__init__(client, **kwargs)
        self._cache: Dict[str, Tuple[PlantCareProfile, datetime]] = {}
        self._cache_lock = threading.Lock()

    def get_care_profile(self, plant_id: str) -> PlantCareProfile:
        with self._cache_lock:
            cached = self._cache.get(plant_id)
        if cached:
            profile, cached_at = cached
            if datetime.now(timezone.utc) - cached_at < timedelta(seconds=_CATALOG_CACHE_TTL_SECONDS):
                return profile

        rows = self._execute(
            "fetching care profile",
            lambda c: c.table(self.table).select("*").eq("id", plant_id).limit(1),
        )
        if not rows:
            raise NotFoundError(f"Plant {plant_id} not found in catalog")

        profile = PlantCareProfile.from_row(rows[0])
        with self._cache_lock:
            self._cache[plant_id] = (profile, datetime.now(timezone.utc))
        return profile


class SupabaseUserPlantStore(_SupabaseStore):
    table = "user_plants"

    _SELECT = "*, plant_catalog(name), reminders(*)"

    def list_active_for_user(self, user_id: str) -> List[UserPlant]:
        rows = self._execute(
            "listing user plants",
            lambda c: (c.table(self.table)
                       .select(self._SELECT)
                       .eq("user_id", user_id)
                       .eq("is_active", True)
                       .order("created_at", desc=False)),
        )
        return [UserPlant.from_row(r) for r in rows]

    def get_for_user(self, user_id: str, user_plant_id: str) -> UserPlant:
        rows = self._execute(
            "fetching user plant",
            lambda c: (c.table(self.table)
                       .select(self._SELECT + ", care_history(*)")
                       .eq("id", user_plant_id)
                       .eq("user_id", user_id)
                       .limit(1)),
        )
        if not rows:
            raise NotFoundError(f"Plant {user_plant_id} not found")
        return UserPlant.from_row(rows[0])

    def save(self, user_plant: UserPlant) -> UserPlant:
        data = {
            "custom_name": user_plant.custom_name,
            "location": user_plant.location,
            "care_overrides": {k: v.to_dict() for k, v in user_plant.overrides.items()},
            "is_active": user_plant.is_active,
        }
        self._execute(
            "saving user plant",
            lambda c: c.table(self.table).update(data).eq("id", user_plant.id).eq("user_id", user_plant.user_id),
        )
        return user_plant

    def add_reminder(self, reminder: Reminder) -> Reminder:
        rows = self._execute(
            "creating reminder",
            lambda c: c.table("reminders").insert(_without_id(reminder.to_dict())),
        )
        if not rows:
            raise PersistenceError("Failed to create reminder")
        return Reminder.from_row(rows[0])

    def update_reminder(self, reminder: Reminder) -> Reminder:
        data = reminder.to_dict()
        data.pop("id", None)
        rows = self._execute(
            "updating reminder",
            lambda c: c.table("reminders").update(data).eq("id", reminder.id),
        )
        return Reminder.from_row(rows[0]) if rows else reminder

    def delete_reminder(self, reminder_id: str) -> None:
        self._execute(
            "deleting reminder",
            lambda c: c.table("reminders").delete().eq("id", reminder_id),
        )

    def append_care_history(self, entry: CareHistoryEntry) -> CareHistoryEntry:
        rows = self._execute(
            "appending care history",
            lambda c: c.table("care_history").insert(_without_id(entry.to_dict())),
        )
        return CareHistoryEntry.from_row(rows[0]) if rows else entry


class SupabaseAutoRecommendationStore(_SupabaseStore):
    table = "auto_recommendations"

    def find(self, query: RecommendationQuery) -> List[AutoRecommendation]:
        def build(c: Client):
            q = c.table(self.table).select("*")
            if query.user_id is not None:
                q = q.eq("user_id", query.user_id)
            if query.status is not None:
                q = q.eq("status", query.status)
            if query.type is not None:
                q = q.eq("type", query.type)
            if query.priority is not None:
                q = q.eq("priority", query.priority)
            if query.scheduled_at_or_before is not None:
                q = q.lte("scheduled_for", query.scheduled_at_or_before.isoformat())
            if query.expires_after is not None:
                q = q.gt("expires_at", query.expires_after.isoformat())
            if query.expires_at_or_before is not None:
                q = q.lte("expires_at", query.expires_at_or_before.isoformat())
            return q.order("scheduled_for", desc=False)

        return [AutoRecommendation.from_row(r) for r in self._execute("querying recommendations", build)]

    def get(self, rec_id: str) -> Optional[AutoRecommendation]:
        rows = self._execute(
            "fetching recommendation",
            lambda c: c.table(self.table).select("*").eq("id", rec_id).limit(1),
        )
        return AutoRecommendation.from_row(rows[0]) if rows else None

    def insert(self, rec: AutoRecommendation) -> AutoRecommendation:
        rows = self._execute(
            "creating recommendation",
            lambda c: c.table(self.table).insert(_without_id(rec.to_dict())),
        )
        if not rows:
            raise PersistenceError("Failed to create recommendation")
        return AutoRecommendation.from_row(rows[0])

    def update(self, rec: AutoRecommendation) -> AutoRecommendation:
        data = rec.to_dict()
        data.pop("id", None)
        rows = self._execute(
            "updating recommendation",
            lambda c: c.table(self.table).update(data).eq("id", rec.id),
        )
        return AutoRecommendation.from_row(rows[0]) if rows else rec


class SupabaseAdviceStore(_SupabaseStore):
    table = "advice_recommendations"

    def list_for_user(self, user_id: str, status: Optional[str] = None) -> List[Recommendation]:
        def build(c: Client):
            q = c.table(self.table).select("*").eq("user_id", user_id)
            if status:
                q = q.eq("status", status)
            return q.order("created_at", desc=True)

        return [Recommendation.from_row(r) for r in self._execute("listing advice", build)]

    def get(self, advice_id: str) -> Optional[Recommendation]:
        rows = self._execute(
            "fetching advice",
            lambda c: c.table(self.table).select("*").eq("id", advice_id).limit(1),
        )
        return Recommendation.from_row(rows[0]) if rows else None

    def insert(self, advice: Recommendation) -> Recommendation:
        rows = self._execute(
            "creating advice",
            lambda c: c.table(self.table).insert(_without_id(advice.to_dict())),
        )
        if not rows:
            raise PersistenceError("Failed to create advice")
        return Recommendation.from_row(rows[0])

    def update(self, advice: Recommendation) -> Recommendation:
        data = advice.to_dict()
        data.pop("id", None)
        rows = self._execute(
            "updating advice",
            lambda c: c.table(self.table).update(data).eq("id", advice.id),
        )
        return Recommendation.from_row(rows[0]) if rows else advice


class SupabaseObservationRepository(_SupabaseStore):
    table = "observations"

    def add(self, observation: Observation) -> Observation:
        data = _without_id(observation.to_dict())
        data.pop("created_at", None)
        rows = self._execute("recording observation", lambda c: c.table(self.table).insert(data))
        if not rows:
            raise PersistenceError("Failed to record observation")
        return Observation.from_row(rows[0])

    def list(self, owner_kind: str, owner_id: str, plant_ref: Optional[str] = None) -> List[Observation]:
        def build(c: Client):
            q = c.table(self.table).select("*").eq("owner_kind", owner_kind).eq("owner_id", owner_id)
            if plant_ref:
                q = q.eq("plant_ref", plant_ref)
            return q.order("created_at", desc=True)

        return [Observation.from_row(r) for r in self._execute("listing observations", build)]

    def get(self, observation_id: str) -> Optional[Observation]:
        rows = self._execute(
            "fetching observation",
            lambda c: c.table(self.table).select("*").eq("id", observation_id).limit(1),
        )
        return Observation.from_row(rows[0]) if rows else None

    def update(self, observation: Observation) -> Observation:
        data = {"status": observation.status, "feedback": observation.feedback}
        rows = self._execute(
            "updating observation",
            lambda c: c.table(self.table).update(data).eq("id", observation.id),
        )
        return Observation.from_row(rows[0]) if rows else observation


class SupabaseUserDirectory(_SupabaseStore):
    table = "profiles"

    def list_user_ids(self) -> List[str]:
        rows = self._execute(
            "listing users with plants",
            lambda c: c.table("user_plants").select("user_id").eq("is_active", True),
        )
        seen: Dict[str, None] = {}
        for row in rows:
            if row.get("user_id"):
                seen.setdefault(row["user_id"], None)
        return list(seen)

    def get_location(self, user_id: str) -> Optional[Location]:
        rows = self._execute(
            "fetching user location",
            lambda c: c.table(self.table).select("city, country, hemisphere").eq("id", user_id).limit(1),
        )
        return Location.from_row(rows[0]) if rows else None
