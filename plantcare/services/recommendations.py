"""
Recommendation orchestrator.

Composes the rule evaluators into the two paths the app needs:

- Read path: `build_feed` / `list_reminders` evaluate a user's plants on the
  fly (care schedule, weather, seasonal), merge in stored recommendations that
  are still visible, rank and truncate. Nothing is written.
- Generate path: `generate_and_persist` writes candidates as
  auto_recommendations rows. An active row with the same (user plant, type,
  rule) whose window is still open is refreshed instead of duplicated when
  RECOMMENDATION_DEDUP is on. `generate_all` runs that for every user on a
  bounded thread pool and isolates per-user failures.

Also exposes the stored-row queries (paginated feed, dashboard summary) and
delegates reminder completion and status changes to RecurrenceManager and
RecommendationLifecycle.
"""

from __future__ import annotations
import logging
import math
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple, Union

from ..models import (
    PRIORITIES,
    RECOMMENDATION_STATUSES,
    RECOMMENDATION_TYPES,
    STATUS_ACTIVE,
    AutoRecommendation,
    Candidate,
    ForecastDay,
    Location,
    PlantCareProfile,
    Reminder,
    UserPlant,
    WeatherSnapshot,
)
from ..repositories import (
    AutoRecommendationStore,
    Clock,
    PlantCatalog,
    RecommendationQuery,
    UserDirectory,
    UserPlantStore,
    WeatherProvider,
)
from ..utils.errors import NotFoundError, PlantCareError, UpstreamUnavailable, ValidationError, log_warning
from ..utils.locks import KeyedLocks
from . import ranking
from .care_schedule import evaluate_care_schedule
from .lifecycle import RecommendationLifecycle, visible_filter
from .recurrence import RecurrenceManager
from .seasonal import evaluate_seasonal
from .weather_rules import evaluate_for_plants

logger = logging.getLogger(__name__)

FeedItem = Union[Candidate, AutoRecommendation]
PlantWithProfile = Tuple[UserPlant, Optional[PlantCareProfile]]

# Days a generated row stays visible past max(due date, now), by type
DEFAULT_TTL_DAYS = {
    "weather_alert": 1,
    "watering_reminder": 3,
    "fertilizing_reminder": 7,
    "pruning_reminder": 14,
    "harvest_reminder": 14,
    "planting_suggestion": 30,
    "pest_prevention": 14,
    "seasonal_care": 30,
}
FALLBACK_TTL_DAYS = 7

DASHBOARD_RECENT = 5
MAX_FORECAST_DAYS = 5


class RecommendationOrchestrator:
    """Entry point for the care engine; one instance per app (see plantcare.engine)."""

    def __init__(
        self,
        catalog: PlantCatalog,
        plants: UserPlantStore,
        recommendations: AutoRecommendationStore,
        users: UserDirectory,
        clock: Clock,
        weather: Optional[WeatherProvider] = None,
        ttl_days: Optional[Dict[str, int]] = None,
        dedup: bool = True,
        default_limit: int = 20,
        max_limit: int = 100,
        reminder_limit: int = 20,
        max_workers: int = 4,
        locks: Optional[KeyedLocks] = None,
    ) -> None:
        self.catalog = catalog
        self.plants = plants
        self.recommendations = recommendations
        self.users = users
        self.clock = clock
        self.weather = weather
        self.ttl_days = dict(DEFAULT_TTL_DAYS, **(ttl_days or {}))
        self.dedup = dedup
        self.default_limit = default_limit
        self.max_limit = max_limit
        self.reminder_limit = reminder_limit
        self.max_workers = max(1, max_workers)

        self.locks = locks or KeyedLocks()
        self.lifecycle = RecommendationLifecycle(recommendations, clock, self.locks)
        self.recurrence = RecurrenceManager(plants, clock, self.locks)

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def _load_plants(self, user_id: str) -> List[PlantWithProfile]:
        out: List[PlantWithProfile] = []
        for user_plant in self.plants.list_active_for_user(user_id):
            try:
                profile = self.catalog.get_care_profile(user_plant.plant_id)
            except NotFoundError:
                log_warning("Catalog entry missing, skipping care schedule",
                            user_id=user_id, plant_id=user_plant.plant_id)
                profile = None
            out.append((user_plant, profile))
        return out

    def _current_weather(self, location: Optional[Location], user_id: str) -> Optional[WeatherSnapshot]:
        if self.weather is None:
            return None
        try:
            return self.weather.get_current(location)
        except UpstreamUnavailable as e:
            log_warning("Weather unavailable", user_id=user_id, reason=e.message)
            return None

    def evaluate(
        self,
        user_id: str,
        include_weather: bool = True,
        include_seasonal: bool = True,
    ) -> Tuple[List[Candidate], Optional[Location], List[PlantWithProfile]]:
        """
        Run every rule evaluator for one user.

        Weather rules only run when the user has plants and a location; a
        failing provider yields the single "weather unavailable" sentinel.

        Returns:
            (candidates, location, plants)
        """
        now = self.clock.now()
        location = self.users.get_location(user_id)
        hemisphere = location.hemisphere if location else "north"
        plants = self._load_plants(user_id)

        candidates: List[Candidate] = []
        for user_plant, profile in plants:
            if profile is not None:
                candidates.extend(evaluate_care_schedule(user_plant, profile, now, hemisphere))

        if include_weather and plants and location is not None:
            snapshot = self._current_weather(location, user_id)
            candidates.extend(evaluate_for_plants(plants, snapshot, now))

        if include_seasonal:
            candidates.extend(evaluate_seasonal(now, hemisphere, location))

        return candidates, location, plants

    def _merge_stored(self, user_id: str, candidates: List[Candidate], now: datetime) -> List[FeedItem]:
        stored = self.recommendations.find(visible_filter(now, user_id))
        stored_keys = {rec.dedup_key for rec in stored}
        fresh = [c for c in candidates if c.is_sentinel or c.dedup_key not in stored_keys]
        return list(stored) + fresh

    def build_feed(
        self,
        user_id: str,
        include_weather: bool = True,
        include_seasonal: bool = True,
        limit: Optional[int] = None,
    ) -> List[FeedItem]:
        """Ranked, truncated mix of fresh candidates and stored visible recommendations."""
        candidates, _, _ = self.evaluate(user_id, include_weather, include_seasonal)
        items = self._merge_stored(user_id, candidates, self.clock.now())
        return ranking.top(items, limit if limit is not None else self.reminder_limit)

    def list_reminders(
        self,
        user_id: str,
        include_weather: bool = True,
        include_seasonal: bool = True,
    ) -> Dict[str, Any]:
        """
        Reminders feed for the dashboard: top ranked items plus context.

        Never fails because of weather; the provider degrades to a sentinel.
        """
        now = self.clock.now()
        candidates, location, plants = self.evaluate(user_id, include_weather, include_seasonal)
        items = ranking.rank_items(self._merge_stored(user_id, candidates, now))
        return {
            "reminders": [self.item_to_dict(item, now) for item in items[:self.reminder_limit]],
            "total_count": len(items),
            "user_location": (location.city if location and location.city else "Not set"),
            "weather_enabled": include_weather,
            "seasonal_enabled": include_seasonal,
            "plants_count": len(plants),
        }

    def forecast(self, user_id: str, days: int = 5, location: Optional[Location] = None) -> Dict[str, Any]:
        """
        Daily forecast for an explicit location or the user's profile location.

        Like the reminders feed, weather problems never raise here: the result
        comes back with `available=False` and no days.
        """
        if days < 1 or days > MAX_FORECAST_DAYS:
            raise ValidationError(f"days must be between 1 and {MAX_FORECAST_DAYS}", field="days")
        location = location or self.users.get_location(user_id)
        forecast_days: List[ForecastDay] = []
        available = False
        if self.weather is not None and location is not None:
            try:
                forecast_days = self.weather.get_forecast(location, days=days)
                available = True
            except UpstreamUnavailable as e:
                log_warning("Forecast unavailable", user_id=user_id, reason=e.message)
        return {
            "location": location.query if location else None,
            "available": available,
            "days": [d.to_dict() for d in forecast_days],
        }

    @staticmethod
    def item_to_dict(item: FeedItem, now: datetime) -> Dict[str, Any]:
        if isinstance(item, AutoRecommendation):
            data = item.to_dict()
            data["source"] = "stored"
            data["due_date"] = data["scheduled_for"]
            data["days_remaining"] = item.days_remaining(now)
            data["urgency_score"] = ranking.urgency_score(item, now)
            return data
        data = item.to_dict()
        data["urgency_score"] = ranking.urgency_score(item, now)
        return data

    # ------------------------------------------------------------------
    # Generate path
    # ------------------------------------------------------------------

    def candidate_to_row(self, user_id: str, candidate: Candidate, now: datetime) -> AutoRecommendation:
        ttl = self.ttl_days.get(candidate.kind, FALLBACK_TTL_DAYS)
        return AutoRecommendation(
            user_id=user_id,
            user_plant_id=candidate.plant_id,
            type=candidate.kind,
            title=candidate.title[:200],
            message=candidate.message[:1000],
            priority=candidate.priority,
            scheduled_for=candidate.due_date,
            expires_at=max(candidate.due_date, now) + timedelta(days=ttl),
            weather_data=candidate.weather_data,
            is_recurring=candidate.is_recurring,
            recurring_pattern={"interval": candidate.recurring_interval} if candidate.is_recurring else None,
            rule=candidate.rule,
        )

    def generate_and_persist(self, user_id: str) -> int:
        """
        Evaluate and persist a user's recommendations.

        Returns:
            Number of rows written (inserted or refreshed)

        Raises:
            PersistenceError: Store failure
        """
        with self.locks.hold(("generate", user_id)):
            candidates, _, _ = self.evaluate(user_id)
            now = self.clock.now()

            existing: Dict[tuple, AutoRecommendation] = {}
            if self.dedup:
                open_rows = RecommendationQuery(user_id=user_id, status=STATUS_ACTIVE, expires_after=now)
                existing = {rec.dedup_key: rec for rec in self.recommendations.find(open_rows)}

            written = 0
            for candidate in candidates:
                if candidate.is_sentinel:
                    continue
                row = self.candidate_to_row(user_id, candidate, now)
                current = existing.get(row.dedup_key)
                if current is not None:
                    current.title = row.title
                    current.message = row.message
                    current.priority = row.priority
                    current.weather_data = row.weather_data
                    current.expires_at = max(current.expires_at, row.expires_at)
                    existing[row.dedup_key] = self.recommendations.update(current)
                else:
                    inserted = self.recommendations.insert(row)
                    if self.dedup:
                        existing[row.dedup_key] = inserted
                written += 1

            logger.info(f"[Auto Recommendations] Wrote {written} recommendations for user {user_id}")
            return written

    def generate_all(self, max_workers: Optional[int] = None) -> Dict[str, Dict[str, Any]]:
        """
        Generate for every user with plants.

        One user's failure is logged and recorded; the batch continues.

        Returns:
            {user_id: {"count": n}} or {user_id: {"error": message}}
        """
        user_ids = self.users.list_user_ids()
        workers = max(1, min(max_workers or self.max_workers, len(user_ids) or 1))
        logger.info(f"[Auto Recommendations] Generating for {len(user_ids)} users with {workers} workers")

        results: Dict[str, Dict[str, Any]] = {}
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {executor.submit(self.generate_and_persist, uid): uid for uid in user_ids}
            for future in as_completed(futures):
                uid = futures[future]
                try:
                    results[uid] = {"count": future.result()}
                except PlantCareError as e:
                    logger.error(f"[Auto Recommendations] Failed for user {uid}: {e.message}")
                    results[uid] = {"error": e.message or e.__class__.__name__}
                except Exception as e:
                    logger.exception(f"[Auto Recommendations] Unexpected failure for user {uid}")
                    results[uid] = {"error": str(e) or e.__class__.__name__}

        failed = sum(1 for r in results.values() if "error" in r)
        logger.info(f"[Auto Recommendations] Done: {len(results) - failed} succeeded, {failed} failed")
        return results

    # ------------------------------------------------------------------
    # Stored recommendations
    # ------------------------------------------------------------------

    def list_feed(
        self,
        user_id: str,
        type: Optional[str] = None,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Paginated stored recommendations.

        Without `status` (or with status=active) only visible rows are listed.
        Any other status lists rows in that status whose window has not
        closed; time-expired rows are never listed.
        """
        if type is not None and type not in RECOMMENDATION_TYPES:
            raise ValidationError(f"Invalid type: {type}", field="type")
        if priority is not None and priority not in PRIORITIES:
            raise ValidationError(f"Invalid priority: {priority}", field="priority")
        if status is not None and status not in RECOMMENDATION_STATUSES:
            raise ValidationError(f"Invalid status: {status}", field="status")
        if page < 1:
            raise ValidationError("page must be 1 or greater", field="page")
        limit = self.default_limit if limit is None else limit
        if limit < 1:
            raise ValidationError("limit must be 1 or greater", field="limit")
        limit = min(limit, self.max_limit)

        now = self.clock.now()
        if status is None or status == STATUS_ACTIVE:
            query = replace(visible_filter(now, user_id), type=type, priority=priority)
        else:
            query = RecommendationQuery(user_id=user_id, status=status, type=type, priority=priority,
                                        expires_after=now)

        rows = ranking.rank_items(self.recommendations.find(query))
        total = len(rows)
        start = (page - 1) * limit
        return {
            "recommendations": [self.item_to_dict(r, now) for r in rows[start:start + limit]],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit),
            },
        }

    def dashboard_summary(self, user_id: str) -> Dict[str, Any]:
        now = self.clock.now()
        rows = ranking.rank_items(self.recommendations.find(visible_filter(now, user_id)))
        return {
            "total": len(rows),
            "by_type": dict(Counter(r.type for r in rows)),
            "by_priority": dict(Counter(r.priority for r in rows)),
            "urgent_count": sum(1 for r in rows if r.priority == "urgent"),
            "expiring_soon_count": sum(1 for r in rows if r.days_remaining(now) <= 1),
            "recent": [self.item_to_dict(r, now) for r in rows[:DASHBOARD_RECENT]],
        }

    def get(self, user_id: str, rec_id: str) -> AutoRecommendation:
        return self.lifecycle.get_owned(user_id, rec_id)

    def acknowledge(self, user_id: str, rec_id: str, notes: Optional[str] = None) -> AutoRecommendation:
        return self.lifecycle.acknowledge(user_id, rec_id, notes)

    def dismiss(self, user_id: str, rec_id: str, notes: Optional[str] = None) -> AutoRecommendation:
        return self.lifecycle.dismiss(user_id, rec_id, notes)

    def expire_stale(self) -> int:
        return self.lifecycle.sweep_expired()

    # ------------------------------------------------------------------
    # Reminders
    # ------------------------------------------------------------------

    def complete_reminder(self, user_id: str, user_plant_id: str, reminder_id: str) -> Tuple[Reminder, Optional[Reminder]]:
        user_plant = self.plants.get_for_user(user_id, user_plant_id)
        return self.recurrence.complete_reminder(user_plant, reminder_id)

    def add_reminder(self, user_id: str, user_plant_id: str, payload: Dict[str, Any]) -> Reminder:
        user_plant = self.plants.get_for_user(user_id, user_plant_id)
        return self.recurrence.add_reminder(user_plant, payload)

    def log_care(self, user_id: str, user_plant_id: str, action: str,
                 description: str = "", notes: str = ""):
        user_plant = self.plants.get_for_user(user_id, user_plant_id)
        return self.recurrence.log_care(user_plant, action, description, notes)

    def upcoming_reminders(self, user_id: str, days: int = 7) -> List[Dict[str, Any]]:
        """Open reminders due within `days` (overdue ones included), soonest first."""
        if days < 0:
            raise ValidationError("days must not be negative", field="days")
        horizon = self.clock.now() + timedelta(days=days)
        out: List[Tuple[datetime, Dict[str, Any]]] = []
        for user_plant in self.plants.list_active_for_user(user_id):
            for reminder in user_plant.reminders:
                if reminder.is_completed or reminder.due_date is None or reminder.due_date > horizon:
                    continue
                data = reminder.to_dict()
                data["plant_name"] = user_plant.display_name()
                out.append((reminder.due_date, data))
        out.sort(key=lambda pair: pair[0])
        return [data for _, data in out]
