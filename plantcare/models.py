"""
Records shared by the care engine, the stores and the web layer.

Rows come back from Supabase as plain dicts; `from_row()` turns them into
these dataclasses and `to_dict()` turns them back into JSON-ready payloads.
All timestamps are timezone-aware UTC datetimes.
"""

from __future__ import annotations
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from .utils.errors import ValidationError

PRIORITIES = ("low", "medium", "high", "urgent")

RECOMMENDATION_TYPES = (
    "watering_reminder",
    "weather_alert",
    "fertilizing_reminder",
    "pruning_reminder",
    "harvest_reminder",
    "planting_suggestion",
    "pest_prevention",
    "seasonal_care",
)

STATUS_ACTIVE = "active"
STATUS_ACKNOWLEDGED = "acknowledged"
STATUS_DISMISSED = "dismissed"
STATUS_EXPIRED = "expired"
RECOMMENDATION_STATUSES = (STATUS_ACTIVE, STATUS_ACKNOWLEDGED, STATUS_DISMISSED, STATUS_EXPIRED)

REMINDER_TYPES = ("watering", "fertilizing", "pruning", "harvesting", "custom")
RECURRING_INTERVALS = ("daily", "weekly", "bi-weekly", "monthly", "seasonal", "annually")
CARE_TYPES = ("watering", "fertilizing", "pruning")
CARE_ACTIONS = ("watered", "fertilized", "pruned", "repotted", "treated", "harvested", "other")

MAX_TITLE_LEN = 200
MAX_MESSAGE_LEN = 1000
MAX_NOTES_LEN = 500


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse a Supabase/ISO timestamp into an aware UTC datetime.

    Accepts datetimes, dates, and ISO strings (with or without a trailing 'Z').
    Naive values are assumed to be UTC. Returns None for empty input.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError as e:
            raise ValidationError(f"Invalid date: {value}") from e
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# ============================================================================
# Catalog
# ============================================================================

@dataclass
class CareInstruction:
    frequency: str = "weekly"
    instructions: str = ""

    @staticmethod
    def from_dict(data: Optional[Dict[str, Any]]) -> Optional["CareInstruction"]:
        if not data:
            return None
        return CareInstruction(
            frequency=data.get("frequency") or "weekly",
            instructions=data.get("instructions") or data.get("notes") or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"frequency": self.frequency, "instructions": self.instructions}


@dataclass
class PlantCareProfile:
    """Static care metadata for a catalog plant. Read-only to the engine."""

    plant_id: str
    name: str
    watering: Optional[CareInstruction] = None
    fertilizing: Optional[CareInstruction] = None
    pruning: Optional[CareInstruction] = None
    light_requirement: Optional[str] = None
    planting_seasons: List[str] = field(default_factory=list)
    harvest_seasons: List[str] = field(default_factory=list)
    seasonal_notes: Optional[str] = None

    def instruction_for(self, care_type: str) -> Optional[CareInstruction]:
        return getattr(self, care_type, None) if care_type in CARE_TYPES else None

    @staticmethod
    def from_row(row: Dict[str, Any]) -> "PlantCareProfile":
        care = row.get("care") or {}
        return PlantCareProfile(
            plant_id=str(row["id"]),
            name=row.get("name") or "",
            watering=CareInstruction.from_dict(care.get("watering")),
            fertilizing=CareInstruction.from_dict(care.get("fertilizing")),
            pruning=CareInstruction.from_dict(care.get("pruning")),
            light_requirement=row.get("light_requirement"),
            planting_seasons=[s.lower() for s in (row.get("planting_seasons") or [])],
            harvest_seasons=[s.lower() for s in (row.get("harvest_seasons") or [])],
            seasonal_notes=row.get("seasonal_notes"),
        )


# ============================================================================
# User plants, reminders, care history
# ============================================================================

@dataclass
class CareOverride:
    frequency: Optional[str] = None
    last_performed: Optional[datetime] = None
    next_due: Optional[datetime] = None

    @staticmethod
    def from_dict(data: Optional[Dict[str, Any]]) -> "CareOverride":
        data = data or {}
        return CareOverride(
            frequency=data.get("frequency") or None,
            last_performed=parse_datetime(data.get("last_performed")),
            next_due=parse_datetime(data.get("next_due")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "frequency": self.frequency,
            "last_performed": _iso(self.last_performed),
            "next_due": _iso(self.next_due),
        }


@dataclass
class Reminder:
    type: str
    title: str
    due_date: datetime
    description: str = ""
    id: Optional[str] = None
    user_plant_id: Optional[str] = None
    user_id: Optional[str] = None
    is_completed: bool = False
    completed_date: Optional[datetime] = None
    is_recurring: bool = False
    recurring_interval: Optional[str] = None
    created_at: Optional[datetime] = None

    @staticmethod
    def from_row(row: Dict[str, Any]) -> "Reminder":
        return Reminder(
            id=str(row["id"]) if row.get("id") is not None else None,
            user_plant_id=row.get("user_plant_id"),
            user_id=row.get("user_id"),
            type=row.get("type") or "custom",
            title=row.get("title") or "",
            description=row.get("description") or "",
            due_date=parse_datetime(row.get("due_date")),
            is_completed=bool(row.get("is_completed", False)),
            completed_date=parse_datetime(row.get("completed_date")),
            is_recurring=bool(row.get("is_recurring", False)),
            recurring_interval=row.get("recurring_interval"),
            created_at=parse_datetime(row.get("created_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_plant_id": self.user_plant_id,
            "user_id": self.user_id,
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "due_date": _iso(self.due_date),
            "is_completed": self.is_completed,
            "completed_date": _iso(self.completed_date),
            "is_recurring": self.is_recurring,
            "recurring_interval": self.recurring_interval,
        }


@dataclass
class CareHistoryEntry:
    user_plant_id: str
    action: str
    date: datetime
    description: str = ""
    notes: str = ""
    id: Optional[str] = None

    @staticmethod
    def from_row(row: Dict[str, Any]) -> "CareHistoryEntry":
        return CareHistoryEntry(
            id=str(row["id"]) if row.get("id") is not None else None,
            user_plant_id=row.get("user_plant_id"),
            action=row.get("action") or "other",
            description=row.get("description") or "",
            notes=row.get("notes") or "",
            date=parse_datetime(row.get("date")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_plant_id": self.user_plant_id,
            "action": self.action,
            "description": self.description,
            "notes": self.notes,
            "date": _iso(self.date),
        }


@dataclass
class UserPlant:
    """A user's instance of a catalog plant."""

    id: str
    user_id: str
    plant_id: str
    planted_date: datetime
    custom_name: Optional[str] = None
    location: Optional[str] = None
    overrides: Dict[str, CareOverride] = field(default_factory=dict)
    reminders: List[Reminder] = field(default_factory=list)
    care_history: List[CareHistoryEntry] = field(default_factory=list)
    is_active: bool = True
    plant_name: Optional[str] = None

    def display_name(self, profile: Optional[PlantCareProfile] = None) -> str:
        if self.custom_name:
            return self.custom_name
        if profile and profile.name:
            return profile.name
        return self.plant_name or "your plant"

    def override_for(self, care_type: str) -> Optional[CareOverride]:
        return self.overrides.get(care_type)

    def find_reminder(self, reminder_id: str) -> Optional[Reminder]:
        for reminder in self.reminders:
            if reminder.id == reminder_id:
                return reminder
        return None

    @staticmethod
    def from_row(row: Dict[str, Any]) -> "UserPlant":
        overrides = {
            care_type: CareOverride.from_dict(data)
            for care_type, data in (row.get("care_overrides") or {}).items()
            if care_type in CARE_TYPES
        }
        catalog = row.get("plant_catalog") or {}
        return UserPlant(
            id=str(row["id"]),
            user_id=row.get("user_id"),
            plant_id=str(row.get("plant_id")),
            custom_name=row.get("custom_name"),
            location=row.get("location"),
            planted_date=parse_datetime(row.get("planted_date")) or parse_datetime(row.get("created_at")) or utc_now(),
            overrides=overrides,
            reminders=[Reminder.from_row(r) for r in (row.get("reminders") or [])],
            care_history=[CareHistoryEntry.from_row(h) for h in (row.get("care_history") or [])],
            is_active=bool(row.get("is_active", True)),
            plant_name=catalog.get("name") if isinstance(catalog, dict) else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "plant_id": self.plant_id,
            "custom_name": self.custom_name,
            "location": self.location,
            "planted_date": _iso(self.planted_date),
            "care_overrides": {k: v.to_dict() for k, v in self.overrides.items()},
            "reminders": [r.to_dict() for r in self.reminders],
            "is_active": self.is_active,
        }


# ============================================================================
# Weather and location
# ============================================================================

@dataclass
class Location:
    city: Optional[str] = None
    country: Optional[str] = None
    hemisphere: str = "north"

    @property
    def query(self) -> Optional[str]:
        """City query string for the weather provider."""
        if self.city and self.country:
            return f"{self.city}, {self.country}"
        return self.city or None

    @staticmethod
    def from_row(row: Optional[Dict[str, Any]]) -> Optional["Location"]:
        if not row or not (row.get("city") or row.get("country")):
            return None
        hemisphere = (row.get("hemisphere") or "north").lower()
        return Location(
            city=row.get("city"),
            country=row.get("country"),
            hemisphere="south" if hemisphere == "south" else "north",
        )


@dataclass
class WeatherSnapshot:
    temperature: Optional[float]
    humidity: Optional[float]
    wind_speed: Optional[float]
    description: str
    timestamp: datetime
    location: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "temperature": self.temperature,
            "humidity": self.humidity,
            "wind_speed": self.wind_speed,
            "condition": self.description,
            "timestamp": _iso(self.timestamp),
            "location": self.location,
        }


@dataclass
class ForecastDay:
    date: str
    temp_min: float
    temp_max: float
    humidity: Optional[float]
    wind_speed: Optional[float]
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "temp_min": self.temp_min,
            "temp_max": self.temp_max,
            "humidity": self.humidity,
            "wind_speed": self.wind_speed,
            "description": self.description,
        }


# ============================================================================
# Candidates and auto recommendations
# ============================================================================

@dataclass
class Candidate:
    """An unpersisted recommendation or reminder produced by a rule evaluator."""

    kind: str
    title: str
    message: str
    priority: str
    due_date: datetime
    rule: str
    tags: List[str] = field(default_factory=list)
    plant_id: Optional[str] = None
    reminder_type: Optional[str] = None
    is_recurring: bool = False
    recurring_interval: Optional[str] = None
    weather_data: Optional[Dict[str, Any]] = None
    is_sentinel: bool = False

    @property
    def sort_date(self) -> datetime:
        return self.due_date

    @property
    def dedup_key(self) -> tuple:
        return (self.plant_id, self.kind, self.rule)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind,
            "title": self.title,
            "message": self.message,
            "priority": self.priority,
            "due_date": _iso(self.due_date),
            "tags": list(self.tags),
            "user_plant_id": self.plant_id,
            "reminder_type": self.reminder_type,
            "is_recurring": self.is_recurring,
            "recurring_interval": self.recurring_interval,
            "weather_data": self.weather_data,
            "source": "generated",
        }


@dataclass
class AutoRecommendation:
    """System-generated advisory with a [scheduled_for, expires_at) visibility window."""

    user_id: str
    type: str
    title: str
    message: str
    scheduled_for: datetime
    expires_at: datetime
    priority: str = "medium"
    status: str = STATUS_ACTIVE
    id: Optional[str] = None
    user_plant_id: Optional[str] = None
    garden_id: Optional[str] = None
    weather_data: Optional[Dict[str, Any]] = None
    is_recurring: bool = False
    recurring_pattern: Optional[Dict[str, Any]] = None
    action_taken: bool = False
    action_date: Optional[datetime] = None
    notes: Optional[str] = None
    rule: str = ""
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.type not in RECOMMENDATION_TYPES:
            raise ValidationError(f"Invalid recommendation type: {self.type}", field="type")
        if self.priority not in PRIORITIES:
            raise ValidationError(f"Invalid priority: {self.priority}", field="priority")
        if self.status not in RECOMMENDATION_STATUSES:
            raise ValidationError(f"Invalid status: {self.status}", field="status")
        if not self.title or len(self.title) > MAX_TITLE_LEN:
            raise ValidationError(f"Title is required and must be under {MAX_TITLE_LEN} characters", field="title")
        if not self.message or len(self.message) > MAX_MESSAGE_LEN:
            raise ValidationError(f"Message is required and must be under {MAX_MESSAGE_LEN} characters", field="message")
        if self.scheduled_for > self.expires_at:
            raise ValidationError("scheduled_for must not be after expires_at", field="expires_at")

    @property
    def sort_date(self) -> datetime:
        return self.scheduled_for

    @property
    def dedup_key(self) -> tuple:
        return (self.user_plant_id, self.type, self.rule)

    def is_visible(self, now: datetime) -> bool:
        return self.status == STATUS_ACTIVE and self.scheduled_for <= now < self.expires_at

    def days_remaining(self, now: datetime) -> int:
        return math.ceil((self.expires_at - now).total_seconds() / 86400)

    @staticmethod
    def from_row(row: Dict[str, Any]) -> "AutoRecommendation":
        return AutoRecommendation(
            id=str(row["id"]) if row.get("id") is not None else None,
            user_id=row.get("user_id"),
            user_plant_id=row.get("user_plant_id"),
            garden_id=row.get("garden_id"),
            type=row.get("type"),
            title=row.get("title") or "",
            message=row.get("message") or "",
            priority=row.get("priority") or "medium",
            status=row.get("status") or STATUS_ACTIVE,
            scheduled_for=parse_datetime(row.get("scheduled_for")),
            expires_at=parse_datetime(row.get("expires_at")),
            weather_data=row.get("weather_data"),
            is_recurring=bool(row.get("is_recurring", False)),
            recurring_pattern=row.get("recurring_pattern"),
            action_taken=bool(row.get("action_taken", False)),
            action_date=parse_datetime(row.get("action_date")),
            notes=row.get("notes"),
            rule=row.get("rule") or "",
            created_at=parse_datetime(row.get("created_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "user_plant_id": self.user_plant_id,
            "garden_id": self.garden_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "priority": self.priority,
            "status": self.status,
            "scheduled_for": _iso(self.scheduled_for),
            "expires_at": _iso(self.expires_at),
            "weather_data": self.weather_data,
            "is_recurring": self.is_recurring,
            "recurring_pattern": self.recurring_pattern,
            "action_taken": self.action_taken,
            "action_date": _iso(self.action_date),
            "notes": self.notes,
            "rule": self.rule,
        }


# ============================================================================
# Human-authored advice and observations
# ============================================================================

ADVICE_TYPES = ("care", "treatment", "maintenance", "harvesting", "general")
ADVICE_STATUSES = ("pending", "viewed", "implemented", "dismissed")
ADVICE_RESPONSE_STATUSES = ("will-implement", "implemented", "not-applicable", "need-clarification")


@dataclass
class Recommendation:
    """Advice written by a supervisor for one of a user's plants."""

    supervisor_id: str
    user_id: str
    user_plant_id: str
    type: str
    title: str
    description: str
    priority: str = "medium"
    status: str = "pending"
    id: Optional[str] = None
    due_date: Optional[datetime] = None
    tags: List[str] = field(default_factory=list)
    user_response: Dict[str, Any] = field(default_factory=dict)
    follow_up: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None

    @property
    def sort_date(self) -> Optional[datetime]:
        return self.due_date or self.created_at

    @staticmethod
    def from_row(row: Dict[str, Any]) -> "Recommendation":
        return Recommendation(
            id=str(row["id"]) if row.get("id") is not None else None,
            supervisor_id=row.get("supervisor_id"),
            user_id=row.get("user_id"),
            user_plant_id=row.get("user_plant_id"),
            type=row.get("type") or "general",
            title=row.get("title") or "",
            description=row.get("description") or "",
            priority=row.get("priority") or "medium",
            status=row.get("status") or "pending",
            due_date=parse_datetime(row.get("due_date")),
            tags=list(row.get("tags") or []),
            user_response=dict(row.get("user_response") or {}),
            follow_up=dict(row.get("follow_up") or {}),
            created_at=parse_datetime(row.get("created_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "supervisor_id": self.supervisor_id,
            "user_id": self.user_id,
            "user_plant_id": self.user_plant_id,
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "status": self.status,
            "due_date": _iso(self.due_date),
            "tags": list(self.tags),
            "user_response": self.user_response,
            "follow_up": self.follow_up,
        }


OBSERVATION_OWNER_KINDS = ("user", "garden")
OBSERVATION_STATUSES = ("pending", "reviewed", "needs_attention")
FEEDBACK_STATUSES = ("approved", "needs_improvement", "concern")


@dataclass
class Observation:
    owner_kind: str
    owner_id: str
    plant_ref: str
    title: str
    description: str
    status: str = "pending"
    id: Optional[str] = None
    feedback: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None

    @staticmethod
    def from_row(row: Dict[str, Any]) -> "Observation":
        return Observation(
            id=str(row["id"]) if row.get("id") is not None else None,
            owner_kind=row.get("owner_kind") or "user",
            owner_id=row.get("owner_id"),
            plant_ref=row.get("plant_ref"),
            title=row.get("title") or "",
            description=row.get("description") or "",
            status=row.get("status") or "pending",
            feedback=dict(row.get("feedback") or {}),
            created_at=parse_datetime(row.get("created_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "owner_kind": self.owner_kind,
            "owner_id": self.owner_id,
            "plant_ref": self.plant_ref,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "feedback": self.feedback,
            "created_at": _iso(self.created_at),
        }
