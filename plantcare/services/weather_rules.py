"""
Weather-driven care recommendations.

Each rule looks at one plant and the current conditions and may emit a
candidate. Rules are independent of each other and never touch state.

Rules:
- temperature < 5°C: cold protection (high)
- temperature > 35°C: heat stress prevention (high)
- humidity < 30%: low humidity alert (medium)
- rain/storm in description: rain protection (medium) + delay watering 2 days (low)
- wind speed > 20: wind protection (medium)

When the provider failed, a single low-priority "weather unavailable" candidate
is returned instead.
"""

from __future__ import annotations
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Tuple

from ..models import Candidate, PlantCareProfile, UserPlant, WeatherSnapshot

COLD_THRESHOLD_C = 5
HEAT_THRESHOLD_C = 35
LOW_HUMIDITY_PCT = 30
WIND_THRESHOLD = 20
RAIN_DELAY_DAYS = 2

RAIN_KEYWORDS = ("rain", "storm", "drizzle", "shower", "thunderstorm")


def weather_unavailable(now: datetime) -> Candidate:
    """Sentinel candidate used when the weather provider failed."""
    return Candidate(
        kind="weather_alert",
        title="Weather Service Unavailable",
        message="Unable to fetch weather-based recommendations. Please check your internet connection.",
        priority="low",
        due_date=now,
        rule="weather-unavailable",
        tags=["weather-error"],
        is_sentinel=True,
    )


def _is_rainy(description: str) -> bool:
    d = (description or "").lower()
    return any(keyword in d for keyword in RAIN_KEYWORDS)


def evaluate_weather(
    user_plant: UserPlant,
    profile: Optional[PlantCareProfile],
    snapshot: Optional[WeatherSnapshot],
    now: datetime,
) -> List[Candidate]:
    """
    Derive weather candidates for one plant.

    Args:
        user_plant: The user's plant instance
        profile: Catalog care profile (used for the display name)
        snapshot: Current conditions, or None if the provider failed
        now: Evaluation time

    Returns:
        Candidate list; exactly one sentinel when snapshot is None
    """
    if snapshot is None:
        return [weather_unavailable(now)]

    name = user_plant.display_name(profile)
    weather_data = snapshot.to_dict()
    out: List[Candidate] = []

    def add(title: str, message: str, priority: str, rule: str, tags: List[str],
            kind: str = "weather_alert", due: Optional[datetime] = None) -> None:
        out.append(Candidate(
            kind=kind,
            title=title,
            message=message,
            priority=priority,
            due_date=due or now,
            rule=rule,
            tags=tags,
            plant_id=user_plant.id,
            weather_data=weather_data,
        ))

    temp = snapshot.temperature
    if isinstance(temp, (int, float)):
        if temp < COLD_THRESHOLD_C:
            add(
                "Cold Weather Protection",
                f"Protect {name} from freezing temperatures. Consider moving indoors or covering with frost cloth.",
                "high", "cold-protection", ["cold-protection", "weather-alert"],
            )
        if temp > HEAT_THRESHOLD_C:
            add(
                "Heat Stress Prevention",
                f"Provide extra shade and increase watering frequency for {name} during this heat wave.",
                "high", "heat-protection", ["heat-protection", "weather-alert"],
            )

    humidity = snapshot.humidity
    if isinstance(humidity, (int, float)) and humidity < LOW_HUMIDITY_PCT:
        add(
            "Low Humidity Alert",
            f"Increase humidity around {name} by misting or using a humidity tray.",
            "medium", "low-humidity", ["humidity", "care"],
        )

    if _is_rainy(snapshot.description):
        add(
            "Rain Protection",
            f"Move {name} to a covered area if it's sensitive to overwatering.",
            "medium", "rain-protection", ["rain-protection", "weather"],
        )
        add(
            "Adjust Watering Schedule",
            f"Skip or delay watering for {name} due to recent rainfall.",
            "low", "delay-watering", ["watering", "schedule-adjustment"],
            kind="watering_reminder", due=now + timedelta(days=RAIN_DELAY_DAYS),
        )

    wind = snapshot.wind_speed
    if isinstance(wind, (int, float)) and wind > WIND_THRESHOLD:
        add(
            "Wind Protection",
            f"Secure or move {name} to protect from strong winds that could damage stems or roots.",
            "medium", "wind-protection", ["wind-protection", "weather-alert"],
        )

    return out


def evaluate_for_plants(
    plants: Iterable[Tuple[UserPlant, Optional[PlantCareProfile]]],
    snapshot: Optional[WeatherSnapshot],
    now: datetime,
) -> List[Candidate]:
    """Apply the weather rules to every plant; a missing snapshot yields one sentinel overall."""
    if snapshot is None:
        return [weather_unavailable(now)]

    out: List[Candidate] = []
    for user_plant, profile in plants:
        out.extend(evaluate_weather(user_plant, profile, snapshot, now))
    return out
