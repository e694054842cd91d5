"""
Seasonal and climate-based care recommendations.

Provides one general tip per season, plus a climate-flavored tip when the
user's location is known. Climate is inferred with simple keyword checks on
city and country names.
"""

from __future__ import annotations
from datetime import datetime
from typing import List, Optional

from ..models import Candidate, Location

_SOUTHERN_FLIP = {
    "winter": "summer",
    "summer": "winter",
    "spring": "fall",
    "fall": "spring",
}

SEASONAL_TIPS = {
    "spring": {
        "title": "Spring Preparation",
        "message": "Start fertilizing and increase watering as plants enter growing season.",
        "priority": "medium",
        "tags": ["spring", "seasonal", "general-care"],
    },
    "summer": {
        "title": "Summer Care",
        "message": "Monitor soil moisture closely and provide shade during extreme heat.",
        "priority": "high",
        "tags": ["summer", "seasonal", "watering"],
    },
    "fall": {
        "title": "Fall Preparation",
        "message": "Reduce watering frequency and prepare plants for dormancy.",
        "priority": "medium",
        "tags": ["fall", "seasonal", "dormancy-prep"],
    },
    "winter": {
        "title": "Winter Care",
        "message": "Reduce watering and protect plants from cold drafts.",
        "priority": "medium",
        "tags": ["winter", "seasonal", "protection"],
    },
}

CLIMATE_TIPS = {
    "tropical": {
        "kind": "pest_prevention",
        "title": "Tropical Climate Care",
        "message": "Monitor for fungal issues due to high humidity. Ensure good air circulation.",
        "priority": "medium",
        "tags": ["tropical", "humidity", "fungal-prevention"],
    },
    "arid": {
        "kind": "seasonal_care",
        "title": "Arid Climate Care",
        "message": "Increase humidity around plants and monitor soil moisture carefully.",
        "priority": "high",
        "tags": ["arid", "humidity", "drought-care"],
    },
    "temperate": {
        "kind": "seasonal_care",
        "title": "Temperate Climate Care",
        "message": "Adjust watering based on seasonal changes and indoor heating/cooling.",
        "priority": "low",
        "tags": ["temperate", "seasonal-adjustment"],
    },
}

TROPICAL_CITIES = ("miami", "hawaii", "honolulu", "key west")
TROPICAL_COUNTRIES = ("thailand", "brazil")
ARID_CITIES = ("phoenix", "las vegas", "tucson")
ARID_COUNTRIES = ("saudi",)


def season_for(now: datetime, hemisphere: str = "north") -> str:
    """
    Determine the season for a date.

    Args:
        now: Evaluation time
        hemisphere: 'north' or 'south' (seasons are flipped in the south)

    Returns:
        Season name: 'winter', 'spring', 'summer', 'fall'
    """
    month = now.month
    if month in (3, 4, 5):
        season = "spring"
    elif month in (6, 7, 8):
        season = "summer"
    elif month in (9, 10, 11):
        season = "fall"
    else:  # 12, 1, 2
        season = "winter"

    if hemisphere == "south":
        return _SOUTHERN_FLIP[season]
    return season


def classify_climate(location: Optional[Location]) -> str:
    """Map common city/country names to a climate band, defaulting to temperate."""
    if not location:
        return "temperate"
    city = (location.city or "").lower()
    country = (location.country or "").lower()

    if any(k in city for k in TROPICAL_CITIES) or any(k in country for k in TROPICAL_COUNTRIES):
        return "tropical"
    if any(k in city for k in ARID_CITIES) or any(k in country for k in ARID_COUNTRIES):
        return "arid"
    return "temperate"


def evaluate_seasonal(
    now: datetime,
    hemisphere: str = "north",
    location: Optional[Location] = None,
) -> List[Candidate]:
    """
    Global seasonal candidates for a user (not tied to any plant).

    Returns one seasonal tip, plus one climate tip when a location is given.
    """
    season = season_for(now, hemisphere)
    tip = SEASONAL_TIPS[season]
    out = [Candidate(
        kind="seasonal_care",
        title=tip["title"],
        message=tip["message"],
        priority=tip["priority"],
        due_date=now,
        rule=f"season-{season}",
        tags=list(tip["tags"]),
    )]

    if location is not None:
        climate = classify_climate(location)
        climate_tip = CLIMATE_TIPS[climate]
        out.append(Candidate(
            kind=climate_tip["kind"],
            title=climate_tip["title"],
            message=climate_tip["message"],
            priority=climate_tip["priority"],
            due_date=now,
            rule=f"climate-{climate}",
            tags=list(climate_tip["tags"]),
        ))

    return out
