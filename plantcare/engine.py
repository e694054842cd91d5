"""
Composition root for the care engine.

`build_engine(app)` wires the Supabase stores, the OpenWeather provider and a
clock into the services, using the app's config. The result is stored on
`app.extensions["care_engine"]` so routes and CLI commands share one instance
(and one set of per-key locks).

Tests pass their own fakes through `build_engine(app, **overrides)`.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Optional

from flask import Flask, current_app

from .services.advice import AdviceService
from .services.clock import SystemClock
from .services.observations import ObservationService
from .services.recommendations import RecommendationOrchestrator
from .services.stores import (
    SupabaseAdviceStore,
    SupabaseAutoRecommendationStore,
    SupabaseObservationRepository,
    SupabasePlantCatalog,
    SupabaseUserDirectory,
    SupabaseUserPlantStore,
)
from .services.weather import OpenWeatherProvider

EXTENSION_KEY = "care_engine"


@dataclass
class CareEngine:
    recommendations: RecommendationOrchestrator
    advice: AdviceService
    observations: ObservationService


def build_engine(
    app: Flask,
    *,
    catalog: Any = None,
    plants: Any = None,
    recommendation_store: Any = None,
    advice_store: Any = None,
    observation_repository: Any = None,
    users: Any = None,
    weather: Any = None,
    clock: Any = None,
) -> CareEngine:
    """Create the engine from app config and register it on the app."""
    cfg = app.config
    clock = clock or SystemClock()
    plants = plants or SupabaseUserPlantStore()
    if weather is None:
        weather = OpenWeatherProvider(
            api_key=cfg.get("OPENWEATHER_API_KEY") or None,
            timeout=cfg.get("WEATHER_TIMEOUT_SECONDS", 6),
        )

    orchestrator = RecommendationOrchestrator(
        catalog=catalog or SupabasePlantCatalog(),
        plants=plants,
        recommendations=recommendation_store or SupabaseAutoRecommendationStore(),
        users=users or SupabaseUserDirectory(),
        clock=clock,
        weather=weather,
        ttl_days=cfg.get("RECOMMENDATION_TTL_DAYS"),
        dedup=cfg.get("RECOMMENDATION_DEDUP", True),
        default_limit=cfg.get("FEED_DEFAULT_LIMIT", 20),
        max_limit=cfg.get("FEED_MAX_LIMIT", 100),
        reminder_limit=cfg.get("REMINDER_FEED_LIMIT", 20),
        max_workers=cfg.get("GENERATION_MAX_WORKERS", 4),
    )
    observations = ObservationService(observation_repository or SupabaseObservationRepository(), clock, plants)
    engine = CareEngine(
        recommendations=orchestrator,
        advice=AdviceService(advice_store or SupabaseAdviceStore(), clock, observations),
        observations=observations,
    )
    app.extensions[EXTENSION_KEY] = engine
    return engine


def get_engine(app: Optional[Flask] = None) -> CareEngine:
    """Engine for the given (or current) app."""
    return (app or current_app).extensions[EXTENSION_KEY]
