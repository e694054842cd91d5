"""
Centralized configuration for all environments.

Select a config by setting:
  APP_CONFIG=plantcare.config.DevConfig      # local dev
  APP_CONFIG=plantcare.config.ProdConfig     # production (default if unset)
  APP_CONFIG=plantcare.config.TestConfig     # pytest

Notes:
- SECRET_KEY is read from FLASK_SECRET_KEY
- Rate limiting uses Flask-Limiter v3 keys (RATELIMIT_*).
- Care engine settings are read by plantcare.engine.build_engine().
"""

from __future__ import annotations
import os
from datetime import timedelta


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


class BaseConfig:
    # Secrets & basics
    SECRET_KEY = os.getenv("FLASK_SECRET_KEY", "")
    DEBUG = False
    TESTING = False

    # Session configuration
    PERMANENT_SESSION_LIFETIME = timedelta(days=30)
    SESSION_COOKIE_SECURE = True  # Only send cookies over HTTPS (overridden in dev)
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"

    # Third-party keys
    OPENWEATHER_API_KEY = os.getenv("OPENWEATHER_API_KEY", "")

    # Supabase (Database + Auth)
    SUPABASE_URL = os.getenv("SUPABASE_URL", "")
    SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY", "")
    SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")

    # Flask-Limiter v3
    RATELIMIT_ENABLED = os.getenv("RATELIMIT_ENABLED", "true").lower() == "true"
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_DEFAULT = os.getenv("RATELIMIT_DEFAULT", "40 per minute; 2000 per day")
    GENERATE_RATE_LIMIT = os.getenv("GENERATE_RATE_LIMIT", "5 per minute; 50 per day")

    # Care engine
    WEATHER_TIMEOUT_SECONDS = _env_int("WEATHER_TIMEOUT_SECONDS", 6)
    GENERATION_MAX_WORKERS = _env_int("GENERATION_MAX_WORKERS", 4)
    FEED_DEFAULT_LIMIT = _env_int("FEED_DEFAULT_LIMIT", 20)
    FEED_MAX_LIMIT = _env_int("FEED_MAX_LIMIT", 100)
    REMINDER_FEED_LIMIT = _env_int("REMINDER_FEED_LIMIT", 20)
    # Allow POST /api/v1/recommendations/generate-all (the CLI is the normal batch entry point)
    BATCH_TRIGGER_ENABLED = os.getenv("BATCH_TRIGGER_ENABLED", "false").lower() == "true"
    # Refresh an existing visible row instead of inserting a duplicate
    RECOMMENDATION_DEDUP = os.getenv("RECOMMENDATION_DEDUP", "true").lower() == "true"
    # Days a generated recommendation stays visible, by type
    RECOMMENDATION_TTL_DAYS = {
        "weather_alert": 1,
        "watering_reminder": 3,
        "fertilizing_reminder": 7,
        "pruning_reminder": 14,
        "harvest_reminder": 14,
        "planting_suggestion": 30,
        "pest_prevention": 14,
        "seasonal_care": 30,
    }

    # Misc
    PREFERRED_URL_SCHEME = os.getenv("PREFERRED_URL_SCHEME", "https")


class ProdConfig(BaseConfig):
    """Production settings (selected by default if APP_CONFIG is unset)."""
    pass


class DevConfig(BaseConfig):
    """Developer-friendly settings."""
    ENV = "development"
    DEBUG = True
    PREFERRED_URL_SCHEME = "http"
    # Allow cookies over HTTP in dev
    SESSION_COOKIE_SECURE = False
    GENERATE_RATE_LIMIT = "100 per minute"
    BATCH_TRIGGER_ENABLED = True


class TestConfig(BaseConfig):
    """CI/pytest settings."""
    TESTING = True
    DEBUG = True
    # Usually disable the limiter in tests to avoid flakiness
    RATELIMIT_ENABLED = False
    WTF_CSRF_ENABLED = False
    SECRET_KEY = "test-secret-key"
    SUPABASE_URL = ""
    SUPABASE_ANON_KEY = ""
    SUPABASE_SERVICE_ROLE_KEY = ""
    OPENWEATHER_API_KEY = ""
