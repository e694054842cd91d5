# tests/conftest.py
"""
Test configuration and shared fixtures.

Provides the Flask app wired to in-memory stores, a test client, and the
engine services built on the same fakes.
"""

import os
import sys
import pytest
from unittest.mock import patch

# Add the project root to sys.path
PROJECT_ROOT = os.path.dirname(os.path.dirname(__file__))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from fakes import (  # noqa: E402
    FIXED_NOW,
    USER_ID,
    FakeAdviceStore,
    FakeAutoRecommendationStore,
    FakeCatalog,
    FakeObservationRepository,
    FakeUserDirectory,
    FakeUserPlantStore,
    FakeWeather,
    lisbon,
    make_profile,
    make_user_plant,
)
from plantcare.services.clock import FixedClock  # noqa: E402
from plantcare.services.recommendations import RecommendationOrchestrator  # noqa: E402


@pytest.fixture
def clock():
    return FixedClock(FIXED_NOW)


@pytest.fixture
def profile():
    """Basil: weekly watering, monthly fertilizing, no pruning."""
    return make_profile()


@pytest.fixture
def user_plant():
    """A basil plant last watered 10 days ago."""
    return make_user_plant(last_watered_days_ago=10, last_fertilized_days_ago=5)


@pytest.fixture
def catalog(profile):
    return FakeCatalog([profile])


@pytest.fixture
def plant_store(user_plant):
    return FakeUserPlantStore([user_plant])


@pytest.fixture
def rec_store():
    return FakeAutoRecommendationStore()


@pytest.fixture
def advice_store():
    return FakeAdviceStore()


@pytest.fixture
def observation_repo():
    return FakeObservationRepository()


@pytest.fixture
def users():
    return FakeUserDirectory(user_ids=[USER_ID], locations={USER_ID: lisbon()})


@pytest.fixture
def weather():
    return FakeWeather()


@pytest.fixture
def orchestrator(catalog, plant_store, rec_store, users, clock, weather):
    return RecommendationOrchestrator(
        catalog=catalog,
        plants=plant_store,
        recommendations=rec_store,
        users=users,
        clock=clock,
        weather=weather,
    )


@pytest.fixture
def app(monkeypatch, catalog, plant_store, rec_store, advice_store, observation_repo, users, weather, clock):
    """Create the Flask app with TestConfig and an engine built on the fakes."""
    monkeypatch.setenv("APP_CONFIG", "plantcare.config.TestConfig")

    from plantcare import create_app
    from plantcare.engine import build_engine

    app = create_app()
    build_engine(
        app,
        catalog=catalog,
        plants=plant_store,
        recommendation_store=rec_store,
        advice_store=advice_store,
        observation_repository=observation_repo,
        users=users,
        weather=weather,
        clock=clock,
    )
    yield app


@pytest.fixture
def client(app):
    """Create a test client for the Flask app."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """Create a test CLI runner for the Flask app."""
    return app.test_cli_runner()


@pytest.fixture
def engine(app):
    from plantcare.engine import get_engine
    return get_engine(app)


@pytest.fixture
def logged_in():
    """Signed-in user for route tests."""
    with patch("plantcare.utils.auth.get_current_user") as mock_user:
        mock_user.return_value = {"id": USER_ID, "email": "grower@example.com"}
        yield mock_user
