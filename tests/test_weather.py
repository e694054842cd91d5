"""
Unit tests for the OpenWeather provider.

The HTTP session is mocked; no network calls are made.
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from plantcare.models import Location
from plantcare.services.weather import CURRENT_URL, OpenWeatherProvider, _normalize_city_query
from plantcare.utils.errors import UpstreamUnavailable


def _response(payload):
    resp = MagicMock()
    resp.json.return_value = payload
    resp.raise_for_status.return_value = None
    return resp


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def provider(session):
    return OpenWeatherProvider(api_key="test-key", timeout=6, session=session)


class TestGetCurrent:
    def test_parses_current_conditions(self, provider, session):
        session.get.return_value = _response({
            "name": "Lisbon",
            "main": {"temp": 2.5, "humidity": 81},
            "wind": {"speed": 7.2},
            "weather": [{"main": "Rain", "description": "light rain"}],
        })

        snapshot = provider.get_current(Location(city="Lisbon", country="PT"))

        assert snapshot.temperature == 2.5
        assert snapshot.humidity == 81
        assert snapshot.wind_speed == 7.2
        assert snapshot.description == "light rain"
        assert snapshot.location == "Lisbon"
        assert session.get.call_args[1]["params"]["q"] == "Lisbon,PT"

    def test_sends_query_with_timeout(self, provider, session):
        session.get.return_value = _response({"main": {}, "weather": []})

        provider.get_current(Location(city="Austin, tx"))

        args, kwargs = session.get.call_args
        assert args[0] == CURRENT_URL
        assert kwargs["timeout"] == 6
        assert kwargs["params"]["q"] == "Austin, TX, US"
        assert kwargs["params"]["appid"] == "test-key"
        assert kwargs["params"]["units"] == "metric"

    def test_zip_code_query(self, provider, session):
        session.get.return_value = _response({"main": {}, "weather": []})

        provider.get_current(Location(city="78701"))

        assert session.get.call_args[1]["params"]["zip"] == "78701,US"

    def test_timeout_is_upstream_unavailable(self, provider, session):
        session.get.side_effect = requests.Timeout("read timed out")

        with pytest.raises(UpstreamUnavailable):
            provider.get_current(Location(city="Lisbon"))

    def test_http_error_is_upstream_unavailable(self, provider, session):
        resp = _response({})
        resp.raise_for_status.side_effect = requests.HTTPError("401 Unauthorized")
        session.get.return_value = resp

        with pytest.raises(UpstreamUnavailable):
            provider.get_current(Location(city="Lisbon"))

    def test_bad_json_is_upstream_unavailable(self, provider, session):
        resp = _response({})
        resp.json.side_effect = ValueError("No JSON object could be decoded")
        session.get.return_value = resp

        with pytest.raises(UpstreamUnavailable):
            provider.get_current(Location(city="Lisbon"))

    @pytest.mark.parametrize("payload", [
        ["unexpected"],
        "service down",
        {"main": ["temp", 20]},
        {"main": {"temp": "warm"}},
        {"weather": {"description": "rain"}},
    ])
    def test_unexpected_body_is_upstream_unavailable(self, provider, session, payload):
        session.get.return_value = _response(payload)

        with pytest.raises(UpstreamUnavailable):
            provider.get_current(Location(city="Lisbon"))

    def test_no_location(self, provider, session):
        with pytest.raises(UpstreamUnavailable):
            provider.get_current(None)
        session.get.assert_not_called()

    @patch.dict("os.environ", {"OPENWEATHER_API_KEY": ""})
    def test_missing_api_key(self, session):
        provider = OpenWeatherProvider(api_key=None, session=session)

        with pytest.raises(UpstreamUnavailable):
            provider.get_current(Location(city="Lisbon"))
        session.get.assert_not_called()


class TestGetForecast:
    def test_aggregates_by_local_date(self, provider, session):
        session.get.return_value = _response({
            "city": {"timezone": 0},
            "list": [
                {"dt": 1752561600, "main": {"temp": 18.0, "humidity": 60}, "wind": {"speed": 3.0},
                 "weather": [{"description": "clear sky"}]},
                {"dt": 1752572400, "main": {"temp": 26.0, "humidity": 40}, "wind": {"speed": 5.0},
                 "weather": [{"description": "clear sky"}]},
                {"dt": 1752648000, "main": {"temp": 15.0, "humidity": 90}, "wind": {"speed": 9.0},
                 "weather": [{"description": "moderate rain"}]},
            ],
        })

        days = provider.get_forecast(Location(city="Lisbon"))

        assert [d.date for d in days] == ["2025-07-15", "2025-07-16"]
        assert days[0].temp_min == 18.0
        assert days[0].temp_max == 26.0
        assert days[0].humidity == 50
        assert days[0].wind_speed == 4.0
        assert days[1].description == "moderate rain"

    def test_limits_days(self, provider, session):
        session.get.return_value = _response({
            "list": [{"dt": 1752561600 + i * 86400, "main": {"temp": 20}, "weather": []} for i in range(6)],
        })

        assert len(provider.get_forecast(Location(city="Lisbon"), days=3)) == 3


    @pytest.mark.parametrize("payload", [
        ["unexpected"],
        {"list": [{"main": {"temp": 20}}]},
        {"list": "not a list of slots"},
    ])
    def test_unexpected_body_is_upstream_unavailable(self, provider, session, payload):
        session.get.return_value = _response(payload)

        with pytest.raises(UpstreamUnavailable):
            provider.get_forecast(Location(city="Lisbon"))


class TestNormalizeCityQuery:
    def test_us_state(self):
        assert _normalize_city_query("austin, tx") == "austin, TX, US"

    def test_plain_city(self):
        assert _normalize_city_query("  Lisbon ") == "Lisbon"
