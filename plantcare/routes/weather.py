"""
Weather forecast for the signed-in user (JSON).

Endpoints (prefix /api/v1/weather):
- GET /forecast?days=5             Daily forecast for the profile location
- GET /forecast?city=Porto&country=PT
                                   Daily forecast for an explicit location

A weather outage is not an error here: the response carries
"available": false and an empty list of days.
"""

from __future__ import annotations
from flask import Blueprint, jsonify, request

from ..engine import get_engine
from ..models import Location
from ..utils.auth import get_current_user_id, require_auth
from ..utils.validation import clean_text, parse_int

weather_bp = Blueprint("weather", __name__, url_prefix="/api/v1/weather")


@weather_bp.route("/forecast", methods=["GET"])
@require_auth
def forecast():
    city = clean_text(request.args.get("city"), max_len=100)
    country = clean_text(request.args.get("country"), max_len=100)
    location = Location(city=city, country=country or None) if city else None
    data = get_engine().recommendations.forecast(
        get_current_user_id(),
        days=parse_int(request.args.get("days"), "days", 5),
        location=location,
    )
    return jsonify({"success": True, "data": data})
