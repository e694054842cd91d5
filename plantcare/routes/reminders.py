"""
Reminder routes for plant care scheduling (JSON).

Endpoints (prefix /api/v1/reminders):
- GET  /                                         Ranked reminders feed (care schedule, weather, seasonal)
- GET  /upcoming?days=7                          Open reminders due within N days
- POST /plants/<plant_id>                        Add a reminder to a plant
- POST /plants/<plant_id>/<reminder_id>/complete Complete a reminder (schedules the next one if recurring)
- POST /plants/<plant_id>/care                   Log a care activity

Security: CSRF token required via X-CSRFToken header on POST
(validated by Flask-WTF CSRFProtect).
"""

from __future__ import annotations
from flask import Blueprint, jsonify, request

from ..engine import get_engine
from ..utils.auth import get_current_user_id, require_auth
from ..utils.validation import clean_text, json_body, parse_bool, parse_int, require_uuid

reminders_bp = Blueprint("reminders", __name__, url_prefix="/api/v1/reminders")


@reminders_bp.route("", methods=["GET"])
@require_auth
def index():
    """
    Reminders feed. Weather problems never fail this endpoint; they show up as
    a low-priority "Weather Service Unavailable" item instead.
    """
    data = get_engine().recommendations.list_reminders(
        get_current_user_id(),
        include_weather=parse_bool(request.args.get("include_weather"), True),
        include_seasonal=parse_bool(request.args.get("include_seasonal"), True),
    )
    return jsonify({"success": True, "data": data})


@reminders_bp.route("/upcoming", methods=["GET"])
@require_auth
def upcoming():
    days = parse_int(request.args.get("days"), "days", 7)
    reminders = get_engine().recommendations.upcoming_reminders(get_current_user_id(), days)
    return jsonify({
        "success": True,
        "count": len(reminders),
        "reminders": reminders,
    })


@reminders_bp.route("/plants/<plant_id>", methods=["POST"])
@require_auth
def create(plant_id):
    require_uuid(plant_id, "plant_id")
    payload = json_body()
    reminder = get_engine().recommendations.add_reminder(get_current_user_id(), plant_id, {
        "type": payload.get("type"),
        "title": clean_text(payload.get("title")),
        "description": clean_text(payload.get("description")),
        "due_date": payload.get("due_date"),
        "is_recurring": parse_bool(payload.get("is_recurring"), False),
        "recurring_interval": payload.get("recurring_interval"),
    })
    return jsonify({"success": True, "message": "Reminder created", "data": reminder.to_dict()}), 201


@reminders_bp.route("/plants/<plant_id>/<reminder_id>/complete", methods=["POST"])
@require_auth
def complete(plant_id, reminder_id):
    """Complete a reminder. Completing it again is a no-op that still succeeds."""
    require_uuid(plant_id, "plant_id")
    require_uuid(reminder_id, "reminder_id")
    completed, successor = get_engine().recommendations.complete_reminder(
        get_current_user_id(), plant_id, reminder_id
    )
    return jsonify({
        "success": True,
        "message": "Reminder completed",
        "data": {
            "reminder": completed.to_dict(),
            "next_reminder": successor.to_dict() if successor else None,
        },
    })


@reminders_bp.route("/plants/<plant_id>/care", methods=["POST"])
@require_auth
def log_care(plant_id):
    require_uuid(plant_id, "plant_id")
    payload = json_body()
    entry = get_engine().recommendations.log_care(
        get_current_user_id(),
        plant_id,
        payload.get("action") or "",
        description=clean_text(payload.get("description")),
        notes=clean_text(payload.get("notes")),
    )
    return jsonify({"success": True, "message": "Care activity logged", "data": entry.to_dict()}), 201
