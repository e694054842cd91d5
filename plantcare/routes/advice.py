"""
JSON endpoints for human-authored advice and plant observations.

Endpoints:
- GET  /api/v1/advice                     The user's advice (optional ?status=)
- GET  /api/v1/advice/feed                Advice plus observation feedback, newest first
- POST /api/v1/advice/<id>/viewed         Mark advice as viewed
- PUT  /api/v1/advice/<id>/respond        Respond (will-implement, implemented, ...)
- GET  /api/v1/observations               The user's observations (optional ?plant_id=)
- POST /api/v1/observations               Record an observation on one of the user's plants
"""

from __future__ import annotations
from flask import Blueprint, jsonify, request

from ..engine import get_engine
from ..models import ADVICE_STATUSES
from ..utils.auth import get_current_user_id, require_auth
from ..utils.validation import clean_text, json_body, optional_choice, parse_int, require_uuid

advice_bp = Blueprint("advice", __name__, url_prefix="/api/v1")


@advice_bp.route("/advice", methods=["GET"])
@require_auth
def list_advice():
    status = optional_choice(request.args.get("status"), ADVICE_STATUSES, "status")
    items = get_engine().advice.list_for_user(get_current_user_id(), status)
    return jsonify({"success": True, "count": len(items), "data": [a.to_dict() for a in items]})


@advice_bp.route("/advice/feed", methods=["GET"])
@require_auth
def advice_feed():
    data = get_engine().advice.merged_feed(
        get_current_user_id(),
        status=optional_choice(request.args.get("status"), ADVICE_STATUSES, "status"),
        page=parse_int(request.args.get("page"), "page", 1),
        limit=parse_int(request.args.get("limit"), "limit", 20),
    )
    return jsonify({"success": True, "data": data})


@advice_bp.route("/advice/<advice_id>/viewed", methods=["POST"])
@require_auth
def mark_viewed(advice_id):
    require_uuid(advice_id, "advice_id")
    advice = get_engine().advice.mark_viewed(get_current_user_id(), advice_id)
    return jsonify({"success": True, "data": advice.to_dict()})


@advice_bp.route("/advice/<advice_id>/respond", methods=["PUT", "POST"])
@require_auth
def respond(advice_id):
    require_uuid(advice_id, "advice_id")
    payload = json_body()
    advice = get_engine().advice.respond(
        get_current_user_id(),
        advice_id,
        status=(payload.get("status") or "").strip().lower(),
        message=clean_text(payload.get("message")),
        notes=clean_text(payload.get("notes")),
    )
    return jsonify({"success": True, "message": "Response submitted", "data": advice.to_dict()})


@advice_bp.route("/observations", methods=["GET"])
@require_auth
def list_observations():
    plant_id = request.args.get("plant_id") or None
    if plant_id:
        require_uuid(plant_id, "plant_id")
    items = get_engine().observations.list("user", get_current_user_id(), plant_id)
    return jsonify({"success": True, "count": len(items), "data": [o.to_dict() for o in items]})


@advice_bp.route("/observations", methods=["POST"])
@require_auth
def record_observation():
    payload = json_body()
    plant_id = require_uuid(payload.get("plant_id"), "plant_id")
    observation = get_engine().observations.record_for_user_plant(
        get_current_user_id(),
        plant_id,
        title=clean_text(payload.get("title")),
        description=clean_text(payload.get("description")),
    )
    return jsonify({"success": True, "message": "Observation recorded", "data": observation.to_dict()}), 201
