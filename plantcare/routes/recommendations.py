"""
JSON endpoints for auto recommendations.

Endpoints (prefix /api/v1/recommendations):
- GET  /                    Paginated stored recommendations (type/status/priority filters)
- GET  /dashboard           Summary counts plus the top 5 visible recommendations
- GET  /<id>                One recommendation
- PUT  /<id>/acknowledge    Mark acknowledged (optional notes)
- PUT  /<id>/dismiss        Mark dismissed (optional notes)
- POST /generate            Generate and store recommendations for the current user
- POST /generate-all        Batch generation for every user (only when BATCH_TRIGGER_ENABLED)

Errors raised by the engine are turned into JSON by the app-level handler.
"""

from __future__ import annotations
from flask import Blueprint, abort, current_app, jsonify, request

from ..engine import get_engine
from ..extensions import limiter
from ..models import PRIORITIES, RECOMMENDATION_STATUSES, RECOMMENDATION_TYPES
from ..utils.auth import get_current_user_id, require_auth
from ..utils.validation import clean_text, json_body, optional_choice, parse_int, require_uuid

recommendations_bp = Blueprint("recommendations", __name__, url_prefix="/api/v1/recommendations")


def _generate_limit() -> str:
    return current_app.config.get("GENERATE_RATE_LIMIT", "5 per minute")


@recommendations_bp.route("", methods=["GET"])
@require_auth
def list_recommendations():
    """List stored recommendations; visible ones only unless ?status= is given."""
    engine = get_engine()
    result = engine.recommendations.list_feed(
        get_current_user_id(),
        type=optional_choice(request.args.get("type"), RECOMMENDATION_TYPES, "type"),
        status=optional_choice(request.args.get("status"), RECOMMENDATION_STATUSES, "status"),
        priority=optional_choice(request.args.get("priority"), PRIORITIES, "priority"),
        page=parse_int(request.args.get("page"), "page", 1),
        limit=parse_int(request.args.get("limit"), "limit", current_app.config.get("FEED_DEFAULT_LIMIT", 20)),
    )
    return jsonify({"success": True, "data": result})


@recommendations_bp.route("/dashboard", methods=["GET"])
@require_auth
def dashboard():
    summary = get_engine().recommendations.dashboard_summary(get_current_user_id())
    return jsonify({"success": True, "data": summary})


@recommendations_bp.route("/<rec_id>", methods=["GET"])
@require_auth
def get_recommendation(rec_id):
    require_uuid(rec_id, "recommendation_id")
    orchestrator = get_engine().recommendations
    rec = orchestrator.get(get_current_user_id(), rec_id)
    return jsonify({"success": True, "data": orchestrator.item_to_dict(rec, orchestrator.clock.now())})


@recommendations_bp.route("/<rec_id>/acknowledge", methods=["PUT", "POST"])
@require_auth
def acknowledge(rec_id):
    require_uuid(rec_id, "recommendation_id")
    notes = clean_text(json_body().get("notes")) or None
    rec = get_engine().recommendations.acknowledge(get_current_user_id(), rec_id, notes)
    return jsonify({"success": True, "message": "Recommendation acknowledged", "data": rec.to_dict()})


@recommendations_bp.route("/<rec_id>/dismiss", methods=["PUT", "POST"])
@require_auth
def dismiss(rec_id):
    require_uuid(rec_id, "recommendation_id")
    notes = clean_text(json_body().get("notes")) or None
    rec = get_engine().recommendations.dismiss(get_current_user_id(), rec_id, notes)
    return jsonify({"success": True, "message": "Recommendation dismissed", "data": rec.to_dict()})


@recommendations_bp.route("/generate", methods=["POST"])
@limiter.limit(_generate_limit)
@require_auth
def generate():
    """Generate recommendations for the signed-in user."""
    count = get_engine().recommendations.generate_and_persist(get_current_user_id())
    return jsonify({"success": True, "message": "Recommendations generated", "data": {"count": count}})


@recommendations_bp.route("/generate-all", methods=["POST"])
@limiter.limit(_generate_limit)
@require_auth
def generate_all():
    """Batch trigger; the nightly job normally runs `flask generate-recommendations` instead."""
    if not current_app.config.get("BATCH_TRIGGER_ENABLED", False):
        abort(404)
    results = get_engine().recommendations.generate_all()
    failed = sum(1 for r in results.values() if "error" in r)
    current_app.logger.info(f"[Auto Recommendations] HTTP batch by {get_current_user_id()}: {len(results)} users, {failed} failed")
    return jsonify({"success": True, "data": {"results": results, "users": len(results), "failed": failed}})
