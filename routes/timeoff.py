from flask import Blueprint, request, jsonify, g

from models import db
from models.time_off import TimeOff
from scheduling.errors import ParseError, ValidationError
from scheduling.timemath import parse_iso_date
from security.rbac import ADMIN, require_roles
from utils.auth_context import login_required
from utils.audit import log_event
from utils.timeoff_store import create_time_off, delete_time_off, query_time_off, update_time_off

timeoff_bp = Blueprint("timeoff", __name__, url_prefix="/timeoff")


@timeoff_bp.get("")
@login_required
def list_time_off():
    # optional filters: fromDate, toDate (YYYY-MM-DD)
    try:
        from_date = parse_iso_date(request.args["fromDate"]) if request.args.get("fromDate") else None
        to_date = parse_iso_date(request.args["toDate"]) if request.args.get("toDate") else None
    except ParseError as exc:
        return jsonify(error=str(exc)), 400

    rows = query_time_off(from_date, to_date)
    return jsonify([t.to_dict() for t in rows]), 200


@timeoff_bp.post("")
@require_roles(ADMIN)
def create_period():
    data = request.get_json(silent=True) or {}
    try:
        period = create_time_off(data, created_by=g.user_id)
    except (ParseError, ValidationError) as exc:
        return jsonify(error=str(exc)), 400

    log_event("TIMEOFF_CREATE", actor_id=g.user_id, entity="time_off", entity_id=period.id,
              metadata={"start_date": period.start_date, "end_date": period.end_date, "is_all_day": period.is_all_day})
    return jsonify(period.to_dict()), 201


@timeoff_bp.put("/<int:time_off_id>")
@require_roles(ADMIN)
def update_period(time_off_id: int):
    period = db.session.get(TimeOff, time_off_id)
    if not period:
        return jsonify(error="Time off not found"), 404

    data = request.get_json(silent=True) or {}
    try:
        update_time_off(period, data)
    except (ParseError, ValidationError) as exc:
        db.session.rollback()
        return jsonify(error=str(exc)), 400

    log_event("TIMEOFF_UPDATE", actor_id=g.user_id, entity="time_off", entity_id=period.id)
    return jsonify(period.to_dict()), 200


@timeoff_bp.delete("/<int:time_off_id>")
@require_roles(ADMIN)
def delete_period(time_off_id: int):
    if not delete_time_off(time_off_id):
        return jsonify(error="Time off not found"), 404

    log_event("TIMEOFF_DELETE", actor_id=g.user_id, entity="time_off", entity_id=time_off_id)
    return jsonify(message="Time off period deleted successfully"), 200
