# backend/fitai/routes/user_routes.py
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from .. import db
from ..identity import account_required
from ..models.user import FITNESS_LEVELS, GOAL_TAGS

users_bp = Blueprint("users", __name__)

# field -> (min, max)
NUMERIC_RANGES = {
    "age": (13, 120),
    "weight": (20, 300),
    "height": (100, 250),
}


@users_bp.route("/profile", methods=["GET"])
@account_required
def get_profile():
    return jsonify(g.account.to_dict()), 200


@users_bp.route("/profile", methods=["PUT"])
@account_required
def update_profile():
    user = g.account
    data = request.get_json(silent=True) or {}
    # validate everything before touching the account
    changes = {}

    for field, (low, high) in NUMERIC_RANGES.items():
        if data.get(field) is None:
            continue
        try:
            value = float(data[field])
        except (TypeError, ValueError):
            return jsonify({"error": f"invalid {field}"}), 400
        if not low <= value <= high:
            return jsonify({"error": f"{field} must be between {low} and {high}"}), 400
        changes[field] = int(value) if field == "age" else value

    fitness_level = data.get("fitnessLevel")
    if fitness_level is not None:
        if fitness_level not in FITNESS_LEVELS:
            return jsonify({"error": "invalid fitnessLevel"}), 400
        changes["fitness_level"] = fitness_level

    goals = data.get("goals")
    if goals is not None:
        if not isinstance(goals, list) or any(tag not in GOAL_TAGS for tag in goals):
            return jsonify({"error": "invalid goals"}), 400
        # dedupe, keep order
        changes["goals"] = list(dict.fromkeys(goals))

    if "timeZone" in data:
        tz_name = data.get("timeZone") or None
        if tz_name:
            try:
                ZoneInfo(tz_name)
            except (ZoneInfoNotFoundError, ValueError):
                return jsonify({"error": "invalid timeZone"}), 400
        changes["time_zone"] = tz_name

    for field, value in changes.items():
        setattr(user, field, value)

    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception(f"[profile] update failed for owner={user.owner}: {e}")
        return jsonify({"error": "Failed to update profile"}), 500

    return jsonify({"message": "Profile updated successfully", "user": user.to_dict()}), 200
