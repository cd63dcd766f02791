# backend/fitai/routes/food_log_routes.py
import math
from datetime import date, time
from typing import Optional

from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from .. import db
from ..identity import account_required
from ..ledger import ActivityLedger
from ..models.activity import ActivityCategory
from ..models.food_log import MACRO_FIELDS, FoodLog

food_logs_bp = Blueprint("food_logs", __name__)


# ------------------------------
# Helpers
# ------------------------------
def _parse_day(raw) -> Optional[date]:
    if not isinstance(raw, str):
        return None
    # "2024-01-01", optionally followed by a "T" time such as "T18:30:00.000Z"
    day_part, sep, time_part = raw.partition("T")
    if len(day_part) != 10 or (sep and not time_part):
        return None
    try:
        day = date.fromisoformat(day_part)
        if sep:
            time.fromisoformat(time_part[:-1] if time_part.endswith("Z") else time_part)
    except ValueError:
        return None
    return day


def _clean_meals(meals):
    """
    Returns (cleaned_meals, error_message).
    """
    cleaned = []
    for meal in meals:
        if not isinstance(meal, dict):
            return None, "Each meal must be an object"

        name = meal.get("name")
        if not isinstance(name, str) or not name.strip():
            return None, "Each meal must have a name"

        if any(meal.get(f) is None for f in MACRO_FIELDS):
            return None, "Each meal must have calories, protein, carbs, and fat values"

        item = {"name": name.strip()}
        for f in MACRO_FIELDS:
            try:
                item[f] = float(meal[f])
            except (TypeError, ValueError):
                return None, f"Invalid {f} value"
            if not math.isfinite(item[f]):
                return None, f"Invalid {f} value"
            if item[f] < 0:
                return None, "Nutrition values cannot be negative"
        cleaned.append(item)
    return cleaned, None


def _log_activity(action, details):
    try:
        ActivityLedger(db.session).append(
            g.account.owner,
            ActivityCategory.NUTRITION,
            action,
            details,
            user_id=g.account.id,
        )
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception(f"[food-logs] failed to log activity: {e}")


# ------------------------------
# Routes
# ------------------------------
@food_logs_bp.route("", methods=["GET"])
@account_required
def list_food_logs():
    rows = (
        FoodLog.query.filter_by(owner=g.account.owner)
        .order_by(FoodLog.log_date.desc())
        .all()
    )
    return jsonify({"success": True, "foodLogs": [r.to_dict() for r in rows]}), 200


@food_logs_bp.route("/<day>", methods=["GET"])
@account_required
def get_food_log(day):
    log_date = _parse_day(day)
    if log_date is None:
        return jsonify({"success": False, "error": "Invalid date"}), 400

    food_log = FoodLog.query.filter_by(owner=g.account.owner, log_date=log_date).first()
    if not food_log:
        return jsonify({"success": False, "error": "No food log found for this date"}), 404

    return jsonify({"success": True, "foodLog": food_log.to_dict()}), 200


@food_logs_bp.route("", methods=["POST"])
@account_required
def save_food_log():
    data = request.get_json(silent=True) or {}
    log_date = _parse_day(data.get("date"))
    meals = data.get("meals")

    if log_date is None or not isinstance(meals, list):
        return jsonify({"success": False, "error": "Date and meals array are required"}), 400

    cleaned, error = _clean_meals(meals)
    if error:
        return jsonify({"success": False, "error": error}), 400

    owner = g.account.owner
    try:
        food_log = FoodLog.query.filter_by(owner=owner, log_date=log_date).first()
        if food_log is None:
            food_log = FoodLog(user_id=g.account.id, owner=owner, log_date=log_date)
            db.session.add(food_log)
        food_log.set_meals(cleaned)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception(f"[food-logs] save failed for owner={owner}: {e}")
        return jsonify({"success": False, "error": "Failed to save food log"}), 500

    _log_activity(
        "Logged daily food intake",
        f"Logged {len(cleaned)} meals, {food_log.total_calories:g} total calories",
    )
    current_app.logger.info(f"[food-logs] saved {log_date.isoformat()} for owner={owner}")
    return jsonify({"success": True, "foodLog": food_log.to_dict()}), 200


@food_logs_bp.route("/<day>", methods=["DELETE"])
@account_required
def delete_food_log(day):
    log_date = _parse_day(day)
    if log_date is None:
        return jsonify({"success": False, "error": "Invalid date"}), 400

    food_log = FoodLog.query.filter_by(owner=g.account.owner, log_date=log_date).first()
    if not food_log:
        return jsonify({"success": False, "error": "No food log found for this date"}), 404

    try:
        db.session.delete(food_log)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception(f"[food-logs] delete failed: {e}")
        return jsonify({"success": False, "error": "Failed to delete food log"}), 500

    _log_activity("Deleted food log", f"Deleted food log for {log_date.isoformat()}")
    return jsonify({"success": True, "message": "Food log deleted successfully"}), 200
