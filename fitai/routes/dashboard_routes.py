# backend/fitai/routes/dashboard_routes.py
from typing import Any

from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from .. import db
from ..errors import AlreadyCheckedInToday, StreakError
from ..identity import account_required
from ..ledger import ActivityLedger
from ..models.activity import ActivityCategory
from ..models.goal import Goal
from ..streaks import StreakTracker, utcnow

dashboard_bp = Blueprint("dashboard", __name__)


# ------------------------------
# Helpers
# ------------------------------
def _safe_int(v: Any, default: int) -> int:
    try:
        return int(v)
    except (TypeError, ValueError):
        return default


def _ledger() -> ActivityLedger:
    return ActivityLedger(db.session)


def _tracker() -> StreakTracker:
    return StreakTracker(
        db.session,
        ledger=_ledger(),
        clock=current_app.config.get("CLOCK") or utcnow,
        default_timezone=current_app.config["STREAK_DEFAULT_TIMEZONE"],
    )


def _log_activity(category, action, details=None):
    """Best-effort feed entry; never fails the calling request."""
    try:
        _ledger().append(
            g.account.owner, category, action, details, user_id=g.account.id
        )
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception(f"[activity] failed to log '{action}': {e}")


def _streak_payload(tracker: StreakTracker, owner: str):
    payload = tracker.read_streak(owner).to_dict()
    nxt = tracker.next_check_in(owner)
    payload["nextCheckIn"] = {
        "eligible": nxt.eligible,
        "secondsRemaining": int(nxt.remaining.total_seconds()),
        "availableAt": nxt.available_at.isoformat(),
    }
    return payload


def _own_goal(goal_id: int):
    return Goal.query.filter_by(id=goal_id, owner=g.account.owner).first()


# ------------------------------
# GET /api/dashboard
# ------------------------------
@dashboard_bp.route("", methods=["GET"])
@account_required
def dashboard_overview():
    owner = g.account.owner
    try:
        goals = (
            Goal.query.filter_by(owner=owner)
            .order_by(Goal.created_at.desc(), Goal.id.desc())
            .all()
        )
        streak = _tracker().read_streak(owner)
        activities = _ledger().recent(owner, current_app.config["ACTIVITY_FEED_LIMIT"])
    except (SQLAlchemyError, StreakError) as e:
        db.session.rollback()
        current_app.logger.exception(f"[dashboard] load failed for owner={owner}: {e}")
        return jsonify({"error": "Failed to get dashboard data"}), 500

    current_app.logger.info(
        f"[dashboard] owner={owner} goals={len(goals)} "
        f"streak={streak.current_streak} activities={len(activities)}"
    )
    return (
        jsonify(
            {
                "goals": [goal.to_dict() for goal in goals],
                "streak": streak.to_dict(),
                "activities": [a.to_dict() for a in activities],
            }
        ),
        200,
    )


# ------------------------------
# Goals
# ------------------------------
@dashboard_bp.route("/goals", methods=["POST"])
@account_required
def add_goal():
    data = request.get_json(silent=True) or {}
    text = data.get("text")
    if not isinstance(text, str) or not text.strip():
        return jsonify({"error": "Goal text is required"}), 400
    text = text.strip()

    try:
        goal = Goal(user_id=g.account.id, owner=g.account.owner, text=text)
        db.session.add(goal)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception(f"[goals] add failed: {e}")
        return jsonify({"error": "Failed to add goal"}), 500

    _log_activity(ActivityCategory.GOAL, "Added new goal", text)
    return jsonify(goal.to_dict()), 201


@dashboard_bp.route("/goals/<int:goal_id>/toggle", methods=["PATCH"])
@account_required
def toggle_goal(goal_id: int):
    goal = _own_goal(goal_id)
    if not goal:
        return jsonify({"error": "Goal not found"}), 404

    try:
        goal.completed = not goal.completed
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception(f"[goals] toggle failed: {e}")
        return jsonify({"error": "Failed to toggle goal"}), 500

    _log_activity(
        ActivityCategory.GOAL,
        "Completed goal" if goal.completed else "Reopened goal",
        goal.text,
    )
    return jsonify(goal.to_dict()), 200


@dashboard_bp.route("/goals/<int:goal_id>", methods=["DELETE"])
@account_required
def delete_goal(goal_id: int):
    goal = _own_goal(goal_id)
    if not goal:
        return jsonify({"error": "Goal not found"}), 404

    text = goal.text
    try:
        db.session.delete(goal)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception(f"[goals] delete failed: {e}")
        return jsonify({"error": "Failed to delete goal"}), 500

    _log_activity(ActivityCategory.GOAL, "Deleted goal", text)
    return jsonify({"message": "Goal deleted successfully"}), 200


# ------------------------------
# Streak
# ------------------------------
@dashboard_bp.route("/streak", methods=["GET"])
@account_required
def get_streak():
    try:
        payload = _streak_payload(_tracker(), g.account.owner)
    except StreakError as e:
        current_app.logger.exception(f"[streak] read failed: {e}")
        return jsonify({"error": e.public_message}), e.status_code
    return jsonify(payload), 200


@dashboard_bp.route("/streak/checkin", methods=["POST"])
@account_required
def check_in():
    owner = g.account.owner
    try:
        record = _tracker().check_in(owner)
    except AlreadyCheckedInToday as e:
        current_app.logger.info(f"[streak] {e}")
        return jsonify({"error": e.public_message}), e.status_code
    except StreakError as e:
        current_app.logger.exception(f"[streak] check-in failed for owner={owner}: {e}")
        return jsonify({"error": e.public_message}), e.status_code

    current_app.logger.info(
        f"[streak] check-in for owner={owner}: {record.current_streak} day streak"
    )
    return jsonify(record.to_dict()), 200


# ------------------------------
# Activities
# ------------------------------
@dashboard_bp.route("/activities", methods=["GET"])
@account_required
def list_activities():
    limit = _safe_int(request.args.get("limit"), current_app.config["ACTIVITY_FEED_LIMIT"])
    limit = max(1, min(limit, 50))

    try:
        rows = _ledger().recent(g.account.owner, limit)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception(f"[activity] list failed: {e}")
        return jsonify({"error": "Failed to get activities"}), 500
    return jsonify({"activities": [a.to_dict() for a in rows]}), 200


@dashboard_bp.route("/activities", methods=["POST"])
@account_required
def create_activity():
    data = request.get_json(silent=True) or {}
    category = data.get("type")
    action = data.get("action")

    if not category or not action:
        return jsonify({"error": "Type and action are required for activity"}), 400

    try:
        entry = _ledger().append(
            g.account.owner,
            category,
            str(action),
            data.get("details") or None,
            user_id=g.account.id,
        )
    except ValueError as e:
        return jsonify({"error": f"Invalid activity: {e}"}), 400
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception(f"[activity] create failed: {e}")
        return jsonify({"error": "Failed to create activity"}), 500

    current_app.logger.info(f"[activity] owner={g.account.owner} - {entry.action}")
    return jsonify({"success": True, "activity": entry.to_dict()}), 201


@dashboard_bp.route("/activities", methods=["DELETE"])
@account_required
def clear_activities():
    try:
        deleted = _ledger().clear(g.account.owner)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception(f"[activity] clear failed: {e}")
        return jsonify({"error": "Failed to clear activities"}), 500

    current_app.logger.info(f"[activity] cleared {deleted} activities for owner={g.account.owner}")
    return (
        jsonify(
            {
                "message": "All activities cleared successfully",
                "deletedCount": deleted,
            }
        ),
        200,
    )
