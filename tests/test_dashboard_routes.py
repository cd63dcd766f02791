import os
import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest import mock
from uuid import uuid4

from flask_jwt_extended import create_access_token
from sqlalchemy.exc import OperationalError

from fitai import create_app, db
from fitai.ledger import ActivityLedger
from fitai.models import ActivityEntry, Goal, StreakRecord, User


class DashboardRoutesTestCase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.db_file = Path(tempfile.gettempdir()) / f"fitai-dashboard-{uuid4().hex}.db"
        cls.clock = {"now": datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)}
        cls.app = create_app(
            {
                "TESTING": True,
                "SQLALCHEMY_DATABASE_URI": f"sqlite:///{cls.db_file.as_posix()}",
                "JWT_SECRET_KEY": "test-jwt-secret-with-enough-length-123",
                "CLOCK": lambda: cls.clock["now"],
            }
        )

    @classmethod
    def tearDownClass(cls):
        with cls.app.app_context():
            db.session.remove()
            db.drop_all()
            db.engine.dispose()
        if cls.db_file.exists():
            try:
                os.remove(cls.db_file)
            except PermissionError:
                pass

    def setUp(self):
        with self.app.app_context():
            db.drop_all()
            db.create_all()
        self.clock["now"] = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
        self.client = self.app.test_client()
        self.headers = self._auth("user_u1", email="u1@example.com", first_name="Una", last_name="One")

    def _auth(self, owner, **claims):
        with self.app.app_context():
            token = create_access_token(identity=owner, additional_claims=claims)
        return {"Authorization": f"Bearer {token}"}

    # ------------------------------
    # auth & aggregation
    # ------------------------------
    def test_requires_token(self):
        response = self.client.get("/api/dashboard")
        self.assertEqual(response.status_code, 401)
        self.assertIn("error", response.get_json())

    def test_dashboard_defaults_for_new_user(self):
        response = self.client.get("/api/dashboard", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        body = response.get_json()

        self.assertEqual(body["goals"], [])
        self.assertEqual(body["activities"], [])
        self.assertEqual(body["streak"]["currentStreak"], 0)
        self.assertIsNone(body["streak"]["lastCheckIn"])
        self.assertEqual(body["streak"]["totalCheckIns"], 0)
        self.assertFalse(any(body["streak"]["weeklyCheckIns"].values()))

    def test_first_request_creates_account_from_claims(self):
        self.client.get("/api/dashboard", headers=self.headers)
        with self.app.app_context():
            user = User.query.filter_by(owner="user_u1").one()
            self.assertEqual(user.email, "u1@example.com")
            self.assertEqual(user.name, "Una One")

    # ------------------------------
    # goals
    # ------------------------------
    def test_goal_lifecycle_is_logged(self):
        response = self.client.post("/api/dashboard/goals", json={"text": "  Run 5k  "}, headers=self.headers)
        self.assertEqual(response.status_code, 201)
        goal = response.get_json()
        self.assertEqual(goal["text"], "Run 5k")
        self.assertFalse(goal["completed"])

        response = self.client.patch(f"/api/dashboard/goals/{goal['id']}/toggle", headers=self.headers)
        self.assertTrue(response.get_json()["completed"])
        response = self.client.patch(f"/api/dashboard/goals/{goal['id']}/toggle", headers=self.headers)
        self.assertFalse(response.get_json()["completed"])

        response = self.client.delete(f"/api/dashboard/goals/{goal['id']}", headers=self.headers)
        self.assertEqual(response.status_code, 200)

        body = self.client.get("/api/dashboard", headers=self.headers).get_json()
        self.assertEqual(body["goals"], [])
        actions = [a["action"] for a in body["activities"]]
        self.assertEqual(
            sorted(actions),
            sorted(["Added new goal", "Completed goal", "Reopened goal", "Deleted goal"]),
        )
        self.assertTrue(all(a["type"] == "goal" for a in body["activities"]))

    def test_empty_goal_text_is_rejected(self):
        response = self.client.post("/api/dashboard/goals", json={"text": "   "}, headers=self.headers)
        self.assertEqual(response.status_code, 400)

    def test_unknown_goal_returns_404(self):
        self.assertEqual(
            self.client.patch("/api/dashboard/goals/999/toggle", headers=self.headers).status_code, 404
        )
        self.assertEqual(self.client.delete("/api/dashboard/goals/999", headers=self.headers).status_code, 404)

    def test_goals_are_scoped_to_owner(self):
        goal = self.client.post("/api/dashboard/goals", json={"text": "Mine"}, headers=self.headers).get_json()
        other = self._auth("user_u2", email="u2@example.com")

        self.assertEqual(self.client.get("/api/dashboard", headers=other).get_json()["goals"], [])
        self.assertEqual(
            self.client.delete(f"/api/dashboard/goals/{goal['id']}", headers=other).status_code, 404
        )
        with self.app.app_context():
            self.assertIsNotNone(db.session.get(Goal, goal["id"]))

    # ------------------------------
    # streak
    # ------------------------------
    def test_check_in_flow(self):
        response = self.client.post("/api/dashboard/streak/checkin", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        body = response.get_json()
        self.assertEqual(body["currentStreak"], 1)
        self.assertEqual(body["totalCheckIns"], 1)
        self.assertTrue(body["weeklyCheckIns"]["monday"])
        self.assertTrue(body["lastCheckIn"].startswith("2024-01-01T09:00:00"))

        self.clock["now"] = datetime(2024, 1, 1, 20, 0, tzinfo=timezone.utc)
        response = self.client.post("/api/dashboard/streak/checkin", headers=self.headers)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["error"], "Already checked in today")

        self.clock["now"] = datetime(2024, 1, 2, 7, 0, tzinfo=timezone.utc)
        body = self.client.post("/api/dashboard/streak/checkin", headers=self.headers).get_json()
        self.assertEqual(body["currentStreak"], 2)
        self.assertTrue(body["weeklyCheckIns"]["tuesday"])

        self.clock["now"] = datetime(2024, 1, 5, 7, 0, tzinfo=timezone.utc)
        body = self.client.post("/api/dashboard/streak/checkin", headers=self.headers).get_json()
        self.assertEqual(body["currentStreak"], 1)
        self.assertEqual(body["totalCheckIns"], 3)

        with self.app.app_context():
            self.assertEqual(StreakRecord.query.filter_by(owner="user_u1").count(), 1)
            entries = ActivityEntry.query.filter_by(owner="user_u1").all()
            self.assertEqual(len(entries), 3)

    def test_streak_endpoint_reports_countdown(self):
        body = self.client.get("/api/dashboard/streak", headers=self.headers).get_json()
        self.assertTrue(body["nextCheckIn"]["eligible"])
        self.assertEqual(body["nextCheckIn"]["secondsRemaining"], 0)

        self.client.post("/api/dashboard/streak/checkin", headers=self.headers)
        self.clock["now"] = datetime(2024, 1, 1, 21, 30, tzinfo=timezone.utc)
        body = self.client.get("/api/dashboard/streak", headers=self.headers).get_json()

        self.assertEqual(body["currentStreak"], 1)
        self.assertFalse(body["nextCheckIn"]["eligible"])
        self.assertEqual(body["nextCheckIn"]["secondsRemaining"], int(timedelta(hours=2, minutes=30).total_seconds()))
        self.assertTrue(body["nextCheckIn"]["availableAt"].startswith("2024-01-02T00:00:00"))

    def test_check_in_uses_profile_time_zone(self):
        self.client.put("/api/users/profile", json={"timeZone": "America/Los_Angeles"}, headers=self.headers)

        # Sunday 18:00 in Los Angeles
        self.clock["now"] = datetime(2024, 1, 1, 2, 0, tzinfo=timezone.utc)
        body = self.client.post("/api/dashboard/streak/checkin", headers=self.headers).get_json()
        self.assertTrue(body["weeklyCheckIns"]["sunday"])

        # Monday 08:00 in Los Angeles, same UTC date
        self.clock["now"] = datetime(2024, 1, 1, 16, 0, tzinfo=timezone.utc)
        response = self.client.post("/api/dashboard/streak/checkin", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["currentStreak"], 2)

    # ------------------------------
    # activities
    # ------------------------------
    def test_create_activity(self):
        response = self.client.post(
            "/api/dashboard/activities",
            json={"type": "workout", "action": "Generated workout plan", "details": "Upper body"},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 201)
        body = response.get_json()
        self.assertTrue(body["success"])
        self.assertEqual(body["activity"]["type"], "workout")
        self.assertEqual(body["activity"]["details"], "Upper body")

    def test_create_activity_validation(self):
        missing = self.client.post("/api/dashboard/activities", json={"type": "workout"}, headers=self.headers)
        self.assertEqual(missing.status_code, 400)

        bad_type = self.client.post(
            "/api/dashboard/activities", json={"type": "dancing", "action": "x"}, headers=self.headers
        )
        self.assertEqual(bad_type.status_code, 400)

    def test_feed_is_capped_and_newest_first(self):
        for i in range(12):
            self.client.post(
                "/api/dashboard/activities",
                json={"type": "recovery", "action": f"Session {i}"},
                headers=self.headers,
            )

        activities = self.client.get("/api/dashboard", headers=self.headers).get_json()["activities"]
        self.assertEqual(len(activities), 10)
        self.assertEqual(activities[0]["action"], "Session 11")

        listed = self.client.get("/api/dashboard/activities?limit=3", headers=self.headers).get_json()
        self.assertEqual([a["action"] for a in listed["activities"]], ["Session 11", "Session 10", "Session 9"])

    def test_clear_activities_only_touches_own_feed(self):
        other = self._auth("user_u2")
        self.client.post("/api/dashboard/activities", json={"type": "goal", "action": "a"}, headers=self.headers)
        self.client.post("/api/dashboard/activities", json={"type": "goal", "action": "b"}, headers=self.headers)
        self.client.post("/api/dashboard/activities", json={"type": "goal", "action": "c"}, headers=other)

        response = self.client.delete("/api/dashboard/activities", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["deletedCount"], 2)

        self.assertEqual(self.client.get("/api/dashboard/activities", headers=self.headers).get_json()["activities"], [])
        self.assertEqual(len(self.client.get("/api/dashboard/activities", headers=other).get_json()["activities"]), 1)

    def test_activity_feed_storage_failure_is_json_500(self):
        failure = OperationalError("SELECT", {}, Exception("db down"))
        with mock.patch.object(ActivityLedger, "recent", side_effect=failure):
            response = self.client.get("/api/dashboard/activities", headers=self.headers)

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.get_json()["error"], "Failed to get activities")

        # the session is usable again afterwards
        self.assertEqual(self.client.get("/api/dashboard/activities", headers=self.headers).status_code, 200)

    def test_health(self):
        body = self.client.get("/api/health").get_json()
        self.assertEqual(body["status"], "ok")
        self.assertTrue(body["database"]["connected"])

    def test_unknown_route_is_json_404(self):
        response = self.client.get("/api/nope")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json()["message"], "Route not found")


if __name__ == "__main__":
    unittest.main()
