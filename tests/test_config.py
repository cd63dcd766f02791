import importlib
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import config
from fitai import create_app, db

ENV_KEYS = ("DATABASE_URL", "STREAK_DEFAULT_TIMEZONE", "JWT_SECRET_KEY", "ACTIVITY_FEED_LIMIT")


class DotenvConfigTestCase(unittest.TestCase):
    def setUp(self):
        self.old_cwd = os.getcwd()
        self.tmp = tempfile.TemporaryDirectory()
        self.db_file = Path(self.tmp.name) / "dotenv.db"
        Path(self.tmp.name, ".env").write_text(
            "\n".join(
                [
                    f"DATABASE_URL=sqlite:///{self.db_file.as_posix()}",
                    "STREAK_DEFAULT_TIMEZONE=Asia/Tokyo",
                    "JWT_SECRET_KEY=dotenv-jwt-secret-with-enough-length-1",
                    "ACTIVITY_FEED_LIMIT=7",
                ]
            )
            + "\n"
        )

    def tearDown(self):
        os.chdir(self.old_cwd)
        # back to the process environment for the other suites
        importlib.reload(config)
        self.tmp.cleanup()

    def test_dotenv_values_reach_app_config(self):
        env = {k: v for k, v in os.environ.items() if k not in ENV_KEYS}
        with mock.patch.dict(os.environ, env, clear=True):
            os.chdir(self.tmp.name)
            importlib.reload(config)
            app = create_app({"TESTING": True})

            self.assertEqual(
                app.config["SQLALCHEMY_DATABASE_URI"], f"sqlite:///{self.db_file.as_posix()}"
            )
            self.assertEqual(app.config["STREAK_DEFAULT_TIMEZONE"], "Asia/Tokyo")
            self.assertEqual(app.config["JWT_SECRET_KEY"], "dotenv-jwt-secret-with-enough-length-1")
            self.assertEqual(app.config["ACTIVITY_FEED_LIMIT"], 7)
            self.assertTrue(self.db_file.exists())

            with app.app_context():
                db.session.remove()
                db.engine.dispose()

    def test_process_environment_wins_over_dotenv(self):
        env = {k: v for k, v in os.environ.items() if k not in ENV_KEYS}
        env["STREAK_DEFAULT_TIMEZONE"] = "Europe/Paris"
        env["DATABASE_URL"] = f"sqlite:///{(Path(self.tmp.name) / 'explicit.db').as_posix()}"
        with mock.patch.dict(os.environ, env, clear=True):
            os.chdir(self.tmp.name)
            importlib.reload(config)
            app = create_app({"TESTING": True})

            self.assertEqual(app.config["STREAK_DEFAULT_TIMEZONE"], "Europe/Paris")
            self.assertIn("explicit.db", app.config["SQLALCHEMY_DATABASE_URI"])

            with app.app_context():
                db.session.remove()
                db.engine.dispose()


if __name__ == "__main__":
    unittest.main()
