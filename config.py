# backend/config.py
import os
from datetime import timedelta

from dotenv import find_dotenv, load_dotenv

# .env must be applied before the class body reads os.environ
load_dotenv(find_dotenv(usecwd=True))


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-jwt-secret-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "mysql+pymysql://root:@localhost/fitai"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

    # 🔐 JWT config (tokens are issued by the identity provider)
    JWT_TOKEN_LOCATION = ["headers"]
    JWT_HEADER_NAME = "Authorization"
    JWT_HEADER_TYPE = "Bearer"
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=7)

    CORS_ORIGINS = [
        o.strip()
        for o in os.environ.get(
            "CORS_ORIGINS", "http://localhost:5173," + os.environ.get("FRONTEND_URL", "")
        ).split(",")
        if o.strip()
    ]

    # Calendar day used for streaks when the user has not declared a time zone
    STREAK_DEFAULT_TIMEZONE = os.environ.get("STREAK_DEFAULT_TIMEZONE", "UTC")
    ACTIVITY_FEED_LIMIT = int(os.environ.get("ACTIVITY_FEED_LIMIT", "10"))
