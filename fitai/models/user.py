# backend/fitai/models/user.py
import re
from datetime import datetime

from .. import db

FITNESS_LEVELS = ("beginner", "intermediate", "advanced")
GOAL_TAGS = ("weight-loss", "muscle-gain", "endurance", "strength", "general-fitness")
SUBSCRIPTION_PLANS = ("free", "pro_plan", "premium_plan")


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.BigInteger().with_variant(db.Integer, "sqlite"), primary_key=True)
    # `sub` claim from the identity provider
    owner = db.Column(db.String(191), unique=True, nullable=False, index=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    name = db.Column(db.String(100), nullable=False, default="FitAI User")

    age = db.Column(db.Integer)
    weight = db.Column(db.Float)   # kg
    height = db.Column(db.Float)   # cm
    fitness_level = db.Column(
        db.Enum(*FITNESS_LEVELS, name="fitness_level_enum"),
        nullable=False,
        default="beginner",
    )
    goals = db.Column(db.JSON, nullable=False, default=list)
    time_zone = db.Column(db.String(64))  # IANA name, e.g. "Europe/Berlin"

    # mirrored from the billing provider, never decided here
    subscription = db.Column(
        db.Enum(*SUBSCRIPTION_PLANS, name="subscription_plan_enum"),
        nullable=False,
        default="free",
    )

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    @staticmethod
    def fallback_email(owner: str) -> str:
        safe = re.sub(r"[^a-zA-Z0-9]", "", owner)[:20]
        return f"user{safe}@fitai.com"

    @staticmethod
    def fallback_name(owner: str) -> str:
        return f"User-{owner[:8]}"

    def to_dict(self):
        return {
            "id": self.id,
            "owner": self.owner,
            "email": self.email,
            "name": self.name,
            "age": self.age,
            "weight": self.weight,
            "height": self.height,
            "fitnessLevel": self.fitness_level,
            "goals": list(self.goals or []),
            "timeZone": self.time_zone,
            "subscription": self.subscription,
        }
