# backend/fitai/models/activity.py
import enum
from datetime import datetime, timezone

from .. import db


class ActivityCategory(str, enum.Enum):
    GOAL = "goal"
    WORKOUT = "workout"
    NUTRITION = "nutrition"
    RECOVERY = "recovery"
    STREAK = "streak"
    ACHIEVEMENT = "achievement"


class ActivityEntry(db.Model):
    __tablename__ = "activities"

    id = db.Column(db.BigInteger().with_variant(db.Integer, "sqlite"), primary_key=True)
    user_id = db.Column(db.BigInteger, db.ForeignKey("users.id"))
    owner = db.Column(db.String(191), nullable=False, index=True)
    category = db.Column(
        db.Enum(
            ActivityCategory,
            name="activity_category",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )
    action = db.Column(db.String(255), nullable=False)
    details = db.Column(db.Text)
    timestamp = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.category.value,
            "action": self.action,
            "details": self.details,
            "timestamp": self.timestamp.replace(tzinfo=timezone.utc).isoformat()
            if self.timestamp
            else None,
        }
