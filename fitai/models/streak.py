# backend/fitai/models/streak.py
from datetime import datetime, timezone

from .. import db

# ISO order: Monday == 0 (datetime.weekday())
WEEKDAYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


def _iso_utc(dt):
    if dt is None:
        return None
    return dt.replace(tzinfo=timezone.utc).isoformat()


class StreakRecord(db.Model):
    __tablename__ = "streaks"

    id = db.Column(db.BigInteger().with_variant(db.Integer, "sqlite"), primary_key=True)
    user_id = db.Column(db.BigInteger, db.ForeignKey("users.id"), nullable=False)
    owner = db.Column(db.String(191), unique=True, nullable=False, index=True)

    current_streak = db.Column(db.Integer, nullable=False, default=0)
    # naive UTC; NULL means never checked in
    last_check_in = db.Column(db.DateTime)
    total_check_ins = db.Column(db.Integer, nullable=False, default=0)

    monday = db.Column(db.Boolean, nullable=False, default=False)
    tuesday = db.Column(db.Boolean, nullable=False, default=False)
    wednesday = db.Column(db.Boolean, nullable=False, default=False)
    thursday = db.Column(db.Boolean, nullable=False, default=False)
    friday = db.Column(db.Boolean, nullable=False, default=False)
    saturday = db.Column(db.Boolean, nullable=False, default=False)
    sunday = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    user = db.relationship("User", backref=db.backref("streak", uselist=False))

    @property
    def weekly_flags(self):
        return {day: bool(getattr(self, day)) for day in WEEKDAYS}

    def to_dict(self):
        return {
            "currentStreak": int(self.current_streak or 0),
            "lastCheckIn": _iso_utc(self.last_check_in),
            "totalCheckIns": int(self.total_check_ins or 0),
            "weeklyCheckIns": self.weekly_flags,
        }

    @classmethod
    def empty(cls, owner):
        """Unsaved zero-value record for an owner who has never checked in."""
        flags = {day: False for day in WEEKDAYS}
        return cls(
            owner=owner,
            current_streak=0,
            last_check_in=None,
            total_check_ins=0,
            **flags,
        )
