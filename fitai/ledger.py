# backend/fitai/ledger.py
from datetime import datetime
from typing import List, Optional

from .models.activity import ActivityCategory, ActivityEntry

DEFAULT_FEED_LIMIT = 10


class ActivityLedger:
    """Append-only per-owner activity feed."""

    def __init__(self, session):
        self.session = session

    def append(
        self,
        owner: str,
        category,
        action: str,
        details: Optional[str] = None,
        user_id: Optional[int] = None,
        timestamp: Optional[datetime] = None,
    ) -> ActivityEntry:
        # raises ValueError for anything outside the six known categories
        category = ActivityCategory(category)
        if not action or not action.strip():
            raise ValueError("action is required")

        entry = ActivityEntry(
            owner=owner,
            user_id=user_id,
            category=category,
            action=action.strip(),
            details=details or None,
            timestamp=timestamp or datetime.utcnow(),
        )
        self.session.add(entry)
        self.session.commit()
        return entry

    def recent(self, owner: str, limit: int = DEFAULT_FEED_LIMIT) -> List[ActivityEntry]:
        return (
            self.session.query(ActivityEntry)
            .filter(ActivityEntry.owner == owner)
            .order_by(ActivityEntry.timestamp.desc(), ActivityEntry.id.desc())
            .limit(limit)
            .all()
        )

    def clear(self, owner: str) -> int:
        deleted = (
            self.session.query(ActivityEntry)
            .filter(ActivityEntry.owner == owner)
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return deleted
