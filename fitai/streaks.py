# backend/fitai/streaks.py
"""
Daily check-in streaks.

A check-in on day D extends the streak when the previous one landed on D-1,
is rejected when it landed on D, and restarts the streak otherwise. "Day" is
the calendar day in the owner's declared time zone (falling back to the
configured default), so the duplicate test and the countdown shown to the
client always agree.

Instants are stored as naive UTC.
"""
import logging
from collections import namedtuple
from datetime import datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .errors import AlreadyCheckedInToday, OwnerNotFound, PersistenceUnavailable
from .ledger import ActivityLedger
from .models.activity import ActivityCategory
from .models.streak import WEEKDAYS, StreakRecord
from .models.user import User

log = logging.getLogger(__name__)

FIRST = "first"
SAME_DAY = "same_day"
CONSECUTIVE = "consecutive"
BROKEN = "broken"

NextCheckIn = namedtuple("NextCheckIn", ["eligible", "remaining", "available_at"])


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def resolve_zone(name, default="UTC") -> ZoneInfo:
    for candidate in (name, default):
        if not candidate:
            continue
        try:
            return ZoneInfo(candidate)
        except (ZoneInfoNotFoundError, ValueError):
            log.warning("unknown time zone %r, falling back", candidate)
    return ZoneInfo("UTC")


def as_utc(instant: datetime) -> datetime:
    # naive values are UTC by convention
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def calendar_day(instant: datetime, tz):
    return as_utc(instant).astimezone(tz).date()


def classify(last_check_in, now, tz) -> str:
    if last_check_in is None:
        return FIRST
    last_day = calendar_day(last_check_in, tz)
    today = calendar_day(now, tz)
    if last_day == today:
        return SAME_DAY
    if last_day == today - timedelta(days=1):
        return CONSECUTIVE
    # gap of two or more days, or a last check-in after `now`
    return BROKEN


def weekday_name(instant, tz) -> str:
    return WEEKDAYS[calendar_day(instant, tz).weekday()]


def time_until_next_check_in(last_check_in, now, tz) -> NextCheckIn:
    """
    Pure countdown for the client.

    Eligible as soon as `now` sits on a different calendar day than the last
    check-in; otherwise eligible at the midnight that starts the next day.
    """
    now = as_utc(now)
    if last_check_in is None or classify(last_check_in, now, tz) != SAME_DAY:
        return NextCheckIn(True, timedelta(0), now)

    next_day = calendar_day(last_check_in, tz) + timedelta(days=1)
    midnight = datetime.combine(next_day, time(0), tzinfo=tz).astimezone(timezone.utc)
    return NextCheckIn(False, max(midnight - now, timedelta(0)), midnight)


class _LostRace(Exception):
    """Another writer changed the record between our read and our write."""


class StreakTracker:
    def __init__(
        self,
        session,
        ledger=None,
        clock=utcnow,
        default_timezone="UTC",
        max_attempts=3,
    ):
        self.session = session
        self.ledger = ledger if ledger is not None else ActivityLedger(session)
        self.clock = clock
        self.default_timezone = default_timezone
        self.max_attempts = max_attempts

    # ------------------------------
    # Reads
    # ------------------------------
    def zone_for(self, user) -> ZoneInfo:
        return resolve_zone(user.time_zone if user else None, self.default_timezone)

    def read_streak(self, owner: str) -> StreakRecord:
        try:
            record = self.session.query(StreakRecord).filter_by(owner=owner).first()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistenceUnavailable(str(e)) from e
        return record if record is not None else StreakRecord.empty(owner)

    def next_check_in(self, owner: str, now=None) -> NextCheckIn:
        now = now if now is not None else self.clock()
        record = self.read_streak(owner)
        try:
            user = self.session.query(User).filter_by(owner=owner).first()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistenceUnavailable(str(e)) from e
        return time_until_next_check_in(record.last_check_in, now, self.zone_for(user))

    # ------------------------------
    # Check-in
    # ------------------------------
    def check_in(self, owner: str, now=None) -> StreakRecord:
        now = as_utc(now if now is not None else self.clock())

        try:
            user = self.session.query(User).filter_by(owner=owner).first()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistenceUnavailable(str(e)) from e
        if user is None:
            raise OwnerNotFound(owner)

        tz = self.zone_for(user)

        for attempt in range(1, self.max_attempts + 1):
            try:
                record = self._apply(user, now, tz)
                break
            except _LostRace:
                self.session.rollback()
                log.info("check-in race for owner=%s (attempt %d), re-reading", owner, attempt)
            except SQLAlchemyError as e:
                self.session.rollback()
                raise PersistenceUnavailable(str(e)) from e
        else:
            raise PersistenceUnavailable(
                f"check-in for owner {owner!r} kept losing to concurrent writers"
            )

        self._record_activity(user, record, now)
        return record

    def _apply(self, user, now, tz) -> StreakRecord:
        stored_now = now.replace(tzinfo=None)
        record = (
            self.session.query(StreakRecord)
            .filter_by(owner=user.owner)
            .populate_existing()
            .first()
        )

        if record is None:
            flags = {day: False for day in WEEKDAYS}
            flags[weekday_name(now, tz)] = True
            record = StreakRecord(
                user_id=user.id,
                owner=user.owner,
                current_streak=1,
                last_check_in=stored_now,
                total_check_ins=1,
                **flags,
            )
            self.session.add(record)
            try:
                self.session.commit()
            except IntegrityError as e:
                # unique(owner): somebody else created it first
                raise _LostRace() from e
            log.info("first check-in for owner=%s", user.owner)
            return record

        kind = classify(record.last_check_in, now, tz)
        if kind == SAME_DAY:
            self.session.rollback()
            raise AlreadyCheckedInToday(user.owner)

        new_streak = record.current_streak + 1 if kind == CONSECUTIVE else 1

        # compare-and-set on the value we based the decision on
        observed = StreakRecord.last_check_in == record.last_check_in
        if record.last_check_in is None:
            observed = StreakRecord.last_check_in.is_(None)

        stmt = (
            update(StreakRecord)
            .where(StreakRecord.id == record.id, observed)
            .values(
                {
                    "current_streak": new_streak,
                    "total_check_ins": StreakRecord.total_check_ins + 1,
                    "last_check_in": stored_now,
                    weekday_name(now, tz): True,
                }
            )
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        if result.rowcount != 1:
            raise _LostRace()
        self.session.commit()
        self.session.refresh(record)

        if kind == CONSECUTIVE:
            log.info("streak for owner=%s extended to %d", user.owner, new_streak)
        else:
            log.info("streak for owner=%s reset to 1 (gap)", user.owner)
        return record

    def _record_activity(self, user, record, now):
        # Not atomic with the streak write: a failure here leaves the streak
        # updated and the feed entry missing.
        try:
            self.ledger.append(
                user.owner,
                ActivityCategory.STREAK,
                "Daily check-in",
                f"Streak: {record.current_streak} days",
                user_id=user.id,
                timestamp=now.replace(tzinfo=None),
            )
        except SQLAlchemyError:
            self.session.rollback()
            log.exception("failed to log check-in activity for owner=%s", user.owner)
