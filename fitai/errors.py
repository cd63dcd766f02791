# backend/fitai/errors.py


class StreakError(Exception):
    """Base class for streak tracker failures."""

    status_code = 500
    public_message = "Failed to check in"


class AlreadyCheckedInToday(StreakError):
    status_code = 400
    public_message = "Already checked in today"

    def __init__(self, owner: str):
        super().__init__(f"owner {owner!r} already checked in today")
        self.owner = owner


class OwnerNotFound(StreakError):
    """The identity provider knows the owner but no account row exists."""

    def __init__(self, owner: str):
        super().__init__(f"no account for owner {owner!r}")
        self.owner = owner


class PersistenceUnavailable(StreakError):
    status_code = 503
    public_message = "Storage temporarily unavailable"
