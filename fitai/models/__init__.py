from .user import User
from .streak import StreakRecord
from .activity import ActivityCategory, ActivityEntry
from .goal import Goal
from .food_log import FoodLog

__all__ = [
    "User",
    "StreakRecord",
    "ActivityCategory",
    "ActivityEntry",
    "Goal",
    "FoodLog",
]
