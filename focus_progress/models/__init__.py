from .achievement import DailyAchievement
from .session_entry import SessionEntry, SessionType

__all__ = [
    "DailyAchievement",
    "SessionEntry",
    "SessionType",
]
