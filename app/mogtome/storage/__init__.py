from .lock import CycleLock, CycleLockHeld
from .state import JsonRosterStore, load_pull_history, record_pull_history

__all__ = [
    "CycleLock",
    "CycleLockHeld",
    "JsonRosterStore",
    "load_pull_history",
    "record_pull_history",
]
