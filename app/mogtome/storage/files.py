from pathlib import Path

MEMBERS_FILE = "members.json"
EVENTS_FILE = "events.json"
PULLS_FILE = "pulls.json"
LOCK_FILE = "cycle.lock"


def members_path(data_root) -> Path:
    return Path(data_root) / MEMBERS_FILE


def events_path(data_root) -> Path:
    return Path(data_root) / EVENTS_FILE


def pulls_path(data_root) -> Path:
    return Path(data_root) / PULLS_FILE


def lock_path(data_root) -> Path:
    return Path(data_root) / LOCK_FILE


def ensure_data_dir(data_root) -> Path:
    d = Path(data_root)
    d.mkdir(parents=True, exist_ok=True)
    return d
