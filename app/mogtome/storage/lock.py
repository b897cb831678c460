"""Advisory lock file so two sync cycles never write the roster at once.

The lock file holds a JSON payload with a per-holder token. A holder only
removes the file while it still carries its own token, so a cycle that
overran its lease cannot release the lock of the cycle that replaced it.
"""
import json
import logging
import os
import uuid
from datetime import datetime, timedelta, timezone

from ..config import DEFAULT_LOCK_LEASE_MINUTES
from ..utils import format_iso, parse_iso, utcnow
from .files import ensure_data_dir, lock_path

log = logging.getLogger("mogtome.lock")


class CycleLockHeld(Exception):
    """Another cycle holds a lease on the data root."""


def _read_payload(path) -> dict | None:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError):
        return None
    return data if isinstance(data, dict) else None


class CycleLock:
    def __init__(self, data_root, lease_minutes: float = DEFAULT_LOCK_LEASE_MINUTES, clock=utcnow):
        self.path = lock_path(ensure_data_dir(data_root))
        self.lease = timedelta(minutes=lease_minutes)
        self.clock = clock
        self.token = None

    def _acquired_at(self, payload: dict | None) -> datetime | None:
        if payload is not None:
            acquired = parse_iso(payload.get("acquired_at"))
            if acquired is not None:
                return acquired
        # A holder that has created the file but not written it yet.
        try:
            mtime = os.stat(self.path).st_mtime
        except FileNotFoundError:
            return None
        return datetime.fromtimestamp(mtime, tz=timezone.utc)

    def _take_over_stale(self, payload: dict | None) -> None:
        """Move a stale lock aside; only one waiter wins the rename."""
        aside = self.path.with_name(f"{self.path.name}.stale-{uuid.uuid4().hex}")
        try:
            os.rename(self.path, aside)
        except FileNotFoundError:
            return
        moved = _read_payload(aside)
        if (moved or {}).get("token") != (payload or {}).get("token"):
            # Someone replaced the stale lock between our check and the rename.
            os.rename(aside, self.path)
            raise CycleLockHeld(f"Sync lock {self.path} is held")
        log.warning("Replaced stale sync lock %s", self.path)
        aside.unlink(missing_ok=True)

    def acquire(self) -> None:
        token = uuid.uuid4().hex
        payload = json.dumps({
            "token": token,
            "pid": os.getpid(),
            "acquired_at": format_iso(self.clock()),
        })
        for _ in range(2):
            try:
                fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
            except FileExistsError:
                current = _read_payload(self.path)
                acquired = self._acquired_at(current)
                if acquired is not None and self.clock() - acquired < self.lease:
                    raise CycleLockHeld(f"Sync lock {self.path} is held")
                self._take_over_stale(current)
                continue
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            self.token = token
            return
        raise CycleLockHeld(f"Sync lock {self.path} could not be acquired")

    def release(self) -> None:
        if self.token is None:
            return
        current = _read_payload(self.path)
        if current is not None and current.get("token") == self.token:
            self.path.unlink(missing_ok=True)
        else:
            log.warning("Sync lock %s was taken over by another cycle; leaving it in place", self.path)
        self.token = None

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False
