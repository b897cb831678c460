"""JSON document store for the member roster and recorded events.

members.json holds one document per character id; events.json is an
append-only list. Every write goes through a temp file and an atomic rename,
so a batch is either fully on disk or not at all. Separate batches in the
same cycle are independent writes.
"""
import json
import logging
from typing import Dict, List

from ..errors import ArchiveLoadError, PersistenceWriteError
from ..models.events import DomainEvent
from ..models.member import MemberRecord
from ..services.ports import MemberWrite
from ..utils import load_json, save_json
from .files import ensure_data_dir, events_path, members_path, pulls_path

log = logging.getLogger("mogtome.storage")

PULL_HISTORY_LIMIT = 50


def _read_json(path, default):
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        return default
    except (OSError, json.JSONDecodeError) as exc:
        raise ArchiveLoadError(f"Could not read {path}: {exc}") from exc


def _write_json(path, data) -> None:
    try:
        save_json(path, data)
    except (OSError, TypeError, ValueError) as exc:
        raise PersistenceWriteError(f"Could not write {path}: {exc}") from exc


class JsonRosterStore:
    def __init__(self, data_root):
        self.data_root = ensure_data_dir(data_root)
        self.members_file = members_path(self.data_root)
        self.events_file = events_path(self.data_root)

    def _load_documents(self) -> Dict[str, dict]:
        docs = _read_json(self.members_file, {})
        if not isinstance(docs, dict):
            raise ArchiveLoadError(f"{self.members_file} must hold an object keyed by character id")
        return docs

    def load_snapshot(self) -> List[MemberRecord]:
        """Return every stored member, active or not."""
        members = []
        for cid, doc in self._load_documents().items():
            try:
                members.append(MemberRecord.from_json({**doc, "character_id": cid}))
            except (KeyError, TypeError, ValueError) as exc:
                raise ArchiveLoadError(f"Stored member {cid} is malformed: {exc}") from exc
        return members

    def apply_batch(self, writes: List[MemberWrite]) -> None:
        """Upsert one field set per member and write the batch once."""
        if not writes:
            return
        docs = self._load_documents()
        for write in writes:
            doc = docs.get(write.character_id)
            if doc is None:
                log.warning("Upserting unknown member %s", write.character_id)
                doc = {"character_id": write.character_id}
            member = MemberRecord.from_json({**doc, "character_id": write.character_id})
            for name, value in write.fields.items():
                if not hasattr(member, name):
                    raise PersistenceWriteError(f"Unknown member field {name!r}")
                setattr(member, name, value)
            docs[write.character_id] = member.to_json()
        _write_json(self.members_file, docs)
        log.info("Applied %d member writes", len(writes))

    def insert_members(self, members: List[MemberRecord]) -> None:
        if not members:
            return
        docs = self._load_documents()
        for member in members:
            if member.character_id in docs:
                raise PersistenceWriteError(f"Member {member.character_id} already exists")
            docs[member.character_id] = member.to_json()
        _write_json(self.members_file, docs)
        log.info("Inserted %d new members", len(members))

    def insert_events(self, events: List[DomainEvent]) -> None:
        if not events:
            return
        stored = _read_json(self.events_file, [])
        for event in events:
            stored.append({**event.to_json(), "character_id": event.character_id})
        _write_json(self.events_file, stored)
        log.info("Recorded %d events", len(events))


def load_pull_history(data_root) -> List[dict]:
    return load_json(pulls_path(data_root), [])


def record_pull_history(data_root, timestamp: str, success: bool, *, source: str = "cron", **details) -> None:
    """Keep the outcome of the most recent cycles for the health endpoint."""
    history = load_pull_history(data_root)
    history.append({"timestamp": timestamp, "success": success, "source": source, **details})
    try:
        save_json(pulls_path(data_root), history[-PULL_HISTORY_LIMIT:])
    except OSError:
        log.exception("Failed to record pull history")
