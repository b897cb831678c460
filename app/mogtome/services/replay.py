"""Replay recorded rosters from disk instead of calling the Lodestone.

Each call serves the next JSON file in the replay directory and advances a
cursor, staying on the last file once the sequence is exhausted.
"""
import logging
from pathlib import Path
from typing import List, Optional

from ..errors import SourceFetchError
from ..models.member import RosterEntry
from ..utils import load_json, save_json

log = logging.getLogger(__name__)

CURSOR_FILE = ".cursor.json"


def _sort_key(path: Path) -> tuple[int, str]:
    stem = path.stem
    digits = "".join(char for char in stem if char.isdigit())
    if digits:
        return int(digits), stem
    return (1_000_000_000, stem)


def _next_file(files: list[Path], last_name: str | None) -> Path:
    if not last_name:
        return files[0]
    for idx, path in enumerate(files):
        if path.name == last_name:
            return files[idx + 1] if idx + 1 < len(files) else files[-1]
    return files[0]


def _extract_roster(data: object) -> list:
    if isinstance(data, dict):
        for key in ("members", "roster"):
            roster = data.get(key)
            if isinstance(roster, list):
                return roster
    if isinstance(data, list):
        return data
    raise ValueError("Replay data must be a list or a dict with a 'members' list.")


def _to_entry(row: dict) -> RosterEntry:
    return RosterEntry(
        character_id=str(row["character_id"]),
        name=row["name"],
        rank=row.get("rank", ""),
        rank_icon=row.get("rank_icon"),
        avatar=row.get("avatar"),
    )


class ReplaySource:
    def __init__(self, replay_dir):
        self.replay_dir = Path(replay_dir)
        self.cursor_path = self.replay_dir / CURSOR_FILE

    def _sorted_files(self) -> list[Path]:
        files = [
            path for path in self.replay_dir.iterdir()
            if path.suffix == ".json" and path.name != CURSOR_FILE
        ]
        return sorted(files, key=_sort_key)

    def fetch_roster(self) -> List[RosterEntry]:
        if not self.replay_dir.is_dir():
            raise SourceFetchError(f"Replay directory {self.replay_dir} does not exist")
        files = self._sorted_files()
        if not files:
            raise SourceFetchError(f"No replay files found in {self.replay_dir}")

        cursor = load_json(self.cursor_path, {})
        last_name: Optional[str] = cursor.get("last_file")
        next_file = _next_file(files, last_name)
        log.info("Replaying roster from %s (last_file=%s).", next_file.name, last_name or "none")

        data = load_json(next_file, None)
        if data is None:
            raise SourceFetchError(f"Failed to load replay file {next_file}")
        try:
            roster = [_to_entry(row) for row in _extract_roster(data)]
        except (KeyError, TypeError, ValueError) as exc:
            raise SourceFetchError(f"Invalid replay file {next_file}: {exc}") from exc

        save_json(self.cursor_path, {"last_file": next_file.name})
        return roster
