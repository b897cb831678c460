from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional

from ..utils import format_iso, parse_iso
from .ledger import HistoryLedger

# Fields compared between the archived and fresh copy of an active member.
TRACKED_FIELDS = ("name", "rank", "rank_icon", "avatar")


@dataclass
class RosterEntry:
    """One row of the live roster, in the shape the source delivers it."""

    character_id: str
    name: str
    rank: str
    rank_icon: Optional[str] = None
    avatar: Optional[str] = None


@dataclass
class MemberRecord:
    character_id: str
    name: str
    rank: str
    rank_icon: Optional[str] = None
    avatar: Optional[str] = None
    active: bool = True
    last_updated: Optional[datetime] = None
    history: HistoryLedger = field(default_factory=HistoryLedger)
    promotion_date: Optional[datetime] = None

    def tracked_values(self) -> Dict[str, Optional[str]]:
        return {name: getattr(self, name) for name in TRACKED_FIELDS}

    def to_json(self) -> dict:
        return {
            "character_id": self.character_id,
            "name": self.name,
            "rank": self.rank,
            "rank_icon": self.rank_icon,
            "avatar": self.avatar,
            "active": self.active,
            "last_updated": format_iso(self.last_updated) if self.last_updated else None,
            "history": self.history.to_json(),
            "promotion_date": format_iso(self.promotion_date) if self.promotion_date else None,
        }

    @staticmethod
    def from_json(data: dict) -> "MemberRecord":
        return MemberRecord(
            character_id=str(data["character_id"]),
            name=data.get("name", ""),
            rank=data.get("rank", ""),
            rank_icon=data.get("rank_icon"),
            avatar=data.get("avatar"),
            active=bool(data.get("active", False)),
            last_updated=parse_iso(data.get("last_updated")),
            history=HistoryLedger.from_json(data.get("history")),
            promotion_date=parse_iso(data.get("promotion_date")),
        )


def map_entry(entry: RosterEntry, now: datetime) -> MemberRecord:
    """Map a live roster row onto a fresh, active member record."""
    return MemberRecord(
        character_id=str(entry.character_id),
        name=entry.name,
        rank=entry.rank,
        rank_icon=entry.rank_icon,
        avatar=entry.avatar,
        active=True,
        last_updated=now,
        history=HistoryLedger.opened(now.date()),
    )
