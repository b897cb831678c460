"""Roster diffing: classify members between the archived and fresh snapshot."""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from ..errors import DataQualityError
from ..models.member import MemberRecord

log = logging.getLogger("mogtome.detection")

RosterSnapshot = Dict[str, MemberRecord]


@dataclass
class MemberUpdate:
    """An active member seen again with at least one changed field."""

    archived: MemberRecord
    fresh: MemberRecord
    # Set once by the event deriver from the rank policy.
    promoted: Optional[bool] = None

    @property
    def character_id(self) -> str:
        return self.fresh.character_id

    @property
    def changed_fields(self) -> List[str]:
        old = self.archived.tracked_values()
        new = self.fresh.tracked_values()
        return [name for name in new if old[name] != new[name]]

    @property
    def name_changed(self) -> bool:
        return self.archived.name != self.fresh.name

    @property
    def rank_changed(self) -> bool:
        return self.archived.rank != self.fresh.rank


@dataclass
class Rejoin:
    archived: MemberRecord
    fresh: MemberRecord

    @property
    def character_id(self) -> str:
        return self.fresh.character_id


@dataclass
class RosterDiff:
    left: List[MemberRecord] = field(default_factory=list)
    joined: List[MemberRecord] = field(default_factory=list)
    rejoined: List[Rejoin] = field(default_factory=list)
    updated: List[MemberUpdate] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)
    ignored: List[str] = field(default_factory=list)

    def summary(self) -> dict:
        return {
            "left": len(self.left),
            "joined": len(self.joined),
            "rejoined": len(self.rejoined),
            "updated": len(self.updated),
            "unchanged": len(self.unchanged),
            "ignored": len(self.ignored),
        }


def build_snapshot(members: Iterable[MemberRecord]) -> RosterSnapshot:
    """Index members by character id, keeping the first of any duplicates."""
    snapshot: RosterSnapshot = {}
    for member in members:
        cid = member.character_id
        if cid in snapshot:
            log.warning("Duplicate character id %s (%s); keeping first occurrence", cid, member.name)
            continue
        snapshot[cid] = member
    return snapshot


def check_roster_health(fresh: RosterSnapshot, minimum: int) -> None:
    """Refuse to diff a roster too small to be a complete fetch."""
    if len(fresh) < minimum:
        raise DataQualityError(
            f"Fresh roster has {len(fresh)} members, below the minimum of {minimum}; "
            "refusing to treat the gap as departures"
        )


def diff_rosters(fresh: RosterSnapshot, archived: RosterSnapshot) -> RosterDiff:
    """Partition members by character id into disjoint transition sets."""
    diff = RosterDiff()

    for cid in sorted(archived):
        old = archived[cid]
        if cid in fresh:
            continue
        if old.active:
            diff.left.append(old)
        else:
            diff.ignored.append(cid)

    for cid in sorted(fresh):
        new = fresh[cid]
        old = archived.get(cid)
        if old is None:
            diff.joined.append(new)
        elif not old.active:
            diff.rejoined.append(Rejoin(archived=old, fresh=new))
        elif old.tracked_values() != new.tracked_values():
            diff.updated.append(MemberUpdate(archived=old, fresh=new))
        else:
            diff.unchanged.append(cid)

    log.debug("Roster diff: %s", diff.summary())
    return diff
