"""Sync orchestrator: fetch, validate, diff, persist, then notify.

Stages run strictly in sequence. Any failure moves the cycle to ABORTED and
is reported on the CycleResult rather than raised. Notification failures are
the exception: they are logged and the cycle still finishes DONE, because the
events were already recorded in the store.

Each stage records its own events right after its member batch, so a write
failure in a later stage cannot drop the events of a stage already committed.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional, Type

from ..config import DEFAULT_MIN_ROSTER_SIZE
from ..errors import (
    ArchiveLoadError,
    NotificationError,
    PersistenceWriteError,
    SourceFetchError,
    SyncError,
)
from ..models.events import DomainEvent, EventKind
from ..models.member import MemberRecord, map_entry
from ..utils import utcnow
from .detection import (
    MemberUpdate,
    Rejoin,
    RosterDiff,
    build_snapshot,
    check_roster_health,
    diff_rosters,
)
from .events import derive_events
from .ports import EventPublisher, MemberWrite, RosterSource, RosterStore
from .ranks import RankPolicy

log = logging.getLogger("mogtome.sync")

# Events recorded with the joins stage; the rest belong to updates.
JOIN_EVENT_KINDS = (EventKind.MEMBER_JOINED, EventKind.MEMBER_REJOINED)


class CycleStage(str, Enum):
    IDLE = "idle"
    FETCHING_FRESH = "fetching_fresh"
    FETCHING_ARCHIVE = "fetching_archive"
    VALIDATING = "validating"
    DIFFING = "diffing"
    APPLYING_LEFT = "applying_left"
    APPLYING_JOINS = "applying_joins"
    APPLYING_UPDATES = "applying_updates"
    NOTIFYING = "notifying"
    DONE = "done"
    ABORTED = "aborted"


# Unexpected exceptions escaping a stage are reported as these error types.
STAGE_ERRORS: Dict[CycleStage, Type[SyncError]] = {
    CycleStage.FETCHING_FRESH: SourceFetchError,
    CycleStage.FETCHING_ARCHIVE: ArchiveLoadError,
    CycleStage.APPLYING_LEFT: PersistenceWriteError,
    CycleStage.APPLYING_JOINS: PersistenceWriteError,
    CycleStage.APPLYING_UPDATES: PersistenceWriteError,
}


@dataclass
class CycleResult:
    transitions_applied: int = 0
    events_emitted: int = 0
    error: Optional[SyncError] = None
    stage: CycleStage = CycleStage.IDLE
    failed_stage: Optional[CycleStage] = None
    summary: Dict[str, int] = field(default_factory=dict)
    notified: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_json(self) -> dict:
        return {
            "ok": self.ok,
            "stage": self.stage.value,
            "failed_stage": self.failed_stage.value if self.failed_stage else None,
            "transitions_applied": self.transitions_applied,
            "events_emitted": self.events_emitted,
            "error": f"{type(self.error).__name__}: {self.error}" if self.error else None,
            "summary": dict(self.summary),
            "notified": self.notified,
        }


def left_write(member: MemberRecord, now: datetime) -> MemberWrite:
    return MemberWrite(
        member.character_id,
        {
            "history": member.history.close(now.date()),
            "last_updated": now,
            "active": False,
        },
    )


def rejoin_write(rejoin: Rejoin, now: datetime) -> MemberWrite:
    fresh = rejoin.fresh
    return MemberWrite(
        rejoin.character_id,
        {
            "name": fresh.name,
            "rank": fresh.rank,
            "rank_icon": fresh.rank_icon,
            "avatar": fresh.avatar,
            "history": rejoin.archived.history.reopen(now.date()),
            "last_updated": now,
            "active": True,
        },
    )


def update_write(update: MemberUpdate, now: datetime) -> MemberWrite:
    fresh = update.fresh
    fields = {
        "name": fresh.name,
        "rank": fresh.rank,
        "rank_icon": fresh.rank_icon,
        "avatar": fresh.avatar,
        "last_updated": now,
    }
    if update.promoted:
        fields["promotion_date"] = now
    return MemberWrite(update.character_id, fields)


class ReconciliationOrchestrator:
    def __init__(
        self,
        source: RosterSource,
        store: RosterStore,
        publisher: Optional[EventPublisher] = None,
        *,
        rank_policy: Optional[RankPolicy] = None,
        min_roster_size: int = DEFAULT_MIN_ROSTER_SIZE,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.source = source
        self.store = store
        self.publisher = publisher
        self.rank_policy = rank_policy or RankPolicy()
        self.min_roster_size = min_roster_size
        self.clock = clock
        self.stage = CycleStage.IDLE

    def _enter(self, stage: CycleStage) -> None:
        self.stage = stage
        log.info("Sync stage: %s", stage.value)

    def run_cycle(self) -> CycleResult:
        result = CycleResult()
        self.stage = CycleStage.IDLE
        try:
            self._run(result)
        except SyncError as exc:
            self._abort(result, exc)
        except Exception as exc:
            error_type = STAGE_ERRORS.get(self.stage, SyncError)
            error = error_type(f"{self.stage.value} failed: {exc}")
            error.__cause__ = exc
            self._abort(result, error)
        result.stage = self.stage
        return result

    def _abort(self, result: CycleResult, error: SyncError) -> None:
        result.error = error
        result.failed_stage = self.stage
        if isinstance(error, PersistenceWriteError):
            log.error(
                "Sync aborted during %s after %d transitions and %d events were written; "
                "the store may hold a partial update",
                self.stage.value,
                result.transitions_applied,
                result.events_emitted,
                exc_info=error,
            )
        else:
            log.error("Sync aborted during %s: %s", self.stage.value, error)
        self.stage = CycleStage.ABORTED

    def _run(self, result: CycleResult) -> None:
        self._enter(CycleStage.FETCHING_FRESH)
        entries = self.source.fetch_roster()
        now = self.clock()
        fresh = build_snapshot(map_entry(entry, now) for entry in entries)
        log.info("Fetched %d roster entries (%d unique members)", len(entries), len(fresh))

        self._enter(CycleStage.FETCHING_ARCHIVE)
        archived = build_snapshot(self.store.load_snapshot())
        log.info("Loaded archived snapshot with %d members", len(archived))

        self._enter(CycleStage.VALIDATING)
        check_roster_health(fresh, self.min_roster_size)

        self._enter(CycleStage.DIFFING)
        diff = diff_rosters(fresh, archived)
        events = derive_events(diff, self.rank_policy, now)
        result.summary = diff.summary()
        log.info("Roster diff: %s; %d events", result.summary, len(events))

        recorded = self._apply(diff, events, now, result)

        self._enter(CycleStage.NOTIFYING)
        result.notified = self._notify(recorded)

        self._enter(CycleStage.DONE)

    def _record(self, events: List[DomainEvent], recorded: List[DomainEvent], result: CycleResult) -> None:
        if not events:
            return
        self.store.insert_events(events)
        recorded.extend(events)
        result.events_emitted += len(events)

    def _apply(
        self,
        diff: RosterDiff,
        events: List[DomainEvent],
        now: datetime,
        result: CycleResult,
    ) -> List[DomainEvent]:
        recorded: List[DomainEvent] = []

        self._enter(CycleStage.APPLYING_LEFT)
        writes = [left_write(member, now) for member in diff.left]
        if writes:
            self.store.apply_batch(writes)
            result.transitions_applied += len(writes)

        self._enter(CycleStage.APPLYING_JOINS)
        if diff.joined:
            self.store.insert_members(diff.joined)
            result.transitions_applied += len(diff.joined)
        writes = [rejoin_write(rejoin, now) for rejoin in diff.rejoined]
        if writes:
            self.store.apply_batch(writes)
            result.transitions_applied += len(writes)
        self._record([e for e in events if e.kind in JOIN_EVENT_KINDS], recorded, result)

        self._enter(CycleStage.APPLYING_UPDATES)
        for update in diff.updated:
            log.debug("Updating %s: %s", update.character_id, ", ".join(update.changed_fields))
        writes = [update_write(update, now) for update in diff.updated]
        if writes:
            self.store.apply_batch(writes)
            result.transitions_applied += len(writes)
        self._record([e for e in events if e.kind not in JOIN_EVENT_KINDS], recorded, result)

        return recorded

    def _notify(self, events: List[DomainEvent]) -> bool:
        if not events or self.publisher is None:
            return False
        try:
            self.publisher.publish(events)
        except NotificationError:
            log.exception("Failed to deliver %d events; they remain recorded", len(events))
            return False
        except Exception:
            log.exception("Unexpected error delivering %d events; they remain recorded", len(events))
            return False
        return True
