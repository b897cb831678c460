"""Adapter contracts the sync orchestrator is wired with."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol, runtime_checkable

from ..models.events import DomainEvent
from ..models.member import MemberRecord, RosterEntry


@dataclass
class MemberWrite:
    """Field set applied to one member document, keyed by character id."""

    character_id: str
    fields: Dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class RosterSource(Protocol):
    def fetch_roster(self) -> List[RosterEntry]: ...


@runtime_checkable
class RosterStore(Protocol):
    def load_snapshot(self) -> List[MemberRecord]: ...

    def apply_batch(self, writes: List[MemberWrite]) -> None: ...

    def insert_members(self, members: List[MemberRecord]) -> None: ...

    def insert_events(self, events: List[DomainEvent]) -> None: ...


@runtime_checkable
class EventPublisher(Protocol):
    def publish(self, events: List[DomainEvent]) -> None: ...


__all__ = ["MemberWrite", "RosterSource", "RosterStore", "EventPublisher"]
