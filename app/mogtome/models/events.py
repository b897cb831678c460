import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from ..utils import format_iso


class EventKind(str, Enum):
    MEMBER_JOINED = "MemberJoined"
    MEMBER_REJOINED = "MemberRejoined"
    RANK_PROMOTED = "RankPromoted"
    NAME_CHANGED = "NameChanged"


def new_event_id() -> str:
    return uuid.uuid4().hex


@dataclass
class DomainEvent:
    text: str
    kind: EventKind
    timestamp: datetime
    character_id: str = ""
    id: str = field(default_factory=new_event_id)

    def to_json(self) -> dict:
        """Wire shape shared by the event store and the webhook."""
        return {
            "id": self.id,
            "text": self.text,
            "type": self.kind.value,
            "timestamp": format_iso(self.timestamp),
        }
