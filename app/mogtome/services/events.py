"""Turn roster transitions into domain events.

Order is stable: joins, then rejoins, then per updated member a name change
followed by a promotion. Departures are recorded in the ledger only.
"""
from datetime import datetime
from typing import List

from ..models.events import DomainEvent, EventKind
from ..webhook.messages import (
    build_join_message,
    build_promotion_message,
    build_rejoin_message,
    build_rename_message,
)
from .detection import MemberUpdate, RosterDiff
from .ranks import RankPolicy


def is_promotion(update: MemberUpdate, policy: RankPolicy) -> bool:
    """Ask the policy once per update and keep the answer on it."""
    if update.promoted is None:
        update.promoted = update.rank_changed and policy.is_promotion(
            update.archived.rank, update.fresh.rank
        )
    return update.promoted


def derive_events(diff: RosterDiff, policy: RankPolicy, now: datetime) -> List[DomainEvent]:
    events: List[DomainEvent] = []

    for member in diff.joined:
        events.append(
            DomainEvent(
                text=build_join_message(member.name),
                kind=EventKind.MEMBER_JOINED,
                timestamp=now,
                character_id=member.character_id,
            )
        )

    for rejoin in diff.rejoined:
        events.append(
            DomainEvent(
                text=build_rejoin_message(rejoin.fresh.name),
                kind=EventKind.MEMBER_REJOINED,
                timestamp=now,
                character_id=rejoin.character_id,
            )
        )

    for update in diff.updated:
        if update.name_changed:
            events.append(
                DomainEvent(
                    text=build_rename_message(update.archived.name, update.fresh.name),
                    kind=EventKind.NAME_CHANGED,
                    timestamp=now,
                    character_id=update.character_id,
                )
            )
        if is_promotion(update, policy):
            events.append(
                DomainEvent(
                    text=build_promotion_message(
                        update.fresh.name,
                        update.archived.rank,
                        update.fresh.rank,
                    ),
                    kind=EventKind.RANK_PROMOTED,
                    timestamp=now,
                    character_id=update.character_id,
                )
            )

    return events
