from datetime import date, datetime, timezone

from mogtome.models.events import EventKind
from mogtome.models.ledger import HistoryLedger
from mogtome.models.member import MemberRecord
from mogtome.services.detection import build_snapshot, diff_rosters
from mogtome.services.events import derive_events
from mogtome.services.ranks import RankPolicy

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
POLICY = RankPolicy(["Mandragora", "Coeurl Hunter", "Moogle Knight"])


def _member(cid, name=None, rank="Mandragora", active=True):
    return MemberRecord(
        character_id=cid,
        name=name or f"Member {cid}",
        rank=rank,
        active=active,
        history=HistoryLedger.opened(date(2024, 1, 2)),
    )


def _events(fresh, archived):
    diff = diff_rosters(build_snapshot(fresh), build_snapshot(archived))
    return derive_events(diff, POLICY, NOW)


def test_new_member_yields_one_join_event_naming_them():
    (event,) = _events([_member("B", name="Kupo Nut")], [])

    assert event.kind is EventKind.MEMBER_JOINED
    assert "Kupo Nut" in event.text
    assert event.character_id == "B"
    assert event.timestamp == NOW


def test_returning_member_yields_one_rejoin_event():
    (event,) = _events([_member("D", name="Mog")], [_member("D", name="Mog", active=False)])

    assert event.kind is EventKind.MEMBER_REJOINED
    assert "Mog" in event.text


def test_promotion_yields_rank_promoted_only():
    (event,) = _events([_member("A", rank="Coeurl Hunter")], [_member("A", rank="Mandragora")])

    assert event.kind is EventKind.RANK_PROMOTED
    assert "Mandragora" in event.text
    assert "Coeurl Hunter" in event.text


def test_demotion_and_unknown_ranks_yield_nothing():
    assert _events([_member("A", rank="Mandragora")], [_member("A", rank="Moogle Knight")]) == []
    assert _events([_member("A", rank="Tonberry")], [_member("A", rank="Mandragora")]) == []


def test_rename_and_promotion_come_in_that_order():
    events = _events(
        [_member("A", name="New Name", rank="Moogle Knight")],
        [_member("A", name="Old Name", rank="Mandragora")],
    )

    assert [e.kind for e in events] == [EventKind.NAME_CHANGED, EventKind.RANK_PROMOTED]
    assert "Old Name" in events[0].text and "New Name" in events[0].text


def test_departures_and_avatar_changes_yield_no_events():
    archived = [_member("A"), _member("C")]
    fresh_a = _member("A")
    fresh_a.avatar = "https://img/new-face.jpg"

    assert _events([fresh_a], archived) == []


def test_events_serialize_to_the_wire_shape():
    (event,) = _events([_member("B", name="Kupo Nut")], [])

    payload = event.to_json()

    assert set(payload) == {"id", "text", "type", "timestamp"}
    assert payload["type"] == "MemberJoined"
    assert payload["timestamp"] == "2026-10-19T12:00:00Z"
    assert payload["id"]
