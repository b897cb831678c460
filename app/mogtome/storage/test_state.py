import json
from datetime import date, datetime, timezone

import pytest

from mogtome.errors import ArchiveLoadError, PersistenceWriteError
from mogtome.models.events import DomainEvent, EventKind
from mogtome.models.ledger import HistoryLedger
from mogtome.models.member import MemberRecord
from mogtome.services.ports import MemberWrite
from mogtome.storage import JsonRosterStore, load_pull_history, record_pull_history

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def _member(cid, **kwargs):
    defaults = dict(name=f"Member {cid}", rank="Mandragora", history=HistoryLedger.opened(date(2024, 1, 2)))
    defaults.update(kwargs)
    return MemberRecord(character_id=cid, **defaults)


def test_empty_store_loads_an_empty_snapshot(tmp_path):
    assert JsonRosterStore(tmp_path / "data").load_snapshot() == []


def test_inserted_members_load_back(tmp_path):
    store = JsonRosterStore(tmp_path)
    store.insert_members([_member("1"), _member("2", active=False)])

    loaded = {m.character_id: m for m in store.load_snapshot()}

    assert loaded["1"] == _member("1")
    assert loaded["2"].active is False


def test_inserting_an_existing_member_fails(tmp_path):
    store = JsonRosterStore(tmp_path)
    store.insert_members([_member("1")])

    with pytest.raises(PersistenceWriteError):
        store.insert_members([_member("1")])


def test_apply_batch_sets_fields_on_each_member(tmp_path):
    store = JsonRosterStore(tmp_path)
    original = _member("1")
    store.insert_members([original, _member("2")])

    store.apply_batch([
        MemberWrite("1", {"active": False, "history": original.history.close(NOW.date()), "last_updated": NOW}),
        MemberWrite("2", {"rank": "Coeurl Hunter", "promotion_date": NOW}),
    ])

    loaded = {m.character_id: m for m in store.load_snapshot()}
    assert loaded["1"].active is False
    assert loaded["1"].history.intervals() == [(date(2024, 1, 2), NOW.date())]
    assert loaded["1"].last_updated == NOW
    assert loaded["2"].rank == "Coeurl Hunter"
    assert loaded["2"].promotion_date == NOW
    assert loaded["2"].name == "Member 2"


def test_apply_batch_upserts_unknown_members(tmp_path):
    store = JsonRosterStore(tmp_path)

    store.apply_batch([MemberWrite("9", {"name": "Stray", "active": True})])

    (member,) = store.load_snapshot()
    assert member.character_id == "9"
    assert member.name == "Stray"


def test_apply_batch_rejects_unknown_fields_without_writing(tmp_path):
    store = JsonRosterStore(tmp_path)
    store.insert_members([_member("1")])

    with pytest.raises(PersistenceWriteError):
        store.apply_batch([MemberWrite("1", {"name": "Changed"}), MemberWrite("1", {"level": 90})])

    assert store.load_snapshot()[0].name == "Member 1"


def test_unreadable_members_file_is_an_archive_error(tmp_path):
    (tmp_path / "members.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(ArchiveLoadError):
        JsonRosterStore(tmp_path).load_snapshot()


def test_legacy_documents_are_migrated_on_load(tmp_path):
    legacy = {
        "4242": {
            "name": "Kupo Nut",
            "rank": "Mandragora",
            "active": False,
            "history": "1/2/2024-3/4/2024",
        }
    }
    (tmp_path / "members.json").write_text(json.dumps(legacy), encoding="utf-8")

    (member,) = JsonRosterStore(tmp_path).load_snapshot()

    assert member.character_id == "4242"
    assert member.history.intervals() == [(date(2024, 1, 2), date(2024, 3, 4))]


def test_events_are_appended(tmp_path):
    store = JsonRosterStore(tmp_path)
    first = DomainEvent("Kupo! Mog has joined.", EventKind.MEMBER_JOINED, NOW, character_id="1")
    second = DomainEvent("Kupo? A is now B.", EventKind.NAME_CHANGED, NOW, character_id="2")

    store.insert_events([first])
    store.insert_events([second])

    stored = json.loads((tmp_path / "events.json").read_text(encoding="utf-8"))
    assert [e["id"] for e in stored] == [first.id, second.id]
    assert stored[1]["type"] == "NameChanged"
    assert stored[1]["character_id"] == "2"


def test_pull_history_keeps_the_latest_records(tmp_path):
    for n in range(55):
        record_pull_history(tmp_path, f"2026-10-19T12:{n:02d}:00Z", n % 2 == 0, source="cron")

    history = load_pull_history(tmp_path)

    assert len(history) == 50
    assert history[-1]["timestamp"] == "2026-10-19T12:54:00Z"
    assert history[-1]["success"] is True
