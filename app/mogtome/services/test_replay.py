import json

import pytest

from mogtome.errors import SourceFetchError
from mogtome.services.replay import ReplaySource


def _write(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")


def test_replay_serves_files_in_order_and_stays_on_the_last(tmp_path):
    _write(tmp_path / "roster_2.json", {"members": [{"character_id": 2, "name": "Mog"}]})
    _write(tmp_path / "roster_10.json", [{"character_id": "10", "name": "Montblanc", "rank": "Mandragora"}])
    source = ReplaySource(tmp_path)

    first = source.fetch_roster()
    second = source.fetch_roster()
    third = source.fetch_roster()

    assert [e.character_id for e in first] == ["2"]
    assert [e.name for e in second] == ["Montblanc"]
    assert second[0].rank == "Mandragora"
    assert [e.name for e in third] == ["Montblanc"]


def test_replay_without_files_fails(tmp_path):
    with pytest.raises(SourceFetchError):
        ReplaySource(tmp_path).fetch_roster()
    with pytest.raises(SourceFetchError):
        ReplaySource(tmp_path / "missing").fetch_roster()


def test_replay_rejects_rows_without_ids(tmp_path):
    _write(tmp_path / "roster_1.json", [{"name": "Nobody"}])

    with pytest.raises(SourceFetchError):
        ReplaySource(tmp_path).fetch_roster()
