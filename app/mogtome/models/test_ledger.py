from datetime import date

import pytest

from mogtome.models.ledger import JOINED, LEFT, REJOINED, HistoryLedger, LedgerEntry

JAN_2 = date(2024, 1, 2)
MAR_4 = date(2024, 3, 4)
MAY_6 = date(2024, 5, 6)


def test_opened_ledger_has_one_open_interval():
    ledger = HistoryLedger.opened(JAN_2)

    assert ledger.is_open
    assert ledger.intervals() == [(JAN_2, None)]
    assert ledger.to_legacy() == "1/2/2024-"


def test_leave_and_rejoin_alternate_intervals():
    ledger = HistoryLedger.opened(JAN_2).close(MAR_4).reopen(MAY_6)

    assert [entry.kind for entry in ledger.entries] == [JOINED, LEFT, REJOINED]
    assert ledger.intervals() == [(JAN_2, MAR_4), (MAY_6, None)]
    assert ledger.to_legacy() == "1/2/2024-3/4/2024+5/6/2024-"


def test_every_operation_extends_the_previous_ledger():
    steps = [HistoryLedger.opened(JAN_2)]
    steps.append(steps[-1].close(MAR_4))
    steps.append(steps[-1].reopen(MAY_6))
    steps.append(steps[-1].close(date(2024, 7, 8)))

    for before, after in zip(steps, steps[1:]):
        assert after.extends(before)
        assert len(after) == len(before) + 1


def test_closing_a_closed_ledger_appends_nothing(caplog):
    closed = HistoryLedger.opened(JAN_2).close(MAR_4)

    assert closed.close(MAY_6) == closed
    assert "no open interval" in caplog.text


def test_reopening_an_open_ledger_appends_nothing():
    ledger = HistoryLedger.opened(JAN_2)

    assert ledger.reopen(MAY_6) == ledger


def test_reopening_an_empty_ledger_starts_with_a_join():
    ledger = HistoryLedger().reopen(MAY_6)

    assert ledger.entries == (LedgerEntry(JOINED, MAY_6),)


def test_from_legacy_reads_the_legacy_string_grammar():
    ledger = HistoryLedger.from_legacy("1/2/2024-3/4/2024+5/6/2024-")

    assert ledger == HistoryLedger.opened(JAN_2).close(MAR_4).reopen(MAY_6)
    assert HistoryLedger.from_legacy("") == HistoryLedger()


def test_from_legacy_rejects_malformed_segments():
    with pytest.raises(ValueError):
        HistoryLedger.from_legacy("not a ledger")


def test_from_json_accepts_entries_legacy_strings_and_none():
    ledger = HistoryLedger.opened(JAN_2).close(MAR_4)

    assert HistoryLedger.from_json(ledger.to_json()) == ledger
    assert HistoryLedger.from_json("1/2/2024-3/4/2024") == ledger
    assert HistoryLedger.from_json(None) == HistoryLedger()


def test_ledger_entry_rejects_unknown_kind():
    with pytest.raises(ValueError):
        LedgerEntry("promoted", JAN_2)
