"""Append-only membership history.

A ledger is a sequence of dated entries. ``joined`` and ``rejoined`` open an
interval, ``left`` closes it. Operations never rewrite existing entries; they
return a new ledger whose entries extend the old ones.

Documents written by the earlier sync job store the ledger as a string such
as ``"1/2/2024-3/4/2024+5/6/2024-"``. ``from_legacy`` reads that grammar and
``to_legacy`` renders it back.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional, Tuple

from ..utils import parse_date

log = logging.getLogger("mogtome.ledger")

JOINED = "joined"
LEFT = "left"
REJOINED = "rejoined"

ENTRY_KINDS = (JOINED, LEFT, REJOINED)
OPENING_KINDS = (JOINED, REJOINED)


@dataclass(frozen=True)
class LedgerEntry:
    kind: str
    on: date

    def __post_init__(self):
        if self.kind not in ENTRY_KINDS:
            raise ValueError(f"Unknown ledger entry kind: {self.kind!r}")

    def to_json(self) -> dict:
        return {"kind": self.kind, "on": self.on.isoformat()}

    @staticmethod
    def from_json(data: dict) -> "LedgerEntry":
        return LedgerEntry(data["kind"], parse_date(data["on"]))


def _short_date(d: date) -> str:
    return f"{d.month}/{d.day}/{d.year}"


class HistoryLedger:
    def __init__(self, entries: Iterable[LedgerEntry] = ()):
        self._entries: Tuple[LedgerEntry, ...] = tuple(entries)

    @classmethod
    def opened(cls, on: date) -> "HistoryLedger":
        return cls((LedgerEntry(JOINED, on),))

    @property
    def entries(self) -> Tuple[LedgerEntry, ...]:
        return self._entries

    @property
    def is_open(self) -> bool:
        return bool(self._entries) and self._entries[-1].kind in OPENING_KINDS

    def _append(self, entry: LedgerEntry) -> "HistoryLedger":
        return HistoryLedger(self._entries + (entry,))

    def close(self, on: date) -> "HistoryLedger":
        """Close the open interval on ``on``."""
        if not self.is_open:
            log.warning("Ledger has no open interval to close on %s; leaving it as is", on)
            return self
        return self._append(LedgerEntry(LEFT, on))

    def reopen(self, on: date) -> "HistoryLedger":
        """Open a new interval on ``on``."""
        if self.is_open:
            log.warning("Ledger already has an open interval; not reopening on %s", on)
            return self
        kind = REJOINED if self._entries else JOINED
        return self._append(LedgerEntry(kind, on))

    def intervals(self) -> List[Tuple[date, Optional[date]]]:
        spans: List[Tuple[date, Optional[date]]] = []
        start: Optional[date] = None
        for entry in self._entries:
            if entry.kind in OPENING_KINDS:
                if start is None:
                    start = entry.on
            elif start is not None:
                spans.append((start, entry.on))
                start = None
        if start is not None:
            spans.append((start, None))
        return spans

    def extends(self, other: "HistoryLedger") -> bool:
        """True if this ledger starts with every entry of ``other``."""
        n = len(other._entries)
        return len(self._entries) >= n and self._entries[:n] == other._entries

    def to_json(self) -> list:
        return [entry.to_json() for entry in self._entries]

    @staticmethod
    def from_json(data) -> "HistoryLedger":
        if data is None:
            return HistoryLedger()
        if isinstance(data, str):
            return HistoryLedger.from_legacy(data)
        return HistoryLedger(LedgerEntry.from_json(item) for item in data)

    def to_legacy(self) -> str:
        parts = []
        for entry in self._entries:
            stamp = _short_date(entry.on)
            if entry.kind == JOINED:
                parts.append(f"{stamp}-")
            elif entry.kind == REJOINED:
                parts.append(f"+{stamp}-")
            else:
                parts.append(stamp)
        return "".join(parts)

    @staticmethod
    def from_legacy(text: str) -> "HistoryLedger":
        """Parse ``start-[end]`` segments joined by ``+``."""
        text = (text or "").strip()
        if not text:
            return HistoryLedger()

        entries: List[LedgerEntry] = []
        for idx, segment in enumerate(text.split("+")):
            start, sep, end = segment.partition("-")
            if not start or not sep:
                raise ValueError(f"Malformed ledger segment {segment!r} in {text!r}")
            entries.append(LedgerEntry(JOINED if idx == 0 else REJOINED, parse_date(start)))
            if end:
                entries.append(LedgerEntry(LEFT, parse_date(end)))
        return HistoryLedger(entries)

    def __len__(self):
        return len(self._entries)

    def __eq__(self, other):
        if not isinstance(other, HistoryLedger):
            return NotImplemented
        return self._entries == other._entries

    def __hash__(self):
        return hash(self._entries)

    def __repr__(self):
        return f"HistoryLedger({self.to_legacy()!r})"
