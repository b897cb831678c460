"""Free company rank hierarchy and the promotion predicate."""
import logging
from typing import Dict, Iterable, Optional, Set

from ..config import DEFAULT_RANKS

log = logging.getLogger("mogtome.ranks")


class RankPolicy:
    """Ordered rank table, lowest rank first."""

    def __init__(self, ranks: Iterable[str] = DEFAULT_RANKS):
        self._levels: Dict[str, int] = {}
        for level, rank in enumerate(ranks):
            if rank in self._levels:
                raise ValueError(f"Rank {rank!r} listed twice")
            self._levels[rank] = level
        self._warned: Set[str] = set()

    def level(self, rank: Optional[str]) -> Optional[int]:
        if rank is None:
            return None
        return self._levels.get(rank)

    def _warn_unknown(self, rank: Optional[str]) -> None:
        if rank in self._warned:
            return
        self._warned.add(rank)
        log.warning("Unknown rank %r; add it to the 'ranks' config to track promotions", rank)

    def is_promotion(self, previous_rank: Optional[str], current_rank: Optional[str]) -> bool:
        old = self.level(previous_rank)
        new = self.level(current_rank)
        if old is None:
            self._warn_unknown(previous_rank)
        if new is None:
            self._warn_unknown(current_rank)
        if old is None or new is None:
            return False
        return new > old
