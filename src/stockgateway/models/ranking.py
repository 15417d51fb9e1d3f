"""Peer ranking result model."""

from __future__ import annotations

from dataclasses import dataclass

from stockgateway.models.enums import Position


@dataclass(frozen=True)
class RankingResult:
    """Rank of one ticker for one metric.

    Attributes:
        rank: 1 = best; 0 = unranked (no value, or fewer than two comparable).
        total: Number of comparable values in the peer set.
        position: ``BEST`` for rank 1, ``WORST`` for the last rank.
    """

    rank: int = 0
    total: int = 0
    position: Position | None = None

    @property
    def ranked(self) -> bool:
        return self.rank > 0

    def to_dict(self) -> dict:
        return {
            "rank": self.rank,
            "total": self.total,
            "position": self.position.value if self.position else None,
        }
