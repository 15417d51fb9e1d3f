"""Peer ranking and composite valuation score."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Iterable, Mapping

from stockgateway.models.enums import Position
from stockgateway.models.ranking import RankingResult
from stockgateway.models.snapshot import Snapshot


@dataclass(frozen=True)
class PeerMetric:
    """How one metric is ordered in a peer comparison.

    Attributes:
        key: Snapshot metric name (see ``Snapshot.metric``).
        label: Display label.
        higher_is_better: Ordering for the standard rule.
        lower_is_better_if_positive: P/E-style ordering; overrides
            ``higher_is_better``.
        highlight: When False the metric is ranked but no ticker is
            marked best or worst.
    """

    key: str
    label: str
    higher_is_better: bool = True
    lower_is_better_if_positive: bool = False
    highlight: bool = True


PEER_METRICS: tuple[PeerMetric, ...] = (
    PeerMetric("pe_ratio", "P/E", higher_is_better=False, lower_is_better_if_positive=True),
    PeerMetric("ev_ebitda", "EV/EBITDA", higher_is_better=False, lower_is_better_if_positive=True),
    PeerMetric("roe", "ROE"),
    PeerMetric("net_margin", "Margin"),
    PeerMetric("revenue_growth", "Rev Growth"),
    PeerMetric("return_1y", "1Y Return"),
    PeerMetric("market_cap", "Market Cap", highlight=False),
)


def _comparable(value: float | None) -> bool:
    return value is not None and not (isinstance(value, float) and math.isnan(value))


def _sort_key(lower_is_better_if_positive: bool, higher_is_better: bool):
    if lower_is_better_if_positive:
        # positives ascending, then non-positives least-negative first
        def key(item: tuple[str, float]):
            ticker, value = item
            if value > 0:
                return (0, value, ticker)
            return (1, -value, ticker)
        return key
    if higher_is_better:
        return lambda item: (-item[1], item[0])
    return lambda item: (item[1], item[0])


def rank_metric(
    values: Mapping[str, float | None],
    higher_is_better: bool = True,
    lower_is_better_if_positive: bool = False,
) -> dict[str, RankingResult]:
    """Rank tickers on one metric.

    Ties are broken by ticker symbol so results do not depend on input
    order. Tickers without a comparable value get rank 0.
    """
    valid = [(t, float(v)) for t, v in values.items() if _comparable(v)]

    if len(valid) < 2:
        return {t: RankingResult() for t in values}

    valid.sort(key=_sort_key(lower_is_better_if_positive, higher_is_better))
    total = len(valid)

    results = {t: RankingResult(rank=0, total=total) for t in values}
    for idx, (ticker, _) in enumerate(valid):
        rank = idx + 1
        position = None
        if rank == 1:
            position = Position.BEST
        elif rank == total:
            position = Position.WORST
        results[ticker] = RankingResult(rank=rank, total=total, position=position)
    return results


def rank_peers(
    snapshots: Iterable[Snapshot],
    metrics: Iterable[PeerMetric] = PEER_METRICS,
) -> dict[str, dict[str, RankingResult]]:
    """Rank every snapshot on every metric: ``{metric: {ticker: result}}``."""
    snaps = list(snapshots)
    out: dict[str, dict[str, RankingResult]] = {}
    for m in metrics:
        values = {s.ticker: s.metric(m.key) for s in snaps}
        ranked = rank_metric(
            values,
            higher_is_better=m.higher_is_better,
            lower_is_better_if_positive=m.lower_is_better_if_positive,
        )
        if not m.highlight:
            ranked = {t: replace(r, position=None) for t, r in ranked.items()}
        out[m.key] = ranked
    return out


# (upper bound exclusive, points); the last band catches everything above
PE_BANDS: tuple[tuple[float, int], ...] = (
    (12.0, 25),
    (20.0, 10),
    (35.0, -10),
    (math.inf, -25),
)
EV_EBITDA_BANDS: tuple[tuple[float, int], ...] = (
    (8.0, 20),
    (14.0, 5),
    (math.inf, -20),
)


def _band_points(value: float | None, bands: tuple[tuple[float, int], ...]) -> int:
    if not _comparable(value) or value <= 0:
        return 0
    for upper, points in bands:
        if value < upper:
            return points
    return 0


def valuation_score(pe_ratio: float | None, ev_ebitda: float | None) -> int:
    """Composite cheapness score in [0, 100]; 50 is neutral.

    Each ratio contributes only when positive.
    """
    score = 50
    score += _band_points(pe_ratio, PE_BANDS)
    score += _band_points(ev_ebitda, EV_EBITDA_BANDS)
    return max(0, min(100, score))
