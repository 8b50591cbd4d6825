"""MFI score aggregation and ranking engine.

Combines the three weighted sub-scores (SAT, product testing, IEG) into the
composite MFI score and ranks brands by it. This is the core of the index —
everything else in the package either feeds it raw metrics or renders its
output.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from typing import Any, Union

from .banding import band_for_product_tests
from .models import MISSING_LABEL, IndexSummary, RawMetric, ScoreRecord, Tier

logger = logging.getLogger(__name__)

RawInput = Union[RawMetric, Mapping[str, Any]]


def to_raw_metric(item: RawInput) -> RawMetric:
    """Validate a raw API row (or an already-validated metric) into a RawMetric."""
    if isinstance(item, RawMetric):
        return item
    return RawMetric.model_validate(dict(item))


def compute_final_score(sat: float | None, pt: float | None, ieg: float | None) -> float:
    """Sum the weighted sub-scores, treating missing values as zero."""
    return (sat or 0.0) + (pt or 0.0) + (ieg or 0.0)


def assign_ranks(scores: list[float]) -> list[int]:
    """Competition ranks for scores already sorted in descending order.

    An entry tied with its predecessor shares its rank; otherwise the rank is
    the 1-based position, so ``[30, 30, 20]`` ranks as ``[1, 1, 3]``.
    """
    ranks: list[int] = []
    for position, score in enumerate(scores, start=1):
        if ranks and score == scores[position - 2]:
            ranks.append(ranks[-1])
        else:
            ranks.append(position)
    return ranks


def _build_records(metrics: list[RawMetric]) -> list[ScoreRecord]:
    scored = [(m, compute_final_score(m.sat, m.pt, m.ieg)) for m in metrics]
    # stable sort: equal scores keep their input order
    scored.sort(key=lambda pair: pair[1], reverse=True)
    ranks = assign_ranks([final for _, final in scored])

    records = []
    for (metric, final), rank in zip(scored, ranks):
        records.append(ScoreRecord(
            entity_id=metric.entity_id,
            entity_name=metric.entity_name,
            company_name=metric.company_name,
            sector_label=metric.sector or "",
            tier=metric.tier,
            sat_weighted=metric.sat or 0.0,
            pt_weighted=metric.pt or 0.0,
            ieg_weighted=metric.ieg or 0.0,
            final_score=final,
            rank=rank,
            band=band_for_product_tests(metric.product_tests),
            incomplete=tuple(metric.incomplete),
        ))
    return records


class RankedScores:
    """Lazy, restartable ranking over a captured set of raw metrics.

    Nothing is computed until the sequence is iterated, and every iteration
    rebuilds the ranking from the raw inputs, so the output never drifts from
    them. Iterating twice yields equal records.
    """

    def __init__(self, raw: Iterable[RawInput]):
        self._metrics = [to_raw_metric(item) for item in raw]

    def __iter__(self) -> Iterator[ScoreRecord]:
        return iter(_build_records(self._metrics))

    def __len__(self) -> int:
        return len(self._metrics)

    def __bool__(self) -> bool:
        return bool(self._metrics)

    def __repr__(self) -> str:
        return f"RankedScores({len(self._metrics)} entries)"


def rank_scores(raw: Iterable[RawInput]) -> RankedScores:
    """Rank brands by composite MFI score.

    Accepts API rows (dicts in the ``/index-ranking-list`` shape or with plain
    ``sat``/``pt``/``ieg`` keys) or RawMetric objects. Missing or non-numeric
    sub-scores count as zero and are listed in each record's ``incomplete``.
    Total over its input: an empty input ranks to an empty sequence.
    """
    ranked = RankedScores(raw)
    logger.debug("Ranking %d entries", len(ranked))
    return ranked


def summarize_index(records: Iterable[ScoreRecord]) -> IndexSummary:
    """Compute the headline metrics shown above the ranking table.

    The top brand is the first record holding the highest final score; the
    top sector is the sector with the highest mean final score (first seen
    wins on ties). Records without a sector are grouped under ``—``.
    """
    rows = list(records)
    if not rows:
        return IndexSummary()

    count = len(rows)

    def avg(values: Iterable[float]) -> float:
        return sum(values) / count

    top_brand = rows[0]
    for row in rows[1:]:
        if row.final_score > top_brand.final_score:
            top_brand = row

    sector_totals: dict[str, list[float]] = {}
    for row in rows:
        bucket = sector_totals.setdefault(row.sector_label or MISSING_LABEL, [0.0, 0])
        bucket[0] += row.final_score
        bucket[1] += 1

    top_sector = MISSING_LABEL
    top_sector_avg = 0.0
    for sector, (total, n) in sector_totals.items():
        sector_avg = total / n
        if sector_avg > top_sector_avg:
            top_sector = sector
            top_sector_avg = sector_avg

    return IndexSummary(
        top_brand=top_brand.entity_name or MISSING_LABEL,
        top_brand_score=top_brand.final_score,
        top_sector=top_sector,
        top_sector_avg=top_sector_avg,
        avg_sat=avg(r.sat_weighted for r in rows),
        avg_pt=avg(r.pt_weighted for r in rows),
        avg_ieg=avg(r.ieg_weighted for r in rows),
        avg_final=avg(r.final_score for r in rows),
        count=count,
        total_companies=len({r.company_name for r in rows}),
        total_brands=len({r.entity_name for r in rows}),
        total_tier1=sum(1 for r in rows if r.tier == Tier.TIER_1.value),
        total_tier3=sum(1 for r in rows if r.tier == Tier.TIER_3.value),
    )
