"""4PG ranking — Personnel, Production, Procurement, Public Engagement, Governance.

Each company carries IVC, IEG and averaged percentages for the five 4PG
components plus an overall "Average 4PG". This module labels those
percentages with performance tiers, applies the award filters, ranks the
top performers per component and computes the key stats.
"""

from __future__ import annotations

import logging
import statistics
from collections.abc import Iterable
from functools import cmp_to_key
from typing import Any, Optional, Union

from .filters import compare_values
from .models import (
    MISSING_LABEL,
    AwardType,
    Component,
    FourPGRow,
    FourPGSummary,
    PerformanceTier,
    SortDirection,
    Tier,
    TopPerformer,
    parse_score,
)

logger = logging.getLogger(__name__)

# Maximum points each component contributes to the weighted 4PG score
COMPONENT_MAX_POINTS: dict[Component, int] = {
    Component.PERSONNEL: 23,
    Component.PRODUCTION: 20,
    Component.PROCUREMENT: 15,
    Component.PUBLIC_ENGAGEMENT: 17,
    Component.GOVERNANCE: 25,
}

FOURPG_SORT_KEYS = tuple(FourPGRow.model_fields)

TOP_PERFORMER_SORT_KEYS = ("component", "ivc")


def performance_tier(pct: Any) -> Optional[PerformanceTier]:
    """Label an unweighted percentage: Elite >= 90, Strong >= 80, Solid >= 70, Fair >= 60."""
    value = parse_score(pct)
    if value is None:
        return None
    if value >= 90:
        return PerformanceTier.ELITE
    if value >= 80:
        return PerformanceTier.STRONG
    if value >= 70:
        return PerformanceTier.SOLID
    if value >= 60:
        return PerformanceTier.FAIR
    return PerformanceTier.NEEDS_WORK


def tier_short(tier: Optional[str]) -> str:
    """``TIER_1`` -> ``T1``, ``TIER_3`` -> ``T3``; other values pass through."""
    if tier == Tier.TIER_1.value:
        return "T1"
    if tier == Tier.TIER_3.value:
        return "T3"
    return tier or ""


def meets_award(row: FourPGRow, award: Union[AwardType, str], component: Optional[Component] = None) -> bool:
    """Whether a row qualifies for an award.

    Overall Excellence needs an Average 4PG of at least 80 and Rising Star one
    in [70, 80). Balanced Performer needs every component average at 70 or
    above. Component Mastery needs at least 80 in ``component`` and never
    matches when no component is chosen.
    """
    award = AwardType(award)
    total = row.avg_total
    if award == AwardType.OVERALL_EXCELLENCE:
        return total is not None and total >= 80
    if award == AwardType.RISING_STAR:
        return total is not None and 70 <= total < 80
    if award == AwardType.BALANCED_PERFORMER:
        return all((row.average(c) or 0.0) >= 70 for c in Component)
    if component is None:
        return False
    score = row.average(component)
    return score is not None and score >= 80


def has_zero_ivc(row: FourPGRow) -> bool:
    """True when any IVC component score is exactly zero. Missing scores do not count."""
    return any(row.ivc(c) == 0 for c in Component)


def filter_fourpg_rows(
    rows: Iterable[FourPGRow],
    company: Optional[str] = None,
    tier: Optional[str] = None,
    component: Optional[Union[Component, str]] = None,
    min_avg: Optional[float] = None,
    award: Optional[Union[AwardType, str]] = None,
    ignore_zero_ivc: bool = False,
) -> list[FourPGRow]:
    """Apply the 4PG table filters, keeping input order.

    Args:
        rows: Parsed 4PG rows.
        company: Case-insensitive substring match on the company name.
        tier: ``T1``/``T3`` or ``TIER_1``/``TIER_3``.
        component: Only keep rows with a numeric average for this component.
        min_avg: Minimum Average 4PG; rows without one are dropped.
        award: Award the row must qualify for.
        ignore_zero_ivc: Drop rows where any IVC component score is exactly 0.
    """
    needle = company.strip().lower() if company else ""
    wanted_tier = tier_short(tier) if tier else ""
    comp = Component(component) if component else None

    kept = []
    for row in rows:
        if needle and needle not in row.company.lower():
            continue
        if wanted_tier and tier_short(row.tier) != wanted_tier:
            continue
        if comp is not None and row.average(comp) is None:
            continue
        if min_avg is not None and (row.avg_total is None or row.avg_total < min_avg):
            continue
        if award and not meets_award(row, award, comp):
            continue
        if ignore_zero_ivc and has_zero_ivc(row):
            continue
        kept.append(row)
    return kept


def sort_fourpg_rows(
    rows: Iterable[FourPGRow],
    key: str = "avg_total",
    direction: Union[SortDirection, str] = SortDirection.DESC,
) -> list[FourPGRow]:
    """Sort the 4PG table by a column. Missing values sort first ascending and last descending.

    Raises:
        ValueError: if ``key`` is not a column of the 4PG table.
    """
    if key not in FOURPG_SORT_KEYS:
        raise ValueError(f"Unknown sort key: {key}. Use one of: {', '.join(FOURPG_SORT_KEYS)}")
    ascending = SortDirection(direction) == SortDirection.ASC
    return sorted(
        rows,
        key=cmp_to_key(lambda a, b: compare_values(getattr(a, key), getattr(b, key), ascending)),
    )


def top_by_component(
    rows: Iterable[FourPGRow],
    by: str = "component",
    direction: Union[SortDirection, str] = SortDirection.DESC,
    limit: Optional[int] = None,
) -> dict[Component, list[TopPerformer]]:
    """Rank companies within each component by average (``by="component"``) or IVC (``by="ivc"``).

    Missing percentages count as zero. Ties keep input order.
    """
    if by not in TOP_PERFORMER_SORT_KEYS:
        raise ValueError(f"Unknown top performer sort: {by}. Use one of: {', '.join(TOP_PERFORMER_SORT_KEYS)}")
    descending = SortDirection(direction) == SortDirection.DESC
    data = list(rows)

    out: dict[Component, list[TopPerformer]] = {}
    for comp in Component:
        performers = [
            TopPerformer(
                component=comp,
                company=row.company,
                score=row.average(comp) or 0.0,
                ivc_pct=row.ivc(comp) or 0.0,
            )
            for row in data
        ]
        performers.sort(key=lambda p: p.ivc_pct if by == "ivc" else p.score, reverse=descending)
        out[comp] = performers[:limit] if limit else performers
    return out


def summarize_fourpg(rows: Iterable[FourPGRow]) -> FourPGSummary:
    """Key stats over the given rows. Means and the median skip missing values."""
    data = list(rows)
    n = len(data)
    if not n:
        return FourPGSummary()

    totals = [r.avg_total for r in data if r.avg_total is not None]
    at_least_80 = sum(1 for v in totals if v >= 80)

    best: Optional[FourPGRow] = None
    for row in data:
        if row.avg_total is not None and (best is None or row.avg_total > best.avg_total):
            best = row

    def mean_of(values: Iterable[Optional[float]]) -> float:
        present = [v for v in values if v is not None]
        return statistics.fmean(present) if present else 0.0

    return FourPGSummary(
        total_companies=n,
        mean_4pg=mean_of(totals),
        median_4pg=statistics.median(totals) if totals else 0.0,
        at_least_80=at_least_80,
        at_least_80_pct=at_least_80 / n * 100,
        best_company=best.company if best else MISSING_LABEL,
        best_4pg=best.avg_total if best else None,
        total_tier1=sum(1 for r in data if r.tier == Tier.TIER_1.value),
        total_tier3=sum(1 for r in data if r.tier == Tier.TIER_3.value),
        component_means={c.value: mean_of(r.average(c) for r in data) for c in Component},
        ivc_mean=mean_of(r.ivc_overall for r in data),
        ieg_mean=mean_of(r.ieg_overall for r in data),
    )
