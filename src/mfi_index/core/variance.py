"""SAT variance analysis — self-reported vs. IVC-validated scores.

A large gap between what a company reports in its self-assessment and what
the independent verifier validates is a data-quality flag. Rows whose
variance percentage exceeds a threshold are treated as outliers.
"""

from __future__ import annotations

import logging
import statistics
from collections.abc import Iterable
from functools import cmp_to_key
from typing import Optional, Union

from .filters import compare_values
from .models import MISSING_LABEL, SatVarianceRow, SortDirection, VarianceSummary

logger = logging.getLogger(__name__)

DEFAULT_VARIANCE_THRESHOLD = 5.0

VARIANCE_SORT_KEYS = ("company", "tier", "self_score", "validated_score", "variance", "variance_pct")


def is_flagged(row: SatVarianceRow, threshold: float = DEFAULT_VARIANCE_THRESHOLD) -> bool:
    """A row is flagged when its variance percentage is known and strictly above the threshold."""
    return row.variance_pct is not None and row.variance_pct > threshold


def flag_outliers(
    rows: Iterable[SatVarianceRow],
    threshold: float = DEFAULT_VARIANCE_THRESHOLD,
) -> list[SatVarianceRow]:
    """Return only the rows above the variance threshold, in input order."""
    return [r for r in rows if is_flagged(r, threshold)]


def filter_variance_rows(
    rows: Iterable[SatVarianceRow],
    company: Optional[str] = None,
    only_flagged: bool = False,
    threshold: float = DEFAULT_VARIANCE_THRESHOLD,
) -> list[SatVarianceRow]:
    """Apply the company search and the "flagged only" toggle."""
    needle = company.strip().lower() if company else ""
    kept = []
    for r in rows:
        if needle and needle not in r.company.lower():
            continue
        if only_flagged and not is_flagged(r, threshold):
            continue
        kept.append(r)
    return kept


def summarize_variance(
    rows: Iterable[SatVarianceRow],
    threshold: float = DEFAULT_VARIANCE_THRESHOLD,
) -> VarianceSummary:
    """Compute the SAT variance headline statistics.

    Averages of self and validated scores treat missing values as zero and
    divide by the number of companies. Variance mean and median use only rows
    with a known variance. The smallest and biggest variance are picked from
    rows where both scores are non-zero.
    """
    data = list(rows)
    total = len(data)
    if not total:
        return VarianceSummary(threshold=threshold)

    flagged = sum(1 for r in data if is_flagged(r, threshold))
    variances = sorted(r.variance_pct for r in data if r.variance_pct is not None)

    highest_sat = data[0]
    highest_ivc = data[0]
    for r in data[1:]:
        if (r.self_score or 0.0) > (highest_sat.self_score or 0.0):
            highest_sat = r
        if (r.validated_score or 0.0) > (highest_ivc.validated_score or 0.0):
            highest_ivc = r

    comparable = [
        r for r in data
        if r.variance_pct is not None and r.self_score and r.validated_score
    ]
    smallest = min(comparable, key=lambda r: r.variance_pct, default=None)
    biggest = max(comparable, key=lambda r: r.variance_pct, default=None)

    return VarianceSummary(
        threshold=threshold,
        total_companies=total,
        total_flagged=flagged,
        avg_self_score=sum(r.self_score or 0.0 for r in data) / total,
        avg_validated_score=sum(r.validated_score or 0.0 for r in data) / total,
        avg_variance=statistics.fmean(variances) if variances else 0.0,
        median_variance=statistics.median(variances) if variances else 0.0,
        highest_sat_company=highest_sat.company or MISSING_LABEL,
        highest_sat=highest_sat.self_score or 0.0,
        highest_ivc_company=highest_ivc.company or MISSING_LABEL,
        highest_ivc=highest_ivc.validated_score or 0.0,
        smallest_variance_company=smallest.company if smallest else MISSING_LABEL,
        smallest_variance=smallest.variance_pct if smallest else 0.0,
        biggest_variance_company=biggest.company if biggest else MISSING_LABEL,
        biggest_variance=biggest.variance_pct if biggest else 0.0,
        outlier_rate=flagged / total * 100,
    )


def sort_variance_rows(
    rows: Iterable[SatVarianceRow],
    key: str = "variance_pct",
    direction: Union[SortDirection, str] = SortDirection.ASC,
) -> list[SatVarianceRow]:
    """Sort the variance table by a column, missing values first when ascending.

    Raises:
        ValueError: if ``key`` is not a sortable column.
    """
    if key not in VARIANCE_SORT_KEYS:
        raise ValueError(f"Unknown sort key: {key}. Use one of: {', '.join(VARIANCE_SORT_KEYS)}")
    ascending = SortDirection(direction) == SortDirection.ASC
    return sorted(
        rows,
        key=cmp_to_key(lambda a, b: compare_values(getattr(a, key), getattr(b, key), ascending)),
    )
