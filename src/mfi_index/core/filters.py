"""Filtering and column sorting for the ranking table."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from functools import cmp_to_key
from typing import Any, Optional, Union

from .models import RawMetric, ScoreRecord, SortDirection

logger = logging.getLogger(__name__)

# Table column -> ScoreRecord attribute
SORT_KEYS: dict[str, str] = {
    "brand": "entity_name",
    "company": "company_name",
    "sector": "sector_label",
    "satType": "tier",
    "satScore": "sat_weighted",
    "ptScore": "pt_weighted",
    "iegScore": "ieg_weighted",
    "finalScore": "final_score",
    "rank": "rank",
}


def filter_metrics(
    metrics: Iterable[RawMetric],
    sector: Optional[str] = None,
    sat_type: Optional[str] = None,
    company: Optional[str] = None,
) -> list[RawMetric]:
    """Apply the dashboard filters to raw metrics before ranking.

    Sector and SAT type match exactly; company is a case-insensitive substring
    match. Empty or None filters match everything.
    """
    needle = company.lower() if company else ""
    kept = []
    for m in metrics:
        if sector and (m.sector or "") != sector:
            continue
        if sat_type and (m.tier or "") != sat_type:
            continue
        if needle and needle not in m.company_name.lower():
            continue
        kept.append(m)
    return kept


def _is_missing(value: Any) -> bool:
    return value is None or value == ""


def compare_values(a: Any, b: Any, ascending: bool) -> int:
    """Three-way compare for table sorting; missing values sort first ascending."""
    a_missing, b_missing = _is_missing(a), _is_missing(b)
    if a_missing and b_missing:
        return 0
    if a_missing:
        return -1 if ascending else 1
    if b_missing:
        return 1 if ascending else -1

    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        result = (a > b) - (a < b)
    else:
        left, right = str(a).lower(), str(b).lower()
        result = (left > right) - (left < right)
    return result if ascending else -result


def sort_records(
    records: Iterable[ScoreRecord],
    key: str = "rank",
    direction: Union[SortDirection, str] = SortDirection.ASC,
) -> list[ScoreRecord]:
    """Sort ranked records by a table column.

    Missing values sort first ascending and last descending. Numbers compare
    numerically, everything else as lower-cased strings. The sort is stable.

    Raises:
        ValueError: if ``key`` is not a sortable column.
    """
    attr = SORT_KEYS.get(key)
    if attr is None:
        raise ValueError(f"Unknown sort key: {key}. Use one of: {', '.join(SORT_KEYS)}")
    ascending = SortDirection(direction) == SortDirection.ASC

    return sorted(
        records,
        key=cmp_to_key(lambda x, y: compare_values(getattr(x, attr), getattr(y, attr), ascending)),
    )
