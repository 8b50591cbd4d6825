"""CSV export of the ranking, SAT variance and 4PG tables."""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable
from typing import Optional

from .fourpg import tier_short
from .models import MISSING_LABEL, Component, FourPGRow, SatVarianceRow, ScoreRecord, TopPerformer

RANKING_HEADERS = [
    "Brand",
    "Company Name",
    "Sector",
    "SAT Type",
    "Weighted SAT Score",
    "Weighted PT Score",
    "Weighted IEG Score",
    "Final MFI Score",
    "Ranking",
]

VARIANCE_HEADERS = [
    "Company",
    "Tier",
    "Self Score (%)",
    "Validated Score (%)",
    "Variance (%)",
]

FOURPG_HEADERS = [
    "Company Name",
    "T",
    "Validated Scores (%)",
    "IVC Personnel (%)",
    "IVC Production (%)",
    "IVC Procurement and Suppliers (%)",
    "IVC Public Engagement (%)",
    "IVC Governance (%)",
    "Industry Expert Group (%)",
    "IEG Personnel (%)",
    "IEG Production (%)",
    "IEG Procurement and Suppliers (%)",
    "IEG Public Engagement",
    "IEG Governance",
    "Average Personnel (%)",
    "Average Production (%)",
    "Average Procurement and Suppliers (%)",
    "Average Public Engagement (%)",
    "Average Governance (%)",
    "Average 4PG",
]

TOP_PERFORMER_HEADERS = ["Component", "Company", "Avg Component (%)", "Ranked IVC (%)"]

RANKING_FILENAME = "mfi_index_rankings.csv"
VARIANCE_FILENAME = "sat_variance_all.csv"
VARIANCE_FLAGGED_FILENAME = "sat_variance_flagged.csv"
FOURPG_FILENAME = "4pg_ranking_{cycle_id}.csv"
TOP_PERFORMERS_FILENAME = "top_performers_{cycle_id}.csv"


def _fmt(value: Optional[float]) -> str:
    return f"{(value or 0.0):.2f}"


def _write(headers: list[str], rows: Iterable[list]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(headers)
    writer.writerows(rows)
    return buffer.getvalue()


def export_rankings_csv(records: Iterable[ScoreRecord]) -> str:
    """Render ranked records as CSV text, one row per brand in the given order."""
    return _write(RANKING_HEADERS, (
        [
            r.entity_name,
            r.company_name,
            r.sector_label or MISSING_LABEL,
            r.tier or MISSING_LABEL,
            _fmt(r.sat_weighted),
            _fmt(r.pt_weighted),
            _fmt(r.ieg_weighted),
            _fmt(r.final_score),
            r.rank,
        ]
        for r in records
    ))


def export_variance_csv(rows: Iterable[SatVarianceRow]) -> str:
    """Render SAT variance rows as CSV text. Missing numbers are written as 0.00."""
    return _write(VARIANCE_HEADERS, (
        [
            r.company,
            r.tier or "",
            _fmt(r.self_score),
            _fmt(r.validated_score),
            _fmt(r.variance_pct),
        ]
        for r in rows
    ))


def _fmt_optional(value: Optional[float]) -> str:
    return "" if value is None else f"{value:.2f}"


def export_fourpg_csv(rows: Iterable[FourPGRow]) -> str:
    """Render 4PG rows as CSV text. Tiers are shortened to T1/T3 and missing scores left blank."""
    return _write(FOURPG_HEADERS, (
        [r.company, tier_short(r.tier)]
        + [_fmt_optional(r.ivc_overall)]
        + [_fmt_optional(r.ivc(c)) for c in Component]
        + [_fmt_optional(r.ieg_overall)]
        + [_fmt_optional(r.ieg(c)) for c in Component]
        + [_fmt_optional(r.average(c)) for c in Component]
        + [_fmt_optional(r.avg_total)]
        for r in rows
    ))


def export_top_performers_csv(performers: dict[Component, list[TopPerformer]]) -> str:
    """Render per-component top performers as CSV text, one section per component in order."""
    return _write(TOP_PERFORMER_HEADERS, (
        [p.component.value, p.company, f"{p.score:.1f}", f"{p.ivc_pct:.1f}"]
        for comp in Component
        for p in performers.get(comp, [])
    ))
