"""MFI Index MCP App Server.

FastMCP server exposing index rankings, fortification bands, SAT variance
analysis and the 4PG ranking as tools, plus the MCP Apps interactive UI.
Run: mfi-index-mcp
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from . import get_app_html
from .core.banding import band_for_percentage, classify_compliance
from .core.clients import mfi_api
from .core.export import (
    FOURPG_FILENAME,
    TOP_PERFORMERS_FILENAME,
    RANKING_FILENAME,
    VARIANCE_FILENAME,
    VARIANCE_FLAGGED_FILENAME,
    export_fourpg_csv,
    export_rankings_csv,
    export_top_performers_csv,
    export_variance_csv,
)
from .core.filters import filter_metrics, sort_records
from .core.fourpg import (
    filter_fourpg_rows,
    performance_tier,
    sort_fourpg_rows,
    summarize_fourpg,
    top_by_component,
)
from .core.scoring import rank_scores, summarize_index
from .core.variance import (
    DEFAULT_VARIANCE_THRESHOLD,
    filter_variance_rows,
    flag_outliers,
    sort_variance_rows,
    summarize_variance,
)
from .db import close_store, open_store
from .session import AppSession

logger = logging.getLogger(__name__)

MCP_APP_MIME = "text/html;profile=mcp-app"

READ_ONLY = ToolAnnotations(readOnlyHint=True, destructiveHint=False, idempotentHint=True, openWorldHint=True)

session = AppSession()


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[None]:
    """Initialize the session store and restore the persisted login; close it on shutdown."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    await open_store()
    await session.hydrate()
    try:
        yield
    finally:
        await close_store()


mcp = FastMCP(
    "MFI Index",
    instructions="Rank food brands on the Micronutrient Fortification Index. Composite scores combine weighted SAT (60%), product testing (20%) and IEG (20%) scores.",
    lifespan=lifespan,
)


def _get_variance_threshold(threshold: Optional[float]) -> float:
    if threshold is not None:
        return threshold
    raw = os.environ.get("MFI_VARIANCE_THRESHOLD", "")
    if not raw:
        return DEFAULT_VARIANCE_THRESHOLD
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"MFI_VARIANCE_THRESHOLD must be a number, got {raw!r}")


async def _ranked_records(cycle_id: str, sector: str, sat_type: str, company: str, sort_key: str, direction: str):
    metrics = await mfi_api.fetch_index_rankings(cycle_id, session)
    filtered = filter_metrics(metrics, sector=sector, sat_type=sat_type, company=company)
    return sort_records(rank_scores(filtered), sort_key, direction)


# ─── MCP Apps UI Resource ─────────────────────────────────────────────────────

APP_RESOURCE_URI = "ui://mfi-index/app"


@mcp.resource(
    APP_RESOURCE_URI,
    mime_type=MCP_APP_MIME,
)
def app_ui() -> str:
    """MFI Index — interactive rankings, variance and banding views."""
    return get_app_html()


# ─── Tool 1: Index Rankings ──────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY, meta={"ui": {"resourceUri": APP_RESOURCE_URI}})
async def mfi_index_rankings(
    cycle_id: str,
    sector: str = "",
    sat_type: str = "",
    company: str = "",
    sort_key: str = "rank",
    direction: str = "asc",
) -> dict:
    """Brands ranked by final MFI score (weighted SAT + product testing + IEG).

    Each brand also carries the fortification band of its first product test.

    Args:
        cycle_id: Scoring cycle ID.
        sector: Only include this sector, e.g. 'Edible Oil', 'Sugar', 'Flour'.
        sat_type: Only include this SAT tier, e.g. 'TIER_1', 'TIER_3'.
        company: Case-insensitive company name search.
        sort_key: Column to sort by: brand, company, sector, satType, satScore,
                  ptScore, iegScore, finalScore, rank. Default 'rank'.
        direction: 'asc' or 'desc'. Default 'asc'.
    """
    records = await _ranked_records(cycle_id, sector, sat_type, company, sort_key, direction)
    summary = summarize_index(records)
    incomplete = [r for r in records if r.is_incomplete]

    if records:
        text = (
            f"{summary.count} brands ranked. Top brand: {summary.top_brand} ({summary.top_brand_score:.2f}). "
            f"Top sector: {summary.top_sector} (avg {summary.top_sector_avg:.2f}). "
            f"Average MFI score: {summary.avg_final:.2f}."
        )
        if incomplete:
            text += f" {len(incomplete)} brand(s) have incomplete scores."
    else:
        text = f"No brands found for cycle {cycle_id} with the given filters."

    return {
        "title": "MFI Index Rankings",
        "cycle_id": cycle_id,
        "metrics": summary.model_dump(),
        "rankings": [r.model_dump(mode="json") for r in records],
        "incomplete_count": len(incomplete),
        "summary": text,
    }


# ─── Tool 2: Export Rankings ─────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def mfi_index_export(
    cycle_id: str,
    sector: str = "",
    sat_type: str = "",
    company: str = "",
    sort_key: str = "rank",
    direction: str = "asc",
) -> dict:
    """The ranking table as CSV, with the same filters and sort as mfi_index_rankings.

    Args:
        cycle_id: Scoring cycle ID.
        sector: Sector filter.
        sat_type: SAT tier filter.
        company: Company name search.
        sort_key: Column to sort by. Default 'rank'.
        direction: 'asc' or 'desc'. Default 'asc'.
    """
    records = await _ranked_records(cycle_id, sector, sat_type, company, sort_key, direction)
    return {
        "filename": RANKING_FILENAME,
        "content_type": "text/csv;charset=utf-8",
        "rows": len(records),
        "csv": export_rankings_csv(records),
    }


# ─── Tool 3: Fortification Band ──────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def mfi_classify_band(percentages: list[float]) -> dict:
    """Fortification descriptor for a product's micronutrient compliance percentages.

    Also returns the banding-table band of each percentage on its own.

    Args:
        percentages: One compliance percentage per micronutrient assayed (may exceed 100).
    """
    band = classify_compliance(percentages)
    table_bands = [band_for_percentage(p) for p in percentages]
    return {
        "percentages": percentages,
        "descriptor": band.value if band else None,
        "table_bands": [b.value if b else None for b in table_bands],
        "summary": f"Descriptor: {band.value}" if band else "No descriptor — no numeric compliance values given.",
    }


# ─── Tool 4: SAT Variance ────────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def mfi_sat_variance(
    cycle_id: str,
    threshold: Optional[float] = None,
    company: str = "",
    only_flagged: bool = False,
    sort_key: str = "variance_pct",
    direction: str = "asc",
) -> dict:
    """Self-reported vs. IVC-validated SAT scores, flagging large variances.

    Args:
        cycle_id: Scoring cycle ID.
        threshold: Variance percentage above which a company is flagged. Default 5.
        company: Case-insensitive company name search.
        only_flagged: Only return flagged companies.
        sort_key: company, tier, self_score, validated_score, variance or variance_pct.
        direction: 'asc' or 'desc'. Default 'asc'.
    """
    limit = _get_variance_threshold(threshold)
    rows = await mfi_api.fetch_sat_variance(cycle_id, session)
    summary = summarize_variance(rows, limit)
    visible = sort_variance_rows(
        filter_variance_rows(rows, company=company, only_flagged=only_flagged, threshold=limit),
        sort_key,
        direction,
    )

    return {
        "title": "SAT Variance",
        "cycle_id": cycle_id,
        "threshold": limit,
        "metrics": summary.model_dump(),
        "rows": [r.model_dump() for r in visible],
        "summary": (
            f"{summary.total_flagged} of {summary.total_companies} companies exceed a {limit:g}% variance "
            f"({summary.outlier_rate:.2f}% outlier rate). Median variance: {summary.median_variance:.2f}%."
        ),
    }


# ─── Tool 5: Export SAT Variance ─────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def mfi_sat_variance_export(
    cycle_id: str,
    flagged_only: bool = False,
    threshold: Optional[float] = None,
) -> dict:
    """The SAT variance table as CSV — all companies, or only the flagged ones.

    Args:
        cycle_id: Scoring cycle ID.
        flagged_only: Export only companies above the variance threshold.
        threshold: Variance percentage threshold. Default 5.
    """
    limit = _get_variance_threshold(threshold)
    rows = await mfi_api.fetch_sat_variance(cycle_id, session)
    if flagged_only:
        rows = flag_outliers(rows, limit)
    return {
        "filename": VARIANCE_FLAGGED_FILENAME if flagged_only else VARIANCE_FILENAME,
        "content_type": "text/csv;charset=utf-8",
        "rows": len(rows),
        "csv": export_variance_csv(rows),
    }


# ─── Tool 6: 4PG Ranking ─────────────────────────────────────────────────────


def _fourpg_view(rows, company, tier, component, min_avg, award, ignore_zero_ivc, sort_key, direction):
    filtered = filter_fourpg_rows(
        rows,
        company=company,
        tier=tier,
        component=component or None,
        min_avg=min_avg,
        award=award or None,
        ignore_zero_ivc=ignore_zero_ivc,
    )
    return sort_fourpg_rows(filtered, sort_key, direction)


@mcp.tool(annotations=READ_ONLY)
async def mfi_4pg_ranking(
    cycle_id: str,
    company: str = "",
    tier: str = "",
    component: str = "",
    min_avg: Optional[float] = None,
    award: str = "",
    ignore_zero_ivc: bool = False,
    sort_key: str = "avg_total",
    direction: str = "desc",
    top_by: str = "component",
    top_limit: Optional[int] = 10,
) -> dict:
    """Companies ranked on the 4PG components (Personnel, Production, Procurement, Public Engagement, Governance).

    Args:
        cycle_id: Scoring cycle ID.
        company: Case-insensitive company name search.
        tier: 'T1' or 'T3' (or 'TIER_1' / 'TIER_3').
        component: Only keep companies scored on this component, e.g. 'Governance'.
        min_avg: Minimum Average 4PG percentage.
        award: 'Overall Excellence', 'Rising Star', 'Balanced Performer' or
               'Component Mastery' (needs a component).
        ignore_zero_ivc: Drop companies with any IVC component score of exactly 0.
        sort_key: 4PG column to sort by. Default 'avg_total'.
        direction: 'asc' or 'desc'. Default 'desc'.
        top_by: Rank top performers by 'component' average or 'ivc'.
        top_limit: Top performers kept per component. Default 10.
    """
    rows = await mfi_api.fetch_fourpg_ranking(cycle_id, session)
    visible = _fourpg_view(rows, company, tier, component, min_avg, award, ignore_zero_ivc, sort_key, direction)
    summary = summarize_fourpg(visible)
    top = top_by_component(visible, by=top_by, limit=top_limit)

    ranking = []
    for row in visible:
        tier_label = performance_tier(row.avg_total)
        ranking.append({**row.model_dump(), "performance_tier": tier_label.value if tier_label else None})

    if visible:
        text = (
            f"{summary.total_companies} companies. Average 4PG {summary.mean_4pg:.1f}% "
            f"(median {summary.median_4pg:.1f}%); {summary.at_least_80} at or above 80%. "
            f"Best: {summary.best_company}."
        )
    else:
        text = f"No 4PG rows for cycle {cycle_id} with the given filters."

    return {
        "title": "4PG Ranking",
        "cycle_id": cycle_id,
        "metrics": summary.model_dump(),
        "ranking": ranking,
        "top_performers": {
            comp.value: [p.model_dump(mode="json") for p in performers] for comp, performers in top.items()
        },
        "summary": text,
    }


# ─── Tool 7: Export 4PG ──────────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def mfi_4pg_export(
    cycle_id: str,
    kind: str = "ranking",
    company: str = "",
    tier: str = "",
    component: str = "",
    min_avg: Optional[float] = None,
    award: str = "",
    ignore_zero_ivc: bool = False,
    sort_key: str = "avg_total",
    direction: str = "desc",
    top_limit: Optional[int] = None,
) -> dict:
    """The 4PG table, or the per-component top performers, as CSV.

    Args:
        cycle_id: Scoring cycle ID.
        kind: 'ranking' for the 4PG table or 'top_performers'.
        company: Company name search.
        tier: 'T1' or 'T3'.
        component: Component filter.
        min_avg: Minimum Average 4PG percentage.
        award: Award filter.
        ignore_zero_ivc: Drop companies with a zero IVC component score.
        sort_key: 4PG column to sort by. Default 'avg_total'.
        direction: 'asc' or 'desc'. Default 'desc'.
        top_limit: Top performers kept per component (top_performers only).
    """
    if kind not in ("ranking", "top_performers"):
        raise ValueError(f"Unknown export kind: {kind}. Use 'ranking' or 'top_performers'")
    rows = await mfi_api.fetch_fourpg_ranking(cycle_id, session)
    visible = _fourpg_view(rows, company, tier, component, min_avg, award, ignore_zero_ivc, sort_key, direction)

    if kind == "ranking":
        filename, csv_text = FOURPG_FILENAME.format(cycle_id=cycle_id), export_fourpg_csv(visible)
    else:
        top = top_by_component(visible, limit=top_limit)
        if component:
            top = {comp: performers for comp, performers in top.items() if comp.value == component}
        filename = TOP_PERFORMERS_FILENAME.format(cycle_id=cycle_id)
        csv_text = export_top_performers_csv(top)

    return {
        "filename": filename,
        "content_type": "text/csv;charset=utf-8",
        "rows": len(visible),
        "csv": csv_text,
    }


# ─── Tool 8: Dashboard ───────────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def mfi_dashboard(cycle_id: str) -> dict:
    """Headline metrics from every dashboard panel (index, SAT variance, 4PG) in one call.

    Panels are fetched concurrently; a panel whose fetch fails is reported empty.

    Args:
        cycle_id: Scoring cycle ID.
    """
    panels = await mfi_api.fetch_dashboard(cycle_id, session)
    records = list(rank_scores(panels["rankings"]))
    index_summary = summarize_index(records)
    variance_summary = summarize_variance(panels["sat_variance"], _get_variance_threshold(None))
    fourpg_summary = summarize_fourpg(panels["fourpg"])

    return {
        "title": "MFI Dashboard",
        "cycle_id": cycle_id,
        "index": index_summary.model_dump(),
        "sat_variance": variance_summary.model_dump(),
        "fourpg": fourpg_summary.model_dump(),
        "summary": (
            f"{index_summary.count} brands ranked (top: {index_summary.top_brand}); "
            f"{variance_summary.total_flagged} of {variance_summary.total_companies} companies flagged for SAT variance; "
            f"{fourpg_summary.total_companies} companies in the 4PG ranking."
        ),
    }


# ─── Tool 9-10: Session ──────────────────────────────────────────────────────


@mcp.tool()
async def mfi_login(token: str) -> dict:
    """Store an MFI API bearer token for subsequent calls.

    Args:
        token: Bearer token issued by the MFI backend.
    """
    await session.login(token)
    return {"authenticated": session.authenticated, "summary": "Logged in to the MFI API."}


@mcp.tool()
async def mfi_logout() -> dict:
    """Forget the stored MFI API token."""
    await session.logout()
    return {"authenticated": session.authenticated, "summary": "Logged out of the MFI API."}


def main():
    """Entry point for the CLI command."""
    mcp.run()


if __name__ == "__main__":
    main()
