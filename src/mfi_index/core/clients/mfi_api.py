"""MFI backend REST API client.

The backend serves raw per-brand metrics for a scoring cycle; all derived
values (final score, rank, band) are computed locally from them.
Authenticated endpoints expect a bearer token.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import TYPE_CHECKING, Any, Optional

import httpx
from pydantic import ValidationError

from ..models import FourPGRow, RawMetric, SatVarianceRow

if TYPE_CHECKING:
    from ...session import AppSession

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
DEFAULT_PAGE_SIZE = 100


def get_api_base() -> str:
    """Base URL of the MFI backend, e.g. ``https://mfi.example.org``."""
    base = os.environ.get("MFI_API_BASE_URL", "")
    if not base:
        raise ValueError("MFI_API_BASE_URL environment variable is required to fetch index data")
    return base.rstrip("/") + API_PREFIX


def _timeout() -> httpx.Timeout:
    return httpx.Timeout(30.0, connect=10.0)


async def _get(
    path: str,
    session: Optional["AppSession"],
    params: Optional[dict] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Any:
    """GET a JSON resource. A 401 clears the session before the error propagates."""
    headers = {"Accept": "application/json, text/plain, */*"}
    if session is not None:
        headers.update(session.authorization_headers())

    async with httpx.AsyncClient(base_url=get_api_base(), timeout=_timeout(), transport=transport) as client:
        response = await client.get(path, params=params, headers=headers)
        if response.status_code == 401 and session is not None and session.authenticated:
            logger.warning("MFI API rejected the session token on %s — logging out", path)
            await session.logout()
        response.raise_for_status()
        return response.json()


def parse_ranking_rows(rows: list[dict]) -> list[RawMetric]:
    """Validate ranking rows, skipping (and logging) any that fail validation."""
    metrics = []
    for row in rows:
        try:
            metrics.append(RawMetric.model_validate(row))
        except ValidationError as exc:
            logger.warning("Skipping malformed ranking row %s: %s", row.get("id") if isinstance(row, dict) else row, exc)
    return metrics


def parse_variance_rows(rows: list[dict]) -> list[SatVarianceRow]:
    """Validate SAT variance rows, skipping (and logging) any that fail validation."""
    parsed = []
    for row in rows:
        try:
            parsed.append(SatVarianceRow.model_validate(row))
        except ValidationError as exc:
            logger.warning("Skipping malformed SAT variance row: %s", exc)
    return parsed


def parse_fourpg_rows(rows: list[dict]) -> list[FourPGRow]:
    """Validate 4PG rows, skipping (and logging) any that fail validation."""
    parsed = []
    for row in rows:
        try:
            parsed.append(FourPGRow.model_validate(row))
        except ValidationError as exc:
            logger.warning("Skipping malformed 4PG row: %s", exc)
    return parsed


async def fetch_index_rankings(
    cycle_id: str,
    session: Optional["AppSession"] = None,
    page_size: int = DEFAULT_PAGE_SIZE,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> list[RawMetric]:
    """Fetch raw per-brand metrics for a cycle from ``/index-ranking-list``.

    Args:
        cycle_id: Scoring cycle identifier.
        session: Authenticated application session supplying the bearer token.
        page_size: Rows per page requested from the backend.

    Returns:
        Validated RawMetric rows, in API order.
    """
    data = await _get(
        "/index-ranking-list",
        session,
        params={"page-size": page_size, "cycle-id": cycle_id},
        transport=transport,
    )
    rows = data.get("results", []) if isinstance(data, dict) else data
    metrics = parse_ranking_rows(rows or [])
    logger.info("Fetched %d ranking rows for cycle %s", len(metrics), cycle_id)
    return metrics


async def fetch_sat_variance(
    cycle_id: str,
    session: Optional["AppSession"] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> list[SatVarianceRow]:
    """Fetch self-reported vs. validated SAT scores from ``/admin/sat-variance``."""
    data = await _get("/admin/sat-variance", session, params={"cycle-id": cycle_id}, transport=transport)
    if not isinstance(data, list):
        logger.warning("Unexpected SAT variance payload shape: %s", type(data).__name__)
        return []
    return parse_variance_rows(data)


async def fetch_fourpg_ranking(
    cycle_id: str,
    session: Optional["AppSession"] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> list[FourPGRow]:
    """Fetch per-company 4PG component scores from ``/admin/4pg-ranking``."""
    data = await _get("/admin/4pg-ranking", session, params={"cycle-id": cycle_id}, transport=transport)
    if not isinstance(data, list):
        logger.warning("Unexpected 4PG payload shape: %s", type(data).__name__)
        return []
    rows = parse_fourpg_rows(data)
    logger.info("Fetched %d 4PG rows for cycle %s", len(rows), cycle_id)
    return rows


async def fetch_dashboard(
    cycle_id: str,
    session: Optional["AppSession"] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> dict[str, list]:
    """Fetch every dashboard panel concurrently.

    Each panel is independent: a failed fetch is logged and leaves that panel
    empty rather than failing the others.
    """
    panels = {
        "rankings": fetch_index_rankings(cycle_id, session, transport=transport),
        "sat_variance": fetch_sat_variance(cycle_id, session, transport=transport),
        "fourpg": fetch_fourpg_ranking(cycle_id, session, transport=transport),
    }
    results = await asyncio.gather(*panels.values(), return_exceptions=True)

    dashboard: dict[str, list] = {}
    for name, result in zip(panels, results):
        if isinstance(result, Exception):
            logger.warning("Failed to fetch %s panel for cycle %s: %s", name, cycle_id, result)
            dashboard[name] = []
        else:
            dashboard[name] = result
    return dashboard
