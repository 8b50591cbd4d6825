"""Fortification band classification for product testing compliance."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Optional

from .models import FortificationBand, parse_score

logger = logging.getLogger(__name__)


def classify_compliance(percentages: Iterable[Any]) -> Optional[FortificationBand]:
    """Map a set of compliance percentages to a fortification descriptor.

    Conditions are checked top-down and the first match wins:

    - every value >= 99: Fully Fortified
    - any value >= 80: Adequately Fortified
    - any value >= 51: Partly Fortified
    - any value >= 31: Inadequately Fortified
    - every value <= 30: Not Fortified

    Percentages may exceed 100. Non-numeric entries are ignored; if nothing
    numeric remains there is no descriptor and None is returned.
    """
    values = [v for v in (parse_score(p) for p in percentages) if v is not None]
    if not values:
        return None

    if all(v >= 99 for v in values):
        return FortificationBand.FULLY
    if any(v >= 80 for v in values):
        return FortificationBand.ADEQUATELY
    if any(v >= 51 for v in values):
        return FortificationBand.PARTLY
    if any(v >= 31 for v in values):
        return FortificationBand.INADEQUATELY
    if all(v <= 30 for v in values):
        return FortificationBand.NOT_FORTIFIED
    # values strictly between 30 and 31 fall between the bands
    return None


def band_for_percentage(pct: Any) -> Optional[FortificationBand]:
    """Classify a single compliance percentage using the published banding table.

    100% and above is fully fortified, 80-99% adequately, 51-79% partly,
    31-50% inadequately, and anything below 31% is not fortified.
    """
    value = parse_score(pct)
    if value is None:
        return None
    if value >= 100:
        return FortificationBand.FULLY
    if value >= 80:
        return FortificationBand.ADEQUATELY
    if value >= 51:
        return FortificationBand.PARTLY
    if value >= 31:
        return FortificationBand.INADEQUATELY
    return FortificationBand.NOT_FORTIFIED


def band_for_product_tests(product_tests: Iterable[Mapping[str, Any]]) -> Optional[FortificationBand]:
    """Classify a brand from its product test records.

    Only the first product test is considered; its ``results`` list carries
    one ``percentage_compliance`` per micronutrient assayed.
    """
    first = next(iter(product_tests), None)
    if not isinstance(first, Mapping):
        return None
    results = first.get("results")
    if not isinstance(results, list):
        return None
    return classify_compliance(
        r.get("percentage_compliance") for r in results if isinstance(r, Mapping)
    )
