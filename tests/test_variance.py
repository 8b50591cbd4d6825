import pytest

from mfi_index.core.models import SatVarianceRow
from mfi_index.core.variance import (
    filter_variance_rows,
    flag_outliers,
    sort_variance_rows,
    summarize_variance,
)


def _rows():
    payload = [
        {"company_name": "Golden Mills", "tier": "TIER_1", "selfScore": 80, "validatedScore": 72, "variance": 8, "variancePct": 10},
        {"company_name": "Harvest Foods", "tier": "TIER_3", "selfScore": 60, "validatedScore": 58, "variance": 2, "variancePct": 3.3},
        {"company_name": "Sunrise Agro", "tier": "TIER_1", "selfScore": 90, "validatedScore": 0, "variance": 90, "variancePct": 100},
        {"company_name": "FlourCo", "tier": None, "selfScore": "N/A", "validatedScore": 50, "variance": None, "variancePct": None},
    ]
    return [SatVarianceRow.model_validate(p) for p in payload]


def test_flag_outliers_strictly_above_threshold():
    assert [r.company for r in flag_outliers(_rows(), 5)] == ["Golden Mills", "Sunrise Agro"]
    assert [r.company for r in flag_outliers(_rows(), 10)] == ["Sunrise Agro"]


def test_summary():
    summary = summarize_variance(_rows(), 5)
    assert summary.total_companies == 4
    assert summary.total_flagged == 2
    assert summary.avg_self_score == pytest.approx((80 + 60 + 90) / 4)
    assert summary.avg_validated_score == pytest.approx((72 + 58 + 50) / 4)
    assert summary.median_variance == 10
    assert summary.highest_sat_company == "Sunrise Agro"
    assert summary.highest_ivc_company == "Golden Mills"
    # Sunrise Agro has a zero validated score, so it is not comparable
    assert summary.biggest_variance_company == "Golden Mills"
    assert summary.smallest_variance_company == "Harvest Foods"
    assert summary.outlier_rate == 50


def test_summary_of_nothing():
    summary = summarize_variance([], 5)
    assert summary.total_companies == 0
    assert summary.highest_sat_company == "—"


def test_filter_rows():
    assert [r.company for r in filter_variance_rows(_rows(), company=" golden ")] == ["Golden Mills"]
    flagged = filter_variance_rows(_rows(), only_flagged=True, threshold=5)
    assert len(flagged) == 2


def test_sort_rows():
    rows = sort_variance_rows(_rows(), "variance_pct", "asc")
    assert [r.company for r in rows] == ["FlourCo", "Harvest Foods", "Golden Mills", "Sunrise Agro"]
    rows = sort_variance_rows(_rows(), "company", "desc")
    assert rows[0].company == "Sunrise Agro"
    with pytest.raises(ValueError):
        sort_variance_rows(_rows(), "score")
