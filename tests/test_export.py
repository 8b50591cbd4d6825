from mfi_index.core.export import (
    FOURPG_HEADERS,
    RANKING_HEADERS,
    export_fourpg_csv,
    export_rankings_csv,
    export_top_performers_csv,
    export_variance_csv,
)
from mfi_index.core.fourpg import top_by_component
from mfi_index.core.models import Component, FourPGRow, SatVarianceRow
from mfi_index.core.scoring import rank_scores


def test_rankings_csv():
    records = rank_scores([
        {"id": 1, "name": "NutriFlour", "company_name": "Golden Mills, Ltd", "sector": "Flour",
         "tier": "TIER_1", "ivc": 40, "pt": 15.5, "ieg": 15.72},
        {"id": 2, "name": "Plain", "company_name": "Nameless", "ivc": 10},
    ])
    lines = export_rankings_csv(records).splitlines()
    assert lines[0] == ",".join(RANKING_HEADERS)
    assert lines[1] == 'NutriFlour,"Golden Mills, Ltd",Flour,TIER_1,40.00,15.50,15.72,71.22,1'
    assert lines[2] == "Plain,Nameless,—,—,10.00,0.00,0.00,10.00,2"
    assert len(lines) == 3


def test_rankings_csv_empty():
    assert export_rankings_csv([]) == ",".join(RANKING_HEADERS) + "\n"


def test_variance_csv():
    rows = [SatVarianceRow.model_validate(
        {"company_name": "Golden Mills", "tier": "TIER_1", "selfScore": 80, "validatedScore": 72.4567, "variancePct": 10}
    ), SatVarianceRow(company="FlourCo")]
    lines = export_variance_csv(rows).splitlines()
    assert lines[0] == "Company,Tier,Self Score (%),Validated Score (%),Variance (%)"
    assert lines[1] == "Golden Mills,TIER_1,80.00,72.46,10.00"
    assert lines[2] == "FlourCo,,0.00,0.00,0.00"


def test_quotes_commas_and_quotes_in_names():
    records = rank_scores([{"id": 1, "name": 'Brand "Gold"', "company_name": "Mills, Sons & Co", "ivc": 10}])
    lines = export_rankings_csv(records).splitlines()
    assert lines[1].startswith('"Brand ""Gold""","Mills, Sons & Co",')

    rows = [SatVarianceRow(company='Acme "East", Ltd', self_score=1, validated_score=1, variance_pct=0)]
    assert export_variance_csv(rows).splitlines()[1] == '"Acme ""East"", Ltd",,1.00,1.00,0.00'


def test_fourpg_csv():
    rows = [
        FourPGRow.model_validate({"Company Name": "Golden Mills", "TIER": "TIER_1", "Validated Scores (%)": 81,
                                  "IVC Personnel (%)": 90.5, "Average 4PG": 84.25}),
        FourPGRow.model_validate({"Company Name": "Other", "TIER": "TIER_2"}),
    ]
    lines = export_fourpg_csv(rows).splitlines()
    assert lines[0].split(",") == FOURPG_HEADERS
    golden = lines[1].split(",")
    assert golden[:4] == ["Golden Mills", "T1", "81.00", "90.50"]
    assert golden[-1] == "84.25"
    assert golden[4:-1] == [""] * 15
    assert lines[2] == "Other,TIER_2" + "," * 18


def test_top_performers_csv():
    rows = [
        FourPGRow(company="A", avg_governance=75, ivc_governance=70),
        FourPGRow(company="B", avg_governance=92.4, ivc_governance=88),
    ]
    top = top_by_component(rows, limit=1)
    lines = export_top_performers_csv({Component.GOVERNANCE: top[Component.GOVERNANCE]}).splitlines()
    assert lines == ["Component,Company,Avg Component (%),Ranked IVC (%)", "Governance,B,92.4,88.0"]
