"""Pydantic data models — the shared business objects.

The API client, the scoring engine and the MCP server all exchange these
models. Raw payloads are validated into ``RawMetric`` at the API boundary;
everything downstream works with typed records.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MISSING_LABEL = "—"


class Tier(str, Enum):
    """Company size/scope classification driving which SAT questions apply."""

    TIER_1 = "TIER_1"
    TIER_2 = "TIER_2"
    TIER_3 = "TIER_3"


class FortificationBand(str, Enum):
    """Qualitative fortification descriptor for product testing compliance."""

    FULLY = "Fully Fortified"
    ADEQUATELY = "Adequately Fortified"
    PARTLY = "Partly Fortified"
    INADEQUATELY = "Inadequately Fortified"
    NOT_FORTIFIED = "Not Fortified"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class Component(str, Enum):
    """The five 4PG assessment components."""

    PERSONNEL = "Personnel"
    PRODUCTION = "Production"
    PROCUREMENT = "Procurement and Suppliers"
    PUBLIC_ENGAGEMENT = "Public Engagement"
    GOVERNANCE = "Governance"


class PerformanceTier(str, Enum):
    """Unweighted performance label for a 4PG percentage."""

    ELITE = "Elite"
    STRONG = "Strong"
    SOLID = "Solid"
    FAIR = "Fair"
    NEEDS_WORK = "Needs Work"


class AwardType(str, Enum):
    OVERALL_EXCELLENCE = "Overall Excellence"
    RISING_STAR = "Rising Star"
    BALANCED_PERFORMER = "Balanced Performer"
    COMPONENT_MASTERY = "Component Mastery"


def parse_score(value: Any) -> Optional[float]:
    """Parse a raw sub-score into a float, or None when it is not a number.

    Blank strings, ``N/A``, booleans and NaN are all treated as missing.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text or text.upper() == "N/A":
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if number != number:
        return None
    return number


def is_incomplete(value: Any) -> bool:
    """True when a raw sub-score should carry the "incomplete" badge.

    Missing, blank, ``N/A``, non-numeric and zero values are all incomplete.
    """
    parsed = parse_score(value)
    return parsed is None or parsed == 0


def is_blank_label(value: Any) -> bool:
    if value is None:
        return True
    text = str(value).strip()
    return not text or text.upper() == "N/A"


class RawMetric(BaseModel):
    """One row of the ``/index-ranking-list`` payload, validated at the boundary.

    The backend nests the sector under ``productType.name`` and the product
    testing score under ``productTests[0].fortification.score``; both are
    flattened here. Sub-scores stay ``None`` when the API did not supply a
    usable number.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    entity_id: str = Field(default="", alias="id")
    entity_name: str = Field(default="", alias="name")
    company_name: str = ""
    sector: Optional[str] = None
    tier: Optional[str] = None
    sat: Optional[float] = Field(default=None, alias="ivc")
    pt: Optional[float] = None
    ieg: Optional[float] = None
    product_tests: list[dict] = Field(default_factory=list, alias="productTests")
    incomplete: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _flatten_payload(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)

        product_type = data.get("productType")
        if isinstance(product_type, dict) and product_type.get("name"):
            data["sector"] = product_type["name"]
        if not data.get("tier") and data.get("satType"):
            data["tier"] = data["satType"]

        tests = data.pop("productTests", data.pop("product_tests", None))
        # anything other than a list of objects carries no usable test
        tests = [t for t in tests if isinstance(t, dict)] if isinstance(tests, list) else []
        data["productTests"] = tests

        if "pt" not in data:
            fortification = tests[0].get("fortification") if tests else None
            data["pt"] = fortification.get("score") if isinstance(fortification, dict) else None

        raw_sat = data.get("ivc", data.get("sat"))
        flagged = []
        for field_name, raw in (("sat", raw_sat), ("pt", data.get("pt")), ("ieg", data.get("ieg"))):
            if is_incomplete(raw):
                flagged.append(field_name)
        if is_blank_label(data.get("sector")):
            flagged.append("sector")
        if is_blank_label(data.get("tier")):
            flagged.append("tier")
        if not isinstance(data.get("incomplete"), list):
            data["incomplete"] = flagged
        else:
            data["incomplete"] = [str(f) for f in data["incomplete"]]

        if "ivc" in data:
            data["ivc"] = parse_score(data["ivc"])
        elif "sat" in data:
            data["sat"] = parse_score(data["sat"])
        data["pt"] = parse_score(data.get("pt"))
        data["ieg"] = parse_score(data.get("ieg"))
        return data

    @field_validator("entity_id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("sector", "tier", mode="before")
    @classmethod
    def _coerce_label(cls, value: Any) -> Optional[str]:
        if is_blank_label(value):
            return None
        return str(value).strip()

    @field_validator("entity_name", "company_name", mode="before")
    @classmethod
    def _coerce_name(cls, value: Any) -> str:
        return "" if value is None else str(value)


class ScoreRecord(BaseModel):
    """A ranked, derived score for one brand in one cycle."""

    model_config = ConfigDict(frozen=True)

    entity_id: str
    entity_name: str
    company_name: str = ""
    sector_label: str = ""
    tier: Optional[str] = None
    sat_weighted: float = Field(description="Weighted SAT score, max 60")
    pt_weighted: float = Field(description="Weighted product testing score, max 20")
    ieg_weighted: float = Field(description="Weighted IEG score, max 20")
    final_score: float = Field(description="Sum of the three weighted sub-scores, max 100")
    rank: int = Field(ge=1, description="Competition rank; ties share the rank")
    band: Optional[FortificationBand] = Field(None, description="Descriptor from the first product test")
    incomplete: tuple[str, ...] = ()

    @property
    def is_incomplete(self) -> bool:
        return bool(self.incomplete)


class IndexSummary(BaseModel):
    """Headline metrics displayed above the ranking table."""

    top_brand: str = MISSING_LABEL
    top_brand_score: float = 0.0
    top_sector: str = MISSING_LABEL
    top_sector_avg: float = 0.0
    avg_sat: float = 0.0
    avg_pt: float = 0.0
    avg_ieg: float = 0.0
    avg_final: float = 0.0
    count: int = 0
    total_companies: int = 0
    total_brands: int = 0
    total_tier1: int = 0
    total_tier3: int = 0


class SatVarianceRow(BaseModel):
    """Self-reported vs. IVC-validated SAT score for one company."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    company: str = Field(default="", alias="company_name")
    tier: Optional[str] = None
    self_score: Optional[float] = Field(default=None, alias="selfScore")
    validated_score: Optional[float] = Field(default=None, alias="validatedScore")
    variance: Optional[float] = None
    variance_pct: Optional[float] = Field(default=None, alias="variancePct")

    @field_validator("self_score", "validated_score", "variance", "variance_pct", mode="before")
    @classmethod
    def _parse_number(cls, value: Any) -> Optional[float]:
        return parse_score(value)

    @field_validator("company", mode="before")
    @classmethod
    def _coerce_company(cls, value: Any) -> str:
        return "" if value is None else str(value)


class VarianceSummary(BaseModel):
    """Aggregate view over the SAT variance table."""

    threshold: float
    total_companies: int = 0
    total_flagged: int = 0
    avg_self_score: float = 0.0
    avg_validated_score: float = 0.0
    avg_variance: float = 0.0
    median_variance: float = 0.0
    highest_sat_company: str = MISSING_LABEL
    highest_sat: float = 0.0
    highest_ivc_company: str = MISSING_LABEL
    highest_ivc: float = 0.0
    smallest_variance_company: str = MISSING_LABEL
    smallest_variance: float = 0.0
    biggest_variance_company: str = MISSING_LABEL
    biggest_variance: float = 0.0
    outlier_rate: float = Field(0.0, description="Flagged companies as a percentage of all companies")


_FOURPG_NUMERIC = (
    "ivc_overall", "ivc_personnel", "ivc_production", "ivc_procurement", "ivc_public_engagement", "ivc_governance",
    "ieg_overall", "ieg_personnel", "ieg_production", "ieg_procurement", "ieg_public_engagement", "ieg_governance",
    "avg_personnel", "avg_production", "avg_procurement", "avg_public_engagement", "avg_governance", "avg_total",
)


class FourPGRow(BaseModel):
    """One company row of the ``/admin/4pg-ranking`` payload.

    The backend keys rows by their display column headers. All scores are
    unweighted percentages; ``None`` means the backend sent no usable number.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    company: str = Field(default="", alias="Company Name")
    tier: Optional[str] = Field(default=None, alias="TIER")
    ivc_overall: Optional[float] = Field(default=None, alias="Validated Scores (%)")
    ivc_personnel: Optional[float] = Field(default=None, alias="IVC Personnel (%)")
    ivc_production: Optional[float] = Field(default=None, alias="IVC Production (%)")
    ivc_procurement: Optional[float] = Field(default=None, alias="IVC Procurement and Suppliers (%)")
    ivc_public_engagement: Optional[float] = Field(default=None, alias="IVC Public Engagement (%)")
    ivc_governance: Optional[float] = Field(default=None, alias="IVC Governance (%)")
    ieg_overall: Optional[float] = Field(default=None, alias="Industry Expert Group (%)")
    ieg_personnel: Optional[float] = Field(default=None, alias="IEG Personnel (%)")
    ieg_production: Optional[float] = Field(default=None, alias="IEG Production (%)")
    ieg_procurement: Optional[float] = Field(default=None, alias="IEG Procurement and Suppliers (%)")
    ieg_public_engagement: Optional[float] = Field(default=None, alias="IEG Public Engagement")
    ieg_governance: Optional[float] = Field(default=None, alias="IEG Governance")
    avg_personnel: Optional[float] = Field(default=None, alias="Average Personnel (%)")
    avg_production: Optional[float] = Field(default=None, alias="Average Production (%)")
    avg_procurement: Optional[float] = Field(default=None, alias="Average Procurement and Suppliers (%)")
    avg_public_engagement: Optional[float] = Field(default=None, alias="Average Public Engagement (%)")
    avg_governance: Optional[float] = Field(default=None, alias="Average Governance (%)")
    avg_total: Optional[float] = Field(default=None, alias="Average 4PG")

    @field_validator(*_FOURPG_NUMERIC, mode="before")
    @classmethod
    def _parse_number(cls, value: Any) -> Optional[float]:
        return parse_score(value)

    @field_validator("company", mode="before")
    @classmethod
    def _coerce_company(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("tier", mode="before")
    @classmethod
    def _coerce_tier(cls, value: Any) -> Optional[str]:
        if is_blank_label(value):
            return None
        return str(value).strip()

    def average(self, component: Component) -> Optional[float]:
        return getattr(self, f"avg_{_COMPONENT_SUFFIX[component]}")

    def ivc(self, component: Component) -> Optional[float]:
        return getattr(self, f"ivc_{_COMPONENT_SUFFIX[component]}")

    def ieg(self, component: Component) -> Optional[float]:
        return getattr(self, f"ieg_{_COMPONENT_SUFFIX[component]}")


_COMPONENT_SUFFIX = {
    Component.PERSONNEL: "personnel",
    Component.PRODUCTION: "production",
    Component.PROCUREMENT: "procurement",
    Component.PUBLIC_ENGAGEMENT: "public_engagement",
    Component.GOVERNANCE: "governance",
}


class TopPerformer(BaseModel):
    """A company's standing within one 4PG component."""

    component: Component
    company: str
    score: float = Field(description="Average component percentage")
    ivc_pct: float = Field(description="IVC percentage for the same component")


class FourPGSummary(BaseModel):
    """Key stats shown above the 4PG ranking table."""

    total_companies: int = 0
    mean_4pg: float = 0.0
    median_4pg: float = 0.0
    at_least_80: int = 0
    at_least_80_pct: float = 0.0
    best_company: str = MISSING_LABEL
    best_4pg: Optional[float] = None
    total_tier1: int = 0
    total_tier3: int = 0
    component_means: dict[str, float] = Field(default_factory=dict)
    ivc_mean: float = 0.0
    ieg_mean: float = 0.0
