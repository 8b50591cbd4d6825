import asyncio

import httpx
import pytest

from mfi_index.core.clients import mfi_api


class FakeSession:
    def __init__(self, token="abc"):
        self.token = token
        self.logged_out = False

    @property
    def authenticated(self):
        return self.token is not None

    def authorization_headers(self):
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    async def logout(self):
        self.token = None
        self.logged_out = True


RANKING_PAYLOAD = {
    "results": [
        {"id": 1, "name": "NutriFlour", "company_name": "Golden Mills", "productType": {"name": "Flour"},
         "tier": "TIER_1", "ivc": 42, "productTests": [{"fortification": {"score": 18}}], "ieg": 15},
        {"id": 2, "name": "BakeWell", "company_name": "FlourCo", "productType": None,
         "tier": "TIER_3", "ivc": None, "productTests": [], "ieg": "N/A"},
        {"id": 3, "name": "OddTests", "company_name": "Broken", "ivc": 10, "productTests": {"x": 1}},
        "not-a-row",
    ]
}


@pytest.fixture(autouse=True)
def api_base(monkeypatch):
    monkeypatch.setenv("MFI_API_BASE_URL", "https://mfi.test/")


def test_get_api_base_requires_env(monkeypatch):
    monkeypatch.delenv("MFI_API_BASE_URL")
    with pytest.raises(ValueError):
        mfi_api.get_api_base()


def test_get_api_base_appends_prefix():
    assert mfi_api.get_api_base() == "https://mfi.test/api/v1"


def test_fetch_index_rankings_sends_token_and_params():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json=RANKING_PAYLOAD)

    metrics = asyncio.run(mfi_api.fetch_index_rankings("5", FakeSession(), transport=httpx.MockTransport(handler)))

    assert seen["path"] == "/api/v1/index-ranking-list"
    assert seen["params"] == {"page-size": "100", "cycle-id": "5"}
    assert seen["auth"] == "Bearer abc"
    # the non-object row is skipped; an unusable productTests value only loses the PT score
    assert [m.entity_id for m in metrics] == ["1", "2", "3"]
    assert metrics[2].pt is None
    assert "pt" in metrics[2].incomplete
    assert metrics[0].pt == 18
    assert metrics[0].sector == "Flour"
    assert metrics[1].sat is None
    assert {"sat", "pt", "ieg", "sector"} <= set(metrics[1].incomplete)


def test_unauthorized_clears_session():
    session = FakeSession()
    transport = httpx.MockTransport(lambda request: httpx.Response(401, json={"detail": "expired"}))

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(mfi_api.fetch_index_rankings("5", session, transport=transport))
    assert session.logged_out
    assert not session.authenticated


def test_fetch_sat_variance():
    payload = [{"company_name": "Golden Mills", "tier": "TIER_1", "selfScore": "80", "validatedScore": 72,
                "variance": 8, "variancePct": 10}]
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json=payload))
    rows = asyncio.run(mfi_api.fetch_sat_variance("5", transport=transport))
    assert rows[0].company == "Golden Mills"
    assert rows[0].self_score == 80.0


def test_fetch_sat_variance_unexpected_shape():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"detail": "nope"}))
    assert asyncio.run(mfi_api.fetch_sat_variance("5", transport=transport)) == []


def test_fetch_dashboard_isolates_failures():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/admin/sat-variance"):
            return httpx.Response(500)
        return httpx.Response(200, json=RANKING_PAYLOAD)

    dashboard = asyncio.run(mfi_api.fetch_dashboard("5", transport=httpx.MockTransport(handler)))
    assert len(dashboard["rankings"]) == 3
    assert dashboard["sat_variance"] == []
    assert dashboard["fourpg"] == []


def test_parse_ranking_rows_tolerates_non_list_product_tests():
    rows = [
        {"id": 1, "name": "A", "ivc": 10, "productTests": {"x": 1}},
        {"id": 2, "name": "B", "ivc": 20, "productTests": 7},
        {"id": 3, "name": "C", "ivc": 20, "pt": 5},
        None,
    ]
    metrics = mfi_api.parse_ranking_rows(rows)
    assert [m.entity_id for m in metrics] == ["1", "2", "3"]
    assert [m.pt for m in metrics] == [None, None, 5.0]
    assert metrics[0].product_tests == []


def test_fetch_fourpg_ranking():
    seen = {}
    payload = [
        {"Company Name": "Golden Mills", "TIER": "TIER_1", "Average 4PG": "84.5", "IVC Governance (%)": 0},
        {"Company Name": "Dangote", "TIER": "TIER_3", "Average 4PG": None},
        42,
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json=payload)

    rows = asyncio.run(mfi_api.fetch_fourpg_ranking("5", transport=httpx.MockTransport(handler)))
    assert seen["path"] == "/api/v1/admin/4pg-ranking"
    assert seen["params"] == {"cycle-id": "5"}
    assert [r.company for r in rows] == ["Golden Mills", "Dangote"]
    assert rows[0].avg_total == 84.5
    assert rows[0].ivc_governance == 0.0
    assert rows[1].avg_total is None


def test_fetch_fourpg_ranking_unexpected_shape():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"detail": "nope"}))
    assert asyncio.run(mfi_api.fetch_fourpg_ranking("5", transport=transport)) == []
