"""
Test cases for the REST gateways using a mocked httpx transport
"""

from datetime import date

import httpx
import pytest

from civicpulse.errors import (
    InvalidInput,
    MalformedResponse,
    UpstreamAuthFailure,
    UpstreamError,
    UpstreamRateLimited,
    UpstreamTimeout,
    UpstreamUnavailable,
)
from civicpulse.services.congress_service import (
    CongressService,
    calculate_trend_score,
    determine_status,
    normalize_bill,
    parse_bill_id,
)
from civicpulse.services.fec_service import FECService
from civicpulse.services.lda_service import LDAService, extract_bill_references, filing_activities, parse_amount
from civicpulse.services.news_service import NewsDataService
from civicpulse.services.openstates_service import OpenStatesService

BILL_PAYLOAD = {
    "congress": 118,
    "type": "HR",
    "number": "5615",
    "title": "Example Bill",
    "introducedDate": "2024-01-10",
    "updateDate": "2024-05-08T10:00:00Z",
    "latestAction": {"actionDate": "2024-04-01", "text": "Referred to the House Committee on Energy."},
    "sponsors": [{"fullName": "Rep. Jane Doe [D-CA-12]", "party": "D"}],
    "policyArea": {"name": "Energy"},
    "subjects": {"legislativeSubjects": [{"name": "Solar power"}, {"name": "Energy"}]},
}


def make_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestErrorMapping:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,error", [
        (401, UpstreamAuthFailure),
        (403, UpstreamAuthFailure),
        (429, UpstreamRateLimited),
        (503, UpstreamUnavailable),
        (400, UpstreamError),
    ])
    async def test_status_codes(self, status, error):
        async with make_client(lambda request: httpx.Response(status, json={})) as client:
            fec = FECService(client, "https://fec.test/v1", api_key="real-key")
            with pytest.raises(error) as exc_info:
                await fec.get_candidate_totals("C001", 2024)

        assert exc_info.value.status_code == status
        assert exc_info.value.provider == "fec"

    @pytest.mark.asyncio
    async def test_client_error_is_not_transient(self):
        async with make_client(lambda request: httpx.Response(422, text="bad cycle")) as client:
            fec = FECService(client, "https://fec.test/v1", api_key="real-key")
            with pytest.raises(UpstreamError) as exc_info:
                await fec.get_candidate_totals("C001", 2024)

        assert not isinstance(exc_info.value, UpstreamUnavailable)

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        async with make_client(handler) as client:
            fec = FECService(client, "https://fec.test/v1", api_key="real-key")
            with pytest.raises(UpstreamTimeout):
                await fec.get_candidate_totals("C001")

    @pytest.mark.asyncio
    async def test_connection_failure(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with make_client(handler) as client:
            fec = FECService(client, "https://fec.test/v1", api_key="real-key")
            with pytest.raises(UpstreamUnavailable):
                await fec.get_candidate_totals("C001")

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        async with make_client(lambda request: httpx.Response(200, text="<html>oops</html>")) as client:
            fec = FECService(client, "https://fec.test/v1", api_key="real-key")
            with pytest.raises(MalformedResponse):
                await fec.get_candidate_totals("C001")

    @pytest.mark.asyncio
    async def test_non_object_body(self):
        async with make_client(lambda request: httpx.Response(200, json=[1, 2, 3])) as client:
            fec = FECService(client, "https://fec.test/v1", api_key="real-key")
            with pytest.raises(MalformedResponse):
                await fec.get_candidate_totals("C001")

    @pytest.mark.asyncio
    async def test_missing_key_fails_before_any_request(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={})

        async with make_client(handler) as client:
            congress = CongressService(client, "https://congress.test/v3", api_key="your_congress_api_key_here")
            with pytest.raises(UpstreamAuthFailure):
                await congress.fetch_recent_bills()

        assert calls == []


class TestCongressService:

    @pytest.mark.asyncio
    async def test_fetch_recent_bills(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"bills": [BILL_PAYLOAD]})

        async with make_client(handler) as client:
            congress = CongressService(client, "https://congress.test/v3", api_key="real-key")
            bills = await congress.fetch_recent_bills(limit=5)

        assert seen["path"] == "/v3/bill/118"
        assert seen["params"]["limit"] == "5"
        assert seen["params"]["api_key"] == "real-key"
        assert [b.id for b in bills] == ["118-HR-5615"]

    @pytest.mark.asyncio
    async def test_missing_bill_returns_none(self):
        async with make_client(lambda request: httpx.Response(404, json={"error": "not found"})) as client:
            congress = CongressService(client, "https://congress.test/v3", api_key="real-key")
            assert await congress.fetch_bill("118-HR-99999") is None

    @pytest.mark.asyncio
    async def test_bill_details_merge_summary_and_cosponsors(self):
        def handler(request):
            path = request.url.path
            if path.endswith("/summaries"):
                return httpx.Response(200, json={"summaries": [
                    {"text": "<p>Old summary</p>"},
                    {"text": "<p>Latest <b>summary</b></p>"},
                ]})
            if path.endswith("/cosponsors"):
                return httpx.Response(200, json={"cosponsors": [{"party": "R"}, {"party": "D"}]})
            detail = dict(BILL_PAYLOAD, cosponsors={"count": 2})
            return httpx.Response(200, json={"bill": detail})

        async with make_client(handler) as client:
            congress = CongressService(client, "https://congress.test/v3", api_key="real-key")
            bill = await congress.fetch_bill("HR-5615")

        assert bill.summary == "Latest summary"
        assert bill.cosponsor_parties == ["R", "D"]

    @pytest.mark.asyncio
    async def test_member_sponsored_bills(self):
        payload = {"sponsoredLegislation": [
            {"congress": 118, "type": "S", "number": "12", "title": "A"},
            {"congress": 118, "amendmentNumber": "44", "title": "Amendment"},
        ]}
        async with make_client(lambda request: httpx.Response(200, json=payload)) as client:
            congress = CongressService(client, "https://congress.test/v3", api_key="real-key")
            bills = await congress.fetch_member_sponsored_bills("D000001")

        assert [b.id for b in bills] == ["118-S-12"]


class TestBillHelpers:

    def test_parse_bill_id(self):
        assert parse_bill_id("118-HR-5615") == (118, "hr", "5615")
        assert parse_bill_id("S-12", default_congress=119) == (119, "s", "12")

    @pytest.mark.parametrize("bill_id", ["", "HR5615", "118-HR-", "hr/5615"])
    def test_malformed_bill_id(self, bill_id):
        with pytest.raises(InvalidInput):
            parse_bill_id(bill_id)

    def test_normalize_bill(self):
        bill = normalize_bill(BILL_PAYLOAD)

        assert bill.sponsor == "Rep. Jane Doe [D-CA-12]"
        assert bill.sponsor_party == "D"
        assert bill.tags == ["Energy", "Solar power"]
        assert bill.policy_area == "Energy"

    def test_determine_status(self):
        assert determine_status("Became Public Law No: 118-5.") == "Enacted"
        assert determine_status("Passed Senate without amendment") == "Passed Senate"
        assert determine_status("Referred to the Committee on Finance.") == "Committee"
        assert determine_status(None) == "Introduced"

    def test_trend_score(self, bill_factory):
        from datetime import datetime, timezone

        now = datetime(2024, 5, 10, tzinfo=timezone.utc)
        recent = bill_factory("1", "A", update_date="2024-05-08T10:00:00Z", cosponsor_parties=["D"] * 30)
        stale = bill_factory("2", "B", update_date="2023-01-01")

        assert calculate_trend_score(recent, now) == 100
        assert calculate_trend_score(stale, now) == 50


class TestOtherGateways:

    @pytest.mark.asyncio
    async def test_openstates_key_query_param(self):
        seen = {}

        def handler(request):
            seen.update(dict(request.url.params))
            return httpx.Response(200, json={"results": [{"id": "ocd-bill/1"}], "pagination": {"page": 1}})

        async with make_client(handler) as client:
            openstates = OpenStatesService(client, "https://openstates.test", api_key="real-key")
            data = await openstates.search_bills("housing")

        assert seen["apikey"] == "real-key"
        assert seen["q"] == "housing"
        assert data["results"] == [{"id": "ocd-bill/1"}]

    @pytest.mark.asyncio
    async def test_fec_expenditure_window(self):
        seen = {}

        def handler(request):
            seen.update(dict(request.url.params))
            return httpx.Response(200, json={"results": [], "pagination": {}})

        async with make_client(handler) as client:
            fec = FECService(client, "https://fec.test/v1", api_key="DEMO_KEY")
            data = await fec.get_independent_expenditures(date(2024, 4, 10), date(2024, 5, 10))

        assert seen["min_date"] == "2024-04-10"
        assert seen["max_date"] == "2024-05-10"
        assert data == {"results": [], "pagination": {}}

    @pytest.mark.asyncio
    async def test_lda_works_without_key(self):
        seen = {}

        def handler(request):
            seen.update(dict(request.url.params))
            return httpx.Response(200, json={"count": 1, "results": [{"income": "1000"}]})

        async with make_client(handler) as client:
            lda = LDAService(client, "https://lda.test/api/v1")
            data = await lda.fetch_filings(filing_year=2024, filing_type="Q2")

        assert "api_key" not in seen
        assert seen["filing_type"] == "Q2"
        assert data["count"] == 1
        assert data["next"] is None

    @pytest.mark.asyncio
    async def test_news_requires_success_status(self):
        async with make_client(lambda request: httpx.Response(200, json={"status": "error"})) as client:
            news = NewsDataService(client, "https://news.test/api/1", api_key="real-key")
            with pytest.raises(MalformedResponse):
                await news.fetch_articles()

    @pytest.mark.asyncio
    async def test_news_articles_are_normalized(self):
        payload = {"status": "success", "results": [
            {"title": "Senate passes bill", "link": "https://example.com/a", "source_id": "wire",
             "content": "x" * 300},
            {"title": None, "link": "https://example.com/b"},
        ]}
        async with make_client(lambda request: httpx.Response(200, json=payload)) as client:
            news = NewsDataService(client, "https://news.test/api/1", api_key="real-key")
            articles = await news.fetch_articles(limit=6)

        assert len(articles) == 1
        assert articles[0].url == "https://example.com/a"
        assert articles[0].description == "x" * 200 + "..."


class TestLobbyingHelpers:

    def test_bill_references(self):
        text = "Issues related to H.R. 1234 and S. 56; also HR 1234 again"
        assert extract_bill_references(text) == ["HR-1234", "S-56"]

    def test_parse_amount(self):
        assert parse_amount("$100,000") == 100000
        assert parse_amount(None) == 0
        assert parse_amount("n/a") == 0
        assert parse_amount(2500.5) == 2500.5

    def test_filing_activities(self):
        filing = {
            "filing_uuid": "f1",
            "income": None,
            "expenses": "12,500",
            "client": {"name": "Acme Labs"},
            "lobbying_activities": [
                {"general_issue_code": "HCR", "description": "Drug pricing, S.J.Res. 7"},
                {"general_issue_code": "TAX", "description": None, "government_entities": [{"name": None}]},
            ],
        }

        activities = filing_activities(filing)

        assert [a["id"] for a in activities] == ["f1-HCR", "f1-TAX"]
        assert activities[0]["amount"] == 12500
        assert activities[0]["relatedBills"] == ["SJRES-7"]
        assert activities[0]["lobbyingFirm"] == "Unknown"
        assert activities[1]["relatedBills"] == []
        assert activities[1]["governmentEntities"] == []

    def test_registration_without_activities(self):
        assert filing_activities({"filing_uuid": "f2", "client": {"name": "Acme Labs"}}) == []


class TestLookups:

    @pytest.mark.asyncio
    async def test_fec_candidate_search(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen.update(dict(request.url.params))
            return httpx.Response(200, json={"results": [{"candidate_id": "C001"}], "pagination": {"count": 1}})

        async with make_client(handler) as client:
            fec = FECService(client, "https://fec.test/v1", api_key="DEMO_KEY")
            data = await fec.search_candidates(name="Smith", state="CA", per_page=500)

        assert seen["path"] == "/v1/candidates/search/"
        assert seen["q"] == "Smith"
        assert seen["per_page"] == "100"
        assert "office" not in seen
        assert data["pagination"] == {"count": 1}

    @pytest.mark.asyncio
    async def test_empty_bill_detail_returns_none(self):
        async with make_client(lambda request: httpx.Response(200, json={})) as client:
            congress = CongressService(client, "https://congress.test/v3", api_key="real-key")
            assert await congress.fetch_bill_details("hr", "1", 118) is None

    @pytest.mark.asyncio
    async def test_openstates_jurisdictions(self):
        payload = {"results": [{"name": "California"}, {"name": "Texas"}]}
        async with make_client(lambda request: httpx.Response(200, json=payload)) as client:
            openstates = OpenStatesService(client, "https://openstates.test", api_key="real-key")
            assert [j["name"] for j in await openstates.get_jurisdictions()] == ["California", "Texas"]
