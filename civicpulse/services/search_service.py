"""
Natural-language bill search.

Three tiers run strictly in sequence, each only when the previous one found
nothing: vector similarity over the bill index, case-insensitive keyword
matching over a window of recent bills, and finally the unfiltered recent
window. Vector and keyword hits get a short AI explanation when a generative
model is configured.
"""

import logging
import time
from typing import Callable, List, Optional, Sequence

from civicpulse.errors import CivicPulseError, InvalidInput, UpstreamAuthFailure
from civicpulse.models.schemas import MAX_RESULTS_LIMIT, BillRecord, SearchResponse, SearchResult
from civicpulse.sample_data import SAMPLE_BILLS
from civicpulse.services.congress_service import CongressService, determine_status
from civicpulse.services.generative_service import GenerativeService
from civicpulse.services.vector_index import BillVectorIndex

logger = logging.getLogger(__name__)

SOURCE_VECTOR = "Vector Search + AI Analysis"
SOURCE_KEYWORD = "Keyword Search Fallback"
SOURCE_FALLBACK = "Fallback Search"
SOURCE_MOCK = "mock"
SOURCE_ERROR = "error"
SOURCE_DISABLED = "disabled"

DEFAULT_MAX_RESULTS = 20


def clamp_max_results(max_results: Optional[int]) -> int:
    if max_results is None:
        return DEFAULT_MAX_RESULTS
    return max(1, min(int(max_results), MAX_RESULTS_LIMIT))


def matches_keyword(bill: BillRecord, query: str) -> bool:
    needle = query.lower()
    return any(needle in (field or "").lower() for field in (bill.title, bill.sponsor, bill.summary))


def to_search_result(bill: BillRecord, provenance: str, matched: Optional[bool] = None) -> SearchResult:
    return SearchResult(
        id=bill.id,
        title=bill.title,
        summary=bill.summary,
        sponsor=bill.sponsor or "Unknown",
        date=bill.introduced_date or bill.latest_action_date,
        status=determine_status(bill.latest_action_text),
        tags=list(bill.tags),
        matched=matched,
        provenance=provenance,
    )


class SearchService:
    def __init__(
        self,
        congress: CongressService,
        vector_index: BillVectorIndex,
        generative: GenerativeService,
        keyword_window: int = 50,
        timer: Callable[[], float] = time.perf_counter,
    ):
        self.congress = congress
        self.vector_index = vector_index
        self.generative = generative
        self.keyword_window = keyword_window
        self.timer = timer

    async def search(self, query: str, include_bills: bool = True, max_results: Optional[int] = None) -> SearchResponse:
        """Run the tiered search. Raises InvalidInput for a blank query and
        otherwise always returns a well-formed response."""
        started = self.timer()
        query = (query or "").strip()
        if not query:
            raise InvalidInput("query is required")
        max_results = clamp_max_results(max_results)

        if not include_bills:
            return self._response([], f'Bill results were not requested for "{query}"', SOURCE_DISABLED, started)

        # Tier 1: vector similarity
        results = await self._vector_tier(query, max_results)
        if results:
            analysis = f'Found {len(results)} bills semantically similar to "{query}" using vector search'
            analysis = await self._enrich(query, results, analysis)
            return self._response(results, analysis, SOURCE_VECTOR, started)

        # Tier 2: keyword match over the recent window
        window: Optional[List[BillRecord]] = None
        try:
            window = await self.congress.fetch_recent_bills(max(self.keyword_window, max_results))
        except UpstreamAuthFailure as e:
            logger.warning("Congress.gov credentials unavailable, serving sample bills: %s", e)
            return self._mock_response(query, max_results, started)
        except CivicPulseError as e:
            logger.warning("Keyword tier failed for %r: %s", query, e)

        if window:
            results = [to_search_result(b, "keyword", matched=True) for b in window if matches_keyword(b, query)]
            results = results[:max_results]
            if results:
                analysis = f'Found {len(results)} bills matching "{query}" by keyword'
                analysis = await self._enrich(query, results, analysis)
                return self._response(results, analysis, SOURCE_KEYWORD, started)

        # Tier 3: unfiltered recent bills
        if window is None:
            try:
                window = await self.congress.fetch_recent_bills(max(self.keyword_window, max_results))
            except UpstreamAuthFailure as e:
                logger.warning("Congress.gov credentials unavailable, serving sample bills: %s", e)
                return self._mock_response(query, max_results, started)
            except CivicPulseError as e:
                logger.error("All search tiers failed for %r: %s", query, e)
                return self._response(
                    [], f"Search is temporarily unavailable: {e}", SOURCE_ERROR, started
                )

        results = [to_search_result(b, "fallback") for b in window[:max_results]]
        analysis = f'No bills matched "{query}" directly; showing {len(results)} recent bills'
        return self._response(results, analysis, SOURCE_FALLBACK, started)

    async def _vector_tier(self, query: str, max_results: int) -> List[SearchResult]:
        try:
            await self.vector_index.refresh_if_stale(self._load_window)
            return await self.vector_index.search(query, max_results)
        except CivicPulseError as e:
            logger.warning("Vector tier failed for %r: %s", query, e)
            return []

    async def _load_window(self, limit: int) -> List[BillRecord]:
        return await self.congress.fetch_recent_bills(limit)

    async def _enrich(self, query: str, results: Sequence[SearchResult], analysis: str) -> str:
        """One-call AI explanation of the results; the given analysis is kept on any failure"""
        if not self.generative.enabled:
            return analysis

        titles = "\n".join(f"- {r.title}" for r in results)
        prompt = (
            f'A user searched congressional bills for "{query}". The search returned:\n{titles}\n\n'
            "In 1-2 sentences, explain how these bills relate to the search. Be factual and neutral."
        )
        try:
            return await self.generative.generate(prompt, temperature=0.3, max_tokens=150)
        except CivicPulseError as e:
            logger.warning("Search enrichment failed, keeping default analysis: %s", e)
            return analysis

    def _mock_response(self, query: str, max_results: int, started: float) -> SearchResponse:
        matching = [b for b in SAMPLE_BILLS if matches_keyword(b, query)]
        bills = matching or SAMPLE_BILLS
        results = [to_search_result(b, "mock", matched=bool(matching)) for b in bills[:max_results]]
        analysis = "Congress.gov API key is missing or was rejected; showing sample bills (mock data)"
        return self._response(results, analysis, SOURCE_MOCK, started)

    def _response(self, results: List[SearchResult], analysis: str, source: str, started: float) -> SearchResponse:
        elapsed_ms = int(round((self.timer() - started) * 1000))
        logger.info("Search returned %d bills from %s in %dms", len(results), source, elapsed_ms)
        return SearchResponse(bills=results, analysis=analysis, source=source, search_time=elapsed_ms)
