"""
Partisan-split estimates for bills.

A fast metadata heuristic (cosponsor parties, subject keywords, sponsor
party) is always available; a generative model refines it when configured.
"""

import asyncio
import logging
import re
from typing import Any, Awaitable, Callable, Dict, List, Optional

from civicpulse.errors import CivicPulseError
from civicpulse.models.schemas import AnalyzedBill, BillRecord, PolarizationEstimate
from civicpulse.sample_data import SAMPLE_BILLS
from civicpulse.services.batching import chunk, run_in_batches
from civicpulse.services.congress_service import CongressService, calculate_trend_score, determine_status
from civicpulse.services.generative_service import GenerativeService, Parsed, Unparsed

logger = logging.getLogger(__name__)

POLARIZING_THRESHOLD = 40
SCAN_MULTIPLIER = 6
COSPONSOR_MINIMUM = 10
CONTROVERSY_LEVELS = ("low", "medium", "high", "extreme")

CONSERVATIVE_KEYWORDS = [
    "border", "immigration", "defense", "military", "gun", "second amendment",
    "tax cut", "regulation", "energy", "oil", "gas", "coal", "fossil fuel",
    "abortion", "pro-life", "religious freedom", "traditional marriage",
    "school choice", "vouchers", "charter schools", "voter id", "election security",
]
LIBERAL_KEYWORDS = [
    "climate", "healthcare", "abortion", "reproductive", "voting rights",
    "minimum wage", "social security", "medicare", "environmental", "green energy",
    "renewable", "carbon", "greenhouse gas", "pro-choice", "lgbtq", "equality",
    "public education", "teacher", "student loan", "debt forgiveness", "universal healthcare",
]

DEMOCRAT_SHARE = re.compile(r"(?:democrat\w*|dem\b)[^0-9%]{0,40}?(\d{1,3}(?:\.\d+)?)\s*%", re.IGNORECASE)
REPUBLICAN_SHARE = re.compile(r"(?:republican\w*|gop)[^0-9%]{0,40}?(\d{1,3}(?:\.\d+)?)\s*%", re.IGNORECASE)


def _keyword_pattern(keywords: List[str]) -> re.Pattern:
    return re.compile(r"\b(?:" + "|".join(re.escape(k) for k in keywords) + r")s?\b", re.IGNORECASE)


CONSERVATIVE_PATTERN = _keyword_pattern(CONSERVATIVE_KEYWORDS)
LIBERAL_PATTERN = _keyword_pattern(LIBERAL_KEYWORDS)


def controversy_for(score: float) -> str:
    if score >= 60:
        return "high"
    if score >= 40:
        return "medium"
    return "low"


def _clamp_percent(value: float) -> float:
    return max(0.0, min(100.0, float(value)))


def _estimate(dem: float, rep: float, confidence: str, reasoning: str, provenance: str = "metadata",
              score: Optional[float] = None, level: Optional[str] = None) -> PolarizationEstimate:
    dem, rep = _clamp_percent(dem), _clamp_percent(rep)
    score = _clamp_percent(abs(dem - rep) if score is None else score)
    if level not in CONTROVERSY_LEVELS:
        level = controversy_for(score)
    return PolarizationEstimate(
        democrat_support=dem,
        republican_support=rep,
        polarization_score=score,
        controversy_level=level,
        confidence=confidence,
        reasoning=reasoning,
        provenance=provenance,
    )


def estimate_from_metadata(bill: BillRecord) -> PolarizationEstimate:
    dems = sum(1 for p in bill.cosponsor_parties if p == "D")
    reps = sum(1 for p in bill.cosponsor_parties if p == "R")
    if dems + reps >= COSPONSOR_MINIMUM:
        total = dems + reps
        return _estimate(
            round(dems / total * 100), round(reps / total * 100), "high",
            f"Based on {total} Democratic and Republican cosponsors",
        )

    subjects = " ".join([bill.title, bill.policy_area or "", *bill.tags])
    party = bill.sponsor_party

    if CONSERVATIVE_PATTERN.search(subjects):
        if party == "R":
            return _estimate(15, 90, "medium", "Conservative-leaning subject with a Republican sponsor")
        return _estimate(30, 75, "medium", "Conservative-leaning subject")

    if LIBERAL_PATTERN.search(subjects):
        if party == "D":
            return _estimate(90, 15, "medium", "Liberal-leaning subject with a Democratic sponsor")
        return _estimate(75, 30, "medium", "Liberal-leaning subject")

    if party == "D":
        return _estimate(70, 40, "low", "Democratic sponsor")
    if party == "R":
        return _estimate(40, 70, "low", "Republican sponsor")
    return _estimate(45, 55, "low", "Sponsor party unknown")


def extract_support_from_text(text: str) -> Optional[Dict[str, float]]:
    """Best-effort party percentages from free-form model output"""
    dem = DEMOCRAT_SHARE.search(text or "")
    rep = REPUBLICAN_SHARE.search(text or "")
    if not dem or not rep:
        return None
    return {"democrat_support": float(dem.group(1)), "republican_support": float(rep.group(1))}


def _number(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class PolarizationService:
    def __init__(
        self,
        congress: CongressService,
        generative: GenerativeService,
        batch_size: int = 5,
        batch_delay: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.congress = congress
        self.generative = generative
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.sleep = sleep

    estimate_from_metadata = staticmethod(estimate_from_metadata)

    async def analyze(self, bill: BillRecord) -> PolarizationEstimate:
        """AI estimate of the partisan split, falling back to metadata"""
        metadata = estimate_from_metadata(bill)
        if not self.generative.enabled:
            return metadata

        prompt = (
            "Estimate the partisan split on this U.S. congressional bill.\n"
            f"Bill: {bill.bill_type}.{bill.number} {bill.title}\n"
            f"Sponsor: {bill.sponsor or 'Unknown'}\n"
            f"Subjects: {', '.join(bill.tags[:3]) or 'Unknown'}\n"
            f"Summary: {(bill.summary or bill.title)[:1500]}\n\n"
            "Respond with only a JSON object:\n"
            '{"polarizationScore": <0-100>, "democratSupport": <0-100>, "republicanSupport": <0-100>, '
            '"controversyLevel": "low|medium|high|extreme", "reasoning": "<one sentence>"}'
        )
        try:
            result = await self.generative.generate_json(prompt, temperature=0.2, max_tokens=300)
        except CivicPulseError as e:
            logger.warning("Polarization analysis failed for %s: %s", bill.id, e)
            return metadata

        if isinstance(result, Parsed) and isinstance(result.value, dict):
            value = result.value
            dem = _number(value.get("democratSupport"))
            rep = _number(value.get("republicanSupport"))
            if dem is not None and rep is not None:
                return _estimate(
                    dem, rep, "high", str(value.get("reasoning") or ""), "ai",
                    score=_number(value.get("polarizationScore")),
                    level=str(value.get("controversyLevel") or "").lower(),
                )

        raw = result.raw if isinstance(result, Unparsed) else str(result.value)
        extracted = extract_support_from_text(raw)
        if extracted:
            return _estimate(
                extracted["democrat_support"], extracted["republican_support"], "low",
                "Extracted from unstructured model output", "ai",
            )
        logger.warning("Could not read polarization output for %s; using metadata", bill.id)
        return metadata

    def to_analyzed_bill(self, bill: BillRecord, estimate: PolarizationEstimate) -> AnalyzedBill:
        return AnalyzedBill(
            id=bill.id,
            title=bill.title,
            status=determine_status(bill.latest_action_text),
            date=bill.introduced_date or bill.latest_action_date,
            summary=(bill.summary or bill.title)[:300],
            sponsor=bill.sponsor,
            trend_score=calculate_trend_score(bill),
            categories=bill.tags[:3],
            polarization=estimate,
        )

    async def _refine(self, bill: BillRecord) -> AnalyzedBill:
        estimate = estimate_from_metadata(bill)
        if estimate.polarization_score >= POLARIZING_THRESHOLD:
            estimate = await self.analyze(bill)
        return self.to_analyzed_bill(bill, estimate)

    async def get_polarizing_bills(self, limit: int = 5) -> List[AnalyzedBill]:
        """Recent bills with the widest estimated partisan divide, most polarizing first"""
        try:
            bills = await self.congress.fetch_recent_bills(limit * SCAN_MULTIPLIER)
        except CivicPulseError as e:
            logger.warning("Congress.gov unavailable, ranking sample bills: %s", e)
            bills = list(SAMPLE_BILLS)

        found: List[AnalyzedBill] = []
        batches = chunk(bills, self.batch_size)
        for index, batch in enumerate(batches):
            analyzed = await asyncio.gather(*(self._refine(bill) for bill in batch))
            found.extend(a for a in analyzed if a.polarization.polarization_score >= POLARIZING_THRESHOLD)
            if len(found) >= limit:
                break
            if index < len(batches) - 1 and self.generative.enabled:
                await self.sleep(self.batch_delay)

        found.sort(key=lambda a: a.polarization.polarization_score, reverse=True)
        logger.info("Returning %d polarizing bills", min(len(found), limit))
        return found[:limit]

    async def _analyze_bill(self, bill: BillRecord) -> AnalyzedBill:
        return self.to_analyzed_bill(bill, await self.analyze(bill))

    async def get_representative_bills(self, bioguide_id: str, limit: int = 20) -> List[AnalyzedBill]:
        """A member's sponsored bills, each analysed, five at a time"""
        bills = await self.congress.fetch_member_sponsored_bills(bioguide_id, limit)
        return await run_in_batches(
            bills, self._analyze_bill, batch_size=self.batch_size, delay=self.batch_delay, sleep=self.sleep
        )
