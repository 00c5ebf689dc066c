"""
Campaign-finance aggregation into Sankey graphs.

`get_money_flow_data` shows where one candidate's money comes from (employer
and occupation groups flowing into the candidate). `get_dashboard_data`
shows this quarter's lobbying spend flowing from industry sectors to the
government entities they lobbied.
"""

import asyncio
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from civicpulse.errors import CivicPulseError
from civicpulse.models.schemas import (
    DashboardLink,
    DashboardNode,
    DashboardTotals,
    FinanceDashboard,
    MoneyFlowGraph,
    MoneyFlowLink,
    MoneyFlowNode,
    MoneyFlowTotals,
    dump,
)
from civicpulse.services.dashboard_cache import DashboardCache
from civicpulse.services.fec_service import FECService
from civicpulse.services.generative_service import GenerativeService, Parsed
from civicpulse.services.lda_service import LDAService, SectorTotals, map_filings_to_sectors

logger = logging.getLogger(__name__)

EMPLOYER_LIMIT = 8
OCCUPATION_LIMIT = 4
TOP_ENTITIES = 4
DARK_MONEY_RATIO = 0.12
EXPENDITURE_DAYS = 30
DASHBOARD_CACHE_KEY = "finance_dashboard"
MAX_NAME_LENGTH = 25


def current_quarter(today: date) -> str:
    return f"Q{(today.month - 1) // 3 + 1}"


def display_name(name: str) -> str:
    return name if len(name) <= MAX_NAME_LENGTH else name[:MAX_NAME_LENGTH] + "..."


def fallback_dashboard(now: datetime) -> FinanceDashboard:
    """Static illustrative graph served when live data cannot be assembled"""
    names = [
        "Oil & Gas", "Pharmaceuticals", "Tech Companies", "Defense Contractors",
        "Senate Majority", "House Leadership", "Energy Committee", "Health Committee",
    ]
    edges = [(0, 4, 500000), (1, 5, 400000), (2, 5, 600000), (3, 4, 700000), (4, 6, 300000), (5, 7, 350000)]
    return FinanceDashboard(
        nodes=[DashboardNode(id=i, name=name, key=f"node-{i}") for i, name in enumerate(names)],
        links=[DashboardLink(source=s, target=t, value=v, key=f"link-{s}-{t}") for s, t, v in edges],
        totals=DashboardTotals(
            tracked=3200000,
            dark_money=1500000,
            last_updated=now.isoformat(),
            source="fallback",
        ),
    )


def build_sector_sankey(
    sectors: Dict[str, SectorTotals], top_entities: int = TOP_ENTITIES
) -> Tuple[List[DashboardNode], List[DashboardLink]]:
    """Sector nodes first, then the most-lobbied government entities"""
    nodes: List[DashboardNode] = []
    links: List[DashboardLink] = []
    ids: Dict[str, int] = {}

    for sector in sectors:
        ids[sector] = len(nodes)
        nodes.append(DashboardNode(id=len(nodes), name=sector, key=f"node-{len(nodes)}"))

    entity_totals: Dict[str, float] = {}
    for totals in sectors.values():
        for entity, amount in totals.entities.items():
            entity_totals[entity] = entity_totals.get(entity, 0.0) + amount
    top = sorted(entity_totals.items(), key=lambda item: item[1], reverse=True)[:top_entities]

    entity_ids: Dict[str, int] = {}
    for entity, _ in top:
        entity_ids[entity] = len(nodes)
        nodes.append(DashboardNode(id=len(nodes), name=display_name(entity), key=f"node-{len(nodes)}"))

    for sector, totals in sectors.items():
        for entity, target in entity_ids.items():
            amount = totals.entities.get(entity, 0.0)
            if amount > 0:
                source = ids[sector]
                links.append(DashboardLink(source=source, target=target, value=amount, key=f"link-{source}-{target}"))

    return nodes, links


class FinanceService:
    def __init__(
        self,
        fec: FECService,
        lda: LDAService,
        generative: GenerativeService,
        cache: DashboardCache,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.fec = fec
        self.lda = lda
        self.generative = generative
        self.cache = cache
        self.now = now

    async def get_money_flow_data(self, candidate_id: str, cycle: int = 2024) -> MoneyFlowGraph:
        """Donor groups flowing into one candidate.

        Totals are required: their failure propagates. A failed employer or
        occupation fetch only removes that section from the graph.
        """
        totals_response, employer_response, occupation_response = await asyncio.gather(
            self.fec.get_candidate_totals(candidate_id, cycle),
            self.fec.get_contributions_by_employer(candidate_id, cycle, EMPLOYER_LIMIT),
            self.fec.get_contributions_by_occupation(candidate_id, cycle, OCCUPATION_LIMIT),
            return_exceptions=True,
        )
        if isinstance(totals_response, BaseException):
            raise totals_response

        nodes = [MoneyFlowNode(id=0, name="Candidate", type="candidate")]
        links: List[MoneyFlowLink] = []

        def add_donors(response: Any, name_field: str, limit: int) -> None:
            if isinstance(response, CivicPulseError):
                logger.warning("Dropping %s groups for %s: %s", name_field, candidate_id, response)
                return
            if isinstance(response, BaseException):
                raise response
            for group in response["results"][:limit]:
                node_id = len(nodes)
                nodes.append(MoneyFlowNode(id=node_id, name=group.get(name_field) or "Unknown", type="donor"))
                links.append(MoneyFlowLink(source=node_id, target=0, value=float(group.get("total") or 0)))

        add_donors(employer_response, "employer", EMPLOYER_LIMIT)
        add_donors(occupation_response, "occupation", OCCUPATION_LIMIT)

        summary: Dict[str, Any] = (totals_response["results"] or [{}])[0]
        linked_total = sum(link.value for link in links)
        receipts = float(summary.get("receipts") or 0)
        exceeds = linked_total > receipts
        if exceeds:
            logger.warning(
                "Linked flow %.2f exceeds reported receipts %.2f for %s (%d)",
                linked_total, receipts, candidate_id, cycle,
            )

        return MoneyFlowGraph(
            nodes=nodes,
            links=links,
            totals=MoneyFlowTotals(
                total_receipts=receipts,
                total_disbursements=float(summary.get("disbursements") or 0),
                individual_contributions=float(summary.get("individual_contributions") or 0),
                pac_contributions=float(summary.get("other_political_committee_contributions") or 0),
                linked_total=linked_total,
                exceeds_receipts=exceeds,
            ),
        )

    async def get_dashboard_data(self) -> Dict[str, Any]:
        cached = self.cache.get_cached(DASHBOARD_CACHE_KEY)
        if cached is not None:
            logger.info("Using cached finance dashboard")
            return cached.value

        now = self.now()
        try:
            dashboard = await self._build_dashboard(now)
        except CivicPulseError as e:
            logger.error("Finance dashboard build failed, serving fallback graph: %s", e)
            return dump(fallback_dashboard(now))

        value = dump(dashboard)
        self.cache.set_cached(DASHBOARD_CACHE_KEY, value)
        return value

    async def _build_dashboard(self, now: datetime) -> FinanceDashboard:
        today = now.date()
        filings = await self.lda.fetch_filings(
            filing_year=today.year,
            filing_type=current_quarter(today),
            page_size=100,
        )
        sectors = map_filings_to_sectors(filings["results"])
        lobbying_total = sum(s.total_amount for s in sectors.values())
        logger.info("Mapped %d lobbying filings into %d sectors", len(filings["results"]), len(sectors))

        expenditures = await self._recent_expenditures(today)
        tracked = lobbying_total + expenditures
        dark_money = await self.estimate_dark_money(tracked)

        nodes, links = build_sector_sankey(sectors)
        return FinanceDashboard(
            nodes=nodes,
            links=links,
            totals=DashboardTotals(
                tracked=tracked,
                dark_money=dark_money,
                last_updated=now.isoformat(),
                source="live",
            ),
        )

    async def _recent_expenditures(self, today: date, days: int = EXPENDITURE_DAYS) -> float:
        """Sum of FEC independent expenditures; 0 when FEC is unavailable"""
        try:
            response = await self.fec.get_independent_expenditures(today - timedelta(days=days), today)
        except CivicPulseError as e:
            logger.warning("FEC independent expenditures unavailable: %s", e)
            return 0.0
        return sum(float(item.get("expenditure_amount") or 0) for item in response["results"])

    async def estimate_dark_money(self, tracked: float) -> float:
        """AI estimate of undisclosed spending; the 12% research ratio otherwise"""
        fallback = tracked * DARK_MONEY_RATIO
        if not self.generative.enabled:
            return fallback

        prompt = (
            f"I have tracked ${tracked:,.0f} in disclosed political spending (FEC independent "
            "expenditures plus lobbying disclosures) over the last 30 days.\n"
            "Using published research on dark money in U.S. politics, estimate the associated "
            "undisclosed spending. Respond with only a JSON object:\n"
            '{"darkMoneyRatio": <decimal 0-1>, "estimatedDarkMoney": <number>, "reasoning": "<brief>"}'
        )
        try:
            result = await self.generative.generate_json(prompt, temperature=0.2)
        except CivicPulseError as e:
            logger.warning("Dark money estimate failed, using research ratio: %s", e)
            return fallback

        if isinstance(result, Parsed) and isinstance(result.value, dict):
            estimate = _number(result.value.get("estimatedDarkMoney"))
            if estimate is None:
                ratio = _number(result.value.get("darkMoneyRatio"))
                estimate = tracked * ratio if ratio is not None else None
            if estimate is not None and estimate >= 0:
                return estimate
        return fallback


def _number(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
