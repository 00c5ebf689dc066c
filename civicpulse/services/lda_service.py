"""
Senate Lobbying Disclosure Act (LDA) gateway and filing helpers.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from civicpulse.services.gateway import BaseGateway

logger = logging.getLogger(__name__)

BILL_REFERENCE = re.compile(r"\b(H\.?\s?R\.?|H\.?\s?J\.?\s?RES\.?|S\.?\s?J\.?\s?RES\.?|S\.?)\s*(\d+)", re.IGNORECASE)

SECTOR_KEYWORDS: Dict[str, List[str]] = {
    "Oil & Gas": ["energy", "oil", "gas", "petroleum", "fuel", "fossil"],
    "Pharmaceuticals": ["health", "pharma", "drug", "medical", "medicine", "biotech"],
    "Tech Companies": ["tech", "software", "internet", "data", "cyber", "ai", "digital"],
    "Defense Contractors": ["defense", "military", "aerospace", "weapon", "security", "veteran"],
}


@dataclass
class SectorTotals:
    sector: str
    total_amount: float = 0.0
    entities: Dict[str, float] = field(default_factory=dict)


def extract_bill_references(description: str) -> List[str]:
    """Unique `TYPE-NUMBER` references such as `HR-1234` found in free text"""
    seen: List[str] = []
    for bill_type, number in BILL_REFERENCE.findall(description or ""):
        code = re.sub(r"[.\s]", "", bill_type).upper()
        reference = f"{code}-{number}"
        if reference not in seen:
            seen.append(reference)
    return seen


def parse_amount(value: Any) -> float:
    """LDA income and expenses arrive as null, numbers or strings like '$100,000'"""
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).replace("$", "").replace(",", "").strip() or 0)
    except ValueError:
        return 0.0


def classify_sector(filing: Dict[str, Any]) -> Optional[str]:
    client = filing.get("client") or {}
    registrant = filing.get("registrant") or {}
    text = " ".join(
        (part or "").lower()
        for part in (client.get("general_description"), registrant.get("description"), client.get("name"))
    )
    words = set(re.findall(r"\w+", text))

    best, best_hits = None, 0
    for sector, keywords in SECTOR_KEYWORDS.items():
        hits = sum(1 for kw in keywords if kw in words or (len(kw) > 3 and kw in text))
        if hits > best_hits:
            best, best_hits = sector, hits
    return best


def map_filings_to_sectors(filings: Iterable[Dict[str, Any]]) -> Dict[str, SectorTotals]:
    """Group filing income by industry sector and by lobbied government entity"""
    sectors: Dict[str, SectorTotals] = {}
    for filing in filings:
        income = parse_amount(filing.get("income"))
        if income <= 0:
            continue
        sector = classify_sector(filing)
        if not sector:
            continue

        totals = sectors.setdefault(sector, SectorTotals(sector))
        totals.total_amount += income
        for activity in filing.get("lobbying_activities") or []:
            for entity in activity.get("government_entities") or []:
                name = entity.get("name")
                if name:
                    totals.entities[name] = totals.entities.get(name, 0.0) + income
    return sectors


def filing_activities(filing: Dict[str, Any]) -> List[Dict[str, Any]]:
    """One entry per lobbying activity in a filing, with the bills its
    description mentions"""
    client = filing.get("client") or {}
    registrant = filing.get("registrant") or {}
    amount = parse_amount(filing.get("income")) or parse_amount(filing.get("expenses"))

    activities = []
    for activity in filing.get("lobbying_activities") or []:
        description = activity.get("description") or ""
        activities.append({
            "id": f"{filing.get('filing_uuid')}-{activity.get('general_issue_code')}",
            "client": client.get("name") or "Unknown",
            "lobbyingFirm": registrant.get("name") or "Unknown",
            "amount": amount,
            "year": filing.get("filing_year"),
            "period": filing.get("filing_period"),
            "issue": activity.get("general_issue_code_display") or activity.get("general_issue_code"),
            "description": description,
            "relatedBills": extract_bill_references(description),
            "governmentEntities": [
                entity["name"] for entity in activity.get("government_entities") or [] if entity.get("name")
            ],
            "disclosureDate": filing.get("dt_posted"),
        })
    return activities


class LDAService(BaseGateway):
    provider = "lda"
    requires_key = False

    async def fetch_filings(
        self,
        filing_year: Optional[int] = None,
        filing_period: Optional[str] = None,
        filing_type: Optional[str] = None,
        registrant_name: Optional[str] = None,
        client_name: Optional[str] = None,
        page: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> Dict[str, Any]:
        data = await self._request(
            "/filings/",
            {
                "filing_year": filing_year,
                "filing_period": filing_period,
                "filing_type": filing_type,
                "registrant_name": registrant_name,
                "client_name": client_name,
                "page": page,
                "page_size": page_size,
            },
        )
        results = data.get("results") or []
        logger.info("Fetched %d LDA filings (total %s)", len(results), data.get("count", 0))
        return {
            "count": data.get("count", 0),
            "next": data.get("next"),
            "previous": data.get("previous"),
            "results": results,
        }
