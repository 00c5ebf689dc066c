"""
Bill gateway for the Congress.gov v3 API.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from civicpulse.errors import InvalidInput
from civicpulse.models.schemas import BillRecord
from civicpulse.services.gateway import BaseGateway

logger = logging.getLogger(__name__)

BILL_ID_PATTERN = re.compile(r"^(?:(\d{2,3})-)?([A-Za-z]+)-(\d+)$")
HTML_TAG = re.compile(r"<[^>]+>")

PARTY_CODES = {"democratic": "D", "democrat": "D", "republican": "R", "independent": "I"}


def parse_bill_id(bill_id: str, default_congress: int = 118) -> Tuple[int, str, str]:
    """Split `118-HR-5615` (or `HR-5615`) into (congress, type, number)"""
    match = BILL_ID_PATTERN.match((bill_id or "").strip())
    if not match:
        raise InvalidInput(f"Malformed bill id: {bill_id!r}")
    congress = int(match.group(1)) if match.group(1) else default_congress
    return congress, match.group(2).lower(), match.group(3)


def party_code(party: Optional[str]) -> Optional[str]:
    if not party:
        return None
    return PARTY_CODES.get(party.strip().lower(), party.strip()[:1].upper())


def determine_status(action_text: Optional[str]) -> str:
    text = (action_text or "").lower()
    if "became public law" in text or "signed by president" in text:
        return "Enacted"
    if "passed senate" in text or "senate agreed" in text:
        return "Passed Senate"
    if "passed house" in text or "house agreed" in text:
        return "Passed House"
    if "committee" in text:
        return "Committee"
    return "Introduced"


def _summary_text(raw: Dict[str, Any]) -> str:
    summaries = raw.get("summaries")
    if isinstance(summaries, dict):
        summaries = summaries.get("summaries") or []
    if isinstance(summaries, list) and summaries:
        text = summaries[0].get("text") or ""
        return " ".join(HTML_TAG.sub(" ", text).split())
    return ""


def _cosponsor_parties(raw: Dict[str, Any]) -> List[str]:
    cosponsors = raw.get("cosponsors")
    if isinstance(cosponsors, list):
        return [p for p in (party_code(c.get("party")) for c in cosponsors) if p]
    return []


def normalize_bill(raw: Dict[str, Any], default_congress: int = 118) -> BillRecord:
    """Map a Congress.gov bill payload (list item or detail) to a BillRecord"""
    congress = int(raw.get("congress") or default_congress)
    bill_type = str(raw.get("type") or raw.get("billType") or "").upper()
    number = str(raw.get("number") or "")

    sponsors = raw.get("sponsors") or []
    sponsor = sponsors[0] if sponsors else {}
    latest_action = raw.get("latestAction") or {}

    subjects = raw.get("subjects") if isinstance(raw.get("subjects"), dict) else {}
    tags = [s["name"] for s in subjects.get("legislativeSubjects") or [] if s.get("name")]
    policy_area = (raw.get("policyArea") or subjects.get("policyArea") or {}).get("name")
    if policy_area:
        tags = [policy_area] + [t for t in tags if t != policy_area]

    return BillRecord(
        id=f"{congress}-{bill_type}-{number}",
        congress=congress,
        bill_type=bill_type,
        number=number,
        title=raw.get("title") or "Untitled Bill",
        sponsor=sponsor.get("fullName"),
        sponsor_party=party_code(sponsor.get("party")),
        introduced_date=raw.get("introducedDate"),
        latest_action_text=latest_action.get("text"),
        latest_action_date=latest_action.get("actionDate"),
        update_date=raw.get("updateDate"),
        summary=_summary_text(raw),
        policy_area=policy_area,
        tags=tags,
        cosponsor_parties=_cosponsor_parties(raw),
    )


def calculate_trend_score(bill: BillRecord, now: Optional[datetime] = None) -> int:
    """Activity score in [50, 100] from update recency and cosponsor count"""
    score = 50
    now = now or datetime.now(timezone.utc)
    if bill.update_date:
        try:
            updated = datetime.fromisoformat(bill.update_date.replace("Z", "+00:00"))
            if updated.tzinfo is None:
                updated = updated.replace(tzinfo=timezone.utc)
            days = (now - updated).days
            if days < 7:
                score += 30
            elif days < 30:
                score += 15
        except ValueError:
            logger.debug("Unparseable update date %r on %s", bill.update_date, bill.id)
    score += min(len(bill.cosponsor_parties), 20)
    return min(score, 100)


class CongressService(BaseGateway):
    provider = "congress.gov"

    def __init__(self, client, base_url, api_key=None, timeout=30.0, current_congress: int = 118):
        super().__init__(client, base_url, api_key, timeout)
        self.current_congress = current_congress

    async def fetch_recent_bills(self, limit: int = 20, offset: int = 0) -> List[BillRecord]:
        """Most recently updated bills of the current congress"""
        data = await self._request(
            f"/bill/{self.current_congress}",
            {"format": "json", "limit": limit, "offset": offset, "sort": "updateDate+desc"},
        )
        bills = [normalize_bill(raw, self.current_congress) for raw in data.get("bills") or []]
        logger.info("Fetched %d bills from Congress.gov", len(bills))
        return bills

    async def fetch_bill_details(
        self, bill_type: str, number: str, congress: Optional[int] = None
    ) -> Optional[BillRecord]:
        """One bill with sponsors, subjects and summary; None if it does not exist"""
        congress = congress or self.current_congress
        base = f"/bill/{congress}/{bill_type.lower()}/{number}"
        data = await self._request(base, {"format": "json"}, allow_not_found=True)
        if not data or not data.get("bill"):
            return None

        raw = dict(data["bill"])
        summaries = await self._request(f"{base}/summaries", {"format": "json"}, allow_not_found=True)
        if summaries and summaries.get("summaries"):
            # latest version last
            raw["summaries"] = list(reversed(summaries["summaries"]))
        if isinstance(raw.get("cosponsors"), dict) and raw["cosponsors"].get("count"):
            raw["cosponsors"] = await self.fetch_bill_cosponsors(bill_type, number, congress)
        return normalize_bill(raw, congress)

    async def fetch_bill_cosponsors(
        self, bill_type: str, number: str, congress: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        congress = congress or self.current_congress
        data = await self._request(
            f"/bill/{congress}/{bill_type.lower()}/{number}/cosponsors",
            {"format": "json", "limit": 250},
            allow_not_found=True,
        )
        return (data or {}).get("cosponsors") or []

    async def fetch_bill(self, bill_id: str) -> Optional[BillRecord]:
        congress, bill_type, number = parse_bill_id(bill_id, self.current_congress)
        return await self.fetch_bill_details(bill_type, number, congress)

    async def fetch_member_sponsored_bills(self, bioguide_id: str, limit: int = 20) -> List[BillRecord]:
        data = await self._request(
            f"/member/{bioguide_id}/sponsored-legislation",
            {"format": "json", "limit": limit},
            allow_not_found=True,
        )
        if not data:
            return []
        bills = [
            normalize_bill(raw, self.current_congress)
            for raw in data.get("sponsoredLegislation") or []
            if raw.get("type") and raw.get("number")
        ]
        return bills[:limit]
