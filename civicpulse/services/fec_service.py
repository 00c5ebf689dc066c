"""
Campaign-finance gateway for the OpenFEC API.

Each method returns the provider's paginated envelope `{results, pagination}`.
"""

import logging
from datetime import date
from typing import Any, Dict, Optional

from civicpulse.services.gateway import BaseGateway

logger = logging.getLogger(__name__)

MAX_PER_PAGE = 100


class FECService(BaseGateway):
    provider = "fec"

    async def _paginated(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        data = await self._request(path, params)
        return {"results": data.get("results") or [], "pagination": data.get("pagination") or {}}

    async def get_candidate_totals(self, candidate_id: str, cycle: Optional[int] = None) -> Dict[str, Any]:
        return await self._paginated(
            f"/candidate/{candidate_id}/totals/",
            {"cycle": cycle, "sort": "-cycle"},
        )

    async def get_contributions_by_employer(self, candidate_id: str, cycle: int, limit: int = 10) -> Dict[str, Any]:
        return await self._paginated(
            "/schedules/schedule_a/by_employer/",
            {"candidate_id": candidate_id, "cycle": cycle, "per_page": limit, "sort": "-total"},
        )

    async def get_contributions_by_occupation(self, candidate_id: str, cycle: int, limit: int = 10) -> Dict[str, Any]:
        return await self._paginated(
            "/schedules/schedule_a/by_occupation/",
            {"candidate_id": candidate_id, "cycle": cycle, "per_page": limit, "sort": "-total"},
        )

    async def search_candidates(
        self,
        name: Optional[str] = None,
        state: Optional[str] = None,
        office: Optional[str] = None,
        cycle: Optional[int] = None,
        per_page: int = 20,
    ) -> Dict[str, Any]:
        return await self._paginated(
            "/candidates/search/",
            {
                "q": name,
                "state": state,
                "office": office,
                "cycle": cycle,
                "per_page": min(per_page, MAX_PER_PAGE),
                "sort": "name",
            },
        )

    async def get_independent_expenditures(
        self, min_date: date, max_date: date, per_page: int = MAX_PER_PAGE
    ) -> Dict[str, Any]:
        return await self._paginated(
            "/schedules/schedule_e/",
            {
                "min_date": min_date.isoformat(),
                "max_date": max_date.isoformat(),
                "per_page": min(per_page, MAX_PER_PAGE),
                "sort": "-expenditure_date",
            },
        )
