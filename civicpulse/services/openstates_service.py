import logging
from typing import Any, Dict, List, Optional

from civicpulse.services.gateway import BaseGateway

logger = logging.getLogger(__name__)

DEFAULT_INCLUDES = ["sponsorships", "abstracts", "actions"]
MAX_PER_PAGE = 50


class OpenStatesService(BaseGateway):
    """State legislation from the OpenStates v3 API"""

    provider = "openstates"
    key_param = "apikey"

    async def search_bills(
        self,
        query: Optional[str] = None,
        jurisdiction: str = "California",
        session: Optional[str] = None,
        page: int = 1,
        per_page: int = 10,
        sort: str = "updated_desc",
        include: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """Returns `{results, pagination}` as served by OpenStates"""
        data = await self._request(
            "/bills",
            {
                "jurisdiction": jurisdiction,
                "q": query,
                "session": session,
                "page": page,
                "per_page": min(per_page, MAX_PER_PAGE),
                "sort": sort,
                "include": include or DEFAULT_INCLUDES,
            },
        )
        results = data.get("results") or []
        logger.info("OpenStates returned %d bills for %s", len(results), jurisdiction)
        return {"results": results, "pagination": data.get("pagination") or {}}

    async def get_jurisdictions(self, classification: str = "state") -> List[Dict[str, Any]]:
        data = await self._request("/jurisdictions", {"classification": classification, "per_page": 52})
        return data.get("results") or []
