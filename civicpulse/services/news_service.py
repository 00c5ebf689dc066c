import logging
from typing import Any, Dict, List

from civicpulse.errors import MalformedResponse
from civicpulse.models.schemas import NewsArticle
from civicpulse.services.gateway import BaseGateway

logger = logging.getLogger(__name__)

CONGRESS_QUERY = "congress OR senate OR house OR legislation OR bill"


def normalize_article(raw: Dict[str, Any]) -> NewsArticle:
    content = raw.get("content") or ""
    description = raw.get("description") or (content[:200] + "..." if content else "")
    snippet = raw.get("description") or (content[:150] + "..." if content else raw.get("title") or "")
    return NewsArticle(
        title=raw.get("title") or "Untitled",
        description=description,
        url=raw.get("link") or raw.get("url") or "",
        image_url=raw.get("image_url"),
        published_at=raw.get("pubDate"),
        source=raw.get("source_id") or "Unknown",
        snippet=snippet,
    )


class NewsDataService(BaseGateway):
    """Congressional news from NewsData.io"""

    provider = "newsdata"
    key_param = "apikey"

    async def fetch_articles(self, limit: int = 6) -> List[NewsArticle]:
        data = await self._request(
            "/news",
            {"q": CONGRESS_QUERY, "country": "us", "language": "en", "size": limit},
        )
        if data.get("status") != "success":
            raise MalformedResponse(self.provider, f"status {data.get('status')!r}")

        articles = [normalize_article(raw) for raw in data.get("results") or [] if raw.get("title")]
        logger.info("Found %d news articles from NewsData.io", len(articles))
        return articles[:limit]
