"""
Dashboard statistics: AI-estimated lobbying spend, the congressional news
feed and a weekly news summary. Everything here sits behind DashboardCache.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from civicpulse.errors import CivicPulseError
from civicpulse.models.schemas import LobbyingStats, NewsFeed, NewsSummary, dump
from civicpulse.services.dashboard_cache import DashboardCache
from civicpulse.services.generative_service import GenerativeService, Parsed, Unparsed
from civicpulse.services.news_service import NewsDataService

logger = logging.getLogger(__name__)

LOBBYING_KEY = "lobbying_stats"
NEWS_FEED_KEY = "news_feed"
NEWS_SUMMARY_KEY = "news_summary"

MOCK_LOBBYING_AMOUNT = 45_200_000
MOCK_LOBBYING_CHANGE = "+23%"

UNIT_MULTIPLIERS = {"B": 1_000_000_000, "M": 1_000_000, "K": 1_000}
AMOUNT_WITH_UNIT = re.compile(r"\$?\s*(\d+(?:,\d{3})*(?:\.\d+)?)\s*([BMK])\b", re.IGNORECASE)
DOLLAR_AMOUNT = re.compile(r"\$\s*(\d+(?:,\d{3})*(?:\.\d+)?)")
SIGNED_PERCENT = re.compile(r"([+-]\s?\d+(?:\.\d+)?)\s*%")

MOCK_NEWS_SUMMARY = (
    "Congress spent the week on appropriations negotiations, with committee hearings on "
    "border security, health care costs and technology regulation. (Sample summary: "
    "no AI provider is configured.)"
)


def format_amount(amount: float) -> str:
    for unit in ("B", "M", "K"):
        if amount >= UNIT_MULTIPLIERS[unit]:
            return f"${amount / UNIT_MULTIPLIERS[unit]:.1f}{unit}"
    return f"${amount:,.0f}"


def extract_lobbying_stats(text: str, now: datetime) -> LobbyingStats:
    """Best-effort amount and change from unstructured model output"""
    amount: float = MOCK_LOBBYING_AMOUNT
    match = AMOUNT_WITH_UNIT.search(text)
    if match:
        amount = round(float(match.group(1).replace(",", "")) * UNIT_MULTIPLIERS[match.group(2).upper()], 2)
    else:
        match = DOLLAR_AMOUNT.search(text)
        if match:
            amount = float(match.group(1).replace(",", ""))

    change_match = SIGNED_PERCENT.search(text)
    change = change_match.group(1).replace(" ", "") + "%" if change_match else MOCK_LOBBYING_CHANGE

    return LobbyingStats(
        amount=amount,
        formatted=format_amount(amount),
        change=change,
        last_updated=now.isoformat(),
        source="AI extracted from response",
        raw_text=text,
    )


def _parsed_lobbying_stats(value: Dict[str, Any], now: datetime) -> Optional[LobbyingStats]:
    try:
        amount = float(value["amount"])
    except (KeyError, TypeError, ValueError):
        return None
    return LobbyingStats(
        amount=amount,
        formatted=str(value.get("formatted") or format_amount(amount)),
        change=str(value.get("change") or "0%"),
        timeframe=str(value.get("timeframe") or "vs last month"),
        last_updated=str(value.get("lastUpdated") or now.isoformat()),
        source=str(value.get("source") or "AI estimate"),
    )


class StatsService:
    def __init__(
        self,
        generative: GenerativeService,
        news: NewsDataService,
        cache: DashboardCache,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.generative = generative
        self.news = news
        self.cache = cache
        self.now = now

    async def get_lobbying_stats(self) -> Dict[str, Any]:
        cached = self.cache.get_cached(LOBBYING_KEY)
        if cached is not None:
            logger.info("Using cached lobbying stats")
            return {**cached.value, "source": "cached"}

        now = self.now()
        if not self.generative.enabled:
            return dump(LobbyingStats(
                amount=MOCK_LOBBYING_AMOUNT,
                formatted=format_amount(MOCK_LOBBYING_AMOUNT),
                change=MOCK_LOBBYING_CHANGE,
                last_updated=now.isoformat(),
                source="mock",
            ))

        prompt = (
            "Estimate total registered federal lobbying spending in the United States for the "
            "current month, based on Lobbying Disclosure Act filings.\n"
            "Return ONLY a JSON object with this exact structure:\n"
            '{"amount": <total dollars, no commas>, "formatted": "<e.g. $45.2M>", '
            '"change": "<e.g. +23% or -8%>", "timeframe": "<e.g. vs last month>", '
            '"lastUpdated": "<ISO date>", "source": "<data source>"}'
        )
        try:
            result = await self.generative.generate_json(prompt, temperature=0.3)
        except CivicPulseError as e:
            logger.error("Lobbying stats generation failed: %s", e)
            return dump(LobbyingStats(
                amount=MOCK_LOBBYING_AMOUNT,
                formatted=format_amount(MOCK_LOBBYING_AMOUNT),
                change=MOCK_LOBBYING_CHANGE,
                last_updated=now.isoformat(),
                source="fallback",
            ))

        stats = None
        if isinstance(result, Parsed) and isinstance(result.value, dict):
            stats = _parsed_lobbying_stats(result.value, now)
        if stats is None:
            raw = result.raw if isinstance(result, Unparsed) else str(result.value)
            stats = extract_lobbying_stats(raw, now)

        value = dump(stats)
        self.cache.set_cached(LOBBYING_KEY, value)
        return value

    async def get_news_feed(self, limit: int = 6) -> Dict[str, Any]:
        cached = self.cache.get_cached(NEWS_FEED_KEY)
        if cached is not None and len(cached.value["articles"]) >= limit:
            return {"articles": cached.value["articles"][:limit], "source": "cached"}

        if not self.news.configured:
            return dump(NewsFeed(articles=[], source="unconfigured"))

        articles = await self.news.fetch_articles(limit)
        value = dump(NewsFeed(articles=articles, source="newsdata"))
        self.cache.set_cached(NEWS_FEED_KEY, value)
        return value

    async def get_news_summary(self) -> Dict[str, Any]:
        cached = self.cache.get_cached(NEWS_SUMMARY_KEY)
        if cached is not None:
            return cached.value

        if not self.generative.enabled:
            return dump(NewsSummary(summary=MOCK_NEWS_SUMMARY, source="mock"))

        headlines = ""
        if self.news.configured:
            try:
                articles = await self.news.fetch_articles(10)
                headlines = "\n".join(f"- {a.title}" for a in articles)
            except CivicPulseError as e:
                logger.warning("Headlines unavailable for the news summary: %s", e)

        prompt = (
            "Summarize the most important developments in the U.S. Congress this week in 3-4 "
            "factual, neutral sentences."
        )
        if headlines:
            prompt += f"\nRecent headlines:\n{headlines}"

        try:
            summary = await self.generative.generate(prompt, temperature=0.3, max_tokens=300)
        except CivicPulseError as e:
            logger.error("News summary generation failed: %s", e)
            return dump(NewsSummary(summary=MOCK_NEWS_SUMMARY, source="fallback"))

        value = dump(NewsSummary(summary=summary, source="ai"))
        self.cache.set_cached(NEWS_SUMMARY_KEY, value)
        return value
