"""
Process-wide service wiring.

The container is built once at start-up (FastAPI lifespan) and handed to
request handlers by reference; nothing is created at import time.
"""

import logging
from typing import Optional

import httpx
import openai

from civicpulse.config import Settings
from civicpulse.models.database import Database
from civicpulse.services.congress_service import CongressService
from civicpulse.services.dashboard_cache import DashboardCache, MemoryCacheStore, SqlCacheStore
from civicpulse.services.embedding_service import EmbeddingService
from civicpulse.services.fec_service import FECService
from civicpulse.services.finance_service import FinanceService
from civicpulse.services.generative_service import GenerativeService
from civicpulse.services.lda_service import LDAService
from civicpulse.services.news_service import NewsDataService
from civicpulse.services.openstates_service import OpenStatesService
from civicpulse.services.polarization_service import PolarizationService
from civicpulse.services.search_service import SearchService
from civicpulse.services.stats_service import StatsService
from civicpulse.services.vector_index import BillVectorIndex, SqlEmbeddingStore

logger = logging.getLogger(__name__)


class ServiceContainer:
    def __init__(self, settings: Settings):
        self.settings = settings
        self.http_client: Optional[httpx.AsyncClient] = None
        self.openai_client: Optional[openai.AsyncOpenAI] = None
        self.database: Optional[Database] = None

    async def init(self) -> "ServiceContainer":
        s = self.settings
        self.http_client = httpx.AsyncClient(timeout=s.http_timeout)
        if s.generative_enabled:
            self.openai_client = openai.AsyncOpenAI(
                api_key=s.openai_api_key, base_url=s.openai_base_url, timeout=s.http_timeout
            )
        else:
            logger.warning("OPENAI_API_KEY not configured; AI features will use fallbacks")

        if s.cache_backend == "sql" or s.persist_index:
            self.database = Database(s.database_url)
            self.database.create_all()

        self.congress = CongressService(
            self.http_client, s.congress_base_url, s.congress_api_key, s.http_timeout, s.current_congress
        )
        self.openstates = OpenStatesService(self.http_client, s.openstates_base_url, s.openstates_api_key, s.http_timeout)
        self.fec = FECService(self.http_client, s.fec_base_url, s.fec_api_key, s.http_timeout)
        self.lda = LDAService(self.http_client, s.lda_base_url, s.lda_api_key, s.http_timeout)
        self.news = NewsDataService(self.http_client, s.newsdata_base_url, s.newsdata_api_key, s.http_timeout)

        self.embeddings = EmbeddingService(
            provider=s.embedding_provider,
            openai_client=self.openai_client,
            http_client=self.http_client,
            localai_url=s.localai_url,
            model=s.embedding_model,
            local_model=s.local_embedding_model,
            timeout=s.http_timeout,
        )
        self.generative = GenerativeService(self.openai_client, s.generative_model)

        store = SqlCacheStore(self.database) if s.cache_backend == "sql" else MemoryCacheStore()
        self.cache = DashboardCache(store, ttls=s.cache_ttls, default_ttl=s.default_cache_ttl)

        embedding_store = SqlEmbeddingStore(self.database, s.embedding_provider) if s.persist_index else None
        self.vector_index = BillVectorIndex(
            self.embeddings,
            store=embedding_store,
            ttl_seconds=s.index_ttl_seconds,
            window=s.index_window,
        )
        self.vector_index.load()

        self.search = SearchService(self.congress, self.vector_index, self.generative, keyword_window=s.keyword_window)
        self.finance = FinanceService(self.fec, self.lda, self.generative, self.cache)
        self.polarization = PolarizationService(self.congress, self.generative)
        self.stats = StatsService(self.generative, self.news, self.cache)

        logger.info(
            "Services ready (embeddings=%s, cache=%s, generative=%s)",
            s.embedding_provider, s.cache_backend, "on" if self.generative.enabled else "off",
        )
        return self

    async def close(self) -> None:
        if self.http_client is not None:
            await self.http_client.aclose()
        if self.openai_client is not None:
            await self.openai_client.close()
        if self.database is not None:
            self.database.dispose()
