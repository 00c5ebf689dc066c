"""
Runtime configuration for CivicPulse.

Settings are read from the environment (optionally via a .env file). API keys
that still hold template placeholders are treated as unset so the services
can fall back to clearly labelled mock responses.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from dotenv import load_dotenv

HOUR = 60 * 60
MINUTE = 60

# Per-metric cache lifetimes in seconds
DEFAULT_CACHE_TTLS: Dict[str, int] = {
    "finance_dashboard": 6 * HOUR,
    "dashboard_stats": 6 * HOUR,
    "lobbying_stats": 6 * HOUR,
    "news_feed": 15 * MINUTE,
    "news_summary": 12 * HOUR,
}
DEFAULT_CACHE_TTL = 1 * HOUR


def is_configured(key: Optional[str]) -> bool:
    """Return True if an API key looks real rather than a template placeholder"""
    if not key or not key.strip():
        return False
    lowered = key.strip().lower()
    return "your_" not in lowered and not lowered.endswith("_here")


@dataclass
class Settings:
    congress_api_key: Optional[str] = None
    congress_base_url: str = "https://api.congress.gov/v3"
    current_congress: int = 118

    openstates_api_key: Optional[str] = None
    openstates_base_url: str = "https://v3.openstates.org"

    fec_api_key: str = "DEMO_KEY"
    fec_base_url: str = "https://api.open.fec.gov/v1"

    lda_api_key: Optional[str] = None
    lda_base_url: str = "https://lda.senate.gov/api/v1"

    newsdata_api_key: Optional[str] = None
    newsdata_base_url: str = "https://newsdata.io/api/1"

    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    localai_url: str = "http://localhost:8080"
    embedding_provider: str = "openai"
    embedding_model: str = "text-embedding-3-small"
    local_embedding_model: str = "all-MiniLM-L6-v2"
    generative_model: str = "gpt-4o-mini"

    database_url: str = "sqlite:///./civicpulse.db"
    cache_backend: str = "memory"
    persist_index: bool = False

    http_timeout: float = 30.0
    index_ttl_seconds: int = 30 * MINUTE
    index_window: int = 100
    keyword_window: int = 50
    log_level: str = "INFO"

    cache_ttls: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_CACHE_TTLS))
    default_cache_ttl: int = DEFAULT_CACHE_TTL

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Settings":
        """Build settings from environment variables"""
        load_dotenv(env_file)

        openai_key = os.getenv("OPENAI_API_KEY")
        provider = os.getenv("EMBEDDING_PROVIDER")
        if not provider:
            # Without an OpenAI key the deterministic hashing embedder keeps search usable
            provider = "openai" if is_configured(openai_key) else "hashing"

        return cls(
            congress_api_key=os.getenv("CONGRESS_API_KEY"),
            current_congress=int(os.getenv("CURRENT_CONGRESS", "118")),
            openstates_api_key=os.getenv("OPENSTATES_API_KEY"),
            fec_api_key=os.getenv("FEC_API_KEY", "DEMO_KEY"),
            lda_api_key=os.getenv("LDA_API_KEY"),
            newsdata_api_key=os.getenv("NEWSDATA_API_KEY"),
            openai_api_key=openai_key,
            openai_base_url=os.getenv("OPENAI_BASE_URL") or None,
            localai_url=os.getenv("LOCALAI_URL", "http://localhost:8080"),
            embedding_provider=provider,
            embedding_model=os.getenv("EMBEDDING_MODEL", "text-embedding-3-small"),
            local_embedding_model=os.getenv("LOCAL_EMBEDDING_MODEL", "all-MiniLM-L6-v2"),
            generative_model=os.getenv("GENERATIVE_MODEL", "gpt-4o-mini"),
            database_url=os.getenv("DATABASE_URL", "sqlite:///./civicpulse.db"),
            cache_backend=os.getenv("CACHE_BACKEND", "memory"),
            persist_index=os.getenv("PERSIST_INDEX", "false").lower() in ("1", "true", "yes"),
            http_timeout=float(os.getenv("HTTP_TIMEOUT", "30")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    @property
    def generative_enabled(self) -> bool:
        return is_configured(self.openai_api_key)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
