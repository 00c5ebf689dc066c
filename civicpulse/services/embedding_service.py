import asyncio
import hashlib
import logging
import re
from typing import List, Optional, Sequence

import httpx
import numpy as np
import openai

from civicpulse.errors import (
    InvalidInput,
    MalformedResponse,
    UpstreamAuthFailure,
    UpstreamTimeout,
    UpstreamUnavailable,
)
from civicpulse.services.generative_service import translate_openai_error

logger = logging.getLogger(__name__)

PROVIDERS = ("openai", "localai", "sentence-transformers", "hashing")
HASHING_DIMENSIONS = 768
# Word weight is (position + 1) ** -POSITION_DECAY
POSITION_DECAY = 1.5
SUMMARY_WEIGHT = 0.25
WORD = re.compile(r"\w+")


def _hashed_block(text: str, dimensions: int) -> np.ndarray:
    vector = np.zeros(dimensions)
    for index, word in enumerate(WORD.findall(text.lower())):
        bucket = int(hashlib.md5(word.encode("utf-8")).hexdigest(), 16) % dimensions
        vector[bucket] += (index + 1) ** -POSITION_DECAY

    norm = np.linalg.norm(vector)
    return vector / norm if norm else vector


def hashing_embedding(text: str, summary: str = "", dimensions: int = HASHING_DIMENSIONS) -> List[float]:
    """Deterministic bag-of-words embedding usable without any provider.

    Each word lands in a bucket chosen by a stable hash, and earlier words
    weigh most. The title and the summary are normalised separately and the
    summary block is scaled by SUMMARY_WEIGHT, so a long summary cannot
    drown out the title. The result is L2-normalised and every component is
    non-negative.
    """
    vector = _hashed_block(text, dimensions)
    if summary:
        vector = vector + SUMMARY_WEIGHT * _hashed_block(summary, dimensions)

    norm = np.linalg.norm(vector)
    if norm == 0:
        return vector.tolist()
    return (vector / norm).tolist()


def cosine_similarity(embedding1: Sequence[float], embedding2: Sequence[float]) -> float:
    """Calculate cosine similarity between two embeddings"""
    if not embedding1 or not embedding2 or len(embedding1) != len(embedding2):
        return 0.0

    vec1 = np.asarray(embedding1, dtype=float)
    vec2 = np.asarray(embedding2, dtype=float)

    norm1 = np.linalg.norm(vec1)
    norm2 = np.linalg.norm(vec2)
    if norm1 == 0 or norm2 == 0:
        return 0.0

    return float(np.dot(vec1, vec2) / (norm1 * norm2))


class EmbeddingService:
    """Text embeddings from one configured provider.

    Unlike a silent fallback chain, a provider failure is raised as an
    UpstreamError; the vector index decides whether to skip the item.
    """

    def __init__(
        self,
        provider: str = "hashing",
        openai_client: Optional[openai.AsyncOpenAI] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        localai_url: str = "http://localhost:8080",
        model: str = "text-embedding-3-small",
        local_model: str = "all-MiniLM-L6-v2",
        timeout: float = 30.0,
    ):
        if provider not in PROVIDERS:
            raise ValueError(f"Unknown embedding provider {provider!r}; expected one of {PROVIDERS}")
        self.provider = provider
        self.openai_client = openai_client
        self.http_client = http_client
        self.localai_url = localai_url.rstrip("/")
        self.model = model
        self.local_model = local_model
        self.timeout = timeout
        self._sentence_model = None

    @property
    def non_negative(self) -> bool:
        """True when every vector component is >= 0, so cosine lies in [0, 1]"""
        return self.provider == "hashing"

    async def embed(self, text: str) -> List[float]:
        if not text or not text.strip():
            raise InvalidInput("Cannot embed empty text")

        if self.provider == "hashing":
            return hashing_embedding(text)
        if self.provider == "openai":
            return await self._generate_openai_embedding(text)
        if self.provider == "localai":
            return await self._generate_localai_embedding(text)
        return await self._generate_local_embedding(text)

    async def embed_document(self, title: str, summary: str = "") -> List[float]:
        """Embed a bill. Model providers see `title summary` as one text; the
        hashing embedder keeps the title dominant."""
        if self.provider == "hashing" and title and title.strip():
            return hashing_embedding(title, summary)
        return await self.embed(f"{title} {summary}".strip())

    async def _generate_openai_embedding(self, text: str) -> List[float]:
        if self.openai_client is None:
            raise UpstreamAuthFailure("openai", "API key not configured")
        try:
            response = await self.openai_client.embeddings.create(model=self.model, input=text)
        except openai.OpenAIError as e:
            raise translate_openai_error(e) from e
        if not response.data:
            raise MalformedResponse("openai", "no embedding returned")
        return list(response.data[0].embedding)

    async def _generate_localai_embedding(self, text: str) -> List[float]:
        """LocalAI serves the OpenAI-compatible embeddings endpoint"""
        client = self.http_client or httpx.AsyncClient()
        try:
            response = await client.post(
                f"{self.localai_url}/v1/embeddings",
                json={"model": self.model, "input": text},
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            raise UpstreamTimeout("localai", "embedding request timed out") from e
        except httpx.TransportError as e:
            raise UpstreamUnavailable("localai", f"embedding request failed: {e}") from e
        finally:
            if self.http_client is None:
                await client.aclose()

        if response.status_code != 200:
            raise UpstreamUnavailable("localai", f"status {response.status_code}", response.status_code)
        try:
            data = response.json()
            return list(data["data"][0]["embedding"])
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise MalformedResponse("localai", "unexpected embeddings payload") from e

    def _load_sentence_model(self):
        if self._sentence_model is not None:
            return self._sentence_model

        # Optional dependency, only needed for this provider
        try:
            from sentence_transformers import SentenceTransformer
        except ImportError as e:
            raise UpstreamUnavailable(
                "sentence-transformers", "package not installed (install the local-embeddings extra)"
            ) from e

        try:
            self._sentence_model = SentenceTransformer(self.local_model)
        except Exception as e:
            raise UpstreamUnavailable("sentence-transformers", f"could not load {self.local_model}: {e}") from e
        logger.info("Loaded SentenceTransformer model %s", self.local_model)
        return self._sentence_model

    async def _generate_local_embedding(self, text: str) -> List[float]:
        model = self._load_sentence_model()
        try:
            embedding = await asyncio.to_thread(model.encode, text, convert_to_tensor=False)
        except Exception as e:
            raise UpstreamUnavailable("sentence-transformers", f"encode failed: {e}") from e

        try:
            return np.asarray(embedding, dtype=float).tolist()
        except (TypeError, ValueError) as e:
            raise MalformedResponse("sentence-transformers", "model returned a non-numeric embedding") from e
