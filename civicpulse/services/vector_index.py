"""
In-memory embedding index over recent bills.

The index answers nearest-neighbour queries by cosine similarity and never
raises from `search`: an empty index or a failed query embedding yields no
results so the search orchestrator can fall through to its next tier.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from civicpulse.errors import CivicPulseError
from civicpulse.models.database import BillEmbeddingRow, Database
from civicpulse.models.schemas import BillRecord, IndexStats, SearchResult
from civicpulse.services.batching import run_in_batches
from civicpulse.services.congress_service import determine_status
from civicpulse.services.embedding_service import EmbeddingService, cosine_similarity

logger = logging.getLogger(__name__)

SUMMARY_CHARS = 500
DEFAULT_MIN_SIMILARITY = 0.2

BillLoader = Callable[[int], Awaitable[List[BillRecord]]]


@dataclass
class EmbeddingEntry:
    bill_id: str
    embedding: List[float]
    title: str
    summary: str = ""
    sponsor: Optional[str] = None
    date: Optional[str] = None
    status: Optional[str] = None
    tags: List[str] = field(default_factory=list)


class SqlEmbeddingStore:
    """Persists the index so a restart does not re-embed every bill"""

    def __init__(self, database: Database, provider: str):
        self.database = database
        self.provider = provider

    def save(self, entries: Sequence[EmbeddingEntry]) -> None:
        with self.database.session() as session:
            session.execute(delete(BillEmbeddingRow))
            session.add_all(
                BillEmbeddingRow(
                    bill_id=entry.bill_id,
                    title=entry.title,
                    summary=entry.summary,
                    sponsor=entry.sponsor,
                    date=entry.date,
                    status=entry.status,
                    tags=list(entry.tags),
                    embedding=list(entry.embedding),
                    provider=self.provider,
                )
                for entry in entries
            )
            session.commit()

    def load(self) -> List[EmbeddingEntry]:
        """Entries written by the same embedding provider; vectors from
        another provider are not comparable and are ignored"""
        with self.database.session() as session:
            rows = session.scalars(
                select(BillEmbeddingRow).where(BillEmbeddingRow.provider == self.provider)
            ).all()
            return [
                EmbeddingEntry(
                    bill_id=row.bill_id,
                    embedding=list(row.embedding),
                    title=row.title,
                    summary=row.summary or "",
                    sponsor=row.sponsor,
                    date=row.date,
                    status=row.status,
                    tags=list(row.tags or []),
                )
                for row in rows
            ]


class BillVectorIndex:
    def __init__(
        self,
        embedding_service: EmbeddingService,
        store: Optional[SqlEmbeddingStore] = None,
        ttl_seconds: float = 30 * 60,
        window: int = 100,
        batch_size: int = 5,
        batch_delay: float = 0.1,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.embedding_service = embedding_service
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.window = window
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.clock = clock
        self.sleep = sleep

        self.entries: List[EmbeddingEntry] = []
        self.last_update: Optional[float] = None

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def is_stale(self) -> bool:
        if not self.entries or self.last_update is None:
            return True
        return self.clock() - self.last_update >= self.ttl_seconds

    async def _embed_bill(self, bill: BillRecord) -> Optional[EmbeddingEntry]:
        try:
            embedding = await self.embedding_service.embed_document(bill.title, bill.summary[:SUMMARY_CHARS])
        except CivicPulseError as e:
            logger.warning("Skipping bill %s: embedding failed: %s", bill.id, e)
            return None

        return EmbeddingEntry(
            bill_id=bill.id,
            embedding=embedding,
            title=bill.title,
            summary=bill.summary,
            sponsor=bill.sponsor,
            date=bill.introduced_date or bill.latest_action_date,
            status=determine_status(bill.latest_action_text),
            tags=list(bill.tags),
        )

    async def index_bills(self, bills: Sequence[BillRecord]) -> int:
        """Embed bills and replace the index with them.

        The index holds one entry per bill id; a bill listed twice is embedded
        once from its last occurrence. Bills whose embedding fails are
        skipped. When nothing could be embedded the previous index is kept.
        """
        unique = list({bill.id: bill for bill in bills}.values())
        results = await run_in_batches(
            unique,
            self._embed_bill,
            batch_size=self.batch_size,
            delay=self.batch_delay,
            sleep=self.sleep,
        )
        entries = [entry for entry in results if entry is not None]
        if not entries:
            logger.warning("No embeddings generated for %d bills; keeping existing index", len(unique))
            return 0

        self.entries = entries
        self.last_update = self.clock()
        logger.info("Vector index built with %d of %d bills", len(entries), len(unique))
        return len(entries)

    def _score(self, cosine: float) -> float:
        if self.embedding_service.non_negative:
            score = cosine
        else:
            score = (cosine + 1.0) / 2.0
        return min(max(score, 0.0), 1.0)

    async def search(
        self, query_text: str, k: int = 10, min_similarity: float = DEFAULT_MIN_SIMILARITY
    ) -> List[SearchResult]:
        """Top-k bills by similarity to the query, best first"""
        if not self.entries:
            return []

        try:
            query_embedding = await self.embedding_service.embed(query_text)
        except CivicPulseError as e:
            logger.warning("Query embedding failed, returning no vector results: %s", e)
            return []

        scored = []
        for entry in self.entries:
            cosine = cosine_similarity(query_embedding, entry.embedding)
            if cosine < min_similarity:
                continue
            scored.append((self._score(cosine), entry.date or "", entry))

        # ties go to the most recently introduced bill
        scored.sort(key=lambda item: (item[0], item[1]), reverse=True)

        return [
            SearchResult(
                id=entry.bill_id,
                title=entry.title,
                summary=entry.summary,
                sponsor=entry.sponsor or "Unknown",
                date=entry.date,
                status=entry.status or "Introduced",
                tags=entry.tags,
                similarity=round(score, 4),
                provenance="vector",
            )
            for score, _, entry in scored[:k]
        ]

    async def refresh_if_stale(self, loader: BillLoader, force: bool = False) -> bool:
        """Rebuild from `loader(window)` when empty, expired or forced.

        Returns True if the index was rebuilt. Loader failures are logged and
        leave the current index in place.
        """
        if not force and not self.is_stale:
            return False

        try:
            bills = await loader(self.window)
        except CivicPulseError as e:
            logger.error("Could not load bills for the vector index: %s", e)
            return False

        if not bills:
            logger.warning("No bills found to build vector index")
            return False

        if not await self.index_bills(bills):
            return False
        self.save()
        return True

    def stats(self) -> IndexStats:
        return IndexStats(
            total_bills=len(self.entries),
            is_built=bool(self.entries),
            last_update=self.last_update,
            provider=self.embedding_service.provider,
        )

    def clear(self) -> None:
        self.entries = []
        self.last_update = None

    def load(self) -> int:
        if self.store is None:
            return 0
        try:
            entries = self.store.load()
        except SQLAlchemyError as e:
            logger.error("Could not load persisted bill embeddings: %s", e)
            return 0
        if entries:
            self.entries = entries
            # loaded vectors are considered stale so the first search refreshes them
            self.last_update = None
        logger.info("Loaded %d persisted bill embeddings", len(entries))
        return len(entries)

    def save(self) -> bool:
        """Persist the current entries. A database failure is logged and the
        in-memory index stays usable."""
        if self.store is None:
            return False
        try:
            self.store.save(self.entries)
        except SQLAlchemyError as e:
            logger.error("Could not persist %d bill embeddings: %s", len(self.entries), e)
            return False
        logger.info("Persisted %d bill embeddings", len(self.entries))
        return True
