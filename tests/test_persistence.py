"""
Test cases for the dashboard cache and the persisted embedding index
"""

import pytest

from civicpulse.models.database import Database
from civicpulse.services.dashboard_cache import DashboardCache, MemoryCacheStore, SqlCacheStore
from civicpulse.services.vector_index import BillVectorIndex, EmbeddingEntry, SqlEmbeddingStore


@pytest.fixture
def database():
    db = Database("sqlite:///:memory:")
    db.create_all()
    yield db
    db.dispose()


class TestDashboardCache:

    def test_miss_then_hit(self, cache):
        assert cache.get_cached("news_feed") is None

        cache.set_cached("news_feed", {"articles": []})

        assert cache.get_cached("news_feed").value == {"articles": []}

    def test_entry_expires_at_its_ttl(self, cache, clock):
        cache.set_cached("news_feed", {"articles": []})

        clock.advance(15 * 60 - 1)
        assert cache.get_cached("news_feed") is not None

        clock.advance(1)
        assert cache.get_cached("news_feed") is None

    def test_unknown_keys_use_default_ttl(self, clock):
        cache = DashboardCache(ttls={}, default_ttl=10, clock=clock)
        cache.set_cached("custom", 1)

        clock.advance(9)
        assert cache.get_cached("custom").value == 1
        clock.advance(1)
        assert cache.get_cached("custom") is None

    def test_overwrite_refreshes_timestamp(self, cache, clock):
        cache.set_cached("lobbying_stats", {"amount": 1})
        clock.advance(5 * 60 * 60)
        entry = cache.set_cached("lobbying_stats", {"amount": 2})
        clock.advance(2 * 60 * 60)

        assert cache.get_cached("lobbying_stats").value == {"amount": 2}
        assert entry.written_at == clock.now - 2 * 60 * 60

    def test_memory_store_is_default(self, cache):
        assert isinstance(cache.store, MemoryCacheStore)


class TestSqlCacheStore:

    def test_round_trip_and_overwrite(self, database, clock):
        cache = DashboardCache(SqlCacheStore(database), clock=clock)

        cache.set_cached("finance_dashboard", {"nodes": [1, 2]})
        cache.set_cached("finance_dashboard", {"nodes": [3]})

        entry = cache.get_cached("finance_dashboard")
        assert entry.value == {"nodes": [3]}
        assert entry.written_at == clock.now

    def test_expiry_uses_stored_timestamp(self, database, clock):
        cache = DashboardCache(SqlCacheStore(database), clock=clock)
        cache.set_cached("finance_dashboard", {"nodes": []})

        clock.advance(6 * 60 * 60)

        assert cache.get_cached("finance_dashboard") is None
        # expired rows are kept until overwritten
        assert SqlCacheStore(database).get("finance_dashboard") is not None


class TestSqlEmbeddingStore:

    def test_save_replaces_previous_index(self, database):
        store = SqlEmbeddingStore(database, "hashing")
        store.save([EmbeddingEntry("118-HR-1", [1.0, 0.0], "Old Bill")])
        store.save([EmbeddingEntry("118-HR-2", [0.0, 1.0], "New Bill", tags=["Energy"])])

        entries = store.load()

        assert [e.bill_id for e in entries] == ["118-HR-2"]
        assert entries[0].tags == ["Energy"]
        assert entries[0].embedding == [0.0, 1.0]

    def test_other_provider_vectors_are_ignored(self, database):
        SqlEmbeddingStore(database, "openai").save([EmbeddingEntry("118-HR-1", [0.5, 0.5], "Bill")])

        assert SqlEmbeddingStore(database, "hashing").load() == []

    @pytest.mark.asyncio
    async def test_index_survives_restart(self, database, hashing_embedder, sample_bills, clock, fake_sleep):
        store = SqlEmbeddingStore(database, "hashing")
        index = BillVectorIndex(hashing_embedder, store=store, clock=clock, sleep=fake_sleep)
        await index.index_bills(sample_bills)
        index.save()

        restarted = BillVectorIndex(hashing_embedder, store=store, clock=clock, sleep=fake_sleep)

        assert restarted.load() == 3
        assert restarted.is_stale
        results = await restarted.search("climate")
        assert results[0].id == "118-S-1120"
