"""
Test configuration for CivicPulse
"""

from unittest.mock import AsyncMock, Mock

import pytest

from civicpulse.config import Settings
from civicpulse.models.schemas import BillRecord
from civicpulse.services.dashboard_cache import DashboardCache
from civicpulse.services.embedding_service import EmbeddingService
from civicpulse.services.vector_index import BillVectorIndex


class FakeClock:
    """Manually advanced replacement for time.time"""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async stand-in for asyncio.sleep that records requested delays"""

    def __init__(self):
        self.calls = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)


def make_bill(number: str, title: str, **fields) -> BillRecord:
    bill_type = fields.pop("bill_type", "HR")
    return BillRecord(
        id=f"118-{bill_type}-{number}",
        congress=118,
        bill_type=bill_type,
        number=number,
        title=title,
        **fields,
    )


@pytest.fixture
def bill_factory():
    return make_bill


@pytest.fixture
def settings():
    return Settings(congress_api_key="test-congress-key", embedding_provider="hashing")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_sleep():
    return RecordingSleep()


@pytest.fixture
def hashing_embedder():
    return EmbeddingService(provider="hashing")


@pytest.fixture
def vector_index(hashing_embedder, clock, fake_sleep):
    return BillVectorIndex(hashing_embedder, clock=clock, sleep=fake_sleep)


@pytest.fixture
def cache(clock):
    return DashboardCache(clock=clock)


@pytest.fixture
def sample_bills():
    return [
        make_bill(
            "3684",
            "Infrastructure Investment and Jobs Act",
            sponsor="Peter DeFazio",
            sponsor_party="D",
            introduced_date="2024-03-01",
            summary="Authorizes funds for federal-aid highways, highway safety programs and transit programs.",
        ),
        make_bill(
            "5555",
            "Universal Background Check Act",
            sponsor="Sarah Martinez",
            sponsor_party="D",
            introduced_date="2024-01-20",
            summary="Requires a background check for every firearm sale, including sales by unlicensed sellers.",
        ),
        make_bill(
            "1120",
            "Climate Action Bill",
            bill_type="S",
            sponsor="Carol Williams",
            sponsor_party="D",
            introduced_date="2024-02-15",
            summary="Sets emission reduction targets.",
        ),
    ]


@pytest.fixture
def mock_congress(sample_bills):
    """Congress gateway returning the sample bills"""
    congress = Mock()
    congress.fetch_recent_bills = AsyncMock(return_value=sample_bills)
    congress.fetch_member_sponsored_bills = AsyncMock(return_value=sample_bills)
    congress.fetch_bill = AsyncMock(return_value=sample_bills[0])
    return congress


@pytest.fixture
def disabled_generative():
    generative = Mock()
    generative.enabled = False
    generative.generate = AsyncMock(side_effect=AssertionError("generation should not be called"))
    generative.generate_json = AsyncMock(side_effect=AssertionError("generation should not be called"))
    return generative


@pytest.fixture
def mock_generative():
    generative = Mock()
    generative.enabled = True
    generative.generate = AsyncMock(return_value="These bills address the query.")
    generative.generate_json = AsyncMock()
    return generative
