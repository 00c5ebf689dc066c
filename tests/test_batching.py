"""
Test cases for the fixed-delay batch scheduler
"""

import pytest

from civicpulse.services.batching import chunk, run_in_batches


class TestChunk:

    def test_even_and_ragged_chunks(self):
        assert chunk([1, 2, 3, 4], 2) == [[1, 2], [3, 4]]
        assert chunk([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]
        assert chunk([], 3) == []

    def test_size_must_be_positive(self):
        with pytest.raises(ValueError):
            chunk([1], 0)


class TestRunInBatches:

    @pytest.mark.asyncio
    async def test_results_keep_input_order(self, fake_sleep):
        async def double(x):
            return x * 2

        results = await run_in_batches([1, 2, 3, 4, 5], double, batch_size=2, delay=0.5, sleep=fake_sleep)

        assert results == [2, 4, 6, 8, 10]

    @pytest.mark.asyncio
    async def test_sleeps_between_batches_only(self, fake_sleep):
        async def identity(x):
            return x

        await run_in_batches(list(range(12)), identity, batch_size=5, delay=0.5, sleep=fake_sleep)

        assert fake_sleep.calls == [0.5, 0.5]

    @pytest.mark.asyncio
    async def test_single_batch_never_sleeps(self, fake_sleep):
        async def identity(x):
            return x

        await run_in_batches([1, 2], identity, batch_size=5, sleep=fake_sleep)

        assert fake_sleep.calls == []

    @pytest.mark.asyncio
    async def test_batches_run_sequentially(self):
        events = []

        async def record(x):
            events.append(("start", x))
            return x

        async def sleep(delay):
            events.append(("sleep", delay))

        await run_in_batches([1, 2, 3], record, batch_size=2, delay=0.1, sleep=sleep)

        assert events == [("start", 1), ("start", 2), ("sleep", 0.1), ("start", 3)]

    @pytest.mark.asyncio
    async def test_worker_errors_propagate(self, fake_sleep):
        async def explode(x):
            raise RuntimeError(f"failed on {x}")

        with pytest.raises(RuntimeError):
            await run_in_batches([1], explode, sleep=fake_sleep)
