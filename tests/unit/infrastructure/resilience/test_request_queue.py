import asyncio

import pytest

from formacli.domain.errors import QueueClosedError
from formacli.infrastructure.resilience.request_queue import RequestQueueService


@pytest.mark.asyncio
async def test_requests_run_in_submission_order(queue_sleep):
    queue = RequestQueueService(inter_request_delay=0.1, sleep=queue_sleep)
    order = []

    def job(i):
        async def run():
            order.append(i)
            return i * 10
        return run

    results = await asyncio.gather(*(queue.submit(job(i), label=f"job {i}") for i in range(4)))

    assert order == [0, 1, 2, 3]
    assert results == [0, 10, 20, 30]
    assert queue_sleep.calls == [0.1, 0.1, 0.1]
    assert not queue.is_processing
    assert queue.pending == 0


@pytest.mark.asyncio
async def test_failure_goes_to_its_caller_and_queue_continues(queue_sleep):
    queue = RequestQueueService(sleep=queue_sleep)

    async def fails():
        raise ValueError("bad")

    async def succeeds():
        return "ok"

    results = await asyncio.gather(queue.submit(fails), queue.submit(succeeds), return_exceptions=True)

    assert isinstance(results[0], ValueError)
    assert results[1] == "ok"


@pytest.mark.asyncio
async def test_only_one_drain_loop_runs(queue_sleep):
    queue = RequestQueueService(sleep=queue_sleep)
    running = 0
    peak = 0

    async def job():
        nonlocal running, peak
        running += 1
        peak = max(peak, running)
        await asyncio.sleep(0)
        running -= 1

    first = asyncio.ensure_future(queue.submit(job))
    await asyncio.sleep(0)
    assert queue.is_processing
    await asyncio.gather(first, queue.submit(job), queue.submit(job))

    assert peak == 1


@pytest.mark.asyncio
async def test_single_request_is_not_delayed(queue_sleep):
    queue = RequestQueueService(sleep=queue_sleep)

    async def job():
        return 1

    assert await queue.submit(job) == 1
    assert queue_sleep.calls == []


@pytest.mark.asyncio
async def test_close_rejects_pending_requests():
    queue = RequestQueueService(inter_request_delay=0)
    release = asyncio.Event()

    async def blocking():
        await release.wait()
        return "never"

    async def quick():
        return "never either"

    in_flight = asyncio.ensure_future(queue.submit(blocking, label="blocking"))
    waiting = asyncio.ensure_future(queue.submit(quick, label="quick"))
    await asyncio.sleep(0.01)

    await queue.close()

    with pytest.raises(QueueClosedError):
        await in_flight
    with pytest.raises(QueueClosedError):
        await waiting
    with pytest.raises(QueueClosedError):
        await queue.submit(quick)
