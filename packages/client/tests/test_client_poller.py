"""Tests for ProjectionPoller scheduling, failure handling and sign-out."""

import asyncio
import uuid

import httpx
import pytest

from taskflow_client.client import TaskFlowClient
from taskflow_client.config import PollingConfig
from taskflow_client.poller import ProjectionPoller, board_poller


class Counter:
    def __init__(self, fail_on=()):
        self.calls = 0
        self.fail_on = set(fail_on)

    async def __call__(self):
        self.calls += 1
        if self.calls in self.fail_on:
            raise RuntimeError(f"refresh {self.calls} failed")
        return {"snapshot": self.calls}


async def _wait_for(predicate, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.005)


def test_rejects_non_positive_interval():
    with pytest.raises(ValueError):
        ProjectionPoller(Counter(), 0)


@pytest.mark.asyncio
async def test_refresh_now_notifies_handlers():
    seen = []
    poller = ProjectionPoller(Counter(), 1.0)
    poller.on_update(seen.append)

    snapshot = await poller.refresh_now()

    assert snapshot == {"snapshot": 1}
    assert poller.latest == snapshot
    assert poller.refresh_count == 1
    assert seen == [snapshot]


@pytest.mark.asyncio
async def test_failed_refresh_keeps_previous_snapshot():
    poller = ProjectionPoller(Counter(fail_on={2}), 1.0)
    await poller.refresh_now()

    result = await poller.refresh_now()

    assert result == {"snapshot": 1}
    assert poller.latest == {"snapshot": 1}
    assert isinstance(poller.last_error, RuntimeError)

    await poller.refresh_now()
    assert poller.latest == {"snapshot": 3}
    assert poller.last_error is None


@pytest.mark.asyncio
async def test_handler_failure_does_not_stop_others():
    seen = []

    def broken(_):
        raise RuntimeError("handler bug")

    poller = ProjectionPoller(Counter(), 1.0)
    poller.on_update(broken)
    poller.on_update(seen.append)
    await poller.refresh_now()
    assert len(seen) == 1


@pytest.mark.asyncio
async def test_loop_polls_until_stopped():
    counter = Counter(fail_on={2})
    poller = ProjectionPoller(counter, 0.01)

    await poller.start()
    assert poller.running
    await _wait_for(lambda: counter.calls >= 4)
    await poller.stop()

    assert not poller.running
    calls = counter.calls
    await asyncio.sleep(0.05)
    assert counter.calls == calls


@pytest.mark.asyncio
async def test_stop_waits_for_in_flight_refresh():
    started = asyncio.Event()
    release = asyncio.Event()
    finished = []

    async def slow_refresh():
        started.set()
        await release.wait()
        finished.append(True)
        return "done"

    poller = ProjectionPoller(slow_refresh, 10.0)
    await poller.start()
    await started.wait()

    stopping = asyncio.create_task(poller.stop())
    await asyncio.sleep(0.01)
    assert not stopping.done()

    release.set()
    await stopping
    assert finished == [True]
    assert poller.latest == "done"


@pytest.mark.asyncio
async def test_board_poller_stops_on_sign_out():
    project_id = uuid.uuid4()

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"detail": "Authentication required"})

    client = TaskFlowClient(
        "http://taskflow.test",
        token="expired-token",
        transport=httpx.MockTransport(handler),
    )
    poller = board_poller(client, project_id, PollingConfig(board_interval_seconds=0.01))
    try:
        await poller.start()
        await _wait_for(lambda: not poller.running)
    finally:
        await client.aclose()

    assert not client.signed_in
    assert poller.latest is None
    assert isinstance(poller.last_error, httpx.HTTPStatusError)
