"""
Tests for readiness watching over push and poll triggers.
"""

import asyncio
import json
import logging

import pytest

from bondly.api.sessions import readiness_events
from bondly.errors import NotFound
from bondly.status import Readiness, ReadinessState, ReadinessWatcher

WAITING = Readiness(ReadinessState.WAITING, "waiting_for_partner")
PROCESSING = Readiness(ReadinessState.PROCESSING, "completed")
READY = Readiness(ReadinessState.READY, "analyzed", "advice-1", True)


def scripted_check(*states):
    """A check returning each state in turn, then repeating the last one."""
    remaining = list(states)

    async def check():
        if isinstance(remaining[0], Exception):
            raise remaining[0]
        return remaining.pop(0) if len(remaining) > 1 else remaining[0]

    return check


async def _collect(watcher: ReadinessWatcher) -> list[Readiness]:
    return [item async for item in watcher.watch()]


@pytest.mark.asyncio
async def test_poll_yields_changes_then_ready():
    """Repeated states are collapsed and the stream ends at ready."""
    check = scripted_check(WAITING, WAITING, PROCESSING, PROCESSING, READY)
    watcher = ReadinessWatcher(check, poll_interval=0.001)

    states = await asyncio.wait_for(_collect(watcher), timeout=5)

    assert [s.state for s in states] == [
        ReadinessState.WAITING,
        ReadinessState.PROCESSING,
        ReadinessState.READY,
    ]
    assert states[-1].advice_id == "advice-1"
    assert watcher.ready_claimed is True


@pytest.mark.asyncio
async def test_push_notification_triggers_check():
    """A notification should prompt a check long before the next poll."""
    current = {"readiness": PROCESSING}
    notifications: asyncio.Queue = asyncio.Queue()

    async def check():
        return current["readiness"]

    async def subscribe():
        while True:
            yield await notifications.get()

    watcher = ReadinessWatcher(check, subscribe=subscribe, poll_interval=60)
    stream = watcher.watch()

    first = await asyncio.wait_for(anext(stream), timeout=5)
    current["readiness"] = READY
    await notifications.put(("1-0", "status", {"status": "analyzed"}))
    second = await asyncio.wait_for(anext(stream), timeout=5)

    assert first.state is ReadinessState.PROCESSING
    assert second.state is ReadinessState.READY
    with pytest.raises(StopAsyncIteration):
        await anext(stream)


@pytest.mark.asyncio
async def test_ready_is_claimed_once():
    """Only the first trigger to see ready reports it."""
    watcher = ReadinessWatcher(scripted_check(READY))
    queue: asyncio.Queue = asyncio.Queue()

    await watcher._probe(queue, "push")
    await watcher._probe(queue, "poll")

    assert queue.qsize() == 1
    assert watcher.ready_claimed is True


@pytest.mark.asyncio
async def test_push_failure_falls_back_to_polling(caplog):
    """A broken subscription should leave polling to finish the job."""
    check = scripted_check(PROCESSING, READY)

    async def subscribe():
        raise ConnectionError("redis down")
        yield

    watcher = ReadinessWatcher(check, subscribe=subscribe, poll_interval=0.001)

    with caplog.at_level(logging.WARNING, logger="bondly.status.watcher"):
        states = await asyncio.wait_for(_collect(watcher), timeout=5)

    assert states[-1].advice_id == "advice-1"
    assert "polling only" in caplog.text


@pytest.mark.asyncio
async def test_check_errors_propagate():
    """Errors from the status check end the watch."""
    watcher = ReadinessWatcher(scripted_check(NotFound("Session not found")), poll_interval=0.001)

    with pytest.raises(NotFound):
        await asyncio.wait_for(_collect(watcher), timeout=5)


@pytest.mark.asyncio
async def test_readiness_events():
    """SSE events carry the state name and the viewer's advice id."""
    watcher = ReadinessWatcher(scripted_check(PROCESSING, READY), poll_interval=0.001)

    events = [event async for event in readiness_events("session-1", watcher)]

    assert [e["event"] for e in events] == ["processing", "ready"]
    data = json.loads(events[-1]["data"])
    assert data == {
        "sessionId": "session-1",
        "status": "analyzed",
        "state": "ready",
        "adviceId": "advice-1",
    }


@pytest.mark.asyncio
async def test_readiness_events_session_gone():
    """A session that disappears mid-stream ends it with a gone event."""
    watcher = ReadinessWatcher(scripted_check(NotFound("Session not found")), poll_interval=0.001)

    events = [event async for event in readiness_events("session-1", watcher)]

    assert events == [{"event": "gone", "data": json.dumps({"sessionId": "session-1"})}]
