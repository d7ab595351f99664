import asyncio

import pytest

from huereset.core.exceptions import ResetOutcome
from huereset.models import BridgeEvent, WatchState
from huereset.orchestration import RejoinWatcher


def event(kind, ieee=None, **data):
    if ieee is not None:
        data["ieee_address"] = ieee
    return BridgeEvent.from_payload({"type": kind, "data": data})


@pytest.fixture
def watcher(reporter):
    return RejoinWatcher(reporter, timeout=5)


@pytest.mark.asyncio
async def test_first_join_resolves_when_no_leave_was_seen(watcher, recorder):
    watch = watcher.start("06E49F", "qr")
    watcher.handle_event(event("device_joined", "0xAA"))

    assert await watch.result is WatchState.RESOLVED
    assert watch.expected_ieee == "0xAA"
    assert watcher.watch is None
    assert ResetOutcome.REJOINED in recorder.outcomes()
    assert any("without a prior leave" in m for m in recorder.messages())


@pytest.mark.asyncio
async def test_leave_captures_identity_and_mismatched_join_is_ignored(watcher, recorder):
    watch = watcher.start("06E49F", "qr")
    watcher.handle_event(event("device_leave", "0x1"))
    assert watch.expected_ieee == "0x1"

    watcher.handle_event(event("device_joined", "0x2"))
    assert watch.state is WatchState.WATCHING
    assert not watch.result.done()
    assert any("still waiting for 0x1" in m for m in recorder.messages())

    watcher.handle_event(event("device_joined", "0x1", friendly_name="Hallway"))
    assert await watch.result is WatchState.RESOLVED
    assert any("rejoined as 0x1 (Hallway)" in m for m in recorder.messages())


@pytest.mark.asyncio
async def test_second_leave_does_not_replace_expected_identity(watcher):
    watch = watcher.start("06E49F", "qr")
    watcher.handle_event(event("device_leave", "0x1"))
    watcher.handle_event(event("device_leave", "0x2"))
    assert watch.expected_ieee == "0x1"
    watcher.cancel()


@pytest.mark.asyncio
async def test_events_without_address_are_ignored(watcher):
    watch = watcher.start("06E49F", "qr")
    watcher.handle_event(event("device_leave"))
    watcher.handle_event(event("device_joined"))
    watcher.handle_event(BridgeEvent.from_payload({"type": "device_joined", "data": "garbage"}))
    assert watch.active
    assert watch.expected_ieee is None
    watcher.cancel()


@pytest.mark.asyncio
async def test_announce_for_expected_device_is_logged(watcher, recorder):
    watcher.start("06E49F", "qr")
    watcher.handle_event(event("device_leave", "0x1"))
    watcher.handle_event(event("device_interview", "0x1", status="successful"))
    watcher.handle_event(event("device_announce", "0x9"))
    assert "device_interview for 06E49F (successful)" in recorder.messages()
    assert not any("device_announce" in m for m in recorder.messages())
    watcher.cancel()


@pytest.mark.asyncio
async def test_timeout_is_soft(reporter, recorder):
    watcher = RejoinWatcher(reporter, timeout=0.02)
    finished = []
    watch = watcher.start("06E49F", "manual", on_finished=finished.append)

    assert await asyncio.wait_for(watch.result, 1) is WatchState.TIMED_OUT
    assert finished == [watch]
    assert recorder.outcomes().count(ResetOutcome.REJOIN_TIMED_OUT) == 1
    # late events are dropped
    watcher.handle_event(event("device_joined", "0x1"))
    assert watch.state is WatchState.TIMED_OUT


@pytest.mark.asyncio
async def test_new_watch_supersedes_previous(watcher, recorder):
    first = watcher.start("06E49F", "qr")
    second = watcher.start("ABC123", "manual")

    assert await first.result is WatchState.SUPERSEDED
    assert first.timer.cancelled()
    assert watcher.watch is second
    assert ResetOutcome.SUPERSEDED in recorder.outcomes()

    watcher.handle_event(event("device_joined", "0x5"))
    assert await second.result is WatchState.RESOLVED


@pytest.mark.asyncio
async def test_failing_callback_does_not_break_watcher(watcher):
    def explode(watch):
        raise RuntimeError("boom")

    watch = watcher.start("06E49F", "qr", on_finished=explode)
    watcher.handle_event(event("device_joined", "0x1"))
    assert watch.state is WatchState.RESOLVED


@pytest.mark.asyncio
async def test_supersede_without_watch_is_a_no_op(watcher, recorder):
    assert not watcher.supersede("ABC123")
    assert recorder.events == []

    watch = watcher.start("06E49F", "qr")
    assert watcher.supersede("ABC123")
    assert await watch.result is WatchState.SUPERSEDED
    assert "Rejoin watch for 06E49F superseded by ABC123." in recorder.messages()
    assert watcher.watch is None
