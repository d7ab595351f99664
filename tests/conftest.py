"""Shared fixtures: an in-memory transport and a recording status observer."""
from __future__ import annotations

import asyncio
from typing import Any, List, Optional

import pytest

from huereset.core.exceptions import PublishFailed, TransportUnavailable
from huereset.core.patterns import EventKind, LogLevel, StatusEvent, StatusObserver, StatusReporter
from huereset.orchestration import ResetOrchestrator, TransactionIdFactory
from huereset.routing import BridgeTopics, EventRouter


class FakeTransport:
    """Records publishes instead of talking to a broker."""

    def __init__(self):
        self.connected = True
        self.published: List[tuple] = []
        self.subscribed: List[str] = []
        self.fail_topics = set()
        self.message_callback = None
        self._stopped: Optional[asyncio.Event] = None

    def is_connected(self) -> bool:
        return self.connected

    async def publish_message(self, topic: str, payload: Any):
        if not self.connected:
            raise TransportUnavailable("not connected")
        if topic in self.fail_topics:
            raise PublishFailed(f"refused publish to {topic}")
        self.published.append((topic, payload))

    async def subscribe_to_topic(self, topic: str):
        self.subscribed.append(topic)

    async def start(self, message_callback=None, error_callback=None):
        self.message_callback = message_callback
        self._stopped = asyncio.Event()
        await self._stopped.wait()

    async def stop(self):
        if self._stopped is not None:
            self._stopped.set()

    def published_to(self, topic: str) -> List[Any]:
        return [payload for t, payload in self.published if t == topic]


class RecordingObserver(StatusObserver):

    def __init__(self):
        self.events: List[StatusEvent] = []

    def notify(self, event: StatusEvent) -> None:
        self.events.append(event)

    def get_observer_id(self) -> str:
        return "recorder"

    def logs(self, level: Optional[LogLevel] = None) -> List[StatusEvent]:
        return [e for e in self.events
                if e.kind is EventKind.LOG and (level is None or e.level is level)]

    def messages(self, level: Optional[LogLevel] = None) -> List[str]:
        return [e.message for e in self.logs(level)]

    def outcomes(self) -> list:
        return [e.outcome for e in self.events if e.outcome is not None]

    def states(self) -> list:
        return [e.state for e in self.events if e.kind is EventKind.STATE]


class FakeClock:

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


async def settle(rounds: int = 5):
    """Let scheduled callbacks and freshly created tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def recorder():
    return RecordingObserver()


@pytest.fixture
def reporter(recorder):
    reporter = StatusReporter()
    reporter.subscribe(recorder)
    return reporter


@pytest.fixture
def topics():
    return BridgeTopics()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_orchestrator(transport, reporter, topics, clock):
    def factory(**overrides):
        options = dict(transaction_ids=TransactionIdFactory(prefix="T"), clock=clock)
        options.update(overrides)
        return ResetOrchestrator(transport, reporter, topics, **options)
    return factory


@pytest.fixture
def orchestrator(make_orchestrator):
    return make_orchestrator()


@pytest.fixture
def router(topics, orchestrator, reporter):
    return EventRouter(topics, orchestrator, reporter)
