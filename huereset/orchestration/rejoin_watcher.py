"""
Rejoin confirmation after a factory reset.

The bridge publishes telemetry for the whole network, not for one device,
so correlation is best-effort: a `device_leave` narrows the expected
identity, a `device_joined` matching it (or the first join seen when no
leave was observed) confirms the rejoin.
"""
import asyncio
import logging
import time
from typing import Callable, Optional

from huereset.core.exceptions import ResetOutcome
from huereset.core.patterns import LogLevel, StatusReporter
from huereset.models import BridgeEvent, BridgeEventType, RejoinWatch, WatchState


class RejoinWatcher:

    def __init__(self, reporter: StatusReporter, timeout: float = 120.0):
        self.reporter = reporter
        self.timeout = timeout
        self.watch: Optional[RejoinWatch] = None
        self._callbacks = {}
        self.logger = logging.getLogger(self.__class__.__name__)

    def start(self, serial: str, source: str,
              on_finished: Optional[Callable[[RejoinWatch], None]] = None) -> RejoinWatch:
        """Begin watching for `serial`, superseding any current watch."""
        self.supersede(serial)

        loop = asyncio.get_running_loop()
        watch = RejoinWatch(serial=serial, source=source, started_at=time.time(),
                            result=loop.create_future())
        watch.timer = loop.call_later(self.timeout, self._expire, watch)
        self._callbacks[id(watch)] = on_finished
        self.watch = watch
        self.reporter.log(f"Waiting up to {self.timeout:g}s for {serial} to rejoin…", LogLevel.INFO)
        return watch

    def supersede(self, serial: str) -> bool:
        """End the current watch on behalf of a newer reset of `serial`."""
        previous = self.watch
        if previous is None or not previous.active:
            return False
        self.reporter.log(
            f"Rejoin watch for {previous.serial} superseded by {serial}.",
            LogLevel.INFO, outcome=ResetOutcome.SUPERSEDED,
        )
        self._finish(previous, WatchState.SUPERSEDED)
        return True

    def handle_event(self, event: BridgeEvent) -> None:
        watch = self.watch
        if watch is None or not watch.active:
            return

        if event.type is BridgeEventType.DEVICE_LEAVE:
            self._on_leave(watch, event)
        elif event.type is BridgeEventType.DEVICE_JOINED:
            self._on_joined(watch, event)
        elif event.type in (BridgeEventType.DEVICE_ANNOUNCE, BridgeEventType.DEVICE_INTERVIEW):
            if event.ieee_address and event.ieee_address == watch.expected_ieee:
                detail = f" ({event.status})" if event.status else ""
                self.reporter.log(f"{event.raw_type} for {watch.serial}{detail}", LogLevel.INFO)

    def _on_leave(self, watch: RejoinWatch, event: BridgeEvent):
        if not event.ieee_address:
            self.logger.debug("device_leave without ieee_address ignored")
            return
        if watch.expected_ieee is None:
            watch.expected_ieee = event.ieee_address
            self.reporter.log(f"Device {event.ieee_address} left the network; expecting it to rejoin.", LogLevel.INFO)

    def _on_joined(self, watch: RejoinWatch, event: BridgeEvent):
        joined = event.ieee_address
        if not joined:
            self.logger.debug("device_joined without ieee_address ignored")
            return

        if watch.expected_ieee is None:
            self.reporter.log(
                f"Device {joined} joined without a prior leave; assuming it is {watch.serial}.",
                LogLevel.INFO,
            )
            watch.expected_ieee = joined
        elif joined != watch.expected_ieee:
            self.reporter.log(
                f"Device {joined} joined, still waiting for {watch.expected_ieee}.",
                LogLevel.INFO,
            )
            return

        name = f" ({event.friendly_name})" if event.friendly_name else ""
        self.reporter.log(f"Device {watch.serial} rejoined as {joined}{name}.",
                          LogLevel.OK, outcome=ResetOutcome.REJOINED)
        self._finish(watch, WatchState.RESOLVED)

    def _expire(self, watch: RejoinWatch):
        if not watch.active:
            return
        self.reporter.log(
            f"No rejoin seen for {watch.serial} within {self.timeout:g}s; the reset itself was confirmed.",
            LogLevel.INFO, outcome=ResetOutcome.REJOIN_TIMED_OUT,
        )
        self._finish(watch, WatchState.TIMED_OUT)

    def cancel(self) -> None:
        """Supersede the current watch, if any (used on shutdown)."""
        if self.watch is not None and self.watch.active:
            self._finish(self.watch, WatchState.SUPERSEDED)

    def _finish(self, watch: RejoinWatch, state: WatchState):
        watch.state = state
        if watch.timer is not None:
            watch.timer.cancel()
        if watch.result is not None and not watch.result.done():
            watch.result.set_result(state)
        if self.watch is watch:
            self.watch = None
        callback = self._callbacks.pop(id(watch), None)
        if callback is not None:
            try:
                callback(watch)
            except Exception as e:
                self.logger.error(f"Error in rejoin callback: {e}", exc_info=True)
