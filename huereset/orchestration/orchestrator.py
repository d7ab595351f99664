import logging
import time
from typing import Callable, Optional

from huereset.core.exceptions import (
    ActionTimedOut,
    HueResetError,
    ResetOutcome,
    Superseded,
)
from huereset.core.patterns import LogLevel, StatusReporter
from huereset.models import ActionResponse, BridgeEvent, RejoinWatch, RequestState, ResetRequest
from huereset.routing.topics import BridgeTopics
from huereset.serials import normalize_serial
from .pending import PendingOperations, TransactionIdFactory
from .rejoin_watcher import RejoinWatcher
from .state_machine import ResetState, ResetStateMachine


_REQUEST_STATES = {
    ResetOutcome.ACTION_REJECTED: RequestState.FAILED,
    ResetOutcome.PUBLISH_FAILED: RequestState.FAILED,
    ResetOutcome.TRANSPORT_UNAVAILABLE: RequestState.FAILED,
    ResetOutcome.ACTION_TIMED_OUT: RequestState.TIMED_OUT,
    ResetOutcome.SUPERSEDED: RequestState.SUPERSEDED,
}


class ResetOrchestrator:
    """
    Single-flight reset cycle: reset request, correlated acknowledgement,
    join window, rejoin watch.

    All methods run on the event loop. `submit` awaits the bridge without
    blocking it: the waiter is parked in the pending table and resumed by
    `handle_action_response` or by its deadline timer.
    """

    def __init__(self, transport, reporter: StatusReporter, topics: BridgeTopics = None, *,
                 reset_action: str = "factory_reset",
                 extended_pan_id: Optional[str] = None,
                 dedup_window: float = 20.0,
                 action_timeout: float = 40.0,
                 permit_join_time: int = 120,
                 rejoin_timeout: float = 120.0,
                 transaction_ids: Callable[[], str] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.transport = transport
        self.reporter = reporter
        self.topics = topics or BridgeTopics()
        self.reset_action = reset_action
        self.extended_pan_id = extended_pan_id or None
        self.dedup_window = dedup_window
        self.action_timeout = action_timeout
        self.permit_join_time = int(permit_join_time)
        self.transaction_ids = transaction_ids or TransactionIdFactory()
        self.clock = clock

        self.state_machine = ResetStateMachine(on_transition=reporter.state)
        self.pending = PendingOperations()
        self.watcher = RejoinWatcher(reporter, timeout=rejoin_timeout)
        self.request: Optional[ResetRequest] = None
        self.last_serial: Optional[str] = None
        self.last_accepted_at: float = 0.0
        self.log = logging.getLogger(self.__class__.__name__)

    @property
    def state(self) -> ResetState:
        return self.state_machine.current_state

    # --------------------------------------------------------------------- #
    #  Public API
    # --------------------------------------------------------------------- #
    async def submit(self, serial: str, source: str) -> ResetOutcome:
        canonical = normalize_serial(serial)
        if canonical is None:
            self.reporter.log(f"Invalid serial '{serial}' from {source}.", LogLevel.WARNING,
                              outcome=ResetOutcome.INVALID_SERIAL)
            return ResetOutcome.INVALID_SERIAL

        # acceptance bookkeeping happens before the first await
        now = self.clock()
        if canonical == self.last_serial and now - self.last_accepted_at < self.dedup_window:
            self.log.debug("duplicate %s from %s suppressed", canonical, source)
            return ResetOutcome.DUPLICATE
        self.last_serial, self.last_accepted_at = canonical, now

        if not self.transport.is_connected():
            self.reporter.log(f"Serial {canonical} detected from {source}, but MQTT is not connected.",
                              LogLevel.WARNING, outcome=ResetOutcome.TRANSPORT_UNAVAILABLE)
            return ResetOutcome.TRANSPORT_UNAVAILABLE

        self._supersede_request()
        request = ResetRequest(serial=canonical, source=source,
                               transaction=self.transaction_ids(), created_at=time.time())
        self.request = request
        # telemetry from here on belongs to the new cycle
        self.watcher.supersede(canonical)
        self.state_machine.transition_to(ResetState.REQUEST_SENT)

        # registered before publishing so a fast reply cannot slip past
        waiter = self.pending.register(request.transaction, self.action_timeout)
        try:
            await self.transport.publish_message(
                self.topics.action_request,
                request.to_payload(self.reset_action, self.extended_pan_id),
            )
        except HueResetError as e:
            self.pending.fail(request.transaction, e)
            return self._abort(request, e)

        if request is self.request:
            self.state_machine.transition_to(ResetState.AWAITING_ACTION_RESPONSE)
            self.reporter.log(f"Reset sent for serial {canonical} ({source}).", LogLevel.OK)

        try:
            response: ActionResponse = await waiter
            if request is not self.request:
                raise Superseded(f"transaction {request.transaction} superseded")
            response.raise_for_status()
        except HueResetError as e:
            return self._abort(request, e)

        request.state = RequestState.CONFIRMED
        self.state_machine.transition_to(ResetState.ACTION_CONFIRMED)
        self.reporter.log(f"Bridge confirmed the reset of {canonical}.", LogLevel.OK)
        return await self._open_join_window(request)

    def handle_action_response(self, response: ActionResponse) -> bool:
        """Resume the waiter whose transaction matches. Returns whether one did."""
        if response.transaction is None:
            self.log.info("action response without transaction ignored: %s", response)
            return False
        if not self.pending.resolve(response.transaction, response):
            self.log.info("no pending request for transaction %s", response.transaction)
            return False
        return True

    def handle_bridge_event(self, event: BridgeEvent) -> None:
        self.watcher.handle_event(event)

    async def shutdown(self):
        """Resolve every outstanding waiter and cancel every timer."""
        self.pending.fail_all(lambda tx: Superseded(f"transaction {tx} abandoned on shutdown"))
        self.watcher.cancel()
        self.log.info("Orchestrator shutdown completed")

    # --------------------------------------------------------------------- #
    #  Private helpers
    # --------------------------------------------------------------------- #
    def _supersede_request(self):
        previous = self.request
        if previous is None or previous.state is not RequestState.PENDING:
            return
        previous.state = RequestState.SUPERSEDED
        self.pending.fail(previous.transaction,
                          Superseded(f"transaction {previous.transaction} superseded"))

    def _abort(self, request: ResetRequest, error: HueResetError) -> ResetOutcome:
        outcome = error.outcome or ResetOutcome.PUBLISH_FAILED
        if outcome is ResetOutcome.SUPERSEDED or request is not self.request:
            request.state = RequestState.SUPERSEDED
            self.reporter.log(f"Reset of {request.serial} superseded.",
                              LogLevel.INFO, outcome=ResetOutcome.SUPERSEDED)
            if request is self.request:
                self.state_machine.transition_to(ResetState.IDLE)
            return ResetOutcome.SUPERSEDED

        request.state = _REQUEST_STATES.get(outcome, RequestState.FAILED)
        if outcome is ResetOutcome.ACTION_REJECTED:
            self.state_machine.transition_to(ResetState.ACTION_FAILED)
            self.reporter.log(f"Bridge rejected the reset of {request.serial}: {error}",
                              LogLevel.ERROR, outcome=outcome)
        elif isinstance(error, ActionTimedOut):
            self.state_machine.transition_to(ResetState.ACTION_TIMED_OUT)
            self.reporter.log(f"No response to the reset of {request.serial} within {self.action_timeout:g}s.",
                              LogLevel.ERROR, outcome=outcome)
        else:
            self.reporter.log(f"Failed to publish reset: {error}", LogLevel.ERROR, outcome=outcome)
        self.state_machine.transition_to(ResetState.IDLE)
        return outcome

    async def _open_join_window(self, request: ResetRequest) -> ResetOutcome:
        self.state_machine.transition_to(ResetState.JOIN_WINDOW_REQUESTED)
        try:
            await self.transport.publish_message(self.topics.permit_join_request,
                                                 {"time": self.permit_join_time})
        except HueResetError as e:
            if request is not self.request:
                return ResetOutcome.SUPERSEDED
            self.reporter.log(f"Failed to open the join window: {e}", LogLevel.ERROR,
                              outcome=ResetOutcome.PUBLISH_FAILED)
            self.state_machine.transition_to(ResetState.IDLE)
            return ResetOutcome.PUBLISH_FAILED

        if request is not self.request:
            self.log.info("join window for %s opened after it was superseded", request.serial)
            return ResetOutcome.SUPERSEDED

        self.state_machine.transition_to(ResetState.JOIN_WINDOW_CONFIRMED)
        self.reporter.log(f"Join window opened for {self.permit_join_time}s.", LogLevel.OK,
                          outcome=ResetOutcome.JOIN_WINDOW_OPEN)
        self.watcher.start(request.serial, request.source,
                           on_finished=lambda watch: self._on_watch_finished(request, watch))
        self.state_machine.transition_to(ResetState.AWAITING_REJOIN)
        return ResetOutcome.JOIN_WINDOW_OPEN

    def _on_watch_finished(self, request: ResetRequest, watch: RejoinWatch):
        self.log.info("rejoin watch for %s finished: %s", watch.serial, watch.state.name)
        if request is self.request and self.state is ResetState.AWAITING_REJOIN:
            self.state_machine.transition_to(ResetState.IDLE)
