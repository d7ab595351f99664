from enum import Enum, auto
from typing import Callable, Optional
import logging

class ResetState(Enum):
    IDLE = auto()
    REQUEST_SENT = auto()
    AWAITING_ACTION_RESPONSE = auto()
    ACTION_CONFIRMED = auto()
    JOIN_WINDOW_REQUESTED = auto()
    JOIN_WINDOW_CONFIRMED = auto()
    AWAITING_REJOIN = auto()
    ACTION_FAILED = auto()
    ACTION_TIMED_OUT = auto()

class ResetStateMachine:
    """Manages the reset cycle state transitions"""

    def __init__(self, on_transition: Optional[Callable[[ResetState], None]] = None):
        self.current_state = ResetState.IDLE
        self.on_transition = on_transition
        self.logger = logging.getLogger(self.__class__.__name__)
        # a new submission may supersede the cycle from any state
        self.valid_transitions = {
            ResetState.IDLE: {ResetState.REQUEST_SENT},
            ResetState.REQUEST_SENT: {ResetState.AWAITING_ACTION_RESPONSE, ResetState.IDLE, ResetState.REQUEST_SENT},
            ResetState.AWAITING_ACTION_RESPONSE: {ResetState.ACTION_CONFIRMED, ResetState.ACTION_FAILED, ResetState.IDLE,
                                                  ResetState.ACTION_TIMED_OUT, ResetState.REQUEST_SENT},
            ResetState.ACTION_CONFIRMED: {ResetState.JOIN_WINDOW_REQUESTED, ResetState.REQUEST_SENT},
            ResetState.JOIN_WINDOW_REQUESTED: {ResetState.JOIN_WINDOW_CONFIRMED, ResetState.IDLE, ResetState.REQUEST_SENT},
            ResetState.JOIN_WINDOW_CONFIRMED: {ResetState.AWAITING_REJOIN, ResetState.REQUEST_SENT},
            ResetState.AWAITING_REJOIN: {ResetState.IDLE, ResetState.REQUEST_SENT},
            ResetState.ACTION_FAILED: {ResetState.IDLE, ResetState.REQUEST_SENT},
            ResetState.ACTION_TIMED_OUT: {ResetState.IDLE, ResetState.REQUEST_SENT},
        }

    def can_transition_to(self, new_state: ResetState) -> bool:
        return new_state in self.valid_transitions.get(self.current_state, set())

    def transition_to(self, new_state: ResetState) -> bool:
        if self.can_transition_to(new_state):
            self.logger.info(f"State transition: {self.current_state.name} -> {new_state.name}")
            self.current_state = new_state
            if self.on_transition:
                self.on_transition(new_state)
            return True
        else:
            self.logger.error(f"Invalid state transition: {self.current_state.name} -> {new_state.name}")
            return False

    @property
    def idle(self) -> bool:
        return self.current_state is ResetState.IDLE
