from .state_machine import StateMachine, ClientState
from .observer import (
    EventKind,
    LogLevel,
    StatusEvent,
    StatusObserver,
    StatusReporter,
    LoggingStatusObserver,
)
