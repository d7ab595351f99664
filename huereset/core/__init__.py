# huereset/core/__init__.py
"""Core infrastructure components for the reset tool."""

# Import order: most fundamental to most specific

from .exceptions import (
    ResetOutcome,
    HueResetError,
    ConfigurationError,
    ProtocolError,
    TransportUnavailable,
    PublishFailed,
    InvalidSerial,
    ActionRejected,
    ActionTimedOut,
    Superseded,
)

from .patterns.state_machine import StateMachine, ClientState
from .patterns.observer import (
    EventKind,
    LogLevel,
    StatusEvent,
    StatusObserver,
    StatusReporter,
    LoggingStatusObserver,
)


__all__ = [
    "ResetOutcome",
    "HueResetError",
    "ConfigurationError",
    "ProtocolError",
    "TransportUnavailable",
    "PublishFailed",
    "InvalidSerial",
    "ActionRejected",
    "ActionTimedOut",
    "Superseded",
    "StateMachine",
    "ClientState",
    "EventKind",
    "LogLevel",
    "StatusEvent",
    "StatusObserver",
    "StatusReporter",
    "LoggingStatusObserver",
]
