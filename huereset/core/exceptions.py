"""
Centralised exception definitions and outcome taxonomy for the reset flow.
All custom exceptions should inherit from HueResetError.
"""
from enum import Enum


class ResetOutcome(Enum):
    """Every way a submission or a rejoin watch can end."""
    DUPLICATE = "duplicate"
    INVALID_SERIAL = "invalid_serial"
    TRANSPORT_UNAVAILABLE = "transport_unavailable"
    PUBLISH_FAILED = "publish_failed"
    ACTION_REJECTED = "action_rejected"
    ACTION_TIMED_OUT = "action_timed_out"
    SUPERSEDED = "superseded"
    JOIN_WINDOW_OPEN = "join_window_open"
    REJOINED = "rejoined"
    REJOIN_TIMED_OUT = "rejoin_timed_out"


class HueResetError(Exception):
    """Base class for every custom exception thrown by this project."""
    outcome: ResetOutcome = None

class ConfigurationError(HueResetError):
    """Raised when environment variables or settings are invalid."""

class ProtocolError(HueResetError):
    """Generic failure inside the MQTT transport."""

class TransportUnavailable(ProtocolError):
    """The transport is not connected to the broker."""
    outcome = ResetOutcome.TRANSPORT_UNAVAILABLE

class PublishFailed(ProtocolError):
    """The broker client refused or failed to queue a publish."""
    outcome = ResetOutcome.PUBLISH_FAILED

class InvalidSerial(HueResetError, ValueError):
    """Input does not reduce to exactly six hex characters."""
    outcome = ResetOutcome.INVALID_SERIAL

class ActionRejected(HueResetError):
    """The bridge answered the reset request with an error status."""
    outcome = ResetOutcome.ACTION_REJECTED

class ActionTimedOut(HueResetError):
    """No correlated action response arrived before the deadline."""
    outcome = ResetOutcome.ACTION_TIMED_OUT

class Superseded(HueResetError):
    """A newer submission discarded the in-flight request."""
    outcome = ResetOutcome.SUPERSEDED
