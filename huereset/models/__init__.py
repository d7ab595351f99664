"""Data models and domain objects."""

from .bridge_models import (
    RequestState,
    WatchState,
    BridgeEventType,
    ResetRequest,
    ActionResponse,
    BridgeEvent,
    RejoinWatch,
)

__all__ = [
    # States
    'RequestState',
    'WatchState',
    'BridgeEventType',

    # Domain models
    'ResetRequest',
    'ActionResponse',
    'BridgeEvent',
    'RejoinWatch',
]
