"""Topic layout and inbound message routing."""

from .topics import BridgeTopics, MessageKind
from .router import EventRouter, decode_payload

__all__ = [
    'BridgeTopics',
    'MessageKind',
    'EventRouter',
    'decode_payload',
]
