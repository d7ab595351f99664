"""Transport implementations."""

from .base_transport import (
    BaseTransport,
    TransportConfig,
    InboundMessage,
)

from .mqtt_transport import MQTTTransport

__all__ = [
    # Base classes
    'BaseTransport',
    'TransportConfig',
    'InboundMessage',

    # Implementations
    'MQTTTransport',
]
