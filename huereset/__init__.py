"""Hue bulb factory reset over a Zigbee2MQTT bridge - Main Package"""

__version__ = '1.0.0'
__description__ = 'Serial-driven Hue factory reset with correlated bridge acknowledgements'

# Core patterns - most fundamental
from .core import StateMachine, StatusReporter, StatusObserver, ResetOutcome, HueResetError

# Models - domain objects
from .models import ResetRequest, ActionResponse, BridgeEvent, RejoinWatch

# Serial handling
from .serials import normalize_serial, serial_from_z_hex, SerialExtractionPipeline

# Orchestration
from .orchestration import ResetOrchestrator, ResetState

# Protocols
from .protocols import MQTTTransport, TransportConfig

# Routing
from .routing import BridgeTopics, EventRouter

# Services - wiring
from .services import HueResetService, SerialIntake

__all__ = [
    # Core
    'StateMachine',
    'StatusReporter',
    'StatusObserver',
    'ResetOutcome',
    'HueResetError',

    # Models
    'ResetRequest',
    'ActionResponse',
    'BridgeEvent',
    'RejoinWatch',

    # Serials
    'normalize_serial',
    'serial_from_z_hex',
    'SerialExtractionPipeline',

    # Orchestration
    'ResetOrchestrator',
    'ResetState',

    # Protocols
    'MQTTTransport',
    'TransportConfig',

    # Routing
    'BridgeTopics',
    'EventRouter',

    # Services
    'HueResetService',
    'SerialIntake',
]
