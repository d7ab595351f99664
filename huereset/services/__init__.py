"""Application services."""

from .intake import SerialIntake
from .reset_service import HueResetService, make_transport_config

__all__ = [
    'SerialIntake',
    'HueResetService',
    'make_transport_config',
]
