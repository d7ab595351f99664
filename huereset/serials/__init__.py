"""Serial normalization and QR text extraction."""

from .normalizer import SERIAL_LENGTH, normalize_serial, parse_serial, serial_from_z_hex
from .extractors import (
    extract_z_field,
    extract_serial,
    SerialExtraction,
    ZFieldDigestExtraction,
    LiteralSerialExtraction,
    SerialExtractionPipeline,
)

__all__ = [
    'SERIAL_LENGTH',
    'normalize_serial',
    'parse_serial',
    'serial_from_z_hex',
    'extract_z_field',
    'extract_serial',
    'SerialExtraction',
    'ZFieldDigestExtraction',
    'LiteralSerialExtraction',
    'SerialExtractionPipeline',
]
