import logging
import re
from abc import ABC, abstractmethod
from typing import List, Optional

from .normalizer import normalize_serial, serial_from_z_hex

_Z_FIELD = re.compile(r"\bZ:([0-9A-F]{8,})")
_LITERAL_SERIAL = re.compile(r"\b[0-9A-F]{6}\b")


def extract_z_field(text) -> Optional[str]:
    """Return the hex payload of a `Z:` field, if the QR text carries one."""
    if not text:
        return None
    match = _Z_FIELD.search(str(text).upper())
    return match.group(1) if match else None


def extract_serial(text) -> Optional[str]:
    """Return the first standalone six-hex token in the QR text."""
    if not text:
        return None
    match = _LITERAL_SERIAL.search(str(text).upper())
    return match.group(0) if match else None


class SerialExtraction(ABC):
    """Base class for one way of getting a serial out of decoded QR text"""

    @abstractmethod
    def validate(self, text: str) -> bool:
        """Whether this extraction applies to the text"""
        pass

    @abstractmethod
    def transform(self, text: str) -> Optional[str]:
        """Return a canonical serial or None"""
        pass


class ZFieldDigestExtraction(SerialExtraction):
    """Hue codes: `Z:<hex>` hashed with SHA-256"""

    def validate(self, text: str) -> bool:
        return extract_z_field(text) is not None

    def transform(self, text: str) -> Optional[str]:
        return serial_from_z_hex(extract_z_field(text))


class LiteralSerialExtraction(SerialExtraction):

    def validate(self, text: str) -> bool:
        return extract_serial(text) is not None

    def transform(self, text: str) -> Optional[str]:
        return normalize_serial(extract_serial(text))


class SerialExtractionPipeline:
    """
    Tries each extraction in order and stops at the first one that applies.

    An extraction that applies but yields nothing ends the pipeline: a QR
    code carrying a Z field is never reinterpreted as a literal serial.
    """

    def __init__(self, extractions: List[SerialExtraction] = None):
        self.extractions = extractions if extractions is not None else [
            ZFieldDigestExtraction(),
            LiteralSerialExtraction(),
        ]
        self.logger = logging.getLogger(self.__class__.__name__)

    def applies(self, text: str) -> bool:
        return any(extraction.validate(text) for extraction in self.extractions)

    def process(self, text: str) -> Optional[str]:
        for extraction in self.extractions:
            if not extraction.validate(text):
                continue
            serial = extraction.transform(text)
            self.logger.debug(f"{extraction.__class__.__name__} -> {serial}")
            return serial
        return None
