"""Canonical serial handling: six uppercase hex characters or nothing."""
import hashlib
import re
from typing import Callable, Optional

from huereset.core.exceptions import InvalidSerial

SERIAL_LENGTH = 6

_NON_HEX = re.compile(r"[^0-9A-F]")
_HEX_ONLY = re.compile(r"^[0-9A-F]+$")


def normalize_serial(raw) -> Optional[str]:
    """Strip everything that is not hex, uppercase, accept exactly six characters."""
    if not raw:
        return None
    cleaned = _NON_HEX.sub("", str(raw).upper())
    if len(cleaned) != SERIAL_LENGTH:
        return None
    return cleaned


def parse_serial(raw) -> str:
    serial = normalize_serial(raw)
    if serial is None:
        raise InvalidSerial(f"Invalid serial {raw!r}: expected {SERIAL_LENGTH} hex characters")
    return serial


def _sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def serial_from_z_hex(z_hex, digest: Callable[[bytes], bytes] = _sha256) -> Optional[str]:
    """
    Derive a serial from the hashed `Z:` field of a Hue QR code.

    The field is an even-length hex string; the serial is the first three
    bytes of its SHA-256 digest rendered as uppercase hex.
    """
    if not z_hex:
        return None
    clean = str(z_hex).strip().upper()
    if not _HEX_ONLY.match(clean) or len(clean) % 2 != 0:
        return None
    hashed = digest(bytes.fromhex(clean))
    if not hashed or len(hashed) < 3:
        return None
    return hashed[:3].hex().upper()
