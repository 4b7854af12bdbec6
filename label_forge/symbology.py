"""
Barcode Symbology
=================

Check digit computation and module-count estimation for the supported
symbologies.

Linear module counts include quiet-zone and guard overhead so they can be
compared directly against the printed barcode width.
"""

from enum import Enum
from typing import Optional


class Symbology(str, Enum):
    """Barcode symbologies a label element can carry."""

    CODE128 = 'code128'
    EAN13 = 'ean13'
    EAN8 = 'ean8'
    UPCA = 'upca'
    QRCODE = 'qrcode'

    @classmethod
    def parse(cls, value) -> 'Symbology':
        if isinstance(value, cls):
            return value
        key = str(value or '').strip().lower().replace('-', '').replace('_', '')
        aliases = {'qr': 'qrcode', 'upc': 'upca', 'ean': 'ean13', 'c128': 'code128'}
        return cls(aliases.get(key, key))


# Full payload length including the check digit
REQUIRED_LENGTH = {
    Symbology.EAN13: 13,
    Symbology.EAN8: 8,
    Symbology.UPCA: 12,
}

# Weight applied to the first digit; weights alternate from there
_FIRST_WEIGHT = {
    Symbology.EAN13: 1,
    Symbology.EAN8: 3,
    Symbology.UPCA: 3,
}

FIXED_MODULES = {
    Symbology.EAN13: 95,
    Symbology.UPCA: 95,
    Symbology.EAN8: 67,
}

CODE128_MODULES_PER_CHAR = 11
CODE128_OVERHEAD = 35

# (max payload length, grid side) pairs for the coarse QR estimate
QR_GRID_STEPS = (
    (25, 21),
    (47, 25),
    (77, 29),
    (114, 33),
)
QR_MAX_GRID = 37

QR_MAX_CHARS = 4296
CODE128_MAX_CHARS = 80


def required_length(symbology) -> Optional[int]:
    """Payload length including check digit, or None for variable-length codes."""
    return REQUIRED_LENGTH.get(Symbology.parse(symbology))


def is_numeric_symbology(symbology) -> bool:
    return Symbology.parse(symbology) in REQUIRED_LENGTH


def is_matrix(symbology) -> bool:
    return Symbology.parse(symbology) == Symbology.QRCODE


def checksum_digit(payload: str, symbology) -> int:
    """
    Compute the check digit for an EAN-13, EAN-8 or UPC-A payload.

    Only the body digits are read (the first 12, 7 or 11 respectively), so the
    payload may already carry a check digit. Non-digit characters count as 0.

    Returns:
        Check digit 0-9, or 0 for symbologies without one
    """
    symbology = Symbology.parse(symbology)
    length = REQUIRED_LENGTH.get(symbology)
    if length is None:
        return 0

    weight = _FIRST_WEIGHT[symbology]
    total = 0
    for char in payload[:length - 1]:
        digit = int(char) if char.isdigit() else 0
        total += digit * weight
        weight = 4 - weight  # 1 <-> 3

    return (10 - total % 10) % 10


def verify_checksum(payload: str, symbology) -> bool:
    """Check a full-length payload's trailing digit. Code128 and QR always pass."""
    symbology = Symbology.parse(symbology)
    length = REQUIRED_LENGTH.get(symbology)
    if length is None:
        return True

    if len(payload) != length or not payload.isdigit():
        return False

    return int(payload[-1]) == checksum_digit(payload, symbology)


def estimate_module_count(payload: str, symbology) -> int:
    """
    Estimate the number of modules the barcode occupies.

    For QR this is the total cell count of the estimated grid (side squared).
    """
    symbology = Symbology.parse(symbology)

    if symbology == Symbology.QRCODE:
        side = qr_grid_size(payload)
        return side * side

    if symbology in FIXED_MODULES:
        return FIXED_MODULES[symbology]

    return CODE128_MODULES_PER_CHAR * len(payload) + CODE128_OVERHEAD


def qr_grid_size(payload: str) -> int:
    """Approximate QR grid side by payload length (ignores error correction level)."""
    for max_length, side in QR_GRID_STEPS:
        if len(payload) <= max_length:
            return side
    return QR_MAX_GRID


SAMPLE_PAYLOADS = {
    Symbology.EAN13: '5901234123457',
    Symbology.EAN8: '96385074',
    Symbology.UPCA: '012345678905',
    Symbology.QRCODE: 'https://example.com',
    Symbology.CODE128: 'ABC-12345',
}


def sample_payload(symbology) -> str:
    """Representative valid payload, used when no real data is bound yet."""
    return SAMPLE_PAYLOADS[Symbology.parse(symbology)]
