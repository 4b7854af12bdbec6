"""
BPLC Dialect
============

Brother P-touch escape-sequence commands. Output is raw bytes; positions are
16-bit little-endian dot counts.

Key Commands:
- ESC @             - Initialize
- ESC i S           - Status / print information request
- ESC i A nL nH     - Media width in dots
- ESC $ nL nH       - Absolute horizontal position
- ESC ( V 2 0 nL nH - Absolute vertical position
- GS i B data NUL   - Barcode (Code 128)
- FF                - Print and feed
"""

import struct
from typing import List

from .base import BaseDialect
from ..models import BarcodeElement, TextElement
from ..units import mm_to_dots

ESC = b'\x1b'
GS = b'\x1d'
FF = b'\x0c'
NUL = b'\x00'


def le16(value: int) -> bytes:
    return struct.pack('<H', value)


class BPLCDialect(BaseDialect):
    """Compiler for Brother P-touch printers."""

    binary = True

    def join(self, parts: List[bytes]) -> bytes:
        return b''.join(parts)

    def header(self) -> bytes:
        p = self.profile
        width = mm_to_dots(p.label_width_mm, p.dpi)
        return ESC + b'@' + ESC + b'iS' + ESC + b'iA' + le16(width)

    def footer(self) -> bytes:
        return FF

    def _position(self, x: int, y: int) -> bytes:
        # Position words are unsigned; a negative offset pins the element to the edge
        x, y = max(0, x), max(0, y)
        return ESC + b'$' + le16(x) + ESC + b'(V\x02\x00' + le16(y)

    def barcode_command(self, element: BarcodeElement, x: int, y: int, value: str) -> bytes:
        # TODO: confirm GS i barcode framing and symbology selector against a PT-series printer
        return self._position(x, y) + GS + b'iB' + value.encode('utf-8') + NUL

    def text_command(self, element: TextElement, x: int, y: int, value: str) -> bytes:
        return self._position(x, y) + value.encode('utf-8')
