"""
TSPL Dialect
============

TSC Printer Language, used by TSC and many OEM thermal printers.

Key Commands:
- SIZE w mm, h mm   - Label size
- GAP g mm, o mm    - Gap between labels
- SPEED n           - Print speed
- DENSITY n         - Print darkness
- DIRECTION n       - Print direction
- CLS               - Clear image buffer
- TEXT x,y,...      - Print text
- BARCODE x,y,...   - Print linear barcode
- QRCODE x,y,...    - Print QR code
- PRINT m           - Print labels
"""

from .base import BaseDialect
from ..models import BarcodeElement, TextElement
from ..symbology import Symbology

BARCODE_TYPES = {
    Symbology.CODE128: '128',
    Symbology.EAN13: 'EAN13',
    Symbology.EAN8: 'EAN8',
    Symbology.UPCA: 'UPCA',
}


def font_name(size_pt: float) -> str:
    if size_pt > 16:
        return '4'
    if size_pt > 12:
        return '3'
    return '2'


def quote(value: str) -> str:
    # Embedded double quotes are written as \["]
    return '"' + value.replace('"', '\\["]') + '"'


class TSPLDialect(BaseDialect):
    """Compiler for TSPL/TSPL2 printers."""

    def header(self) -> str:
        p = self.profile
        return (
            f'SIZE {p.label_width_mm:g} mm, {p.label_height_mm:g} mm\n'
            'GAP 3 mm, 0 mm\n'
            f'SPEED {p.speed}\n'
            f'DENSITY {p.darkness}\n'
            'DIRECTION 1\n'
            'CLS\n'
        )

    def footer(self) -> str:
        return 'PRINT 1\n'

    def barcode_command(self, element: BarcodeElement, x: int, y: int, value: str) -> str:
        if element.symbology == Symbology.QRCODE:
            # ECC level L, cell width 4, auto mode, no rotation
            return f'QRCODE {x},{y},L,4,A,0,{quote(value)}\n'

        height = self.barcode_height(element)
        kind = BARCODE_TYPES[element.symbology]
        # height, human readable, rotation, narrow, wide
        return f'BARCODE {x},{y},"{kind}",{height},1,0,2,4,{quote(value)}\n'

    def text_command(self, element: TextElement, x: int, y: int, value: str) -> str:
        font = font_name(self.font(element).size)
        return f'TEXT {x},{y},"{font}",0,1,1,{quote(value)}\n'
