"""
EPL Dialect
===========

Eltron Programming Language (EPL2), line oriented.

Key Commands:
- N                 - Clear image buffer
- qn                - Label width in dots
- Qp,g              - Label length and gap in dots
- Ax,y,r,f,h,v,N,"d" - ASCII text with built-in font f (1-4)
- Bx,y,r,t,n,w,h,B,"d" - Linear barcode with human readable line
- bx,y,Q,...,"d"    - QR code
- Pn                - Print n labels
"""

from .base import BaseDialect
from ..models import BarcodeElement, TextElement
from ..symbology import Symbology
from ..units import mm_to_dots

BARCODE_TYPES = {
    Symbology.CODE128: '1',
    Symbology.EAN13: 'E30',
    Symbology.EAN8: 'E80',
    Symbology.UPCA: 'UA0',
}

# Gap between labels in dots
LABEL_GAP = 24

QR_SCALE = 4


def font_number(size_pt: float) -> int:
    """Built-in font for a point size: <=8 -> 1, <=12 -> 2, <=16 -> 3, else 4."""
    if size_pt > 16:
        return 4
    if size_pt > 12:
        return 3
    if size_pt > 8:
        return 2
    return 1


def quote(value: str) -> str:
    return '"' + value.replace('\\', '\\\\').replace('"', '\\"') + '"'


class EPLDialect(BaseDialect):
    """Compiler for EPL2 printers."""

    def header(self) -> str:
        p = self.profile
        return (
            'N\n'
            f'q{mm_to_dots(p.label_width_mm, p.dpi)}\n'
            f'Q{mm_to_dots(p.label_height_mm, p.dpi)},{LABEL_GAP}\n'
        )

    def footer(self) -> str:
        return 'P1\n'

    def barcode_command(self, element: BarcodeElement, x: int, y: int, value: str) -> str:
        if element.symbology == Symbology.QRCODE:
            return f'b{x},{y},Q,m2,s{QR_SCALE},{quote(value)}\n'

        height = self.barcode_height(element)
        kind = BARCODE_TYPES[element.symbology]
        return f'B{x},{y},0,{kind},2,4,{height},B,{quote(value)}\n'

    def text_command(self, element: TextElement, x: int, y: int, value: str) -> str:
        font = font_number(self.font(element).size)
        return f'A{x},{y},0,{font},1,1,N,{quote(value)}\n'
