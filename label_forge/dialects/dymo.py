"""
Dymo Dialect
============

DieCutLabel XML document for Dymo LabelWriter printers. Coordinates are in
twips (1/1440 inch); the profile's dot offset is converted to twips.
"""

from typing import Tuple
from xml.sax.saxutils import escape, quoteattr

from .base import BaseDialect
from ..models import BarcodeElement, TextElement, Element
from ..symbology import Symbology
from ..units import mm_to_twips, dots_to_twips

BARCODE_TYPES = {
    Symbology.CODE128: 'Code128',
    Symbology.EAN13: 'Ean13',
    Symbology.EAN8: 'Ean8',
    Symbology.UPCA: 'UpcA',
    Symbology.QRCODE: 'QRCode',
}

# Barcode box when the element has none (mm)
DEFAULT_BARCODE_WIDTH_MM = 40
DEFAULT_BARCODE_HEIGHT_MM = 15

# Font size attribute is in twentieths of a point
TWIPS_PER_POINT = 20

_ENTITIES = {'"': '&quot;', "'": '&apos;'}


def escape_xml(value: str) -> str:
    return escape(value, _ENTITIES)


class DymoDialect(BaseDialect):
    """Compiler for Dymo LabelWriter printers."""

    def origin(self, element: Element) -> Tuple[int, int]:
        dpi = self.profile.dpi
        return (mm_to_twips(element.x) + dots_to_twips(self.profile.offset_x, dpi),
                mm_to_twips(element.y) + dots_to_twips(self.profile.offset_y, dpi))

    def header(self) -> str:
        return (
            '<?xml version="1.0" encoding="utf-8"?>\n'
            '<DieCutLabel Version="8.0" Units="twips">\n'
            '  <PaperOrientation>Landscape</PaperOrientation>\n'
            '  <Id>Address</Id>\n'
            '  <PaperName>30252 Address</PaperName>\n'
            '  <DrawCommands>\n'
        )

    def footer(self) -> str:
        return '  </DrawCommands>\n</DieCutLabel>\n'

    def barcode_command(self, element: BarcodeElement, x: int, y: int, value: str) -> str:
        width = mm_to_twips(element.width or DEFAULT_BARCODE_WIDTH_MM)
        height = mm_to_twips(element.height or DEFAULT_BARCODE_HEIGHT_MM)
        return (
            f'    <DrawBarcode X="{x}" Y="{y}" Width="{width}" Height="{height}">\n'
            f'      <Type>{BARCODE_TYPES[element.symbology]}</Type>\n'
            f'      <Text>{escape_xml(value)}</Text>\n'
            '    </DrawBarcode>\n'
        )

    def text_command(self, element: TextElement, x: int, y: int, value: str) -> str:
        font = self.font(element)
        size = round(font.size * TWIPS_PER_POINT)
        bold = 'true' if font.bold else 'false'
        italic = 'true' if font.italic else 'false'
        return (
            f'    <DrawText X="{x}" Y="{y}">\n'
            f'      <Font Family={quoteattr(font.family)} Size="{size}" Bold="{bold}" Italic="{italic}"/>\n'
            f'      <Text>{escape_xml(value)}</Text>\n'
            '    </DrawText>\n'
        )
