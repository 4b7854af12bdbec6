"""
ZPL Dialect
===========

Zebra Programming Language. Used by Zebra, Godex, Honeywell and Sato
printers (native or in emulation mode).

Key Commands:
- ^XA / ^XZ         - Start / end of label format
- ^MDn              - Media darkness
- ^PRn              - Print speed
- ^PWn / ^LLn       - Print width / label length in dots
- ^FOx,y            - Field origin
- ^A0o,h,w          - Scalable font
- ^FH / ^FD         - Hex escape indicator / field data
- ^BC / ^BE / ^B8 / ^BU - Code 128 / EAN-13 / EAN-8 / UPC-A
- ^BQN,2,m          - QR code, model 2, magnification m
- ^GBw,h,t          - Graphic box (used for calibration crosshairs)
"""

from .base import BaseDialect
from ..models import BarcodeElement, TextElement
from ..symbology import Symbology
from ..units import mm_to_dots, pt_to_dots, round_half_up

# Symbology -> (command, parameters after height)
BARCODE_COMMANDS = {
    Symbology.CODE128: ('BC', 'Y,N,N'),
    Symbology.EAN13: ('BE', 'Y,N'),
    Symbology.EAN8: ('B8', 'Y,N'),
    Symbology.UPCA: ('BU', 'Y,N,Y'),
}

# Character width as a share of height for the scalable font
FONT_WIDTH_RATIO = 0.6
BOLD_WIDTH_RATIO = 0.7

# Calibration marks at these label fractions
CALIBRATION_POINTS = ((0.1, 0.1), (0.9, 0.1), (0.1, 0.9), (0.9, 0.9), (0.5, 0.5))
CALIBRATION_CROSS_MM = 3

# Field data characters that must go through ^FH hex escapes
FH_ESCAPES = {'_': '_5F', '^': '_5E', '~': '_7E'}


def field_data(value: str) -> str:
    """'^FD' block for ``value``, hex escaped when it holds ZPL control characters."""
    if not any(c in value for c in FH_ESCAPES):
        return f'^FD{value}'
    return '^FH^FD' + ''.join(FH_ESCAPES.get(c, c) for c in value)


class ZPLDialect(BaseDialect):
    """Compiler for ZPL printers."""

    def header(self) -> str:
        p = self.profile
        return (
            '^XA\n'
            f'^MD{p.darkness}\n'
            f'^PR{p.speed}\n'
            f'^PW{mm_to_dots(p.label_width_mm, p.dpi)}\n'
            f'^LL{mm_to_dots(p.label_height_mm, p.dpi)}\n'
        )

    def footer(self) -> str:
        return '^XZ\n'

    def barcode_command(self, element: BarcodeElement, x: int, y: int, value: str) -> str:
        height = self.barcode_height(element)

        if element.symbology == Symbology.QRCODE:
            magnification = max(2, height // 25)
            return f'^FO{x},{y}^BQN,2,{magnification}{field_data("QA," + value)}^FS\n'

        command, params = BARCODE_COMMANDS[element.symbology]
        return f'^FO{x},{y}^{command}N,{height},{params}{field_data(value)}^FS\n'

    def text_command(self, element: TextElement, x: int, y: int, value: str) -> str:
        font = self.font(element)
        height = pt_to_dots(font.size, self.profile.dpi)
        # A0 has no bold variant; a wider character cell reads as bold
        ratio = BOLD_WIDTH_RATIO if font.bold else FONT_WIDTH_RATIO
        width = round_half_up(height * ratio)
        return f'^FO{x},{y}^A0N,{height},{width}{field_data(value)}^FS\n'

    def calibration_pattern(self) -> str:
        """
        Five crosshairs at the 10% inset corners and the label center.

        Marks are placed without the profile offset so the measured
        displacement is the printer's absolute offset.
        """
        p = self.profile
        width = mm_to_dots(p.label_width_mm, p.dpi)
        height = mm_to_dots(p.label_height_mm, p.dpi)
        size = mm_to_dots(CALIBRATION_CROSS_MM, p.dpi)
        half = size // 2
        thickness = max(2, mm_to_dots(0.25, p.dpi))

        lines = [
            '^XA',
            f'^MD{p.darkness}',
            f'^PW{width}',
            f'^LL{height}',
        ]

        for fx, fy in CALIBRATION_POINTS:
            cx = round_half_up(width * fx)
            cy = round_half_up(height * fy)
            lines.append(f'^FO{cx - half},{cy - thickness // 2}^GB{size},{thickness},{thickness}^FS')
            lines.append(f'^FO{cx - thickness // 2},{cy - half}^GB{thickness},{size},{thickness}^FS')

        # Reference text right of the top-left mark
        text_x = round_half_up(width * 0.1) + size
        text_y = round_half_up(height * 0.1) - half
        lines.append(f'^FO{text_x},{text_y}^A0N,20,20^FDCALIBRATION TEST^FS')
        lines.append(f'^FO{text_x},{text_y + 25}^A0N,16,16'
                     f'^FD{p.label_width_mm:g}mm x {p.label_height_mm:g}mm @ {p.dpi}dpi^FS')

        lines.append('^XZ')
        return '\n'.join(lines) + '\n'
