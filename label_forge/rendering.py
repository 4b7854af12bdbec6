"""
Barcode Rendering
=================

Headless barcode images (PNG via Pillow, or SVG) for previews and
raster-only printers. Linear codes use python-barcode, QR codes use qrcode.
"""

from io import BytesIO

import barcode
import qrcode
import qrcode.image.svg
from barcode.writer import ImageWriter, SVGWriter

from .errors import BarcodeRenderError
from .suggestions import suggest_barcode_fix
from .symbology import Symbology
from .units import MM_PER_INCH

# python-barcode class names
LINEAR_CLASSES = {
    Symbology.CODE128: 'code128',
    Symbology.EAN13: 'ean13',
    Symbology.EAN8: 'ean8',
    Symbology.UPCA: 'upca',
}

QR_ERROR_CORRECTION = qrcode.constants.ERROR_CORRECT_M


def _validated(symbology, payload: str) -> tuple:
    symbology = Symbology.parse(symbology)
    suggestion = suggest_barcode_fix(payload, symbology)
    if not suggestion.valid:
        raise BarcodeRenderError(suggestion.reason)
    return symbology, suggestion.original


def _linear_options(module_width_mm: float, height_mm: float, dpi: int, write_text: bool) -> dict:
    return {
        'module_width': module_width_mm,
        'module_height': height_mm,
        'quiet_zone': 2.5,
        'font_size': 10,
        'text_distance': 1.5,
        'write_text': write_text,
        'dpi': dpi,
    }


def _qr(payload: str, box_size: int) -> qrcode.QRCode:
    qr = qrcode.QRCode(box_size=box_size, border=4, error_correction=QR_ERROR_CORRECTION)
    qr.add_data(payload)
    qr.make(fit=True)
    return qr


def render_barcode_png(symbology, payload: str, module_width_mm: float = 0.33,
                       height_mm: float = 15.0, dpi: int = 203, write_text: bool = True) -> bytes:
    """
    Render a barcode as PNG.

    Args:
        symbology: Symbology or its name
        payload: Barcode data (must validate for the symbology)
        module_width_mm: Bar module width (linear) in mm
        height_mm: Bar height (linear) in mm
        dpi: Output resolution
        write_text: Print the human readable line under linear codes

    Returns:
        PNG bytes

    Raises:
        BarcodeRenderError: Payload is not valid for the symbology
    """
    symbology, payload = _validated(symbology, payload)
    buffer = BytesIO()

    if symbology == Symbology.QRCODE:
        # module_width_mm is the QR cell size
        box_size = max(1, round(module_width_mm / MM_PER_INCH * dpi))
        image = _qr(payload, box_size).make_image(fill_color='black', back_color='white')
        image.save(buffer, format='PNG')
        return buffer.getvalue()

    code = barcode.get(LINEAR_CLASSES[symbology], payload, writer=ImageWriter(format='PNG'))
    code.write(buffer, options=_linear_options(module_width_mm, height_mm, dpi, write_text))
    return buffer.getvalue()


def render_barcode_svg(symbology, payload: str, module_width_mm: float = 0.33,
                       height_mm: float = 15.0, write_text: bool = True) -> str:
    """Render a barcode as an SVG document."""
    symbology, payload = _validated(symbology, payload)
    buffer = BytesIO()

    if symbology == Symbology.QRCODE:
        image = _qr(payload, 10).make_image(image_factory=qrcode.image.svg.SvgPathImage)
        image.save(buffer)
        return buffer.getvalue().decode('utf-8')

    code = barcode.get(LINEAR_CLASSES[symbology], payload, writer=SVGWriter())
    code.write(buffer, options=_linear_options(module_width_mm, height_mm, 96, write_text))
    return buffer.getvalue().decode('utf-8')
