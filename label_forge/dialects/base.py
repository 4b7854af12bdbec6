"""
Base Dialect
============

Abstract base class for printer command languages.

A dialect turns a label template plus one data record into the command
stream for a single label: a header, one command per printable element and
a footer. Value resolution and coordinate conversion are shared here;
subclasses only format commands.
"""

from abc import ABC, abstractmethod
from typing import Optional, Dict, Any, List, Tuple, Union

from ..config import DEFAULT_CURRENCY_SYMBOL
from ..errors import UnsupportedDialectError
from ..models import (
    PrinterProfile, LabelTemplate, Element, TextElement, BarcodeElement,
    ElementKind, FontConfig,
)
from ..units import mm_to_dots

# Barcode height when the element has none (mm)
DEFAULT_BARCODE_HEIGHT_MM = 15

DEFAULT_FONT = FontConfig()

# Record keys tried in order for each text element kind
DATA_KEYS = {
    ElementKind.PRODUCT_NAME: ('name', 'productName'),
    ElementKind.PRICE: ('price',),
    ElementKind.MRP: ('mrp',),
    ElementKind.SKU: ('sku',),
    ElementKind.BATCH_NO: ('batchNo', 'batch'),
    ElementKind.EXPIRY_DATE: ('expiryDate', 'expiry'),
    ElementKind.WEIGHT: ('weight',),
}

BARCODE_KEYS = ('barcode', 'sku')

CURRENCY_KINDS = (ElementKind.PRICE, ElementKind.MRP)

Output = Union[str, bytes]


def _lookup(data: Dict[str, Any], keys: Tuple[str, ...]) -> str:
    for key in keys:
        value = data.get(key)
        if value is not None and str(value) != '':
            return str(value)
    return ''


class BaseDialect(ABC):
    """Abstract base class for printer dialects."""

    #: Output is a byte buffer rather than text
    binary = False

    def __init__(self, profile: PrinterProfile):
        """Initialize dialect with the target printer profile."""
        self.profile = profile

    # =========================================================================
    # Shared resolution
    # =========================================================================

    @staticmethod
    def resolve_value(element: Element, data: Dict[str, Any]) -> str:
        """
        Resolve the literal text an element prints.

        Barcodes fall back to the SKU, prices get the currency symbol and
        prefix/suffix wrap the result. An empty result means the element is
        skipped.
        """
        if isinstance(element, BarcodeElement):
            value = _lookup(data, BARCODE_KEYS)
        elif element.kind == ElementKind.CUSTOM_TEXT:
            value = element.value or ''
        else:
            value = _lookup(data, DATA_KEYS[element.kind])
            if value and element.kind in CURRENCY_KINDS:
                symbol = element.currency_symbol
                if symbol is None:
                    symbol = DEFAULT_CURRENCY_SYMBOL
                value = f'{symbol}{value}'

        if not value:
            return ''
        return f'{element.prefix}{value}{element.suffix}'

    def origin(self, element: Element) -> Tuple[int, int]:
        """Element position in device dots, including the profile offset."""
        dpi = self.profile.dpi
        return (mm_to_dots(element.x, dpi) + self.profile.offset_x,
                mm_to_dots(element.y, dpi) + self.profile.offset_y)

    def barcode_height(self, element: BarcodeElement) -> int:
        return mm_to_dots(element.height or DEFAULT_BARCODE_HEIGHT_MM, self.profile.dpi)

    @staticmethod
    def font(element: TextElement) -> FontConfig:
        return element.font or DEFAULT_FONT

    # =========================================================================
    # Compilation
    # =========================================================================

    def compile(self, template: LabelTemplate, data: Optional[Dict[str, Any]] = None) -> Output:
        """
        Compile one label.

        Args:
            template: Label template
            data: Data record for this label

        Returns:
            Command stream (str, or bytes for binary dialects)
        """
        data = data or {}
        parts = [self.header()]

        for element in template.enabled_elements():
            value = self.resolve_value(element, data)
            if not value:
                continue

            x, y = self.origin(element)
            if isinstance(element, BarcodeElement):
                parts.append(self.barcode_command(element, x, y, value))
            else:
                parts.append(self.text_command(element, x, y, value))

        parts.append(self.footer())
        return self.join(parts)

    def join(self, parts: List[Output]) -> Output:
        return ''.join(parts)

    @abstractmethod
    def header(self) -> Output:
        """Commands preceding the label elements."""
        pass

    @abstractmethod
    def footer(self) -> Output:
        """Commands that end the label and trigger printing."""
        pass

    @abstractmethod
    def barcode_command(self, element: BarcodeElement, x: int, y: int, value: str) -> Output:
        pass

    @abstractmethod
    def text_command(self, element: TextElement, x: int, y: int, value: str) -> Output:
        pass

    def calibration_pattern(self) -> Output:
        """Reference mark pattern for camera calibration (override where supported)."""
        raise UnsupportedDialectError(
            f'Calibration pattern is not available for {self.profile.dialect.value}'
        )
