"""
Label Template Model
====================

Label size, elements and the template that groups them. Templates come from
the design surface and are treated as read-only here; layout helpers return
modified copies.
"""

from dataclasses import dataclass, field, asdict, replace
from enum import Enum
from typing import Optional, Dict, Any, List, Union

from ..errors import TemplateError
from ..symbology import Symbology


class ElementKind(str, Enum):
    """Data field a text element prints."""

    PRODUCT_NAME = 'productName'
    PRICE = 'price'
    MRP = 'mrp'  # marked-down / maximum retail price
    SKU = 'sku'
    BATCH_NO = 'batchNo'
    EXPIRY_DATE = 'expiryDate'
    WEIGHT = 'weight'
    CUSTOM_TEXT = 'customText'


BARCODE_TYPE = 'barcode'


@dataclass
class LabelSize:
    """Physical label size in mm."""

    width: float = 50
    height: float = 30

    def to_dict(self) -> Dict[str, Any]:
        return {'width': self.width, 'height': self.height}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LabelSize':
        try:
            return cls(width=float(data['width']), height=float(data['height']))
        except (KeyError, TypeError, ValueError) as e:
            raise TemplateError(f'Invalid label size: {data!r}') from e


@dataclass
class FontConfig:
    """Font settings; size is in points."""

    family: str = 'Arial'
    size: float = 12
    bold: bool = False
    italic: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FontConfig':
        return cls(
            family=data.get('family', 'Arial'),
            size=float(data.get('size', 12)),
            bold=bool(data.get('bold', False)),
            italic=bool(data.get('italic', False)),
        )


@dataclass
class _Element:
    """Fields shared by every element; positions and sizes in mm."""

    id: str = ''
    x: float = 0
    y: float = 0
    width: Optional[float] = None
    height: Optional[float] = None
    enabled: bool = True
    order: int = 0
    font: Optional[FontConfig] = None
    prefix: str = ''
    suffix: str = ''
    currency_symbol: Optional[str] = None
    value: Optional[str] = None

    @property
    def is_barcode(self) -> bool:
        return False

    def moved(self, **changes) -> '_Element':
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def _common_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'enabled': self.enabled,
            'order': self.order,
            'x': self.x,
            'y': self.y,
        }
        if self.width is not None:
            data['width'] = self.width
        if self.height is not None:
            data['height'] = self.height
        if self.font is not None:
            data['font'] = self.font.to_dict()
        if self.prefix:
            data['prefix'] = self.prefix
        if self.suffix:
            data['suffix'] = self.suffix
        if self.currency_symbol is not None:
            data['currencySymbol'] = self.currency_symbol
        if self.value is not None:
            data['value'] = self.value
        return data


@dataclass
class TextElement(_Element):
    """Element printing a resolved data field as text."""

    kind: ElementKind = ElementKind.CUSTOM_TEXT

    def to_dict(self) -> Dict[str, Any]:
        data = self._common_dict()
        data['type'] = self.kind.value
        return data


@dataclass
class BarcodeElement(_Element):
    """Element printing the record's barcode payload."""

    symbology: Symbology = Symbology.CODE128

    @property
    def is_barcode(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, Any]:
        data = self._common_dict()
        data['type'] = BARCODE_TYPE
        data['barcodeType'] = self.symbology.value
        return data


Element = Union[TextElement, BarcodeElement]


def element_from_dict(data: Dict[str, Any]) -> Element:
    """
    Build an element from its JSON form.

    Args:
        data: Element dict as produced by the design surface
            (``type``, ``barcodeType``, ``currencySymbol``, ...)

    Returns:
        TextElement or BarcodeElement

    Raises:
        TemplateError: On unknown type, symbology or non-numeric geometry
    """
    if not isinstance(data, dict):
        raise TemplateError(f'Element must be an object, got {type(data).__name__}')

    element_type = data.get('type')

    try:
        common = {
            'id': str(data.get('id', '')),
            'x': float(data.get('x', 0)),
            'y': float(data.get('y', 0)),
            'width': float(data['width']) if data.get('width') is not None else None,
            'height': float(data['height']) if data.get('height') is not None else None,
            'enabled': bool(data.get('enabled', True)),
            'order': int(data.get('order', 0)),
            'font': FontConfig.from_dict(data['font']) if data.get('font') else None,
            'prefix': data.get('prefix') or '',
            'suffix': data.get('suffix') or '',
            'currency_symbol': data.get('currencySymbol', data.get('currency_symbol')),
            'value': data.get('value'),
        }
    except (TypeError, ValueError) as e:
        raise TemplateError(f'Invalid element {data.get("id")!r}: {e}') from e

    if element_type == BARCODE_TYPE:
        try:
            symbology = Symbology.parse(data.get('barcodeType') or data.get('symbology') or 'code128')
        except ValueError as e:
            raise TemplateError(f'Unknown barcode type: {data.get("barcodeType")!r}') from e
        return BarcodeElement(symbology=symbology, **common)

    try:
        kind = ElementKind(element_type)
    except ValueError as e:
        raise TemplateError(f'Unknown element type: {element_type!r}') from e

    return TextElement(kind=kind, **common)


@dataclass
class LabelTemplate:
    """Label size plus its elements."""

    size: LabelSize = field(default_factory=LabelSize)
    elements: List[Element] = field(default_factory=list)
    name: str = ''

    def enabled_elements(self) -> List[Element]:
        """Enabled elements in print order (stable for equal ``order``)."""
        return sorted((e for e in self.elements if e.enabled), key=lambda e: e.order)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'size': self.size.to_dict(),
            'elements': [e.to_dict() for e in self.elements],
        }
        if self.name:
            data['name'] = self.name
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LabelTemplate':
        if not isinstance(data, dict):
            raise TemplateError('Template must be an object')
        if 'size' not in data:
            raise TemplateError('Template is missing size')

        return cls(
            size=LabelSize.from_dict(data['size']),
            elements=[element_from_dict(e) for e in data.get('elements', [])],
            name=data.get('name', ''),
        )
