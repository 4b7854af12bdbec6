"""
Layout Advisor
==============

Scannability checks, printable-area computation and layout helpers.

All functions are pure: suggestions describe a fix but never apply it, and
alignment helpers return new element lists. Disabled elements are ignored
by every check and passed through unchanged by every transform.
"""

import math
import uuid
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List

from .config import SAFE_MARGIN_MM, DEFAULT_CURRENCY_SYMBOL
from .models import (
    LabelSize, FontConfig, ElementKind, TextElement, BarcodeElement, Element,
    PrinterProfile,
)
from .symbology import Symbology, estimate_module_count, qr_grid_size, is_matrix, sample_payload
from .units import dots_to_mm, mm_to_pt, pt_to_mm

# Minimum module width for reliable scanning (mm)
MIN_MODULE_WIDTH = 0.25
RECOMMENDED_MODULE_WIDTH = 0.33

# QR cell size thresholds (mm)
MIN_QR_CELL = 0.5
RECOMMENDED_QR_CELL = 0.75

# Size assumed for elements without an explicit box (mm)
DEFAULT_ELEMENT_WIDTH = 10
DEFAULT_ELEMENT_HEIGHT = 5

# Gap kept between auto-spaced elements (mm)
MIN_ELEMENT_GAP = 2

# Text shrunk to this share of the element height
FONT_FIT_RATIO = 0.8


@dataclass
class SafeZone:
    """Printable area in label mm."""

    left: float
    top: float
    right: float
    bottom: float
    width: float
    height: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'left': self.left, 'top': self.top, 'right': self.right,
            'bottom': self.bottom, 'width': self.width, 'height': self.height,
        }


@dataclass
class DensityCheck:
    """Scannability of a barcode at a given printed width."""

    ok: bool
    module_width: float  # mm per module (cell size for QR)
    min_recommended: float
    modules: int  # modules across (grid side for QR)
    severity: str  # success, warning, error
    suggestion: Optional[str] = None
    min_width_mm: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'ok': self.ok,
            'moduleWidth': round(self.module_width, 4),
            'minRecommended': self.min_recommended,
            'actualModules': self.modules,
            'severity': self.severity,
            'suggestion': self.suggestion,
            'minWidthMm': self.min_width_mm,
        }


@dataclass
class LayoutSuggestion:
    """Advisory fix for one element."""

    element_id: str
    issue: str
    fix: Dict[str, Any] = field(default_factory=dict)
    auto_fixable: bool = True

    def to_dict(self) -> Dict[str, Any]:
        fix = {k: (v.to_dict() if isinstance(v, FontConfig) else v) for k, v in self.fix.items()}
        return {
            'elementId': self.element_id,
            'issue': self.issue,
            'suggestedFix': fix,
            'autoFixable': self.auto_fixable,
        }


def _width(element: Element) -> float:
    return element.width or DEFAULT_ELEMENT_WIDTH


def _height(element: Element) -> float:
    return element.height or DEFAULT_ELEMENT_HEIGHT


def compute_safe_zone(label_size: LabelSize, profile: Optional[PrinterProfile] = None) -> SafeZone:
    """
    Printable area after the unprintable margin, shifted by the printer offset.

    Args:
        label_size: Label size in mm
        profile: Printer profile whose dot offset shifts the zone (optional)
    """
    offset_x = dots_to_mm(profile.offset_x, profile.dpi) if profile else 0.0
    offset_y = dots_to_mm(profile.offset_y, profile.dpi) if profile else 0.0

    return SafeZone(
        left=SAFE_MARGIN_MM + offset_x,
        top=SAFE_MARGIN_MM + offset_y,
        right=label_size.width - SAFE_MARGIN_MM + offset_x,
        bottom=label_size.height - SAFE_MARGIN_MM + offset_y,
        width=label_size.width - SAFE_MARGIN_MM * 2,
        height=label_size.height - SAFE_MARGIN_MM * 2,
    )


def check_density(payload: str, symbology, width_mm: float) -> DensityCheck:
    """
    Check whether a barcode printed at ``width_mm`` can be scanned reliably.

    Linear codes are judged by module width, QR codes by cell size.
    """
    symbology = Symbology.parse(symbology)

    if is_matrix(symbology):
        grid = qr_grid_size(payload)
        cell = width_mm / grid

        if cell < MIN_QR_CELL:
            min_width = math.ceil(grid * MIN_QR_CELL)
            return DensityCheck(
                ok=False, module_width=cell, min_recommended=MIN_QR_CELL, modules=grid,
                severity='error', min_width_mm=min_width,
                suggestion=(f'QR Code cells too small ({cell:.2f}mm). Increase size to at least '
                            f'{min_width}mm width, or reduce data.'),
            )
        if cell < RECOMMENDED_QR_CELL:
            return DensityCheck(
                ok=True, module_width=cell, min_recommended=RECOMMENDED_QR_CELL, modules=grid,
                severity='warning', min_width_mm=math.ceil(grid * RECOMMENDED_QR_CELL),
                suggestion=f'QR Code cells are small ({cell:.2f}mm). Older readers may struggle.',
            )
        return DensityCheck(ok=True, module_width=cell, min_recommended=MIN_QR_CELL,
                            modules=grid, severity='success')

    modules = estimate_module_count(payload, symbology)
    module_width = width_mm / modules

    if module_width < MIN_MODULE_WIDTH:
        min_width = math.ceil(modules * MIN_MODULE_WIDTH)
        return DensityCheck(
            ok=False, module_width=module_width, min_recommended=MIN_MODULE_WIDTH,
            modules=modules, severity='error', min_width_mm=min_width,
            suggestion=(f'Barcode too dense ({module_width:.2f}mm bars). Minimum width: '
                        f'{min_width}mm, or switch to QR Code.'),
        )
    if module_width < RECOMMENDED_MODULE_WIDTH:
        rec_width = math.ceil(modules * RECOMMENDED_MODULE_WIDTH)
        return DensityCheck(
            ok=True, module_width=module_width, min_recommended=RECOMMENDED_MODULE_WIDTH,
            modules=modules, severity='warning', min_width_mm=rec_width,
            suggestion=(f'Barcode is dense ({module_width:.2f}mm bars). Recommend '
                        f'{rec_width}mm width for reliable scanning.'),
        )
    return DensityCheck(ok=True, module_width=module_width,
                        min_recommended=RECOMMENDED_MODULE_WIDTH,
                        modules=modules, severity='success')


def suggest_layout(elements: List[Element], label_size: LabelSize) -> List[LayoutSuggestion]:
    """
    Review enabled elements and propose fixes.

    Flags safe-zone overflow per axis, barcodes too narrow to scan (checked
    with a representative payload for the symbology) and fonts taller than
    their element box.
    """
    suggestions = []
    zone = compute_safe_zone(label_size)

    for element in elements:
        if not element.enabled:
            continue

        width = _width(element)
        height = _height(element)

        if element.x < zone.left or element.x + width > zone.right:
            suggestions.append(LayoutSuggestion(
                element_id=element.id,
                issue='Element extends beyond printable area (horizontal)',
                fix={'x': max(zone.left, min(element.x, zone.right - width))},
            ))

        if element.y < zone.top or element.y + height > zone.bottom:
            suggestions.append(LayoutSuggestion(
                element_id=element.id,
                issue='Element extends beyond printable area (vertical)',
                fix={'y': max(zone.top, min(element.y, zone.bottom - height))},
            ))

        if isinstance(element, BarcodeElement):
            if element.width:
                density = check_density(sample_payload(element.symbology), element.symbology,
                                        element.width)
                if not density.ok:
                    suggestions.append(LayoutSuggestion(
                        element_id=element.id,
                        issue=density.suggestion or 'Barcode too dense',
                        fix={'width': density.min_width_mm},
                    ))
        elif element.font is not None:
            if pt_to_mm(element.font.size) > height:
                fitted = math.floor(mm_to_pt(height) * FONT_FIT_RATIO)
                suggestions.append(LayoutSuggestion(
                    element_id=element.id,
                    issue=f'Font size ({element.font.size:g}pt) exceeds element height',
                    fix={'font': FontConfig(family=element.font.family, size=fitted,
                                            bold=element.font.bold, italic=element.font.italic)},
                ))

    return suggestions


def apply_suggestion_fix(element: Element, suggestion: LayoutSuggestion) -> Element:
    """Return a copy of ``element`` with an accepted suggestion applied."""
    if suggestion.element_id != element.id:
        raise ValueError(f'Suggestion is for element {suggestion.element_id!r}, not {element.id!r}')
    return element.moved(**suggestion.fix)


def snap_to_safe_zone(element: Element, zone: SafeZone) -> Element:
    """Move an element so its box lies inside the safe zone."""
    x, y = element.x, element.y
    width, height = _width(element), _height(element)

    if x < zone.left:
        x = zone.left
    if x + width > zone.right:
        x = zone.right - width
    if y < zone.top:
        y = zone.top
    if y + height > zone.bottom:
        y = zone.bottom - height

    return element.moved(x=x, y=y)


def center_element(element: Element, label_size: LabelSize, axis: str = 'both') -> Element:
    """Center an element horizontally, vertically or both."""
    changes = {}
    if axis in ('horizontal', 'both'):
        changes['x'] = (label_size.width - _width(element)) / 2
    if axis in ('vertical', 'both'):
        changes['y'] = (label_size.height - _height(element)) / 2
    return element.moved(**changes)


def align_elements(elements: List[Element], alignment: str) -> List[Element]:
    """
    Align enabled elements to the group's left/center/right or top/middle/bottom.

    Returns:
        New list in the same order; unchanged when fewer than two are enabled
    """
    enabled = [e for e in elements if e.enabled]
    if len(enabled) < 2:
        return list(elements)

    if alignment in ('left', 'center', 'right'):
        axis, size = 'x', _width
    elif alignment in ('top', 'middle', 'bottom'):
        axis, size = 'y', _height
    else:
        raise ValueError(f'Unknown alignment: {alignment!r}')

    low = min(getattr(e, axis) for e in enabled)
    high = max(getattr(e, axis) + size(e) for e in enabled)
    mid = sum(getattr(e, axis) + size(e) / 2 for e in enabled) / len(enabled)

    def target(element):
        if alignment in ('left', 'top'):
            return low
        if alignment in ('right', 'bottom'):
            return high - size(element)
        return mid - size(element) / 2

    return [e.moved(**{axis: target(e)}) if e.enabled else e for e in elements]


def auto_space(elements: List[Element], label_size: LabelSize,
               direction: str = 'vertical') -> List[Element]:
    """
    Distribute enabled elements evenly across the safe zone in print order.

    The gap is the free space split between elements, never below
    MIN_ELEMENT_GAP.
    """
    enabled = sorted((e for e in elements if e.enabled), key=lambda e: e.order)
    if len(enabled) < 2:
        return list(elements)

    zone = compute_safe_zone(label_size)
    if direction == 'vertical':
        size, axis, start, span = _height, 'y', zone.top, zone.height
    elif direction == 'horizontal':
        size, axis, start, span = _width, 'x', zone.left, zone.width
    else:
        raise ValueError(f'Unknown direction: {direction!r}')

    total = sum(size(e) for e in enabled)
    gap = max(MIN_ELEMENT_GAP, (span - total) / (len(enabled) - 1))

    positions = {}
    current = start
    for element in enabled:
        positions[id(element)] = current
        current += size(element) + gap

    return [e.moved(**{axis: positions[id(e)]}) if id(e) in positions else e for e in elements]


# =============================================================================
# Category Presets
# =============================================================================

def _font(size: float, bold: bool = False) -> FontConfig:
    return FontConfig(family='Arial', size=size, bold=bold)


def category_layout(category: str, label_size: LabelSize) -> List[Element]:
    """
    Starter element layout for a product category.

    Categories: product, shelf, jewelry, shipping, clothing. Unknown
    categories get the product layout.
    """
    zone = compute_safe_zone(label_size)
    tag = str(uuid.uuid4())[:8]
    currency = DEFAULT_CURRENCY_SYMBOL

    def barcode(order, x, y, width, height):
        return BarcodeElement(id=f'barcode-{tag}', order=order, x=x, y=y, width=width,
                              height=height, symbology=Symbology.CODE128)

    def text(kind, name, order, x, y, font, **extra):
        return TextElement(id=f'{name}-{tag}', kind=kind, order=order, x=x, y=y, font=font, **extra)

    layouts = {
        'product': lambda: [
            barcode(0, zone.left, zone.top, zone.width * 0.8, 15),
            text(ElementKind.PRODUCT_NAME, 'name', 1, zone.left, zone.top + 18, _font(10, True)),
            text(ElementKind.PRICE, 'price', 2, zone.right - 20, zone.bottom - 8, _font(14, True),
                 currency_symbol=currency),
        ],
        'shelf': lambda: [
            text(ElementKind.PRODUCT_NAME, 'name', 0, zone.left, zone.top, _font(12, True)),
            text(ElementKind.PRICE, 'price', 1, zone.left, zone.top + 15, _font(24, True),
                 currency_symbol=currency),
            text(ElementKind.SKU, 'sku', 2, zone.left, zone.bottom - 6, _font(8), prefix='SKU: '),
        ],
        'jewelry': lambda: [
            barcode(0, zone.left, zone.top, zone.width, 8),
            text(ElementKind.PRICE, 'price', 1, zone.left, zone.top + 10, _font(8, True),
                 currency_symbol=currency),
        ],
        'shipping': lambda: [
            barcode(0, zone.left + 5, zone.top + 5, zone.width - 10, 25),
            text(ElementKind.PRODUCT_NAME, 'name', 1, zone.left, zone.top + 35, _font(14, True)),
            text(ElementKind.SKU, 'sku', 2, zone.left, zone.bottom - 10, _font(10)),
        ],
        'clothing': lambda: [
            barcode(0, zone.left, zone.top, zone.width, 20),
            text(ElementKind.PRODUCT_NAME, 'name', 1, zone.left, zone.top + 25, _font(11, True)),
            text(ElementKind.PRICE, 'price', 2, zone.left, zone.top + 40, _font(16, True),
                 currency_symbol=currency),
            text(ElementKind.MRP, 'mrp', 3, zone.left, zone.top + 58, _font(10),
                 currency_symbol=currency, prefix='MRP: '),
        ],
    }

    return layouts.get(category, layouts['product'])()


CATEGORIES = ('product', 'shelf', 'jewelry', 'shipping', 'clothing')
