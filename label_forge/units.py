"""
Unit conversion between millimetres, points, printer dots and twips.
"""

import math

MM_PER_INCH = 25.4
PT_PER_INCH = 72
TWIPS_PER_INCH = 1440
TWIPS_PER_MM = 56.7


def _round(value: float) -> int:
    # Half away from zero; Python's round() is banker's rounding
    return int(math.floor(value + 0.5)) if value >= 0 else -int(math.floor(-value + 0.5))


def mm_to_dots(mm: float, dpi: int) -> int:
    return _round(mm / MM_PER_INCH * dpi)


def dots_to_mm(dots: float, dpi: int) -> float:
    return dots / dpi * MM_PER_INCH


def pt_to_dots(pt: float, dpi: int) -> int:
    return _round(pt / PT_PER_INCH * dpi)


def pt_to_mm(pt: float) -> float:
    return pt / PT_PER_INCH * MM_PER_INCH


def mm_to_pt(mm: float) -> float:
    return mm / MM_PER_INCH * PT_PER_INCH


def mm_to_twips(mm: float) -> int:
    return _round(mm * TWIPS_PER_MM)


def dots_to_twips(dots: float, dpi: int) -> int:
    return _round(dots / dpi * TWIPS_PER_INCH)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return _round(value)
