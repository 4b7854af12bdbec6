"""
Label Forge Models
"""

from .template import (
    LabelSize, FontConfig, ElementKind, TextElement, BarcodeElement,
    Element, LabelTemplate, element_from_dict,
)
from .printer import Dialect, PrinterProfile
from .calibration import CalibrationResult, MarkPosition
from .job import PrintJob

__all__ = [
    'LabelSize', 'FontConfig', 'ElementKind', 'TextElement', 'BarcodeElement',
    'Element', 'LabelTemplate', 'element_from_dict',
    'Dialect', 'PrinterProfile',
    'CalibrationResult', 'MarkPosition',
    'PrintJob',
]
