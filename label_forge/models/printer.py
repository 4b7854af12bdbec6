"""
Printer Profile Model
=====================

Per-printer settings used by the compiler: dialect, resolution, media size,
calibration offset and print quality.
"""

import uuid
from datetime import datetime
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional, Dict, Any

from ..config import (
    DEFAULT_DPI, DEFAULT_DARKNESS, DEFAULT_SPEED,
    DEFAULT_LABEL_WIDTH_MM, DEFAULT_LABEL_HEIGHT_MM,
    DIALECTS, VENDORS, SUPPORTED_DPI,
)
from ..errors import ProfileError


class Dialect(str, Enum):
    """Printer command languages."""

    ZPL = 'zpl'
    EPL = 'epl'
    TSPL = 'tspl'
    DYMO = 'dymo'
    BPLC = 'bplc'

    @classmethod
    def parse(cls, value) -> 'Dialect':
        """Accept a dialect name or its letter alias (A-E)."""
        if isinstance(value, cls):
            return value
        key = str(value or '').strip()
        for name, meta in DIALECTS.items():
            if key.upper() == meta['letter']:
                return cls(name)
        try:
            return cls(key.lower())
        except ValueError as e:
            raise ProfileError(f'Unknown printer language: {value!r}') from e

    @property
    def letter(self) -> str:
        return DIALECTS[self.value]['letter']

    @property
    def is_binary(self) -> bool:
        return DIALECTS[self.value]['binary']


# Wire key -> attribute name
_WIRE_KEYS = {
    'language': 'dialect',
    'labelWidthMm': 'label_width_mm',
    'labelHeightMm': 'label_height_mm',
    'offsetX': 'offset_x',
    'offsetY': 'offset_y',
    'isDefault': 'is_default',
    'lastCalibrated': 'last_calibrated',
    'createdAt': 'created_at',
    'updatedAt': 'updated_at',
}

_DATETIME_FIELDS = ('last_calibrated', 'created_at', 'updated_at')


@dataclass
class PrinterProfile:
    """Printer profile; offsets are in device dots."""

    # Identification
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8].upper())
    name: str = ""
    model: str = ""  # e.g., "ZD420", "TE200"
    vendor: str = "generic"  # zebra, tsc, godex, brother, dymo, generic

    # Output
    dialect: Dialect = Dialect.ZPL
    dpi: int = DEFAULT_DPI

    # Media
    label_width_mm: float = DEFAULT_LABEL_WIDTH_MM
    label_height_mm: float = DEFAULT_LABEL_HEIGHT_MM

    # Calibration
    offset_x: int = 0
    offset_y: int = 0
    darkness: int = DEFAULT_DARKNESS  # 0-30 for ZPL
    speed: int = DEFAULT_SPEED  # inches per second

    # Flags
    is_default: bool = False

    # Timestamps
    last_calibrated: Optional[datetime] = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        self.dialect = Dialect.parse(self.dialect)
        self.vendor = (self.vendor or 'generic').lower()
        if self.vendor not in VENDORS:
            raise ProfileError(f'Unknown vendor: {self.vendor!r}')
        try:
            self.dpi = int(self.dpi)
            self.offset_x = int(self.offset_x)
            self.offset_y = int(self.offset_y)
            self.darkness = int(self.darkness)
            self.speed = int(self.speed)
            self.label_width_mm = float(self.label_width_mm)
            self.label_height_mm = float(self.label_height_mm)
        except (TypeError, ValueError) as e:
            raise ProfileError(f'Invalid printer profile value: {e}') from e
        if self.dpi not in SUPPORTED_DPI:
            raise ProfileError(f'Unsupported DPI {self.dpi}, expected one of {SUPPORTED_DPI}')

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization (wire key names)."""
        data = asdict(self)
        data['dialect'] = self.dialect.value
        for key in _DATETIME_FIELDS:
            if data.get(key):
                data[key] = data[key].isoformat()

        reverse = {attr: wire for wire, attr in _WIRE_KEYS.items()}
        return {reverse.get(key, key): value for key, value in data.items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PrinterProfile':
        """Create from dictionary; accepts wire (camelCase) or snake_case keys."""
        known = set(cls.__dataclass_fields__)
        kwargs = {}
        for key, value in data.items():
            attr = _WIRE_KEYS.get(key, key)
            if attr in known:
                kwargs[attr] = value

        for key in _DATETIME_FIELDS:
            if kwargs.get(key) and isinstance(kwargs[key], str):
                kwargs[key] = datetime.fromisoformat(kwargs[key])

        return cls(**kwargs)

    def apply_calibration(self, result, darkness: Optional[int] = None,
                          speed: Optional[int] = None):
        """
        Accept a calibration result: store its offset and optional quality settings.

        Args:
            result: Successful CalibrationResult
            darkness: New darkness (optional)
            speed: New speed (optional)
        """
        if not result.success:
            raise ProfileError('Cannot apply a failed calibration result')

        # Convert everything before touching the profile
        try:
            offset_x = int(result.offset_x)
            offset_y = int(result.offset_y)
            darkness = self.darkness if darkness is None else int(darkness)
            speed = self.speed if speed is None else int(speed)
        except (TypeError, ValueError) as e:
            raise ProfileError(f'Invalid calibration value: {e}') from e

        self.offset_x, self.offset_y = offset_x, offset_y
        self.darkness, self.speed = darkness, speed
        self.last_calibrated = datetime.now()
        self.updated_at = datetime.now()
