"""
Calibration Result Model
========================

Output of one calibration run. Never persisted on its own; a profile takes
the offset only when the operator accepts it.
"""

from dataclasses import dataclass
from typing import Optional, Dict, Any, List


@dataclass(frozen=True)
class MarkPosition:
    """Reference mark location in frame pixels."""

    x: float
    y: float
    confidence: float = 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {'x': round(self.x, 2), 'y': round(self.y, 2), 'confidence': self.confidence}


@dataclass
class CalibrationResult:
    """Offset correction in device dots."""

    success: bool
    offset_x: int = 0
    offset_y: int = 0
    confidence: float = 0.0
    message: str = ""
    detected_points: Optional[List[MarkPosition]] = None
    expected_points: Optional[List[MarkPosition]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'success': self.success,
            'offsetX': self.offset_x,
            'offsetY': self.offset_y,
            'confidence': round(self.confidence, 3),
            'message': self.message,
        }
        if self.detected_points is not None:
            data['detectedPoints'] = [p.to_dict() for p in self.detected_points]
        if self.expected_points is not None:
            data['expectedPoints'] = [p.to_dict() for p in self.expected_points]
        return data
