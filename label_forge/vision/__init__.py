"""
Label Forge Vision
==================

Camera-based printer calibration.
"""

from .detectors import (
    MarkDetector, HoughMarkDetector, DensityScanMarkDetector, default_detector,
)
from .calibrate import (
    EXPECTED_POINTS, compute_offset, analyze_frame, analyze_capture, load_frame,
    match_marks, expected_marks,
)

__all__ = [
    'MarkDetector', 'HoughMarkDetector', 'DensityScanMarkDetector', 'default_detector',
    'EXPECTED_POINTS', 'compute_offset', 'analyze_frame', 'analyze_capture', 'load_frame',
    'match_marks', 'expected_marks',
]
