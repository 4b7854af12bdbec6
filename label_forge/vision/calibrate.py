"""
Calibration
===========

Turn detected reference marks into a printer offset correction.

The captured frame is assumed to be cropped to the label, so the five marks
of the calibration pattern are expected at fixed fractions of the frame.
Results are advisory: nothing here touches a PrinterProfile.
"""

import asyncio
import logging
import math
from io import BytesIO
from typing import List, Optional, Callable, Awaitable, Union

import numpy as np
from PIL import Image

from .detectors import MarkDetector, default_detector
from ..models import CalibrationResult, MarkPosition
from ..units import MM_PER_INCH, round_half_up

logger = logging.getLogger(__name__)

# Mark positions as fractions of the label: four 10% inset corners and the center
EXPECTED_POINTS = ((0.1, 0.1), (0.9, 0.1), (0.1, 0.9), (0.9, 0.9), (0.5, 0.5))

# Detections farther than this share of the frame width are not matched
MATCH_RADIUS_RATIO = 0.2

MIN_MATCHES = 3


def expected_marks(frame_width: int, frame_height: int) -> List[MarkPosition]:
    return [MarkPosition(x=fx * frame_width, y=fy * frame_height) for fx, fy in EXPECTED_POINTS]


def match_marks(detected: List[MarkPosition], expected: List[MarkPosition],
                max_distance: float) -> List[tuple]:
    """
    Pair detections with expected marks, closest pairs first.

    Each detection and each expected mark is used at most once.

    Returns:
        List of (detected, expected) pairs
    """
    pairs = []
    for i, det in enumerate(detected):
        for j, exp in enumerate(expected):
            distance = math.hypot(det.x - exp.x, det.y - exp.y)
            if distance < max_distance:
                pairs.append((distance, i, j))
    pairs.sort()

    used_detected, used_expected = set(), set()
    matches = []
    for _, i, j in pairs:
        if i in used_detected or j in used_expected:
            continue
        used_detected.add(i)
        used_expected.add(j)
        matches.append((detected[i], expected[j]))
    return matches


def compute_offset(detected: List[MarkPosition], frame_width: int, frame_height: int,
                   label_width_mm: float, label_height_mm: float, dpi: int) -> CalibrationResult:
    """
    Compute the dot offset that moves printed marks onto their expected spots.

    Offset per axis is the mean of (expected - detected) over matched marks,
    converted from frame pixels to mm and then to dots at ``dpi``.
    """
    if len(detected) < MIN_MATCHES:
        return CalibrationResult(
            success=False,
            message=f'Only {len(detected)} marks detected, need at least {MIN_MATCHES} for calibration',
        )

    expected = expected_marks(frame_width, frame_height)
    matches = match_marks(detected, expected, frame_width * MATCH_RADIUS_RATIO)

    if len(matches) < MIN_MATCHES:
        return CalibrationResult(
            success=False,
            message=f'Only {len(matches)} marks matched to expected positions, need {MIN_MATCHES}',
        )

    count = len(matches)
    shift_x = sum(exp.x - det.x for det, exp in matches) / count
    shift_y = sum(exp.y - det.y for det, exp in matches) / count
    confidence = sum(det.confidence for det, _ in matches) / count

    px_per_mm_x = frame_width / label_width_mm
    px_per_mm_y = frame_height / label_height_mm
    dots_per_mm = dpi / MM_PER_INCH

    offset_x = round_half_up(shift_x / px_per_mm_x * dots_per_mm)
    offset_y = round_half_up(shift_y / px_per_mm_y * dots_per_mm)

    return CalibrationResult(
        success=True,
        offset_x=offset_x,
        offset_y=offset_y,
        confidence=confidence,
        message=f'Detected {count} marks. Recommended offset: X={offset_x}, Y={offset_y} dots',
        detected_points=[det for det, _ in matches],
        expected_points=[exp for _, exp in matches],
    )


def load_frame(image_data: bytes) -> np.ndarray:
    """Decode PNG/JPEG bytes into an RGB array."""
    with Image.open(BytesIO(image_data)) as img:
        return np.asarray(img.convert('RGB'))


def analyze_frame(frame: np.ndarray, label_width_mm: float, label_height_mm: float, dpi: int,
                  detector: Optional[MarkDetector] = None) -> CalibrationResult:
    """
    Detect marks in a frame of the printed calibration pattern and compute the offset.

    Args:
        frame: Captured image, cropped to the label
        label_width_mm: Label width
        label_height_mm: Label height
        dpi: Printer resolution
        detector: Mark detector (defaults to the configured one)
    """
    frame = np.asarray(frame)
    detector = detector or default_detector()
    height, width = frame.shape[:2]

    marks = detector.detect(frame)
    logger.info('%s detector found %d marks in %dx%d frame', detector.name, len(marks), width, height)

    return compute_offset(marks, width, height, label_width_mm, label_height_mm, dpi)


async def analyze_capture(capture: Callable[[], Awaitable[Union[np.ndarray, bytes]]],
                          label_width_mm: float, label_height_mm: float, dpi: int,
                          detector: Optional[MarkDetector] = None) -> CalibrationResult:
    """
    Await a frame from ``capture`` and analyze it in a worker thread.

    ``capture`` may return an array or encoded image bytes.
    """
    frame = await capture()
    if isinstance(frame, (bytes, bytearray)):
        frame = load_frame(bytes(frame))
    return await asyncio.to_thread(analyze_frame, frame, label_width_mm, label_height_mm,
                                   dpi, detector)
