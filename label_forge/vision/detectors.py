"""
Reference Mark Detectors
========================

Locate printed crosshair marks in a captured frame.

Two interchangeable strategies:
- HoughMarkDetector: OpenCV threshold, edge and line detection, marks are
  intersections of horizontal and vertical segments.
- DensityScanMarkDetector: numpy only, dark-pixel density per grid cell
  confirmed by a local cross profile. Less precise, lower confidence.
"""

import logging
import math
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

import cv2
import numpy as np

from ..config import VISION_DETECTOR
from ..models import MarkPosition

logger = logging.getLogger(__name__)

Segment = Tuple[float, float, float, float]


def to_gray(frame: np.ndarray) -> np.ndarray:
    """Grayscale uint8 view of an RGB, RGBA or already single-channel frame."""
    frame = np.asarray(frame)
    if frame.ndim == 2:
        return np.ascontiguousarray(frame, dtype=np.uint8)
    if frame.shape[2] == 4:
        return cv2.cvtColor(frame.astype(np.uint8, copy=False), cv2.COLOR_RGBA2GRAY)
    return cv2.cvtColor(frame.astype(np.uint8, copy=False), cv2.COLOR_RGB2GRAY)


def merge_points(points: List[MarkPosition], radius: float) -> List[MarkPosition]:
    """Average points lying within ``radius`` px of a cluster's first point."""
    clusters: List[List[MarkPosition]] = []
    for point in points:
        for cluster in clusters:
            anchor = cluster[0]
            if abs(anchor.x - point.x) < radius and abs(anchor.y - point.y) < radius:
                cluster.append(point)
                break
        else:
            clusters.append([point])

    return [
        MarkPosition(
            x=sum(p.x for p in cluster) / len(cluster),
            y=sum(p.y for p in cluster) / len(cluster),
            confidence=max(p.confidence for p in cluster),
        )
        for cluster in clusters
    ]


class MarkDetector(ABC):
    """Strategy interface for reference mark detection."""

    name = ''

    @abstractmethod
    def detect(self, frame: np.ndarray) -> List[MarkPosition]:
        """
        Find candidate mark centers.

        Args:
            frame: HxW, HxWx3 (RGB) or HxWx4 (RGBA) uint8 array

        Returns:
            Candidate positions in frame pixels, unordered
        """
        pass


class HoughMarkDetector(MarkDetector):
    """Crosshair detection via probabilistic Hough line segments."""

    name = 'hough'
    confidence = 0.9

    # Segment angle classes (degrees from the x axis)
    horizontal_max_angle = 20
    vertical_min_angle = 70
    vertical_max_angle = 110

    # Intersections may lie this far past a segment's end (px)
    segment_tolerance = 30

    # Intersections closer than this are one mark (px)
    merge_radius = 20

    def __init__(self, canny_low: int = 50, canny_high: int = 150, threshold: int = 50,
                 min_line_length: int = 20, max_line_gap: int = 10):
        self.canny_low = canny_low
        self.canny_high = canny_high
        self.threshold = threshold
        self.min_line_length = min_line_length
        self.max_line_gap = max_line_gap

    def segments(self, frame: np.ndarray) -> List[Segment]:
        gray = to_gray(frame)
        _, binary = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY_INV + cv2.THRESH_OTSU)
        edges = cv2.Canny(binary, self.canny_low, self.canny_high)
        lines = cv2.HoughLinesP(edges, 1, np.pi / 180, self.threshold,
                                minLineLength=self.min_line_length,
                                maxLineGap=self.max_line_gap)
        if lines is None:
            return []
        return [tuple(float(v) for v in line[0]) for line in lines]

    def classify(self, segments: List[Segment]) -> Tuple[List[Segment], List[Segment]]:
        horizontal, vertical = [], []
        for x1, y1, x2, y2 in segments:
            angle = abs(math.degrees(math.atan2(y2 - y1, x2 - x1)))
            if angle < self.horizontal_max_angle or angle > 180 - self.horizontal_max_angle:
                horizontal.append((x1, y1, x2, y2))
            elif self.vertical_min_angle < angle < self.vertical_max_angle:
                vertical.append((x1, y1, x2, y2))
        return horizontal, vertical

    def intersect(self, first: Segment, second: Segment) -> Optional[Tuple[float, float]]:
        """Intersection of the two segments' lines, if near both segments."""
        x1, y1, x2, y2 = first
        x3, y3, x4, y4 = second

        denom = (x1 - x2) * (y3 - y4) - (y1 - y2) * (x3 - x4)
        if abs(denom) < 1e-3:
            return None

        t = ((x1 - x3) * (y3 - y4) - (y1 - y3) * (x3 - x4)) / denom
        x = x1 + t * (x2 - x1)
        y = y1 + t * (y2 - y1)

        tol = self.segment_tolerance
        for ax, ay, bx, by in (first, second):
            if not (min(ax, bx) - tol <= x <= max(ax, bx) + tol):
                return None
            if not (min(ay, by) - tol <= y <= max(ay, by) + tol):
                return None
        return x, y

    def detect(self, frame: np.ndarray) -> List[MarkPosition]:
        horizontal, vertical = self.classify(self.segments(frame))

        points = []
        for h_segment in horizontal:
            for v_segment in vertical:
                hit = self.intersect(h_segment, v_segment)
                if hit is not None:
                    points.append(MarkPosition(x=hit[0], y=hit[1], confidence=self.confidence))

        marks = merge_points(points, self.merge_radius)
        logger.debug('Hough: %d horizontal, %d vertical segments, %d marks',
                     len(horizontal), len(vertical), len(marks))
        return marks


class DensityScanMarkDetector(MarkDetector):
    """Crosshair detection from dark-pixel density, without line fitting."""

    name = 'density'
    confidence = 0.6

    # Mean RGB below this is ink
    dark_threshold = 100

    # A line row/column must cover this share of the longest one
    profile_ratio = 0.5

    def detect(self, frame: np.ndarray) -> List[MarkPosition]:
        frame = np.asarray(frame)
        if frame.ndim == 2:
            brightness = frame.astype(np.float32)
        else:
            brightness = frame[..., :3].astype(np.float32).mean(axis=2)
        dark = brightness < self.dark_threshold

        height, width = dark.shape
        cell = max(1, min(width, height) // 10)

        clusters = []
        for top in range(0, height, cell):
            for left in range(0, width, cell):
                ys, xs = np.nonzero(dark[top:top + cell, left:left + cell])
                if len(xs) > cell * 2:
                    clusters.append(MarkPosition(x=left + xs.mean(), y=top + ys.mean(),
                                                 confidence=float(len(xs))))

        # Cells covering parts of the same mark
        merged = merge_points(clusters, cell * 1.5)

        marks = []
        for cluster in merged:
            center = self._cross_center(dark, cluster.x, cluster.y, cell)
            if center is not None:
                marks.append(MarkPosition(x=center[0], y=center[1], confidence=self.confidence))

        logger.debug('Density scan: %d dense cells, %d marks', len(clusters), len(marks))
        return marks

    def _cross_center(self, dark: np.ndarray, cx: float, cy: float,
                      cell: int) -> Optional[Tuple[float, float]]:
        """
        Confirm a cross around (cx, cy) and locate its bars.

        The horizontal bar is the set of rows whose dark count is near the
        window maximum; likewise columns for the vertical bar.
        """
        height, width = dark.shape
        top = max(0, int(cy) - cell)
        left = max(0, int(cx) - cell)
        window = dark[top:min(height, int(cy) + cell + 1), left:min(width, int(cx) + cell + 1)]
        if window.size == 0:
            return None

        rows = window.sum(axis=1)
        cols = window.sum(axis=0)
        min_run = cell / 3
        if rows.max() < min_run or cols.max() < min_run:
            return None

        bar_rows = np.nonzero(rows >= rows.max() * self.profile_ratio)[0]
        bar_cols = np.nonzero(cols >= cols.max() * self.profile_ratio)[0]

        # A filled blob has as many bar rows as its length; a cross has few
        if len(bar_rows) > cell / 2 or len(bar_cols) > cell / 2:
            return None

        return left + float(bar_cols.mean()), top + float(bar_rows.mean())


DETECTORS = {
    HoughMarkDetector.name: HoughMarkDetector,
    DensityScanMarkDetector.name: DensityScanMarkDetector,
}


def default_detector(name: Optional[str] = None) -> MarkDetector:
    """Detector selected by name, or by LABEL_FORGE_VISION_DETECTOR."""
    key = (name or VISION_DETECTOR).lower()
    try:
        return DETECTORS[key]()
    except KeyError:
        raise ValueError(f'Unknown mark detector {key!r}, expected one of {sorted(DETECTORS)}')
