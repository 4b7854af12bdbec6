import asyncio
from io import BytesIO

import numpy as np
import pytest
from PIL import Image

from conftest import FRAME_HEIGHT, FRAME_WIDTH, draw_frame, shifted_centers
from label_forge.models import MarkPosition
from label_forge.vision import (
    DensityScanMarkDetector, HoughMarkDetector, analyze_capture, analyze_frame,
    compute_offset, default_detector, expected_marks, load_frame, match_marks,
)
from label_forge.vision.detectors import merge_points

DETECTORS = [HoughMarkDetector, DensityScanMarkDetector]


def png_bytes(frame):
    buffer = BytesIO()
    Image.fromarray(frame).save(buffer, format='PNG')
    return buffer.getvalue()


class TestComputeOffset:

    def test_uniform_shift(self):
        # 20 px/mm; marks printed 1 mm left and 0.5 mm up
        detected = [MarkPosition(m.x - 20, m.y - 10, 0.9)
                    for m in expected_marks(FRAME_WIDTH, FRAME_HEIGHT)]
        result = compute_offset(detected, FRAME_WIDTH, FRAME_HEIGHT, 50, 30, 203)

        assert result.success
        assert (result.offset_x, result.offset_y) == (8, 4)
        assert result.confidence == pytest.approx(0.9)
        assert len(result.detected_points) == 5

    def test_no_shift(self):
        detected = expected_marks(FRAME_WIDTH, FRAME_HEIGHT)
        result = compute_offset(detected, FRAME_WIDTH, FRAME_HEIGHT, 50, 30, 203)
        assert (result.offset_x, result.offset_y) == (0, 0)

    def test_three_marks_are_enough(self):
        detected = expected_marks(FRAME_WIDTH, FRAME_HEIGHT)[:3]
        assert compute_offset(detected, FRAME_WIDTH, FRAME_HEIGHT, 50, 30, 203).success

    def test_too_few_marks(self):
        detected = expected_marks(FRAME_WIDTH, FRAME_HEIGHT)[:2]
        result = compute_offset(detected, FRAME_WIDTH, FRAME_HEIGHT, 50, 30, 203)
        assert not result.success
        assert 'Only 2 marks' in result.message
        assert (result.offset_x, result.offset_y) == (0, 0)

    def test_unmatched_marks(self):
        # Far from every expected position
        detected = [MarkPosition(300, 300), MarkPosition(310, 180), MarkPosition(700, 420)]
        result = compute_offset(detected, FRAME_WIDTH, FRAME_HEIGHT, 50, 30, 203)
        assert not result.success
        assert 'matched' in result.message


def test_match_marks_uses_each_mark_once():
    expected = [MarkPosition(100, 100), MarkPosition(200, 100)]
    detected = [MarkPosition(150, 100), MarkPosition(105, 100)]
    pairs = match_marks(detected, expected, max_distance=80)

    assert len(pairs) == 2
    assert (pairs[0][0].x, pairs[0][1].x) == (105, 100)
    assert (pairs[1][0].x, pairs[1][1].x) == (150, 200)


def test_merge_points():
    points = [MarkPosition(10, 10, 0.5), MarkPosition(14, 12, 0.9), MarkPosition(80, 80)]
    merged = merge_points(points, radius=20)
    assert len(merged) == 2
    assert (merged[0].x, merged[0].y, merged[0].confidence) == (12, 11, 0.9)


class TestDetectors:

    @pytest.mark.parametrize('detector_class', DETECTORS)
    def test_finds_all_marks(self, detector_class):
        centers = shifted_centers(-13, -8)
        marks = detector_class().detect(draw_frame(centers))

        assert len(marks) == 5
        for cx, cy in centers:
            assert any(abs(m.x - cx) <= 3 and abs(m.y - cy) <= 3 for m in marks)

    @pytest.mark.parametrize('detector_class', DETECTORS)
    def test_blank_frame(self, detector_class):
        blank = np.full((FRAME_HEIGHT, FRAME_WIDTH, 3), 255, dtype=np.uint8)
        assert detector_class().detect(blank) == []

    def test_filled_block_is_not_a_mark(self):
        frame = np.full((FRAME_HEIGHT, FRAME_WIDTH, 3), 255, dtype=np.uint8)
        frame[200:400, 300:600] = 0
        assert DensityScanMarkDetector().detect(frame) == []

    def test_confidence(self):
        frame = draw_frame(shifted_centers(0, 0))
        assert {m.confidence for m in HoughMarkDetector().detect(frame)} == {0.9}
        assert {m.confidence for m in DensityScanMarkDetector().detect(frame)} == {0.6}

    def test_default_detector(self):
        assert isinstance(default_detector('density'), DensityScanMarkDetector)
        assert isinstance(default_detector('HOUGH'), HoughMarkDetector)
        with pytest.raises(ValueError):
            default_detector('sift')


class TestAnalyze:

    @pytest.mark.parametrize('detector_class', DETECTORS)
    def test_recovers_offset(self, detector_class, shifted_frame):
        result = analyze_frame(shifted_frame, 50, 30, 203, detector_class())

        assert result.success
        assert abs(result.offset_x - 5) <= 1
        assert abs(result.offset_y - 3) <= 1

    @pytest.mark.parametrize('detector_class', DETECTORS)
    def test_two_marks_fail(self, detector_class):
        frame = draw_frame(shifted_centers(0, 0)[:2])
        result = analyze_frame(frame, 50, 30, 203, detector_class())
        assert not result.success
        assert result.to_dict()['success'] is False

    def test_grayscale_frame(self, shifted_frame):
        gray = shifted_frame[..., 0]
        assert analyze_frame(gray, 50, 30, 203, HoughMarkDetector()).success

    def test_load_frame(self, shifted_frame):
        frame = load_frame(png_bytes(shifted_frame))
        assert frame.shape == (FRAME_HEIGHT, FRAME_WIDTH, 3)
        assert np.array_equal(frame, shifted_frame)

    def test_analyze_capture_bytes(self, shifted_frame):
        async def capture():
            return png_bytes(shifted_frame)

        result = asyncio.run(analyze_capture(capture, 50, 30, 203, DensityScanMarkDetector()))
        assert result.success
        assert abs(result.offset_x - 5) <= 1
