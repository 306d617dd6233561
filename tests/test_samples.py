"""Unit tests for calibration samples and their error functions."""

from __future__ import annotations

import math

import numpy as np
import pytest

from autocalib.calibration.line_refiner import CorrectedLine
from autocalib.calibration.samples import Sample, SampleContext, SampleType, combined_offset
from autocalib.models.data_models import CameraCalibration


@pytest.fixture
def context(fake_model, settings) -> SampleContext:
    return SampleContext(camera_model=fake_model, settings=settings)


@pytest.fixture
def make_line(projector):
    def _make(a, b, offset: float = 0.0) -> CorrectedLine:
        a = np.array(a, dtype=float)
        b = np.array(b, dtype=float)
        return CorrectedLine(a_in_image=a, b_in_image=b, a_on_field=projector(a), b_on_field=projector(b), offset=offset)

    return _make


def test_combined_offset_sign():
    assert combined_offset(600.0, 25.0, -25.0) == 50.0
    assert combined_offset(-600.0, 25.0, -25.0) == -50.0


def test_corner_angle_error_is_zero_for_right_angle(capture_pose, context, make_line):
    sample = Sample.corner_angle(
        capture_pose, context, make_line((100, 100), (300, 100)), make_line((400, 100), (400, 300))
    )

    assert sample.compute_error(CameraCalibration()) == pytest.approx(0.0, abs=1e-9)


def test_corner_angle_error_is_normalized_by_divisor(capture_pose, context, make_line):
    """直角からのずれを 1 度単位で返す"""

    tilt = math.tan(math.radians(3.0)) * 200.0
    sample = Sample.corner_angle(
        capture_pose, context, make_line((100, 100), (300, 100)), make_line((400, 100), (400 + tilt, 300))
    )

    assert sample.compute_error(CameraCalibration()) == pytest.approx(3.0, rel=1e-6)


def test_parallel_angle_error(capture_pose, context, make_line):
    parallel = Sample.parallel_angle(
        capture_pose, context, make_line((100, 100), (300, 100)), make_line((300, 196), (100, 196))
    )

    assert parallel.compute_error(CameraCalibration()) == pytest.approx(0.0, abs=1e-9)


def test_parallel_lines_distance_error_zero_at_nominal_distance(capture_pose, context, make_line):
    """オフセットが打ち消し合う場合は 600 mm で誤差 0"""

    sample = Sample.parallel_lines_distance(
        capture_pose, context, make_line((100, 100), (300, 100), 25.0), make_line((100, 196), (300, 196), 25.0)
    )

    assert sample.compute_error(CameraCalibration()) == pytest.approx(0.0, abs=1e-9)


def test_parallel_lines_distance_error_allows_distance_dependent_slack(capture_pose, context, make_line):
    sample = Sample.parallel_lines_distance(
        capture_pose, context, make_line((100, 100), (300, 100)), make_line((100, 200), (300, 200))
    )

    # 625 mm 離れている。最も近い端点 (1750, 1250) の許容幅は約 10.75 mm
    expected = (25.0 - math.hypot(1750.0, 1250.0) / 1000.0 * 5.0) / 10.0
    assert sample.compute_error(CameraCalibration()) == pytest.approx(expected, rel=1e-6)


def test_goal_area_distance_error(capture_pose, context, make_line):
    line = make_line((100, 288), (500, 288))
    sample = Sample.goal_area_distance(capture_pose, context, (300.0, 400.0), line)

    assert sample.sample_type == SampleType.GOAL_AREA_DISTANCE
    assert sample.compute_error(CameraCalibration()) == pytest.approx(0.0, abs=1e-9)

    shifted = Sample.goal_area_distance(capture_pose, context, (300.0, 400.0), make_line((100, 288), (500, 288), 25.0))
    assert shifted.compute_error(CameraCalibration()) == pytest.approx(2.5)


def test_ground_line_distance_error(capture_pose, context, make_line):
    # マークから 1300 mm 奥 = 208 pixel 上
    sample = Sample.ground_line_distance(capture_pose, context, (300.0, 400.0), make_line((100, 192), (500, 192)))

    assert sample.compute_error(CameraCalibration()) == pytest.approx(0.0, abs=1e-9)


def test_projection_failure_returns_not_valid_error(capture_pose, context, make_line, settings):
    """地面に投影できない端点があれば not_valid_error を返す"""

    line2 = CorrectedLine(
        a_in_image=np.array([400.0, 100.0]),
        b_in_image=np.array([400.0, 490.0]),
        a_on_field=np.zeros(2),
        b_on_field=np.zeros(2),
    )
    sample = Sample.corner_angle(capture_pose, context, make_line((100, 100), (300, 100)), line2)

    assert sample.compute_error(CameraCalibration()) == settings.not_valid_error

    mark_sample = Sample.goal_area_distance(capture_pose, context, (300.0, 495.0), make_line((100, 288), (500, 288)))
    assert mark_sample.compute_error(CameraCalibration()) == settings.not_valid_error


def test_sample_requires_matching_payload(capture_pose, context, make_line):
    line = make_line((100, 100), (300, 100))

    with pytest.raises(ValueError, match="two lines"):
        Sample(SampleType.PARALLEL_ANGLE, capture_pose, context, line)
    with pytest.raises(ValueError, match="penalty mark"):
        Sample(SampleType.GROUND_LINE_DISTANCE, capture_pose, context, line)
