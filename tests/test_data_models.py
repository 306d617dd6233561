"""Unit tests for data models."""

from __future__ import annotations

import math

import pytest

from autocalib.models import (
    CalibrationRequest,
    CalibrationState,
    CameraCalibration,
    CameraInfo,
    CameraType,
    FieldDimensions,
    LinePercept,
)


def test_field_dimensions_derived_distances():
    """既定のフィールド寸法から基準距離を導出できる。"""

    dimensions = FieldDimensions()

    assert dimensions.parallel_lines_distance == 600.0
    assert dimensions.goal_area_distance == 700.0
    assert dimensions.ground_line_distance == 1300.0


def test_field_dimensions_from_config_keeps_defaults():
    dimensions = FieldDimensions.from_config({"x_pos_opponent_ground_line": 4800})

    assert dimensions.x_pos_opponent_ground_line == 4800.0
    assert dimensions.field_lines_width == 50.0
    assert dimensions.parallel_lines_distance == 900.0


def test_camera_info_from_config_centers_optical_axis():
    info = CameraInfo.from_config(CameraType.UPPER, {"image_width": 1280, "image_height": 960})

    assert info.camera == CameraType.UPPER
    assert info.optical_center == (640.0, 480.0)
    assert info.focal_length == 560.0


def test_camera_calibration_defaults_are_zero():
    calibration = CameraCalibration()

    assert calibration.camera_correction(CameraType.LOWER) == (0.0, 0.0)
    assert calibration.camera_correction(CameraType.UPPER) == (0.0, 0.0)
    assert calibration.body_rotation_correction == (0.0, 0.0)


def test_camera_calibration_degrees_conversion():
    """度単位の辞書との相互変換ができる。"""

    calibration = CameraCalibration(
        camera_rotation_corrections={
            CameraType.LOWER: (math.radians(1.5), math.radians(-0.5)),
            CameraType.UPPER: (0.0, math.radians(2.0)),
        },
        body_rotation_correction=(math.radians(0.25), 0.0),
    )

    degrees = calibration.to_degrees()

    assert list(degrees) == ["lower_camera", "upper_camera", "body"]
    assert degrees["lower_camera"]["roll_deg"] == pytest.approx(1.5)
    assert degrees["upper_camera"]["tilt_deg"] == pytest.approx(2.0)
    assert degrees["body"]["roll_deg"] == pytest.approx(0.25)

    restored = CameraCalibration.from_degrees(degrees)
    assert restored.camera_correction(CameraType.LOWER) == pytest.approx(calibration.camera_correction(CameraType.LOWER))
    assert restored.body_rotation_correction == pytest.approx(calibration.body_rotation_correction)


def test_camera_calibration_from_partial_degrees():
    calibration = CameraCalibration.from_degrees({"upper_camera": {"tilt_deg": 1.0}})

    assert calibration.camera_correction(CameraType.UPPER) == pytest.approx((0.0, math.radians(1.0)))
    assert calibration.camera_correction(CameraType.LOWER) == (0.0, 0.0)


def test_calibration_request_defaults_to_idle():
    request = CalibrationRequest()

    assert request.target_state == CalibrationState.IDLE
    assert request.sample_configuration_request is None


def test_line_percept_midpoint():
    line = LinePercept(first_img=(0.0, 0.0), last_img=(1.0, 1.0), first_field=(100.0, 0.0), last_field=(300.0, 50.0))

    assert line.midpoint_on_field.tolist() == [200.0, 25.0]
