"""Unit tests for RobotCameraModel and ImageCoordinateSystem."""

from __future__ import annotations

import math

import numpy as np
import pytest

from autocalib.models.data_models import CameraCalibration, CameraInfo, CameraType
from autocalib.projection import ImageCoordinateSystem, RobotCameraModel, RobotDimensions


@pytest.fixture
def model() -> RobotCameraModel:
    return RobotCameraModel()


def test_camera_matrix_places_lower_camera_on_head(model, capture_pose):
    """下カメラは首関節の前方・上方に取り付けられる"""

    matrix = model.camera_matrix(capture_pose, CameraCalibration())

    np.testing.assert_allclose(matrix.translation, [50.71, 0.0, 144.24], atol=1e-9)


def test_optical_center_projects_along_mount_tilt(model, capture_pose, lower_camera_info):
    matrix = model.camera_matrix(capture_pose, CameraCalibration())

    point = model.image_to_robot(np.array(lower_camera_info.optical_center), matrix, lower_camera_info)

    assert point is not None
    expected_x = 50.71 + 144.24 / math.tan(math.radians(39.7))
    assert point[0] == pytest.approx(expected_x)
    assert point[1] == pytest.approx(0.0, abs=1e-9)


def test_image_to_robot_and_back(model, capture_pose, lower_camera_info):
    matrix = model.camera_matrix(capture_pose, CameraCalibration())
    pixel = np.array([120.0, 400.0])

    field_point = model.image_to_robot(pixel, matrix, lower_camera_info)
    assert field_point is not None

    np.testing.assert_allclose(model.robot_to_image(field_point, matrix, lower_camera_info), pixel, atol=1e-6)


def test_image_to_robot_above_horizon_returns_none(model, pose_factory):
    camera_info = CameraInfo(camera=CameraType.UPPER)
    pose = pose_factory(camera_info)
    matrix = model.camera_matrix(pose, CameraCalibration())

    assert model.image_to_robot(np.array([320.0, 0.0]), matrix, camera_info) is None


def test_robot_to_image_behind_camera_returns_none(model, capture_pose, lower_camera_info):
    matrix = model.camera_matrix(capture_pose, CameraCalibration())

    assert model.robot_to_image(np.array([-500.0, 0.0]), matrix, lower_camera_info) is None


def test_tilt_correction_moves_projection_closer(model, capture_pose, lower_camera_info):
    """正のチルト補正でカメラが下を向き、画像中心の投影点が近づく"""

    corrected = CameraCalibration(
        camera_rotation_corrections={CameraType.LOWER: (0.0, math.radians(2.0)), CameraType.UPPER: (0.0, 0.0)}
    )
    center = np.array(lower_camera_info.optical_center)

    nominal = model.image_to_robot(center, model.camera_matrix(capture_pose, CameraCalibration()), lower_camera_info)
    tilted = model.image_to_robot(center, model.camera_matrix(capture_pose, corrected), lower_camera_info)

    assert tilted[0] < nominal[0]


def test_upper_camera_correction_does_not_affect_lower(model, capture_pose, lower_camera_info):
    corrected = CameraCalibration(
        camera_rotation_corrections={CameraType.LOWER: (0.0, 0.0), CameraType.UPPER: (0.1, 0.1)}
    )

    nominal = model.camera_matrix(capture_pose, CameraCalibration())
    other = model.camera_matrix(capture_pose, corrected)

    np.testing.assert_allclose(other.rotation, nominal.rotation)


def test_robot_dimensions_from_config_uses_degrees():
    dimensions = RobotDimensions.from_config({"lower_camera_tilt_deg": 40.0, "neck_height": 100.0})

    assert dimensions.lower_camera_tilt == pytest.approx(math.radians(40.0))
    assert dimensions.neck_height == 100.0
    assert dimensions.upper_camera_x == RobotDimensions().upper_camera_x


def test_image_coordinates_without_distortion_are_identity(lower_camera_info):
    coordinates = ImageCoordinateSystem(lower_camera_info)

    assert not coordinates.has_distortion
    np.testing.assert_allclose(coordinates.to_corrected((12.5, 99.0)), [12.5, 99.0])


def test_image_coordinates_with_distortion(lower_camera_info):
    """樽型歪みの補正は主点を動かさず、周辺の点を外側に移す"""

    coordinates = ImageCoordinateSystem.from_config(lower_camera_info, {"dist_coeffs": [-0.2, 0.0, 0.0, 0.0, 0.0]})

    assert coordinates.has_distortion
    np.testing.assert_allclose(coordinates.to_corrected((320.0, 240.0)), [320.0, 240.0], atol=1e-6)

    corrected = coordinates.to_corrected((600.0, 240.0))
    assert corrected[0] > 600.0
    assert corrected[1] == pytest.approx(240.0, abs=1e-6)
