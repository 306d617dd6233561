"""Unit tests for line and pose geometry helpers."""

from __future__ import annotations

import math

import numpy as np
import pytest

from autocalib.geometry import (
    Hyperplane2,
    Pose3,
    angle_between,
    distance_to_line,
    distance_to_segment,
    is_point_left_of_line,
    signed_distance_to_line,
)


def test_signed_distance_uses_right_normal():
    """進行方向の右側が正"""

    base = np.array([0.0, 0.0])
    direction = np.array([1.0, 0.0])

    assert signed_distance_to_line(base, direction, np.array([5.0, -2.0])) == pytest.approx(2.0)
    assert signed_distance_to_line(base, direction, np.array([5.0, 3.0])) == pytest.approx(-3.0)
    assert distance_to_line(base, direction, np.array([5.0, 3.0])) == pytest.approx(3.0)


def test_signed_distance_with_zero_direction():
    base = np.array([1.0, 1.0])

    assert signed_distance_to_line(base, np.zeros(2), np.array([4.0, 5.0])) == pytest.approx(5.0)


def test_distance_to_segment_clamps_to_endpoints():
    start = np.array([0.0, 0.0])
    end = np.array([10.0, 0.0])

    assert distance_to_segment(start, end, np.array([5.0, 3.0])) == pytest.approx(3.0)
    assert distance_to_segment(start, end, np.array([13.0, 4.0])) == pytest.approx(5.0)
    assert distance_to_segment(start, start, np.array([3.0, 4.0])) == pytest.approx(5.0)


def test_angle_between_lines():
    origin = np.zeros(2)

    assert angle_between(origin, np.array([1.0, 0.0]), origin, np.array([0.0, 2.0])) == pytest.approx(math.pi / 2)
    assert angle_between(origin, np.array([1.0, 0.0]), origin, np.array([-3.0, 0.0])) == pytest.approx(math.pi)
    assert math.isnan(angle_between(origin, origin, origin, np.array([1.0, 0.0])))


def test_is_point_left_of_line():
    start = np.array([0.0, 0.0])
    end = np.array([1.0, 0.0])

    assert is_point_left_of_line(start, end, np.array([0.5, 1.0]))
    assert not is_point_left_of_line(start, end, np.array([0.5, -1.0]))
    assert not is_point_left_of_line(start, end, np.array([2.0, 0.0]))


def test_hyperplane_intersection():
    horizontal = Hyperplane2(np.array([0.0, 2.0]), np.array([0.0, 3.0]))
    vertical = Hyperplane2(np.array([1.0, 0.0]), np.array([5.0, 0.0]))

    np.testing.assert_allclose(horizontal.intersection(vertical), [5.0, 3.0])
    assert horizontal.signed_distance(np.array([0.0, 7.0])) == pytest.approx(4.0)
    assert horizontal.abs_distance(np.array([0.0, 1.0])) == pytest.approx(2.0)


def test_hyperplane_parallel_has_no_intersection():
    first = Hyperplane2(np.array([0.0, 1.0]), np.array([0.0, 3.0]))
    second = Hyperplane2(np.array([0.0, 1.0]), np.array([0.0, 5.0]))

    assert first.intersection(second) is None


def test_pose_composition_and_inverse():
    pose = Pose3.from_translation(x=100.0, z=50.0).rotated_z(math.pi / 2)
    point = np.array([10.0, 0.0, 0.0])

    # Z軸周りに90度回転してから並進
    np.testing.assert_allclose(pose.apply(point), [100.0, 10.0, 50.0], atol=1e-9)
    np.testing.assert_allclose(pose.inverse().apply(pose.apply(point)), point, atol=1e-9)
    np.testing.assert_allclose((pose @ pose.inverse()).rotation, np.eye(3), atol=1e-12)


def test_pose_validates_shapes():
    with pytest.raises(ValueError):
        Pose3(rotation=np.eye(2))
    with pytest.raises(ValueError):
        Pose3(translation=np.zeros(4))


def test_pose_tilt_points_camera_down():
    """Y軸周りの正の回転で前方ベクトルは下を向く"""

    pose = Pose3().rotated_y(math.radians(30.0))
    forward = pose.rotation @ np.array([1.0, 0.0, 0.0])

    assert forward[2] < 0.0
