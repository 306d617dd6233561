"""Geometry helpers for image-space lines and robot-space poses."""

from autocalib.geometry.lines import (
    Hyperplane2,
    angle_between,
    as_point,
    distance_to_line,
    distance_to_segment,
    is_point_left_of_line,
    signed_distance_to_line,
)
from autocalib.geometry.pose import Pose3, rotation_x, rotation_y, rotation_z

__all__ = [
    "Hyperplane2",
    "Pose3",
    "angle_between",
    "as_point",
    "distance_to_line",
    "distance_to_segment",
    "is_point_left_of_line",
    "rotation_x",
    "rotation_y",
    "rotation_z",
    "signed_distance_to_line",
]
