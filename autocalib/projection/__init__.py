"""Projection models for image-to-field transformation.

This module provides the robot head camera model and lens distortion
correction used to reproject calibration samples.
"""

from autocalib.projection.camera_model import RobotCameraModel, RobotDimensions
from autocalib.projection.image_coordinates import ImageCoordinateSystem

__all__ = [
    "ImageCoordinateSystem",
    "RobotCameraModel",
    "RobotDimensions",
]
