"""Automatic Camera Calibrator

Line-based rotation calibration for the two head cameras and the body of a
humanoid robot.
"""

__version__ = "0.1.0"

# Configuration
from autocalib.config import ConfigManager

# Data models
from autocalib.models import (
    CalibrationFrame,
    CalibrationRequest,
    CalibrationState,
    CameraCalibration,
    CameraType,
)

# Calibration
from autocalib.calibration import AutomaticCameraCalibrator, CalibratorSettings

# Projection
from autocalib.projection import RobotCameraModel

__all__ = [
    "AutomaticCameraCalibrator",
    "CalibrationFrame",
    "CalibrationRequest",
    "CalibrationState",
    "CalibratorSettings",
    "CameraCalibration",
    "CameraType",
    "ConfigManager",
    "RobotCameraModel",
]
