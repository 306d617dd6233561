"""Data models for the automatic camera calibrator."""

from autocalib.models.data_models import (
    CalibrationFrame,
    CalibrationRequest,
    CalibrationState,
    CalibrationStatus,
    CameraCalibration,
    CameraInfo,
    CameraType,
    CapturePose,
    FieldDimensions,
    LinePercept,
    PenaltyMarkPercept,
    Resolution,
    SampleConfigurationRequest,
    SampleConfigurationStatus,
)

__all__ = [
    "CalibrationFrame",
    "CalibrationRequest",
    "CalibrationState",
    "CalibrationStatus",
    "CameraCalibration",
    "CameraInfo",
    "CameraType",
    "CapturePose",
    "FieldDimensions",
    "LinePercept",
    "PenaltyMarkPercept",
    "Resolution",
    "SampleConfigurationRequest",
    "SampleConfigurationStatus",
]
