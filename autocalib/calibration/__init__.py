"""Automatic camera calibration module."""

from autocalib.calibration.adaptive_range import AdaptiveRange
from autocalib.calibration.calibration_store import load_calibration, save_calibration
from autocalib.calibration.calibrator import AutomaticCameraCalibrator
from autocalib.calibration.line_refiner import CorrectedLine, LineRefiner
from autocalib.calibration.optimizer import (
    CalibrationOptimizer,
    GaussNewtonOptimizer,
    OptimizationPhase,
    OptimizationStep,
    pack,
    unpack,
)
from autocalib.calibration.sample_builder import SampleBuilder
from autocalib.calibration.sample_configuration import SampleConfiguration, SampleSlotError
from autocalib.calibration.samples import ALL_SAMPLE_TYPES, Sample, SampleContext, SampleType, mask_of
from autocalib.calibration.settings import CalibratorSettings

__all__ = [
    "ALL_SAMPLE_TYPES",
    "AdaptiveRange",
    "AutomaticCameraCalibrator",
    "CalibrationOptimizer",
    "CalibratorSettings",
    "CorrectedLine",
    "GaussNewtonOptimizer",
    "LineRefiner",
    "OptimizationPhase",
    "OptimizationStep",
    "Sample",
    "SampleBuilder",
    "SampleConfiguration",
    "SampleContext",
    "SampleSlotError",
    "SampleType",
    "load_calibration",
    "mask_of",
    "pack",
    "save_calibration",
    "unpack",
]
